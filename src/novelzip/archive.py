from __future__ import annotations

import gzip
import io
import json
import os
import tempfile
import time
import zipfile
import zlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .segment import ChapterCollection

ENTRY_NAME = "data.json"
COMPRESSION_LEVEL = 9
_ZIP_MAGIC = b"PK\x03\x04"
_GZIP_MAGIC = b"\x1f\x8b"


class CorruptArchiveError(ValueError):
    """Raised when a container is unreadable or its payload is not a chapter collection."""


class ContainerFormat(str, Enum):
    ZIP = "zip"
    GZIP = "gzip"

    @property
    def extension(self) -> str:
        return ".zip" if self is ContainerFormat.ZIP else ".json.gz"


@dataclass(frozen=True)
class ArchiveMetrics:
    original_size: int
    compressed_size: int
    elapsed: float

    @property
    def ratio(self) -> float:
        if self.original_size == 0:
            return 0.0
        return self.compressed_size / self.original_size


@dataclass(frozen=True)
class EncodedArchive:
    data: bytes
    original_size: int


def serialize_collection(collection: ChapterCollection) -> bytes:
    payload = collection.to_payload()
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` next to ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class ArchiveCodec:
    def __init__(self, container: ContainerFormat | str = ContainerFormat.ZIP) -> None:
        self.container = ContainerFormat(container)

    @property
    def extension(self) -> str:
        return self.container.extension

    def output_name(self, source_name: str) -> str:
        stem = source_name[: -len(".txt")] if source_name.lower().endswith(".txt") else source_name
        return f"{stem}{self.extension}"

    def encode(self, collection: ChapterCollection) -> EncodedArchive:
        raw = serialize_collection(collection)
        if self.container is ContainerFormat.GZIP:
            data = gzip.compress(raw, compresslevel=COMPRESSION_LEVEL, mtime=0)
        else:
            buffer = io.BytesIO()
            with zipfile.ZipFile(
                buffer,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=COMPRESSION_LEVEL,
            ) as zf:
                zf.writestr(ENTRY_NAME, raw)
            data = buffer.getvalue()
        return EncodedArchive(data=data, original_size=len(raw))

    def decode(self, data: bytes) -> ChapterCollection:
        if data.startswith(_ZIP_MAGIC):
            raw = _read_zip_entry(data)
        elif data.startswith(_GZIP_MAGIC):
            try:
                raw = gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as exc:
                raise CorruptArchiveError(f"Invalid gzip stream: {exc}") from exc
        else:
            raise CorruptArchiveError("Unrecognized container format.")
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptArchiveError(f"Entry is not valid UTF-8 JSON: {exc}") from exc
        try:
            return ChapterCollection.from_payload(payload)
        except ValueError as exc:
            raise CorruptArchiveError(str(exc)) from exc

    def write(self, path: Path, collection: ChapterCollection) -> ArchiveMetrics:
        started = time.perf_counter()
        encoded = self.encode(collection)
        write_atomic(Path(path), encoded.data)
        return ArchiveMetrics(
            original_size=encoded.original_size,
            compressed_size=len(encoded.data),
            elapsed=time.perf_counter() - started,
        )

    def read(self, path: Path) -> ChapterCollection:
        return self.decode(Path(path).read_bytes())


def _read_zip_entry(data: bytes) -> bytes:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            try:
                return zf.read(ENTRY_NAME)
            except KeyError as exc:
                raise CorruptArchiveError(f"Missing {ENTRY_NAME} entry.") from exc
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        EOFError,
        zlib.error,
        RuntimeError,
        NotImplementedError,
    ) as exc:
        raise CorruptArchiveError(f"Invalid zip container: {exc}") from exc


def write_archive(
    path: Path,
    collection: ChapterCollection,
    container: ContainerFormat | str = ContainerFormat.ZIP,
) -> ArchiveMetrics:
    return ArchiveCodec(container).write(path, collection)


def read_archive(path: Path) -> ChapterCollection:
    return ArchiveCodec().read(path)


__all__ = [
    "ArchiveCodec",
    "ArchiveMetrics",
    "ContainerFormat",
    "CorruptArchiveError",
    "ENTRY_NAME",
    "EncodedArchive",
    "read_archive",
    "serialize_collection",
    "write_archive",
    "write_atomic",
]

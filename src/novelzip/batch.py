from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, Protocol, Sequence, TypeVar

from .archive import ArchiveCodec, ArchiveMetrics, write_atomic
from .encoding import EncodingError, EncodingResolver
from .reporting import debug_log
from .segment import ChapterSegmenter

TEXT_SUFFIX = ".txt"
DEFAULT_BATCH_SIZE = 5
ProgressCallback = Callable[[dict[str, object]], None]
T = TypeVar("T")


class NoChaptersFound(LookupError):
    """Raised when segmentation yields nothing worth archiving."""


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class FileOutcome:
    name: str
    status: OutcomeStatus
    message: str | None = None
    output: Path | None = None
    metrics: ArchiveMetrics | None = None
    encoding: str | None = None
    chapter_count: int = 0


@dataclass
class BatchReport:
    outcomes: list[FileOutcome] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    elapsed: float = 0.0

    def _with_status(self, status: OutcomeStatus) -> list[FileOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is status]

    @property
    def succeeded(self) -> list[FileOutcome]:
        return self._with_status(OutcomeStatus.SUCCESS)

    @property
    def warnings(self) -> list[FileOutcome]:
        return self._with_status(OutcomeStatus.WARNING)

    @property
    def errors(self) -> list[FileOutcome]:
        return self._with_status(OutcomeStatus.ERROR)

    def get(self, name: str) -> FileOutcome | None:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None


class FileStore(Protocol):
    async def list_names(self, directory: Path) -> list[str]: ...

    async def size(self, path: Path) -> int: ...

    async def read_bytes(self, path: Path) -> bytes: ...

    async def write_bytes(self, path: Path, data: bytes) -> None: ...


class LocalFileStore:
    """File access on the local disk, run off the event loop."""

    async def list_names(self, directory: Path) -> list[str]:
        def _list() -> list[str]:
            return sorted(entry.name for entry in directory.iterdir() if entry.is_file())

        return await asyncio.to_thread(_list)

    async def size(self, path: Path) -> int:
        stat = await asyncio.to_thread(path.stat)
        return stat.st_size

    async def read_bytes(self, path: Path) -> bytes:
        return await asyncio.to_thread(path.read_bytes)

    async def write_bytes(self, path: Path, data: bytes) -> None:
        await asyncio.to_thread(write_atomic, path, data)


def normalize_selection(names: Iterable[str], suffix: str = TEXT_SUFFIX) -> list[str]:
    normalized: list[str] = []
    for name in names:
        candidate = name.strip()
        if not candidate:
            continue
        if not candidate.endswith(suffix):
            candidate = f"{candidate}{suffix}"
        if candidate not in normalized:
            normalized.append(candidate)
    return normalized


def iter_batches(items: Sequence[T], size: int) -> Iterator[list[T]]:
    if size < 1:
        raise ValueError("Batch size must be at least 1.")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class BatchOrchestrator:
    def __init__(
        self,
        *,
        resolver: EncodingResolver | None = None,
        segmenter_factory: Callable[[], ChapterSegmenter] = ChapterSegmenter,
        codec: ArchiveCodec | None = None,
        store: FileStore | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress: ProgressCallback | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("Batch size must be at least 1.")
        self.resolver = resolver or EncodingResolver()
        self.segmenter_factory = segmenter_factory
        self.codec = codec or ArchiveCodec()
        self.store = store or LocalFileStore()
        self.batch_size = batch_size
        self.progress = progress

    def _emit(self, event: str, name: str | None = None, **fields: object) -> None:
        if self.progress is not None:
            self.progress({"event": event, "source": name, **fields})

    async def discover(
        self, input_dir: Path, name_filter: Iterable[str] | None = None
    ) -> tuple[list[str], list[str]]:
        """Return the files to process and the requested names that do not exist."""
        names = await self.store.list_names(input_dir)
        available = [name for name in names if name.endswith(TEXT_SUFFIX)]
        requested = normalize_selection(name_filter or [])
        if not requested:
            return available, []
        selected = [name for name in available if name in requested]
        missing = [name for name in requested if name not in available]
        return selected, missing

    async def process_file(self, name: str, input_dir: Path, output_dir: Path) -> FileOutcome:
        self._emit("file_start", name)
        try:
            outcome = await self._process(name, input_dir, output_dir)
        except NoChaptersFound as exc:
            outcome = FileOutcome(name=name, status=OutcomeStatus.WARNING, message=str(exc))
            self._emit("file_skipped", name, reason=str(exc))
            return outcome
        except (EncodingError, OSError) as exc:
            outcome = FileOutcome(name=name, status=OutcomeStatus.ERROR, message=str(exc))
            self._emit("file_failed", name, reason=str(exc))
            return outcome
        self._emit("file_done", name, output=outcome.output, metrics=outcome.metrics)
        return outcome

    async def _process(self, name: str, input_dir: Path, output_dir: Path) -> FileOutcome:
        source = input_dir / name
        if self.resolver.max_bytes is not None:
            self.resolver.check_size(await self.store.size(source))
        data = await self.store.read_bytes(source)
        decoded = self.resolver.resolve(data)
        if decoded.encoding != self.resolver.encodings[0]:
            debug_log(f"{name}: fell back to {decoded.encoding}")
        collection = self.segmenter_factory().segment(decoded.text)
        if not collection.chapters:
            raise NoChaptersFound(f"No chapters found in {name}")
        output_path = output_dir / self.codec.output_name(name)
        started = time.perf_counter()
        encoded = await asyncio.to_thread(self.codec.encode, collection)
        await self.store.write_bytes(output_path, encoded.data)
        metrics = ArchiveMetrics(
            original_size=encoded.original_size,
            compressed_size=len(encoded.data),
            elapsed=time.perf_counter() - started,
        )
        debug_log(f"{name}: {len(collection)} chapters via {decoded.encoding}")
        return FileOutcome(
            name=name,
            status=OutcomeStatus.SUCCESS,
            output=output_path,
            metrics=metrics,
            encoding=decoded.encoding,
            chapter_count=len(collection),
        )

    async def run_async(
        self,
        input_dir: Path,
        output_dir: Path,
        name_filter: Iterable[str] | None = None,
    ) -> BatchReport:
        started = time.perf_counter()
        selected, missing = await self.discover(input_dir, name_filter)
        report = BatchReport(missing=missing)
        self._emit("run_start", total=len(selected))
        for batch in iter_batches(selected, self.batch_size):
            outcomes = await asyncio.gather(
                *(self.process_file(name, input_dir, output_dir) for name in batch)
            )
            report.outcomes.extend(outcomes)
        report.elapsed = time.perf_counter() - started
        return report

    def run(
        self,
        input_dir: Path,
        output_dir: Path,
        name_filter: Iterable[str] | None = None,
    ) -> BatchReport:
        return asyncio.run(self.run_async(Path(input_dir), Path(output_dir), name_filter))


__all__ = [
    "BatchOrchestrator",
    "BatchReport",
    "DEFAULT_BATCH_SIZE",
    "FileOutcome",
    "FileStore",
    "LocalFileStore",
    "NoChaptersFound",
    "OutcomeStatus",
    "ProgressCallback",
    "iter_batches",
    "normalize_selection",
]

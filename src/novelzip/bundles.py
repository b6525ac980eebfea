from __future__ import annotations

import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .archive import write_atomic
from .reporting import debug_log

BUNDLE_SUFFIX = ".zip"


@dataclass
class BundleResult:
    bundle: Path
    extracted: list[Path] = field(default_factory=list)
    error: str | None = None


def _text_member_name(info: zipfile.ZipInfo) -> str | None:
    if info.is_dir():
        return None
    name = PurePosixPath(info.filename.replace("\\", "/")).name
    if not name.endswith(".txt") or name.startswith("."):
        return None
    return name


def extract_text_bundles(input_dir: Path) -> list[BundleResult]:
    """
    Unpack the ``.txt`` members of every ``.zip`` bundle in ``input_dir``.

    Members are written flat (directory components dropped) next to the
    bundle. A bundle that cannot be opened is reported in its result and the
    remaining bundles are still processed.
    """
    results: list[BundleResult] = []
    bundles = sorted(
        p for p in input_dir.iterdir() if p.is_file() and p.name.endswith(BUNDLE_SUFFIX)
    )
    for bundle in bundles:
        result = BundleResult(bundle=bundle)
        try:
            with zipfile.ZipFile(bundle) as zf:
                for info in zf.infolist():
                    name = _text_member_name(info)
                    if name is None:
                        continue
                    target = input_dir / name
                    write_atomic(target, zf.read(info))
                    result.extracted.append(target)
                    debug_log(f"{bundle.name}: extracted {name}")
        except (
            zipfile.BadZipFile,
            zlib.error,
            OSError,
            RuntimeError,
            NotImplementedError,
        ) as exc:
            result.error = str(exc)
        results.append(result)
    return results


__all__ = ["BundleResult", "extract_text_bundles"]

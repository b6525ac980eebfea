from __future__ import annotations

import argparse
import sys
from importlib import metadata
from pathlib import Path

import tomllib

from .archive import ContainerFormat
from .batch import BatchOrchestrator, BatchReport, normalize_selection
from .bundles import extract_text_bundles
from .config import PipelineConfig, load_config
from .reporting import BatchProgress, format_outcome, format_summary, set_debug_logging
from .segment import EmptyPolicy


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - unusual install layout
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("novelzip")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="novelzip",
        description=(
            "Split plain-text novels into chapters and store each book as a "
            "compressed JSON archive."
        ),
    )
    ap.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"novelzip {__version__}",
    )
    ap.add_argument(
        "files",
        nargs="*",
        help="Names of .txt files in the input directory to process (default: all). "
        "The .txt extension may be omitted.",
    )
    ap.add_argument("--config", help="Path to a TOML config file.")
    ap.add_argument("--input-dir", help="Directory holding .txt/.zip sources (default: data).")
    ap.add_argument("--output-dir", help="Directory receiving archives (default: result).")
    ap.add_argument(
        "--container",
        choices=[fmt.value for fmt in ContainerFormat],
        help="Archive container: 'zip' (default, data.json entry) or 'gzip' (.json.gz).",
    )
    ap.add_argument(
        "--encoding",
        dest="encodings",
        action="append",
        help="Candidate encoding, tried in order. Repeat to build the list "
        "(default: utf-8 then gb18030).",
    )
    ap.add_argument(
        "--max-bytes",
        type=int,
        help="Reject input files larger than this many bytes before decoding.",
    )
    ap.add_argument(
        "--empty-policy",
        choices=[policy.value for policy in EmptyPolicy],
        help="When no chapter heading is found: 'skip' the file (default) or "
        "store the whole text as a 'single' chapter.",
    )
    ap.add_argument("--placeholder-title", help="Title used by --empty-policy single.")
    ap.add_argument(
        "--content-marker",
        help="Ignore every line up to and including this marker line.",
    )
    ap.add_argument("--divider", help="Drop body lines consisting only of this divider.")
    ap.add_argument(
        "--punctuation",
        action="store_true",
        default=None,
        help="Map full-width punctuation to ASCII and fix spacing around it.",
    )
    ap.add_argument("--batch-size", type=int, help="Files processed concurrently (default: 5).")
    ap.add_argument(
        "--no-extract",
        dest="extract_bundles",
        action="store_false",
        default=None,
        help="Do not unpack .zip bundles found in the input directory.",
    )
    ap.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging.",
    )
    return ap


def _resolve_config(args: argparse.Namespace) -> PipelineConfig:
    base = load_config(Path(args.config) if args.config else None)
    overrides: dict[str, object] = {
        "input_dir": Path(args.input_dir) if args.input_dir else None,
        "output_dir": Path(args.output_dir) if args.output_dir else None,
        "container": args.container,
        "encodings": tuple(args.encodings) if args.encodings else None,
        "max_bytes": args.max_bytes,
        "empty_policy": args.empty_policy,
        "placeholder_title": args.placeholder_title,
        "content_marker": args.content_marker,
        "divider": args.divider,
        "punctuation": args.punctuation,
        "batch_size": args.batch_size,
        "extract_bundles": args.extract_bundles,
        "selected": list(args.files) or None,
    }
    return base.with_overrides(overrides)


def _bootstrap_dirs(config: PipelineConfig) -> None:
    config.input_dir.mkdir(parents=True, exist_ok=True)
    config.output_dir.mkdir(parents=True, exist_ok=True)


def _extract_bundles(config: PipelineConfig) -> None:
    for result in extract_text_bundles(config.input_dir):
        if result.error:
            print(f"✗ Failed to extract {result.bundle.name}: {result.error}")
        else:
            names = ", ".join(path.name for path in result.extracted) or "no .txt files"
            print(f"✓ Extracted {result.bundle.name}: {names}")


def run_pipeline(config: PipelineConfig) -> BatchReport:
    orchestrator = BatchOrchestrator(
        resolver=config.resolver(),
        segmenter_factory=config.segmenter_factory(),
        codec=config.codec(),
        batch_size=config.batch_size,
    )
    progress = BatchProgress()
    orchestrator.progress = progress.handle
    try:
        return orchestrator.run(config.input_dir, config.output_dir, config.selected)
    finally:
        progress.close()


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = build_parser().parse_args(argv)
    set_debug_logging(bool(args.debug))

    try:
        config = _resolve_config(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    try:
        _bootstrap_dirs(config)
    except OSError as exc:
        raise SystemExit(f"Cannot prepare directories: {exc}") from exc

    if config.extract_bundles:
        _extract_bundles(config)

    if config.selected:
        names = ", ".join(normalize_selection(config.selected))
        print(f"[novelzip] Processing selected files: {names}")
    else:
        print(f"[novelzip] Processing all files in {config.input_dir}")
    report = run_pipeline(config)

    for name in report.missing:
        print(f"⚠ {name}: not found in {config.input_dir}")
    if config.selected and not report.outcomes:
        print("[novelzip] No matching files found in the input directory.")
        return 0
    for outcome in report.outcomes:
        print(format_outcome(outcome))
    print(f"[novelzip] {format_summary(report)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from functools import partial
from pathlib import Path
from typing import Any, Callable, Mapping

from .archive import ArchiveCodec, ContainerFormat
from .batch import DEFAULT_BATCH_SIZE
from .encoding import DEFAULT_ENCODINGS, EncodingResolver, validate_encodings
from .segment import DEFAULT_PLACEHOLDER_TITLE, ChapterSegmenter, EmptyPolicy

CONFIG_ENV_VAR = "NOVELZIP_CONFIG"


@dataclass
class PipelineConfig:
    input_dir: Path = Path("data")
    output_dir: Path = Path("result")
    encodings: tuple[str, ...] = DEFAULT_ENCODINGS
    max_bytes: int | None = None
    empty_policy: EmptyPolicy = EmptyPolicy.SKIP
    placeholder_title: str = DEFAULT_PLACEHOLDER_TITLE
    content_marker: str | None = None
    divider: str | None = None
    punctuation: bool = False
    container: ContainerFormat = ContainerFormat.ZIP
    batch_size: int = DEFAULT_BATCH_SIZE
    extract_bundles: bool = True
    selected: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.input_dir = Path(self.input_dir)
        self.output_dir = Path(self.output_dir)
        if isinstance(self.encodings, str):
            self.encodings = (self.encodings,)
        self.encodings = validate_encodings(self.encodings)
        self.empty_policy = EmptyPolicy(self.empty_policy)
        self.container = ContainerFormat(self.container)
        self.content_marker = self.content_marker or None
        self.divider = self.divider or None
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1.")
        if self.max_bytes is not None and self.max_bytes < 1:
            raise ValueError("max_bytes must be positive when set.")

    def resolver(self) -> EncodingResolver:
        return EncodingResolver(self.encodings, max_bytes=self.max_bytes)

    def segmenter_factory(self) -> Callable[[], ChapterSegmenter]:
        return partial(
            ChapterSegmenter,
            content_marker=self.content_marker,
            divider=self.divider,
            punctuation=self.punctuation,
            empty_policy=self.empty_policy,
            placeholder_title=self.placeholder_title,
        )

    def codec(self) -> ArchiveCodec:
        return ArchiveCodec(self.container)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "PipelineConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        _check_keys(values)
        return replace(self, **values)


def _check_keys(values: Mapping[str, Any]) -> None:
    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")


def load_config(path: Path | None = None) -> PipelineConfig:
    """
    Load a PipelineConfig from a TOML file.

    Keys may sit at the top level or under ``[tool.novelzip]``. Relative
    directories are resolved against the file's location. Without ``path``
    the file named by ``NOVELZIP_CONFIG`` is used, or defaults when unset.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return PipelineConfig()
        path = Path(env_path)
    path = Path(path).expanduser()
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid config file {path}: {exc}") from exc
    section = data.get("tool", {}).get("novelzip", data)
    if not isinstance(section, dict):
        raise ValueError(f"Invalid config section in {path}")
    values = {key.replace("-", "_"): value for key, value in section.items() if key != "tool"}
    _check_keys(values)
    for key in ("input_dir", "output_dir"):
        if key in values:
            candidate = Path(values[key]).expanduser()
            values[key] = candidate if candidate.is_absolute() else path.parent / candidate
    return PipelineConfig(**values)


__all__ = ["CONFIG_ENV_VAR", "PipelineConfig", "load_config"]

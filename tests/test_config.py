from __future__ import annotations

from pathlib import Path

import pytest

from novelzip.archive import ContainerFormat
from novelzip.config import PipelineConfig, load_config
from novelzip.segment import EmptyPolicy


def test_defaults() -> None:
    config = PipelineConfig()
    assert config.input_dir == Path("data")
    assert config.output_dir == Path("result")
    assert config.encodings == ("utf-8", "gb18030")
    assert config.batch_size == 5
    assert config.empty_policy is EmptyPolicy.SKIP
    assert config.container is ContainerFormat.ZIP


def test_load_tool_table_resolves_relative_dirs(tmp_path: Path) -> None:
    path = tmp_path / "novelzip.toml"
    path.write_text(
        """
[tool.novelzip]
input-dir = "books"
output_dir = "/abs/out"
container = "gzip"
empty_policy = "single"
encodings = ["utf-8", "big5"]
batch_size = 2
content_marker = ""
""",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.input_dir == tmp_path / "books"
    assert config.output_dir == Path("/abs/out")
    assert config.container is ContainerFormat.GZIP
    assert config.empty_policy is EmptyPolicy.SINGLE
    assert config.encodings == ("utf-8", "big5")
    assert config.batch_size == 2
    assert config.content_marker is None


def test_load_top_level_keys(tmp_path: Path) -> None:
    path = tmp_path / "cfg.toml"
    path.write_text('punctuation = true\ndivider = "***"\n', encoding="utf-8")
    config = load_config(path)
    assert config.punctuation is True
    assert config.divider == "***"


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "cfg.toml"
    path.write_text("colour = 'blue'\n", encoding="utf-8")
    with pytest.raises(ValueError, match="colour"):
        load_config(path)


def test_invalid_values_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "cfg.toml"
    path.write_text("batch_size = 0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)
    with pytest.raises(ValueError):
        PipelineConfig(container="rar")


def test_env_var_names_default_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "env.toml"
    path.write_text("batch_size = 9\n", encoding="utf-8")
    monkeypatch.setenv("NOVELZIP_CONFIG", str(path))
    assert load_config().batch_size == 9
    monkeypatch.delenv("NOVELZIP_CONFIG")
    assert load_config().batch_size == 5


def test_missing_file_raises_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        load_config(tmp_path / "nope.toml")


def test_overrides_skip_none() -> None:
    config = PipelineConfig().with_overrides({"batch_size": 3, "divider": None})
    assert config.batch_size == 3
    assert config.divider is None


def test_segmenter_factory_builds_fresh_instances() -> None:
    factory = PipelineConfig(empty_policy="single").segmenter_factory()
    first, second = factory(), factory()
    assert first is not second
    assert first.empty_policy is EmptyPolicy.SINGLE


def test_encodings_are_validated_up_front() -> None:
    with pytest.raises(ValueError, match="bogus"):
        PipelineConfig(encodings=("utf-8", "bogus"))
    with pytest.raises(ValueError):
        PipelineConfig(encodings=())
    with pytest.raises(ValueError, match="bogus"):
        PipelineConfig().with_overrides({"encodings": ("bogus",)})

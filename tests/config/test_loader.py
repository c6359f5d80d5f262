from __future__ import annotations

from pathlib import Path

import pytest

from feedsync.config import ConfigLocator, ConfigRepository, GlobalConfig
from feedsync.errors import ConfigurationError


def test_config_locator_uses_env_and_creates_directories(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("FEEDSYNC_HOME", str(tmp_path))
    locator = ConfigLocator()
    assert locator.project_root == tmp_path.resolve()
    assert locator.data_dir == (tmp_path / "data").resolve()
    assert locator.logs_dir == (tmp_path / "logs").resolve()
    assert locator.data_dir.exists()
    assert locator.logs_dir.exists()
    assert locator.global_config_path().name == "feedsync.yaml"


def test_missing_config_file_is_written_with_defaults(tmp_path: Path) -> None:
    repo = ConfigRepository(ConfigLocator(), path=tmp_path / "feedsync.yaml")
    config = repo.load()
    assert config == GlobalConfig()
    assert (tmp_path / "feedsync.yaml").exists()


def test_config_repository_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "feedsync.yaml"
    config = GlobalConfig.model_validate(
        {"engine": {"sources": ["alice", "bob"], "poll_interval": {"minutes": 5}}}
    )
    ConfigRepository(ConfigLocator(), path=path).save(config)
    loaded = ConfigRepository(ConfigLocator(), path=path).load()
    assert loaded == config
    assert loaded.engine.interval_seconds == 300


def test_config_repository_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "feedsync.json"
    path.write_text('{"engine": {"sources": ["alice"]}}', encoding="utf-8")
    assert ConfigRepository(ConfigLocator(), path=path).load().engine.sources == ["alice"]


@pytest.mark.parametrize(
    ("name", "content"),
    [
        ("feedsync.yaml", "engine: [unclosed"),
        ("feedsync.yaml", "- just\n- a list\n"),
        ("feedsync.yaml", "engine:\n  poll_interval: -3\n"),
        ("feedsync.toml", "engine = 1"),
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, name: str, content: str) -> None:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ConfigRepository(ConfigLocator(), path=path).load()


def test_store_path_is_relative_to_data_dir(tmp_path: Path) -> None:
    locator = ConfigLocator()
    repo = ConfigRepository(locator, path=tmp_path / "feedsync.yaml")
    assert repo.store_path() == (locator.data_dir / "content.db").resolve()

"""Tests for flashvocab.config and flashvocab.paths."""

from pathlib import Path

import pytest

from flashvocab.config import (
    CONFIG_FILENAME,
    DEFAULT_INDEX_URL,
    AppConfig,
    IndexConfig,
    load_config,
    load_or_create_config,
    save_config,
)
from flashvocab.paths import get_data_dir, get_default_store_path


class TestConfig:

    def test_create_writes_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FLASHVOCAB_INDEX_URL", raising=False)
        config = load_or_create_config(tmp_path)

        assert (tmp_path / CONFIG_FILENAME).exists()
        assert config.store_kind == "json"
        assert config.store_path is None
        assert config.index.url == DEFAULT_INDEX_URL
        assert config.index.core == "vocabulary"
        assert config.index.timeout is None
        assert config.index.enabled

    def test_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FLASHVOCAB_INDEX_URL", raising=False)
        config = AppConfig(
            path=tmp_path,
            store_path=tmp_path / "words.json",
            index=IndexConfig(url="http://solr:8983", core="words", timeout=2.5, enabled=False),
        )
        save_config(config)

        loaded = load_config(tmp_path)
        assert loaded.store_path == tmp_path / "words.json"
        assert loaded.index == config.index
        assert loaded.store_options().path == tmp_path / "words.json"

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path)

    def test_newer_version_rejected(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[store]\nversion = 99\n")
        with pytest.raises(ValueError, match="newer"):
            load_config(tmp_path)

    def test_index_url_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FLASHVOCAB_INDEX_URL", "http://search.local:8080")
        config = load_or_create_config(tmp_path)
        assert config.index.url == "http://search.local:8080"
        # Environment override is not written back
        assert "search.local" not in (tmp_path / CONFIG_FILENAME).read_text()


class TestPaths:

    def test_data_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FLASHVOCAB_DATA_DIR", str(tmp_path))
        assert get_data_dir() == tmp_path.resolve()

    def test_default_store_paths_differ_per_kind(self, tmp_path):
        json_path = get_default_store_path("json", tmp_path)
        sqlite_path = get_default_store_path("sqlite", tmp_path)
        assert json_path == tmp_path / "data" / "flashvocab.json"
        assert sqlite_path == tmp_path / "data" / "flashvocab.db"
        assert isinstance(json_path, Path)


class TestErrorLog:

    def test_log_exception_appends_traceback(self, tmp_path, monkeypatch):
        from flashvocab.errors import log_exception

        monkeypatch.setenv("FLASHVOCAB_DATA_DIR", str(tmp_path))
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            path = log_exception(e, "flashvocab CLI")

        text = path.read_text()
        assert path == tmp_path.resolve() / "flashvocab-errors.log"
        assert "RuntimeError flashvocab CLI" in text
        assert "boom" in text

    def test_log_exception_in_given_directory(self, tmp_path):
        from flashvocab.errors import log_exception

        try:
            raise ValueError("bad value")
        except ValueError as e:
            path = log_exception(e, data_dir=tmp_path / "logs")

        assert path == tmp_path / "logs" / "flashvocab-errors.log"
        assert "bad value" in path.read_text()

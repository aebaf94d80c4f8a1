"""Tests for configuration files and runtime wiring."""

import pytest

from newsdesk.config import (
    Config,
    ConfigModel,
    JobConfig,
    SourceConfig,
    load_config,
    load_jobs,
    load_sources,
    save_config,
    save_jobs,
    save_sources,
)
from newsdesk.config.models import LoggingConfig
from newsdesk.db import MemoryStore
from newsdesk.ingestion import FeedSource, WordPressClient
from newsdesk.runtime import Runtime


def test_config_round_trip(tmp_path):
    path = tmp_path / "config.yaml"
    save_config(ConfigModel(batch={"word_count": 25}, scheduler={"timezone": "America/New_York"}), path)

    loaded = load_config(path)

    assert loaded.batch.word_count == 25
    assert loaded.batch.clean_content == 5
    assert loaded.scheduler.timezone == "America/New_York"


def test_empty_config_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path).postgres.database == "newsdesk"


def test_invalid_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("batch: [unclosed")
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(path)

    path.write_text("batch:\n  word_count: 0\n")
    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)


def test_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_log_level_is_normalized():
    assert LoggingConfig(level="debug").level == "DEBUG"
    with pytest.raises(ValueError):
        LoggingConfig(level="chatty")


def test_sources_and_jobs_round_trip(tmp_path):
    sources = [SourceConfig(name="Feed", url="https://feed", weight=0.4, enabled=False)]
    jobs = [JobConfig(name="daily", schedule="0 8 * * *", parameters={"limit": 5})]

    save_sources(sources, tmp_path / "sources.yaml")
    save_jobs(jobs, tmp_path / "jobs.yaml")

    assert load_sources(tmp_path / "sources.yaml") == sources
    assert load_jobs(tmp_path / "jobs.yaml") == jobs


def test_invalid_job_entry_names_the_job(tmp_path):
    path = tmp_path / "jobs.yaml"
    path.write_text("jobs:\n  - name: broken\n    parameters: {}\n")
    with pytest.raises(ValueError, match="broken"):
        load_jobs(path)


def test_secrets_come_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    save_config(ConfigModel(wordpress={"base_url": "https://site.example"}), path)
    monkeypatch.setenv("NEWSDESK_DB_PASSWORD", "s3cret")
    monkeypatch.setenv("PERPLEXITY_API_KEY", "pplx-key")
    monkeypatch.setenv("WORDPRESS_USERNAME", "editor")
    monkeypatch.delenv("WORDPRESS_APP_PASSWORD", raising=False)

    config = Config(path)

    assert config.get_db_config()["password"] == "s3cret"
    assert config.get_ingestion_config()["api_key"] == "pplx-key"
    assert config.get_wordpress_auth() is None
    assert config.sources_path == tmp_path / "sources.yaml"


@pytest.mark.asyncio
async def test_runtime_wiring_without_optional_services(tmp_path, monkeypatch):
    monkeypatch.delenv("PERPLEXITY_API_KEY", raising=False)
    path = tmp_path / "config.yaml"
    save_config(ConfigModel(batch={"ingest": 3}), path)
    save_sources([SourceConfig(name="Feed", url="https://feed")], tmp_path / "sources.yaml")

    async with Runtime(Config(path), store=MemoryStore()) as runtime:
        assert set(runtime.sources) == {"feeds"}
        assert isinstance(runtime.sources["feeds"], FeedSource)
        assert [s.name for s in runtime.sources["feeds"].sources] == ["Feed"]
        assert set(runtime.operations) == {"word-count", "clean-content"}
        assert set(runtime.registry.handlers) == {
            "news_import",
            "word_count_backfill",
            "clean_content_backfill",
        }
        assert runtime.ingest_operation().default_batch_size == 3


@pytest.mark.asyncio
async def test_runtime_wires_wordpress_when_configured(tmp_path):
    path = tmp_path / "config.yaml"
    save_config(ConfigModel(wordpress={"base_url": "https://site.example"}), path)

    async with Runtime(Config(path), store=MemoryStore()) as runtime:
        assert isinstance(runtime.sources["wordpress"], WordPressClient)
        assert "sync" in runtime.operations
        assert "wordpress_sync" in runtime.registry.handlers

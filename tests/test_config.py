import logging

import pytest

from fieldlog.config import Config
from fieldlog.logging_config import setup_logging


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FIELDLOG_BATCH_SIZE", "20")
    monkeypatch.setenv("FIELDLOG_FLICKR_API_KEY", "key")
    monkeypatch.setenv("FIELDLOG_NO_CACHE", "1")

    config = Config()
    assert config.batch_size == 20
    assert config.flickr_api_key == "key"
    assert config.use_cache is False


def test_invalid_integer_environment(monkeypatch):
    monkeypatch.setenv("FIELDLOG_BATCH_SIZE", "many")
    with pytest.raises(ValueError):
        Config()


def test_update_from_args_skips_none_and_unknown_keys():
    config = Config()
    config.update_from_args({"batch_size": 5, "output_format": None, "query": "robin"})
    assert config.batch_size == 5
    assert config.output_format == "csv"
    assert not hasattr(config, "query")


def test_ensure_directories(tmp_path):
    config = Config()
    config.cache_base_dir = str(tmp_path / "base")
    config.cache_dir = str(tmp_path / "base" / "ns")
    config.ensure_directories()
    assert (tmp_path / "base" / "ns").is_dir()


def test_setup_logging_with_file(tmp_path):
    log_file = tmp_path / "fieldlog.log"
    setup_logging("DEBUG", str(log_file))
    logging.getLogger("fieldlog.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello" in log_file.read_text()
    setup_logging("WARNING")


def test_setup_logging_invalid_level():
    with pytest.raises(ValueError):
        setup_logging("LOUD")

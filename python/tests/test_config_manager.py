"""
Tests for configuration loading and validation.
"""

import logging

import pytest

from config_manager import (
    ConfigManager,
    ConfigurationError,
    CountryConfig,
    DEFAULT_MISSING_COUNTRY,
    DEFAULT_OTHER_COUNTRY,
    LoggingConfig,
    get_config,
)
from logging_setup import configure_logging
from newsrisk.connection import DatabaseSettings
from newsrisk.keyword_sources import FileKeywordSource


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestDefaults:
    """Tests for defaults when no config file exists"""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = ConfigManager(str(tmp_path / "absent.yaml"))
        assert config.analysis.batch_size == 100
        assert config.analysis.content_max_length == 1500
        assert config.keywords.comment_marker == "#"
        assert config.countries.missing_label == DEFAULT_MISSING_COUNTRY
        assert config.countries.other_label == DEFAULT_OTHER_COUNTRY
        assert len(config.countries.recognized) == 17

    def test_canonical_labels_end_with_sentinels(self):
        labels = CountryConfig().canonical_labels
        assert labels[-2:] == [DEFAULT_MISSING_COUNTRY, DEFAULT_OTHER_COUNTRY]
        assert len(labels) == 19


class TestLoading:
    """Tests for parsing config.yaml"""

    def test_sections_parsed(self, tmp_path):
        path = write_config(tmp_path, """
database:
  url: sqlite:///test.db
keywords:
  file_path: kw.txt
  comment_marker: "//"
analysis:
  batch_size: 10
  content_max_length: 200
countries:
  recognized: [US, JP]
  missing_label: unknown
  other_label: rest
logging:
  level: debug
monitoring:
  slow_query_threshold_ms: 50
  warning_threshold_ms: 10
""")
        config = ConfigManager(path)

        assert config.database.url == "sqlite:///test.db"
        assert config.keywords.file_path == "kw.txt"
        assert config.keywords.comment_marker == "//"
        assert config.analysis.batch_size == 10
        assert config.analysis.content_max_length == 200
        assert config.countries.canonical_labels == ["US", "JP", "unknown", "rest"]
        assert config.monitoring.slow_query_threshold_ms == 50
        assert config.to_dict()["analysis"] == {"batch_size": 10, "content_max_length": 200}

    def test_empty_file_uses_defaults(self, tmp_path):
        config = ConfigManager(write_config(tmp_path, ""))
        assert config.analysis.batch_size == 100

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(tmp_path, "analysis: [unclosed"))

    def test_top_level_must_be_mapping(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(tmp_path, "- a\n- b\n"))

    def test_database_settings_from_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        config = ConfigManager(write_config(tmp_path, "database:\n  host: db\n  name: news\n"))
        settings = DatabaseSettings.from_config(config.database)
        assert settings.get_url() == "postgresql+psycopg2://cert_user:cert_password@db:5432/news"

    def test_database_url_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///override.db")
        config = ConfigManager(write_config(tmp_path, "database:\n  url: sqlite:///file.db\n"))
        settings = DatabaseSettings.from_config(config.database)
        assert settings.get_url() == "sqlite:///override.db"
        assert settings.engine_options() == {}


class TestKeywordFilePath:
    """Tests for locating the keyword file"""

    def test_shipped_file_found_from_other_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = ConfigManager()

        assert config.config_path.name == "config.yaml"
        assert config.keyword_file_path.is_file()
        keywords = FileKeywordSource(
            config.keyword_file_path, comment_marker=config.keywords.comment_marker
        ).load()
        assert "recall" in keywords

    def test_relative_path_next_to_config(self, tmp_path, monkeypatch):
        config_dir = tmp_path / "conf"
        config_dir.mkdir()
        path = write_config(config_dir, "keywords:\n  file_path: lists/kw.txt\n")
        monkeypatch.chdir(tmp_path)

        config = ConfigManager(path)

        assert config.keyword_file_path == (config_dir / "lists" / "kw.txt").resolve()

    def test_absolute_path_unchanged(self, tmp_path):
        target = tmp_path / "kw.txt"
        path = write_config(tmp_path, f"keywords:\n  file_path: '{target.as_posix()}'\n")
        assert ConfigManager(path).keyword_file_path == target


class TestValidation:
    """Tests for invalid configuration values"""

    @pytest.mark.parametrize("text", [
        "analysis:\n  batch_size: 0\n",
        "analysis:\n  batch_size: -5\n",
        "analysis:\n  content_max_length: 0\n",
        "keywords:\n  comment_marker: ' '\n",
        "countries:\n  missing_label: ''\n",
        "countries:\n  missing_label: same\n  other_label: same\n",
        "countries:\n  recognized: [美国, 未确定]\n",
        "countries:\n  recognized: 美国\n",
        "logging:\n  level: LOUD\n",
        "monitoring:\n  slow_query_threshold_ms: 10\n  warning_threshold_ms: 20\n",
    ])
    def test_rejected(self, tmp_path, text):
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(tmp_path, text))


class TestSingleton:
    """Tests for the shared instance"""

    def test_get_instance_is_shared(self, tmp_path):
        ConfigManager.reset_instance()
        try:
            path = write_config(tmp_path, "analysis:\n  batch_size: 7\n")
            first = get_config(path)
            second = ConfigManager.get_instance()
            assert first is second
            assert second.analysis.batch_size == 7
        finally:
            ConfigManager.reset_instance()


class TestLoggingSetup:
    """Tests for configure_logging"""

    def test_file_handler_created(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        log_file = tmp_path / "logs" / "analysis.log"
        try:
            configure_logging(LoggingConfig(level="WARNING", file=str(log_file), console=False))
            logging.getLogger("newsrisk.test").warning("written to file")
            for handler in root.handlers:
                handler.flush()

            assert root.level == logging.WARNING
            assert "written to file" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_level_override(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            configure_logging(LoggingConfig(level="INFO", file=None, console=True), level="DEBUG")
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

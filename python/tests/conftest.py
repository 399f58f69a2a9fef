"""
Shared fixtures for the cert news analysis tests.

Database tests run against an in-memory SQLite database shared through a
StaticPool, so every session scope opened by the services sees the same data.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).parent.parent))

from config_manager import ConfigManager
from newsrisk.connection import create_test_provider
from newsrisk.models import NewsRecord
from newsrisk.repositories import KeywordCatalogRepository, NewsRecordRepository


@pytest.fixture
def provider():
    """Session provider bound to a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    provider = create_test_provider(engine=engine)
    provider.init()
    provider.create_tables()
    yield provider
    provider.close()


@pytest.fixture
def keyword_file(tmp_path) -> Path:
    """Path of a keyword file inside the test's temp dir (not created)."""
    return tmp_path / "data" / "keywords.txt"


@pytest.fixture
def app_config(tmp_path, keyword_file) -> ConfigManager:
    """Default configuration pointing at the temp keyword file."""
    config = ConfigManager(str(tmp_path / "missing-config.yaml"))
    config.keywords.file_path = str(keyword_file)
    return config


@pytest.fixture
def add_record(provider):
    """Insert a news record and return its id."""
    def _add(**fields: Any) -> str:
        with provider.session_scope() as session:
            record = NewsRecordRepository(session).create(fields)
            return record.id
    return _add


@pytest.fixture
def get_record(provider):
    """Read a record back in a fresh session (deleted ones included)."""
    def _get(record_id: str) -> Optional[NewsRecord]:
        with provider.session_scope() as session:
            return NewsRecordRepository(session).get_by_id(record_id, include_deleted=True)
    return _get


@pytest.fixture
def add_catalog_keywords(provider):
    """Insert keywords into the catalog table."""
    def _add(keywords: List[str], enabled: bool = True) -> None:
        with provider.session_scope() as session:
            repo = KeywordCatalogRepository(session)
            for keyword in keywords:
                repo.add(keyword, enabled=enabled)
    return _add


def write_keyword_file(path: Path, keywords: List[str], header: bool = True) -> None:
    """Write a keyword file by hand, the way an operator would edit it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["# keywords maintained by hand", ""] if header else []
    lines.extend(keywords)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


class FailingCatalog:
    """Keyword catalog whose backing store is unavailable."""

    def get_all_enabled_keywords(self) -> List[str]:
        raise RuntimeError("catalog down")

    def get_contained_keywords(self, text: str) -> List[str]:
        raise RuntimeError("catalog down")


class StaticCatalog:
    """In-memory keyword catalog."""

    def __init__(self, keywords: List[str]):
        self.keywords = list(keywords)
        self.contained_calls = 0

    def get_all_enabled_keywords(self) -> List[str]:
        return list(self.keywords)

    def get_contained_keywords(self, text: str) -> List[str]:
        from newsrisk.matcher import matched_keywords
        self.contained_calls += 1
        return matched_keywords(text, self.keywords)


class RecordingStatsService:
    """Stats service that records the dates it was asked to compute."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def calculate_daily_stats(self, stat_date) -> Dict[str, Any]:
        self.calls.append(stat_date)
        if self.fail:
            raise RuntimeError("stats table locked")
        return {}

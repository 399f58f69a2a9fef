"""
Repository Pattern for Cert News Database Operations

Provides clean data access layer with proper typing and error handling.
Implements the Repository pattern for separation of concerns.
"""

import logging
from typing import List, Optional, Dict, Any, Tuple
from datetime import date, datetime

from sqlalchemy import select, func, and_
from sqlalchemy.orm import Session

from newsrisk.models import (
    NewsRecord,
    CountryRiskDailyStat,
    CatalogKeyword,
    RiskLevel,
    join_keywords,
)
from newsrisk.matcher import matched_keywords
from newsrisk.monitoring import timed_query

logger = logging.getLogger(__name__)

STAT_COUNT_FIELDS = (
    'high_risk_count',
    'medium_risk_count',
    'low_risk_count',
    'no_risk_count',
    'total_count',
)


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class RecordNotFoundError(RepositoryError):
    """Raised when a record is not found."""
    pass


class StaleRecordError(RepositoryError):
    """Raised when a record changed since it was read (version mismatch)."""
    pass


# ============================================
# NEWS RECORD REPOSITORY
# ============================================

class NewsRecordRepository:
    """Repository for news record operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, record_data: Dict[str, Any]) -> NewsRecord:
        """
        Create a new news record.

        Args:
            record_data: Dictionary containing record fields

        Returns:
            Created NewsRecord instance
        """
        record = NewsRecord(**record_data)
        self.session.add(record)
        self.session.flush()

        logger.debug(f"Created news record: {record.id}")
        return record

    def get_by_id(self, record_id: str, include_deleted: bool = False) -> Optional[NewsRecord]:
        """
        Get record by ID.

        Args:
            record_id: ID of the record
            include_deleted: If True, include soft-deleted records

        Returns:
            NewsRecord or None
        """
        query = select(NewsRecord).where(NewsRecord.id == record_id)

        if not include_deleted:
            query = query.where(NewsRecord.is_deleted == False)

        return self.session.execute(query).scalar_one_or_none()

    @timed_query("list_by_risk_level")
    def list_by_risk_level(self, risk_level: RiskLevel) -> List[NewsRecord]:
        """List all non-deleted records with the given risk level."""
        query = select(NewsRecord).where(
            and_(
                NewsRecord.risk_level == risk_level,
                NewsRecord.is_deleted == False
            )
        ).order_by(NewsRecord.created_at, NewsRecord.id)

        return list(self.session.execute(query).scalars().all())

    @timed_query("list_by_source")
    def list_by_source(self, source_name: str) -> List[NewsRecord]:
        """List all non-deleted records crawled from one data source."""
        query = select(NewsRecord).where(
            and_(
                NewsRecord.source_name == source_name,
                NewsRecord.is_deleted == False
            )
        ).order_by(NewsRecord.created_at, NewsRecord.id)

        return list(self.session.execute(query).scalars().all())

    @timed_query("list_country_risk_pairs")
    def list_country_risk_pairs(self) -> List[Tuple[Optional[str], Optional[RiskLevel]]]:
        """
        Get (country, risk_level) for every non-deleted record.

        Only the two columns the aggregator needs are loaded.
        """
        query = select(NewsRecord.country, NewsRecord.risk_level).where(
            NewsRecord.is_deleted == False
        )
        return [(row[0], row[1]) for row in self.session.execute(query)]

    def _get_for_update(self, record_id: str, expected_version: Optional[int]) -> NewsRecord:
        record = self.get_by_id(record_id)
        if not record:
            raise RecordNotFoundError(f"Record not found: {record_id}")

        if expected_version is not None and record.version != expected_version:
            raise StaleRecordError(
                f"Record {record_id} changed since it was read "
                f"(expected version {expected_version}, found {record.version})"
            )
        return record

    def apply_escalation(
        self,
        record_id: str,
        keywords: List[str],
        expected_version: Optional[int] = None
    ) -> NewsRecord:
        """
        Mark a record as related high-risk with the keywords that matched.

        Args:
            record_id: ID of the record
            keywords: Matched keywords, in keyword-list order
            expected_version: Version read before matching; None skips the check

        Returns:
            Updated record

        Raises:
            RecordNotFoundError: If the record is missing or deleted
            StaleRecordError: If the version no longer matches
        """
        record = self._get_for_update(record_id, expected_version)

        record.matched_keywords = join_keywords(keywords)
        record.related = True
        record.risk_level = RiskLevel.HIGH
        record.version = record.version + 1

        self.session.flush()
        return record

    def update_relatedness(
        self,
        record_id: str,
        is_related: bool,
        keywords: Optional[List[str]],
        expected_version: Optional[int] = None
    ) -> NewsRecord:
        """
        Update the related flag and matched keywords of a record.

        An empty keyword list clears the stored keywords.
        """
        record = self._get_for_update(record_id, expected_version)

        record.related = is_related
        record.matched_keywords = join_keywords(keywords)
        record.version = record.version + 1

        self.session.flush()
        logger.debug(f"Updated record {record_id} related={is_related}, keywords={keywords}")
        return record

    def update_risk_level(self, record_id: str, risk_level: RiskLevel) -> NewsRecord:
        """Update the risk level of a record."""
        record = self._get_for_update(record_id, None)

        record.risk_level = risk_level
        record.version = record.version + 1

        self.session.flush()
        logger.debug(f"Updated record {record_id} risk level to {risk_level.value}")
        return record

    def count_by_country_and_risk_level_between(
        self,
        country: str,
        risk_level: RiskLevel,
        start_time: datetime,
        end_time: datetime
    ) -> int:
        """Count non-deleted records of one country and risk level created in [start, end)."""
        query = select(func.count(NewsRecord.id)).where(
            and_(
                NewsRecord.country == country,
                NewsRecord.risk_level == risk_level,
                NewsRecord.created_at >= start_time,
                NewsRecord.created_at < end_time,
                NewsRecord.is_deleted == False
            )
        )
        return self.session.execute(query).scalar_one()

    def count_by_country_between(
        self,
        country: str,
        start_time: datetime,
        end_time: datetime
    ) -> int:
        """Count non-deleted records of one country created in [start, end)."""
        query = select(func.count(NewsRecord.id)).where(
            and_(
                NewsRecord.country == country,
                NewsRecord.created_at >= start_time,
                NewsRecord.created_at < end_time,
                NewsRecord.is_deleted == False
            )
        )
        return self.session.execute(query).scalar_one()


# ============================================
# COUNTRY RISK STATS REPOSITORY
# ============================================

class CountryRiskStatsRepository:
    """Repository for daily per-country risk aggregates."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_date_and_country(self, stat_date: date, country: str) -> Optional[CountryRiskDailyStat]:
        """Get the live (non-deleted) row for a (date, country) pair."""
        query = select(CountryRiskDailyStat).where(
            and_(
                CountryRiskDailyStat.stat_date == stat_date,
                CountryRiskDailyStat.country == country,
                CountryRiskDailyStat.is_deleted == False
            )
        )
        return self.session.execute(query).scalar_one_or_none()

    def list_by_date(self, stat_date: date) -> List[CountryRiskDailyStat]:
        """List all live rows for a date, ordered by country."""
        query = select(CountryRiskDailyStat).where(
            and_(
                CountryRiskDailyStat.stat_date == stat_date,
                CountryRiskDailyStat.is_deleted == False
            )
        ).order_by(CountryRiskDailyStat.country)
        return list(self.session.execute(query).scalars().all())

    @timed_query("upsert_country_stat")
    def upsert(
        self,
        stat_date: date,
        country: str,
        counts: Dict[str, int]
    ) -> Tuple[CountryRiskDailyStat, bool]:
        """
        Overwrite the counters of a (date, country) row, creating it if absent.

        Args:
            stat_date: Statistics date
            country: Country bucket label
            counts: Values for every field in STAT_COUNT_FIELDS

        Returns:
            Tuple of (row, created)

        Raises:
            ValueError: If a counter is missing/negative or total does not match the tiers
        """
        _validate_counts(counts)

        stat = self.get_by_date_and_country(stat_date, country)
        created = stat is None
        if created:
            stat = CountryRiskDailyStat(stat_date=stat_date, country=country)
            self.session.add(stat)

        for field_name in STAT_COUNT_FIELDS:
            setattr(stat, field_name, counts[field_name])

        self.session.flush()
        return stat, created


def _validate_counts(counts: Dict[str, int]) -> None:
    missing = [name for name in STAT_COUNT_FIELDS if name not in counts]
    if missing:
        raise ValueError(f"Missing counters: {', '.join(missing)}")

    if any(counts[name] < 0 for name in STAT_COUNT_FIELDS):
        raise ValueError(f"Counters must be non-negative: {counts}")

    tiers = (
        counts['high_risk_count'] + counts['medium_risk_count']
        + counts['low_risk_count'] + counts['no_risk_count']
    )
    if counts['total_count'] != tiers:
        raise ValueError(f"total_count {counts['total_count']} does not equal tier sum {tiers}")


# ============================================
# KEYWORD CATALOG REPOSITORY
# ============================================

class KeywordCatalogRepository:
    """Repository for the keyword catalog table."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, keyword: str, enabled: bool = True, description: Optional[str] = None) -> CatalogKeyword:
        """Add a keyword to the catalog."""
        entry = CatalogKeyword(keyword=keyword.strip(), enabled=enabled, description=description)
        self.session.add(entry)
        self.session.flush()
        return entry

    @timed_query("get_all_enabled_keywords")
    def get_all_enabled_keywords(self) -> List[str]:
        """List enabled keywords in insertion order."""
        query = select(CatalogKeyword.keyword).where(
            CatalogKeyword.enabled == True
        ).order_by(CatalogKeyword.id)
        return [row[0] for row in self.session.execute(query)]

    def get_contained_keywords(self, text: str) -> List[str]:
        """Return the enabled keywords contained in text."""
        return matched_keywords(text, self.get_all_enabled_keywords())


class ProviderKeywordCatalog:
    """
    Keyword catalog bound to a session provider.

    Each call opens its own short session, so the catalog can be handed to
    services that outlive any single session.
    """

    def __init__(self, provider):
        self._provider = provider

    def get_all_enabled_keywords(self) -> List[str]:
        with self._provider.session_scope() as session:
            return KeywordCatalogRepository(session).get_all_enabled_keywords()

    def get_contained_keywords(self, text: str) -> List[str]:
        with self._provider.session_scope() as session:
            return KeywordCatalogRepository(session).get_contained_keywords(text)

"""
SQLAlchemy ORM Models for the Cert News Risk Analysis System

This module defines the schema the analysis core reads and writes:
- Soft delete capability (deleted records are invisible to the core)
- Timestamps for all records (created_at, updated_at)
- Version column on news records for optimistic concurrency
- CHECK constraints keeping aggregate counters consistent

Tables:
1. cert_news_data - Crawled news records with risk classification
2. cert_news_daily_country_risk_stats - Per (date, country) risk tier counts
3. keywords - Keyword catalog (enabled/disabled keywords)
"""

import uuid
from datetime import date, datetime
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    String, Integer, Boolean, Date, DateTime, Text,
    Index, CheckConstraint, UniqueConstraint, Enum
)
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy.sql import func

# Base class for all models
Base = declarative_base()

KEYWORD_SEPARATOR = ","


# ============================================
# ENUMS
# ============================================

class RiskLevel(str, PyEnum):
    """Risk tier assigned to a news record"""
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Relatedness(str, PyEnum):
    """Tri-state relatedness of a news record.

    UNKNOWN means the record was never evaluated, which is distinct
    from an explicit UNRELATED decision.
    """
    UNKNOWN = "UNKNOWN"
    RELATED = "RELATED"
    UNRELATED = "UNRELATED"

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "Relatedness":
        if flag is None:
            return cls.UNKNOWN
        return cls.RELATED if flag else cls.UNRELATED

    def as_flag(self) -> Optional[bool]:
        if self is Relatedness.UNKNOWN:
            return None
        return self is Relatedness.RELATED


# ============================================
# MIXIN CLASSES
# ============================================

class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class SoftDeleteMixin:
    """Mixin for soft delete support"""
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )


# ============================================
# NEWS RECORDS
# ============================================

class NewsRecord(Base, TimestampMixin, SoftDeleteMixin):
    """
    A crawled news item subject to keyword classification.

    The crawler owns most of the row; the analysis core only mutates
    risk_level, related, matched_keywords and version.
    """
    __tablename__ = "cert_news_data"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    # Crawler / data source name
    source_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)

    # Text fields
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    product: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    news_type: Mapped[Optional[str]] = mapped_column("type", String(200), nullable=True)

    # Free-text country label as delivered by the crawler
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    # Classification
    risk_level: Mapped[Optional[RiskLevel]] = mapped_column(
        Enum(RiskLevel, name="risk_level"),
        nullable=True,
        index=True
    )
    related: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    matched_keywords: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Version for optimistic locking
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __table_args__ = (
        Index('ix_news_risk_deleted', 'risk_level', 'is_deleted'),
        Index('ix_news_source_deleted', 'source_name', 'is_deleted'),
        Index('ix_news_country_created', 'country', 'created_at'),
    )

    @property
    def relatedness(self) -> Relatedness:
        return Relatedness.from_flag(self.related)

    @property
    def keyword_list(self) -> List[str]:
        return split_keywords(self.matched_keywords)

    def __repr__(self) -> str:
        return f"<NewsRecord(id={self.id}, risk={self.risk_level}, related={self.related})>"


# ============================================
# AGGREGATES
# ============================================

class CountryRiskDailyStat(Base, TimestampMixin, SoftDeleteMixin):
    """
    Daily risk tier counts for one country bucket.

    One row per (stat_date, country). Rows are overwritten in place by
    every aggregation run for the same date.
    """
    __tablename__ = "cert_news_daily_country_risk_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    stat_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False)

    high_risk_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    medium_risk_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    low_risk_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    no_risk_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint('stat_date', 'country', name='uq_stat_date_country'),
        CheckConstraint(
            'high_risk_count >= 0 AND medium_risk_count >= 0 '
            'AND low_risk_count >= 0 AND no_risk_count >= 0',
            name='ck_stat_counts_non_negative'
        ),
        CheckConstraint(
            'total_count = high_risk_count + medium_risk_count + low_risk_count + no_risk_count',
            name='ck_stat_total_matches_tiers'
        ),
    )

    def to_dict(self) -> dict:
        return {
            "statDate": self.stat_date.isoformat(),
            "country": self.country,
            "highRiskCount": self.high_risk_count,
            "mediumRiskCount": self.medium_risk_count,
            "lowRiskCount": self.low_risk_count,
            "noRiskCount": self.no_risk_count,
            "totalCount": self.total_count,
        }

    def __repr__(self) -> str:
        return f"<CountryRiskDailyStat(date={self.stat_date}, country='{self.country}', total={self.total_count})>"


# ============================================
# KEYWORD CATALOG
# ============================================

class CatalogKeyword(Base, TimestampMixin):
    """Keyword catalog entry. Only enabled keywords take part in matching."""
    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<CatalogKeyword(keyword='{self.keyword}', enabled={self.enabled})>"


# ============================================
# HELPER FUNCTIONS
# ============================================

def join_keywords(keywords: Optional[List[str]], separator: str = KEYWORD_SEPARATOR) -> Optional[str]:
    """
    Serialize a matched keyword list for storage.

    Returns None for an empty list so a non-match never leaves a stale value.
    """
    if not keywords:
        return None
    return separator.join(keywords)


def split_keywords(value: Optional[str], separator: str = KEYWORD_SEPARATOR) -> List[str]:
    """Parse a stored keyword string back into a list."""
    if not value:
        return []
    return [part.strip() for part in value.split(separator) if part.strip()]

"""
Cert News Risk Analysis Package

This package provides:
- SQLAlchemy ORM models for news records, daily country stats and keywords
- Session provider with transactional session scopes
- Repository pattern for data access
- Keyword sources with explicit > file > catalog precedence
- Medium-risk escalation and per-source relatedness reclassification
- Daily per-country risk aggregation
- Slow query timing
"""

from newsrisk.models import (
    Base,
    NewsRecord,
    CountryRiskDailyStat,
    CatalogKeyword,
    RiskLevel,
    Relatedness,
)
from newsrisk.connection import (
    DatabaseSessionProvider,
    DatabaseSettings,
    create_test_provider,
)
from newsrisk.monitoring import (
    query_timer,
    timed_query,
    configure_monitoring,
)
from newsrisk.repositories import (
    RepositoryError,
    RecordNotFoundError,
    StaleRecordError,
)
from newsrisk.keyword_sources import (
    KeywordProvenance,
    KeywordResolutionError,
    KeywordResolver,
    FileKeywordSource,
)
from newsrisk.aggregator import AggregationError, CountryRiskAggregator
from newsrisk.reclassifier import RecordReclassifier
from newsrisk.analysis_service import NewsAnalysisService, build_analysis_service

__all__ = [
    # Models
    'Base',
    'NewsRecord',
    'CountryRiskDailyStat',
    'CatalogKeyword',
    'RiskLevel',
    'Relatedness',
    # Database provider
    'DatabaseSessionProvider',
    'DatabaseSettings',
    # Testing support
    'create_test_provider',
    # Monitoring
    'query_timer',
    'timed_query',
    'configure_monitoring',
    # Errors
    'RepositoryError',
    'RecordNotFoundError',
    'StaleRecordError',
    'KeywordResolutionError',
    'AggregationError',
    # Analysis
    'KeywordProvenance',
    'KeywordResolver',
    'FileKeywordSource',
    'RecordReclassifier',
    'CountryRiskAggregator',
    'NewsAnalysisService',
    'build_analysis_service',
]

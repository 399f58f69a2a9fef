"""
News Analysis Service

Entry points used by schedulers and admin tools. Each operation wires the
keyword sources, the record reclassifier and the country risk aggregator
together and returns a result schema instead of raising: failures end up
in the result's `error` field.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from config_manager import ConfigManager, get_config
from newsrisk.aggregator import AggregationReport, CountryRiskAggregator
from newsrisk.connection import DatabaseSessionProvider, DatabaseSettings
from newsrisk.keyword_sources import (
    CatalogKeywordSource,
    FileKeywordSource,
    KeywordCatalog,
    KeywordResolver,
    clean_keywords,
)
from newsrisk.reclassifier import ReclassificationReport, RecordReclassifier
from newsrisk.repositories import ProviderKeywordCatalog
from newsrisk.schemas import KeywordInfo, MigrationResult, OutcomeSummary

logger = logging.getLogger(__name__)


class NewsAnalysisService:
    """
    Orchestrates keyword reclassification and daily aggregation.

    Args:
        provider: Database session provider
        config: Loaded configuration
        catalog: Keyword catalog (defaults to the database catalog)
        stats_service: Object with calculate_daily_stats(date) (defaults to the aggregator)
        clock: Returns the current datetime
    """

    def __init__(
        self,
        provider: DatabaseSessionProvider,
        config: ConfigManager,
        catalog: Optional[KeywordCatalog] = None,
        stats_service=None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.provider = provider
        self.config = config
        self.catalog = catalog or ProviderKeywordCatalog(provider)
        self.stats_service = stats_service or CountryRiskAggregator(provider, config.countries)
        self._clock = clock

        self.file_source = FileKeywordSource(
            config.keyword_file_path,
            comment_marker=config.keywords.comment_marker
        )
        self.resolver = KeywordResolver(self.file_source, CatalogKeywordSource(self.catalog))
        self.reclassifier = RecordReclassifier(provider, self.resolver, self.catalog, config.analysis)

    def _timestamp(self) -> str:
        return self._clock().isoformat()

    def _failure(self, message: str, error: Exception, source_name: Optional[str] = None) -> OutcomeSummary:
        return OutcomeSummary(
            success=False,
            message=message,
            error=str(error),
            source_name=source_name,
            timestamp=self._timestamp()
        )

    def _summary(self, report: ReclassificationReport, message: str) -> OutcomeSummary:
        return OutcomeSummary(
            success=True,
            total_processed=report.processed,
            related_count=report.related,
            unrelated_count=report.unrelated,
            unchanged_count=report.unchanged,
            risk_processed_count=report.risk_processed,
            error_count=report.errors,
            total_data=report.total,
            used_keywords=report.used_keywords,
            message=message,
            source_name=report.source_name,
            timestamp=self._timestamp()
        )

    def _refresh_stats(self) -> bool:
        """Best-effort aggregation after a reclassification run."""
        today = self._clock().date()
        try:
            self.stats_service.calculate_daily_stats(today)
            return True
        except Exception as e:
            logger.warning(f"Country risk stats refresh for {today} failed: {e}")
            return False

    # ============================================
    # RECLASSIFICATION
    # ============================================

    def escalate_medium_risk(self, keywords: Optional[List[str]] = None) -> OutcomeSummary:
        """Escalate medium-risk records matching the active keywords to high risk."""
        try:
            report = self.reclassifier.escalate_medium_risk(keywords)
        except Exception as e:
            logger.error(f"Medium-risk escalation failed: {e}")
            return self._failure("Medium-risk escalation failed", e)

        if report.total == 0:
            return self._summary(report, "No medium-risk records to analyze")

        summary = self._summary(
            report,
            f"Escalated {report.processed} of {report.total} medium-risk records to high risk"
        )
        summary.stats_refreshed = self._refresh_stats()
        return summary

    def reclassify_by_source(self, source_name: str) -> OutcomeSummary:
        """Recompute relatedness of every record crawled from source_name."""
        if not source_name or not source_name.strip():
            return self._failure("Source reclassification failed", ValueError("source name is required"))

        try:
            report = self.reclassifier.reclassify_by_source(source_name)
        except Exception as e:
            logger.error(f"Reclassification of source '{source_name}' failed: {e}")
            return self._failure("Source reclassification failed", e, source_name=source_name)

        summary = self._summary(
            report,
            f"Source '{source_name}': {report.processed} updated, {report.unchanged} unchanged"
        )
        if report.total > 0:
            summary.stats_refreshed = self._refresh_stats()
        return summary

    # ============================================
    # KEYWORD FILE
    # ============================================

    def load_keywords(self) -> List[str]:
        return self.file_source.load()

    def save_keywords(self, keywords: List[str]) -> bool:
        return self.file_source.save(keywords)

    def get_keyword_info(self) -> KeywordInfo:
        try:
            info = self.file_source.info()
        except Exception as e:
            logger.error(f"Failed to read keyword info: {e}")
            return KeywordInfo(
                success=False,
                source_path=str(self.file_source.path),
                timestamp=self._timestamp(),
                error=str(e)
            )

        return KeywordInfo(
            success=True,
            keywords=info['keywords'],
            count=info['count'],
            source_path=info['source_path'],
            timestamp=self._timestamp()
        )

    def migrate_keywords(self, keywords: Optional[List[str]]) -> MigrationResult:
        """
        Write a keyword list (e.g. exported from a browser's local storage)
        into the keyword file.
        """
        source_path = str(self.file_source.path)
        cleaned = clean_keywords(keywords)
        if not cleaned:
            return MigrationResult(
                success=False,
                message="no keywords provided",
                source_path=source_path,
                error="no keywords provided"
            )

        if not self.file_source.save(cleaned):
            return MigrationResult(
                success=False,
                message="Keyword migration failed",
                source_path=source_path,
                error=f"could not write keyword file {source_path}"
            )

        logger.info(f"Migrated {len(cleaned)} keywords to {source_path}")
        return MigrationResult(
            success=True,
            migrated_count=len(cleaned),
            message=f"Migrated {len(cleaned)} keywords",
            source_path=source_path
        )

    # ============================================
    # AGGREGATION
    # ============================================

    def recompute_today_aggregates(self) -> OutcomeSummary:
        """Rebuild today's country risk rows."""
        today = self._clock().date()
        try:
            report = self.stats_service.calculate_daily_stats(today)
        except Exception as e:
            logger.error(f"Country risk stats for {today} failed: {e}")
            summary = self._failure("Country risk stats update failed", e)
            summary.stat_date = today.isoformat()
            return summary

        summary = OutcomeSummary(
            success=True,
            message=f"Country risk stats updated for {today}",
            stat_date=today.isoformat(),
            timestamp=self._timestamp()
        )
        if isinstance(report, AggregationReport):
            summary.total_processed = report.processed
            summary.error_count = report.failed
            summary.total_data = report.total_records
        return summary


def build_analysis_service(
    config: Optional[ConfigManager] = None,
    provider: Optional[DatabaseSessionProvider] = None
) -> NewsAnalysisService:
    """
    Create a service with the database provider described by config.

    Args:
        config: Configuration (the global instance if omitted)
        provider: Existing provider; a new one is initialized if omitted
    """
    config = config or get_config()
    if provider is None:
        provider = DatabaseSessionProvider(settings=DatabaseSettings.from_config(config.database))
        provider.init()
    return NewsAnalysisService(provider, config)

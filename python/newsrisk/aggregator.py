"""
Daily per-country risk aggregation.

Every non-deleted record is mapped to exactly one canonical country bucket
(a recognized label, the missing sentinel or the catch-all sentinel) and
counted in exactly one risk tier. One aggregate row per bucket is then
upserted for the statistics date, each in its own transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from config_manager import CountryConfig
from newsrisk.models import RiskLevel
from newsrisk.monitoring import query_timer
from newsrisk.repositories import CountryRiskStatsRepository, NewsRecordRepository

logger = logging.getLogger(__name__)


class AggregationError(Exception):
    """Raised when records cannot be read or no aggregate row could be written."""
    pass


@dataclass
class CountryStats:
    """Risk tier counters of one country bucket"""
    high_risk_count: int = 0
    medium_risk_count: int = 0
    low_risk_count: int = 0
    no_risk_count: int = 0
    total_count: int = 0

    def add(self, risk_level: Optional[RiskLevel]) -> None:
        if risk_level == RiskLevel.HIGH:
            self.high_risk_count += 1
        elif risk_level == RiskLevel.MEDIUM:
            self.medium_risk_count += 1
        elif risk_level == RiskLevel.LOW:
            self.low_risk_count += 1
        else:
            self.no_risk_count += 1
        self.total_count += 1

    def to_counts(self) -> Dict[str, int]:
        return {
            'high_risk_count': self.high_risk_count,
            'medium_risk_count': self.medium_risk_count,
            'low_risk_count': self.low_risk_count,
            'no_risk_count': self.no_risk_count,
            'total_count': self.total_count,
        }


@dataclass
class AggregationReport:
    """Outcome of one aggregation run"""
    stat_date: date
    processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    total_records: int = 0
    failed_countries: List[str] = field(default_factory=list)


class CountryRiskAggregator:
    """
    Recomputes the daily country risk rows from the record set.

    Also serves as the stats service of the analysis orchestrator through
    calculate_daily_stats().
    """

    def __init__(self, provider, country_config: Optional[CountryConfig] = None):
        self.provider = provider
        self.countries = country_config or CountryConfig()
        self._labels = list(dict.fromkeys(self.countries.canonical_labels))
        self._recognized = set(self._labels)

    @property
    def labels(self) -> List[str]:
        """Canonical bucket labels, sentinels last"""
        return list(self._labels)

    def bucket_for(self, country: Optional[str]) -> str:
        """Map a free-text country to its canonical bucket label."""
        if country is None or not country.strip():
            return self.countries.missing_label
        normalized = country.strip()
        if normalized in self._recognized:
            return normalized
        return self.countries.other_label

    def tally(self, pairs: Iterable[Tuple[Optional[str], Optional[RiskLevel]]]) -> Dict[str, CountryStats]:
        """
        Count (country, risk_level) pairs per bucket.

        Every canonical label is present in the result, with zero counters
        when no record maps to it.
        """
        stats = {label: CountryStats() for label in self._labels}
        for country, risk_level in pairs:
            stats[self.bucket_for(country)].add(risk_level)
        return stats

    def recompute_for_date(self, stat_date: date) -> AggregationReport:
        """
        Rebuild the aggregate rows of one date from all non-deleted records.

        The record set is not filtered by date: each run stores a snapshot
        of the current classification under stat_date. Re-running without
        record changes rewrites identical rows.

        Raises:
            AggregationError: If records cannot be read or every row write failed
        """
        try:
            with self.provider.session_scope() as session:
                pairs = NewsRecordRepository(session).list_country_risk_pairs()
        except Exception as e:
            raise AggregationError(f"Failed to read records for aggregation: {e}") from e

        report = AggregationReport(stat_date=stat_date, total_records=len(pairs))
        tallies = self.tally(pairs)

        for label, stats in tallies.items():
            try:
                with self.provider.session_scope() as session:
                    _, created = CountryRiskStatsRepository(session).upsert(
                        stat_date, label, stats.to_counts()
                    )
            except Exception as e:
                report.failed += 1
                report.failed_countries.append(label)
                logger.error(f"Failed to write stats for {stat_date} / {label}: {e}")
                continue

            report.processed += 1
            if created:
                report.created += 1
            else:
                report.updated += 1
            logger.debug(f"Stats for {stat_date} / {label}: {stats.to_counts()}")

        if report.processed == 0 and report.failed > 0:
            raise AggregationError(f"No aggregate row could be written for {stat_date}")

        logger.info(
            f"Country risk stats for {stat_date}: {report.created} created, "
            f"{report.updated} updated, {report.failed} failed "
            f"({report.total_records} records)"
        )
        return report

    def calculate_daily_stats(self, stat_date: date) -> AggregationReport:
        """Stats service entry point used by the orchestrator"""
        return self.recompute_for_date(stat_date)

    def ensure_rows_for_date(self, stat_date: date) -> int:
        """
        Create the rows of a date from that day's records if none exist yet.

        Unlike recompute_for_date, only records created within the day are
        counted and the country must equal the label literally.

        A failed row is logged and skipped; the other labels are still written.

        Returns:
            Number of rows created, 0 when the date already has rows
        """
        start_time = datetime.combine(stat_date, time.min)
        end_time = start_time + timedelta(days=1)

        with self.provider.session_scope() as session:
            if CountryRiskStatsRepository(session).list_by_date(stat_date):
                logger.debug(f"Stats rows for {stat_date} already exist")
                return 0

        created = 0
        failed = 0
        with query_timer("ensure_rows_for_date"):
            for label in self._labels:
                try:
                    with self.provider.session_scope() as session:
                        counts = self._day_counts(NewsRecordRepository(session), label, start_time, end_time)
                        CountryRiskStatsRepository(session).upsert(stat_date, label, counts)
                    created += 1
                except Exception as e:
                    failed += 1
                    logger.error(f"Failed to create stats row for {stat_date} / {label}: {e}")

        logger.info(f"Created {created} stats rows for {stat_date} ({failed} failed)")
        return created

    @staticmethod
    def _day_counts(records_repo: NewsRecordRepository, label: str,
                    start_time: datetime, end_time: datetime) -> Dict[str, int]:
        counts = {
            'high_risk_count': records_repo.count_by_country_and_risk_level_between(
                label, RiskLevel.HIGH, start_time, end_time),
            'medium_risk_count': records_repo.count_by_country_and_risk_level_between(
                label, RiskLevel.MEDIUM, start_time, end_time),
            'low_risk_count': records_repo.count_by_country_and_risk_level_between(
                label, RiskLevel.LOW, start_time, end_time),
            'total_count': records_repo.count_by_country_between(label, start_time, end_time),
        }
        # records without a risk level count as no-risk
        counts['no_risk_count'] = (
            counts['total_count'] - counts['high_risk_count']
            - counts['medium_risk_count'] - counts['low_risk_count']
        )
        return counts

    def get_stats_for_date(self, stat_date: date) -> List[dict]:
        """Read back the aggregate rows of a date."""
        with self.provider.session_scope() as session:
            return [row.to_dict() for row in CountryRiskStatsRepository(session).list_by_date(stat_date)]

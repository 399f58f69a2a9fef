"""
Keyword-driven reclassification of stored news records.

Two passes are supported:

- escalation: medium-risk records whose text contains an active keyword
  become related high-risk records
- per-source relatedness: every record of one data source gets its
  related flag and matched keywords recomputed

The record snapshot is read once per run. Every write happens in its own
transaction and is guarded by the version read in the snapshot, so a
failure on one record never affects the others.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from config_manager import AnalysisConfig
from text_utils import build_enhanced_search_text, build_basic_search_text, sanitize_for_logging
from newsrisk.keyword_sources import (
    KeywordCatalog,
    KeywordProvenance,
    KeywordResolver,
    ResolvedKeywords,
)
from newsrisk.matcher import matched_keywords
from newsrisk.models import NewsRecord, Relatedness, RiskLevel
from newsrisk.repositories import NewsRecordRepository

logger = logging.getLogger(__name__)

SCOPE_ESCALATION = "escalation"
SCOPE_SOURCE = "source"


@dataclass
class ReclassificationReport:
    """Counters of one reclassification run"""
    scope: str
    source_name: Optional[str] = None
    total: int = 0
    processed: int = 0
    related: int = 0
    unrelated: int = 0
    unchanged: int = 0
    risk_processed: int = 0
    errors: int = 0
    used_keywords: int = 0
    provenance: Optional[KeywordProvenance] = None

    @property
    def is_consistent(self) -> bool:
        return self.processed + self.unchanged + self.errors == self.total


class RecordReclassifier:
    """Recomputes risk level and relatedness of stored records from keywords."""

    def __init__(
        self,
        provider,
        resolver: KeywordResolver,
        catalog: KeywordCatalog,
        analysis_config: Optional[AnalysisConfig] = None
    ):
        self.provider = provider
        self.resolver = resolver
        self.catalog = catalog
        self.config = analysis_config or AnalysisConfig()

    def _load_snapshot(self, loader) -> List[NewsRecord]:
        with self.provider.session_scope() as session:
            return loader(NewsRecordRepository(session))

    def _batches(self, records: List[NewsRecord]) -> Iterable[List[NewsRecord]]:
        size = self.config.batch_size
        batch_count = (len(records) + size - 1) // size
        for index, start in enumerate(range(0, len(records), size), start=1):
            batch = records[start:start + size]
            logger.info(f"Processing batch {index}/{batch_count} ({len(batch)} records)")
            yield batch

    # ============================================
    # ESCALATION
    # ============================================

    def escalate_medium_risk(self, explicit_keywords: Optional[List[str]] = None) -> ReclassificationReport:
        """
        Escalate medium-risk records that contain an active keyword.

        Args:
            explicit_keywords: Caller keyword list, takes precedence over file and catalog

        Returns:
            ReclassificationReport with scope 'escalation'

        Raises:
            KeywordResolutionError: If keywords fall back to the catalog and it fails
            SQLAlchemyError: If the medium-risk records cannot be read
        """
        report = ReclassificationReport(scope=SCOPE_ESCALATION)

        records = self._load_snapshot(lambda repo: repo.list_by_risk_level(RiskLevel.MEDIUM))
        report.total = len(records)
        if not records:
            logger.info("No medium-risk records to analyze")
            return report

        resolved = self.resolver.resolve(explicit_keywords)
        report.used_keywords = resolved.count
        report.provenance = resolved.provenance
        logger.info(
            f"Escalating {report.total} medium-risk records with "
            f"{resolved.count} keywords from {resolved.provenance.value}"
        )

        for batch in self._batches(records):
            for record in batch:
                self._escalate_record(record, resolved, report)

        logger.info(
            f"Escalation finished: {report.processed} escalated, "
            f"{report.unchanged} unchanged, {report.errors} errors"
        )
        return report

    def _escalate_record(self, record: NewsRecord, resolved: ResolvedKeywords,
                         report: ReclassificationReport) -> None:
        try:
            text = build_enhanced_search_text(record, self.config.content_max_length)
            matched = matched_keywords(text, resolved.keywords)

            if not matched:
                report.unchanged += 1
                logger.debug(f"Record {record.id} unchanged, no keyword matched")
                return

            with self.provider.session_scope() as session:
                NewsRecordRepository(session).apply_escalation(
                    record.id, matched, expected_version=record.version
                )

            report.processed += 1
            report.related += 1
            report.risk_processed += 1
            logger.debug(
                f"Record {record.id} escalated to HIGH: "
                f"'{sanitize_for_logging(record.title, 100)}' matched {matched}"
            )
        except Exception as e:
            report.errors += 1
            logger.error(f"Failed to escalate record {record.id}: {e}")

    # ============================================
    # PER-SOURCE RELATEDNESS
    # ============================================

    def reclassify_by_source(self, source_name: str) -> ReclassificationReport:
        """
        Recompute relatedness for every record of one data source.

        Keywords come from the keyword file, or from the catalog when the
        file yields none. Related records are additionally raised to HIGH.

        Returns:
            ReclassificationReport with scope 'source'

        Raises:
            KeywordResolutionError: If the catalog is consulted and fails
            SQLAlchemyError: If the source's records cannot be read
        """
        report = ReclassificationReport(scope=SCOPE_SOURCE, source_name=source_name)

        records = self._load_snapshot(lambda repo: repo.list_by_source(source_name))
        report.total = len(records)

        resolved = self.resolver.resolve()
        report.used_keywords = resolved.count
        report.provenance = resolved.provenance
        logger.info(
            f"Reclassifying {report.total} records of source '{source_name}' with "
            f"{resolved.count} keywords from {resolved.provenance.value}"
        )

        for batch in self._batches(records):
            for record in batch:
                self._reclassify_record(record, resolved, report)

        logger.info(
            f"Source '{source_name}' finished: {report.processed} updated "
            f"({report.related} related, {report.unrelated} unrelated), "
            f"{report.unchanged} unchanged, {report.errors} errors"
        )
        return report

    def _match_for_source(self, text: str, resolved: ResolvedKeywords) -> List[str]:
        if resolved.provenance == KeywordProvenance.CATALOG:
            return self.catalog.get_contained_keywords(text)
        return matched_keywords(text, resolved.keywords)

    def _reclassify_record(self, record: NewsRecord, resolved: ResolvedKeywords,
                           report: ReclassificationReport) -> None:
        try:
            text = build_basic_search_text(record)
            matched = self._match_for_source(text, resolved)
            is_related = bool(matched)

            if record.relatedness == Relatedness.from_flag(is_related):
                report.unchanged += 1
                return

            with self.provider.session_scope() as session:
                NewsRecordRepository(session).update_relatedness(
                    record.id, is_related, matched, expected_version=record.version
                )

            report.processed += 1
            if is_related:
                report.related += 1
            else:
                report.unrelated += 1
        except Exception as e:
            report.errors += 1
            logger.error(f"Failed to reclassify record {record.id}: {e}")
            return

        if is_related:
            try:
                with self.provider.session_scope() as session:
                    NewsRecordRepository(session).update_risk_level(record.id, RiskLevel.HIGH)
                report.risk_processed += 1
            except Exception as e:
                logger.warning(f"Record {record.id} is related but its risk level was not updated: {e}")

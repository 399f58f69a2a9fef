"""
Pydantic result schemas for the news analysis operations

Results are serialized with camelCase keys so that schedulers and admin
tools reading them keep the field names they already use.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class _ResultModel(BaseModel):
    model_config = {"populate_by_name": True}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, leaving out unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class OutcomeSummary(_ResultModel):
    """Result of a reclassification or aggregation operation."""
    success: bool = Field(..., description="False when the operation could not run")
    total_processed: int = Field(default=0, alias="totalProcessed")
    related_count: int = Field(default=0, alias="relatedCount")
    unrelated_count: int = Field(default=0, alias="unrelatedCount")
    unchanged_count: int = Field(default=0, alias="unchangedCount")
    risk_processed_count: int = Field(default=0, alias="riskProcessedCount")
    error_count: int = Field(default=0, alias="errorCount")
    total_data: int = Field(default=0, alias="totalData", description="Records examined")
    used_keywords: int = Field(default=0, alias="usedKeywords", description="Size of the active keyword list")
    message: str = Field(default="")
    timestamp: str = Field(..., description="Completion time, ISO 8601")
    error: Optional[str] = Field(default=None, description="Failure reason when success is False")
    source_name: Optional[str] = Field(default=None, alias="sourceName")
    stat_date: Optional[str] = Field(default=None, alias="statDate")
    stats_refreshed: Optional[bool] = Field(
        default=None,
        alias="statsRefreshed",
        description="Outcome of the follow-up aggregation, when one was attempted"
    )


class KeywordInfo(_ResultModel):
    """Contents of the keyword file."""
    success: bool
    keywords: List[str] = Field(default_factory=list)
    count: int = 0
    source_path: str = Field(default="", alias="sourcePath")
    timestamp: str
    error: Optional[str] = None


class MigrationResult(_ResultModel):
    """Result of writing a keyword list into the keyword file."""
    success: bool
    migrated_count: int = Field(default=0, alias="migratedCount")
    message: str = ""
    source_path: str = Field(default="", alias="sourcePath")
    error: Optional[str] = None

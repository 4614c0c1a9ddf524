"""Estimate history contracts: task records, per-agent statistics and predictions."""

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional
from enum import Enum


logger = logging.getLogger(__name__)


class FeedModel(BaseModel):
    """Base for documents produced by the upstream exporter (camelCase keys)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class Tendency(str, Enum):
    """Qualitative bucket for an agent's average actual/estimate ratio."""
    OVER = "over"  # Tasks take longer than estimated
    UNDER = "under"  # Tasks finish faster than estimated
    ACCURATE = "accurate"


class ConfidenceBand(str, Enum):
    """Display band for a 0-100 confidence score."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def confidence_band(confidence: int) -> ConfidenceBand:
    """Bucket a confidence score: >= 70 high, >= 45 medium, otherwise low."""
    if confidence >= 70:
        return ConfidenceBand.HIGH
    if confidence >= 45:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW


class EstimateRecord(FeedModel):
    """One historical task estimate. A record with a ratio is completed."""
    task_id: str = Field(..., description="Unique task identifier")
    estimated_hours: float = Field(..., gt=0, description="Hours estimated before the task started")
    actual_hours: Optional[float] = Field(None, description="Hours actually spent, once finished")
    agent_id: str = Field(..., description="Agent that produced the estimate")
    project_type: str = Field("", description="Project category")
    ratio: Optional[float] = Field(None, description="actual_hours / estimated_hours")

    @property
    def is_completed(self) -> bool:
        """Only records carrying a ratio count towards statistics."""
        return self.ratio is not None

    def complete(self, actual_hours: float) -> "EstimateRecord":
        """Return a completed copy of this record; the original is left untouched."""
        return self.model_copy(update={
            "actual_hours": actual_hours,
            "ratio": actual_hours / self.estimated_hours,
        })


class EstimateHistory(FeedModel):
    """Estimate history feed document."""
    entries: List[EstimateRecord] = Field(..., description="Every exported task estimate")

    @field_validator("entries", mode="before")
    @classmethod
    def drop_unestimated_entries(cls, value: Any) -> Any:
        """Skip records with a non-positive estimate; their ratio is undefined."""
        if not isinstance(value, list):
            return value
        kept = []
        for entry in value:
            hours = entry.get("estimatedHours", entry.get("estimated_hours")) if isinstance(entry, dict) else None
            if isinstance(hours, (int, float)) and not isinstance(hours, bool) and hours <= 0:
                logger.warning("Skipping estimate %s: estimated hours %s", entry.get("taskId", entry.get("task_id")), hours)
                continue
            kept.append(entry)
        return kept


class AgentStatistic(BaseModel):
    """Accuracy statistics for one agent, recomputed on every query."""
    agent_id: str
    sample_count: int = Field(..., ge=1)
    avg_ratio: float
    std_dev: float = Field(..., ge=0)
    confidence: int = Field(..., ge=0, le=100)
    tendency: Tendency

    @property
    def band(self) -> ConfidenceBand:
        return confidence_band(self.confidence)


class Prediction(BaseModel):
    """Predicted duration for a new task."""
    predicted_hours: float
    confidence: int = Field(..., ge=0, le=100)
    sample_count: int = Field(..., ge=0)
    note: str = Field(..., description="Human-readable rationale")

    @property
    def band(self) -> ConfidenceBand:
        return confidence_band(self.confidence)

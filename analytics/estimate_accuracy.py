"""Estimate accuracy: per-agent bias/variance statistics and duration prediction.

Every query recomputes from the record snapshot it is given; nothing is cached
and records are never mutated.
"""

import logging
import math
import statistics
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from config import settings
from contracts import AgentStatistic, EstimateRecord, Prediction, Tendency


logger = logging.getLogger(__name__)

INSUFFICIENT_HISTORY_NOTE = "insufficient history"


class EstimateAccuracyConfig(BaseModel):
    """Thresholds and confidence constants for the accuracy engine."""
    over_threshold: float = 1.1
    under_threshold: float = 0.9
    sample_score_cap: float = Field(0.9, ge=0.0, le=1.0)
    sample_score_scale: float = Field(4.0, gt=0)
    variance_penalty_cap: float = Field(0.5, ge=0.0, le=1.0)
    min_history: int = Field(2, ge=1)
    fallback_confidence: int = Field(35, ge=0, le=100)

    @classmethod
    def from_settings(cls) -> "EstimateAccuracyConfig":
        """Build a config from the global settings."""
        return cls(
            over_threshold=settings.over_threshold,
            under_threshold=settings.under_threshold,
            sample_score_cap=settings.sample_score_cap,
            sample_score_scale=settings.sample_score_scale,
            variance_penalty_cap=settings.variance_penalty_cap,
            min_history=settings.min_history,
            fallback_confidence=settings.fallback_confidence,
        )


def _round_half_up(value: float, places: int = 0) -> float:
    """Round the exact binary value of a float, ties away from zero."""
    return float(Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def _sample_std_dev(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1); 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return statistics.stdev(values)


class EstimateAccuracyEngine:
    """Turns estimate history into per-agent accuracy signals and predictions."""

    def __init__(self, config: Optional[EstimateAccuracyConfig] = None):
        self.config = config or EstimateAccuracyConfig.from_settings()

    def confidence(self, sample_count: int, std_dev: float, avg_ratio: float) -> int:
        """Score 0-100 combining sample size and spread.

        sample_score = min(cap, 1 - 1/(1 + n/scale)) grows with n but is capped,
        so sample size alone never yields full confidence. The coefficient of
        variation (treated as 1 for a non-positive mean) removes at most
        variance_penalty_cap of it.
        """
        cfg = self.config
        sample_score = min(cfg.sample_score_cap, 1 - 1 / (1 + sample_count / cfg.sample_score_scale))
        cv = std_dev / avg_ratio if avg_ratio > 0 else 1.0
        variance_score = 1 - min(cfg.variance_penalty_cap, cv)
        return int(math.floor(sample_score * variance_score * 100 + 0.5))

    def tendency(self, avg_ratio: float) -> Tendency:
        """Classify an average ratio as over, under or accurate."""
        if avg_ratio > self.config.over_threshold:
            return Tendency.OVER
        if avg_ratio < self.config.under_threshold:
            return Tendency.UNDER
        return Tendency.ACCURATE

    def _statistic(self, agent_id: str, ratios: List[float]) -> AgentStatistic:
        avg = statistics.fmean(ratios)
        sd = _sample_std_dev(ratios)
        return AgentStatistic(
            agent_id=agent_id,
            sample_count=len(ratios),
            avg_ratio=_round_half_up(avg, 3),
            std_dev=_round_half_up(sd, 3),
            confidence=self.confidence(len(ratios), sd, avg),
            tendency=self.tendency(avg),
        )

    def compute_agent_statistics(self, records: Iterable[EstimateRecord]) -> List[AgentStatistic]:
        """Statistics for every agent with completed history, most samples first.

        Records without a ratio are skipped. Empty input yields an empty list.
        """
        grouped: Dict[str, List[float]] = {}
        for record in records:
            if record.is_completed:
                grouped.setdefault(record.agent_id, []).append(record.ratio)

        stats = [self._statistic(agent_id, ratios) for agent_id, ratios in grouped.items()]
        # sort() is stable, so ties keep first-seen agent order
        stats.sort(key=lambda s: s.sample_count, reverse=True)
        return stats

    def statistic_for_agent(
        self,
        agent_id: str,
        records: Iterable[EstimateRecord],
    ) -> Optional[AgentStatistic]:
        """Statistics for a single agent, or None without completed history."""
        ratios = [r.ratio for r in records if r.is_completed and r.agent_id == agent_id]
        if not ratios:
            return None
        return self._statistic(agent_id, ratios)

    def predict_duration(
        self,
        estimated_hours: float,
        agent_id: str,
        records: Iterable[EstimateRecord],
    ) -> Prediction:
        """Predict how long a task estimated at estimated_hours will really take.

        Agents with fewer than min_history completed tasks get the estimate back
        unchanged at a fixed low confidence.
        """
        ratios = [r.ratio for r in records if r.is_completed and r.agent_id == agent_id]

        if len(ratios) < self.config.min_history:
            logger.debug("Agent %s has %d completed tasks; using fallback", agent_id, len(ratios))
            return Prediction(
                predicted_hours=estimated_hours,
                confidence=self.config.fallback_confidence,
                sample_count=len(ratios),
                note=INSUFFICIENT_HISTORY_NOTE,
            )

        avg = statistics.fmean(ratios)
        sd = _sample_std_dev(ratios)
        return Prediction(
            predicted_hours=_round_half_up(estimated_hours * avg, 2),
            confidence=self.confidence(len(ratios), sd, avg),
            sample_count=len(ratios),
            note=self._direction_note(avg),
        )

    def _direction_note(self, avg_ratio: float) -> str:
        diff_pct = int(_round_half_up(abs(avg_ratio - 1) * 100))
        tendency = self.tendency(avg_ratio)
        if tendency == Tendency.OVER:
            return f"runs ~{diff_pct}% over"
        if tendency == Tendency.UNDER:
            return f"runs ~{diff_pct}% under"
        return "typically on-time"


def filter_records(
    records: Iterable[EstimateRecord],
    project_type: Optional[str] = None,
) -> List[EstimateRecord]:
    """Restrict history to one project type; None keeps everything."""
    if project_type is None:
        return list(records)
    return [r for r in records if r.project_type == project_type]


def known_agents(records: Iterable[EstimateRecord]) -> List[str]:
    """Agents with completed history, in first-seen order."""
    seen: Dict[str, None] = {}
    for record in records:
        if record.is_completed:
            seen.setdefault(record.agent_id, None)
    return list(seen)


def compute_agent_statistics(records: Iterable[EstimateRecord]) -> List[AgentStatistic]:
    """Convenience function using a settings-configured engine."""
    return EstimateAccuracyEngine().compute_agent_statistics(records)


def predict_duration(
    estimated_hours: float,
    agent_id: str,
    records: Iterable[EstimateRecord],
) -> Prediction:
    """Convenience function using a settings-configured engine."""
    return EstimateAccuracyEngine().predict_duration(estimated_hours, agent_id, records)

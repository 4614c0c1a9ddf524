"""Budget alerts: four-tier spend classification and project tree aggregation."""

import logging
from typing import Dict, Iterable, Optional, Sequence

from pydantic import BaseModel, Field, model_validator

from config import settings
from contracts import (
    AlertLevel,
    BudgetChapter,
    BudgetClassification,
    BudgetOverview,
    BudgetProject,
    ChapterIndicator,
    ProjectAlert,
    ProjectBudgetStatus,
    ProjectTreeStats,
)


logger = logging.getLogger(__name__)

BANNER_SUFFIX = {
    AlertLevel.CRITICAL: " - over limit!",
    AlertLevel.ALERT: " - near limit",
    AlertLevel.WARN: " - past halfway",
}


class BudgetAlertConfig(BaseModel):
    """Tier thresholds (inclusive lower bounds) and chapter limit synthesis."""
    warn_threshold: float = 0.5
    alert_threshold: float = 0.75
    critical_threshold: float = 0.9
    hourly_rate: float = Field(25.0, ge=0)
    fallback_limit_multiplier: float = Field(1.5, gt=0)

    @model_validator(mode="after")
    def validate_threshold_order(self) -> "BudgetAlertConfig":
        """Tiers must escalate: warn <= alert <= critical."""
        if not self.warn_threshold <= self.alert_threshold <= self.critical_threshold:
            raise ValueError("thresholds must satisfy warn <= alert <= critical")
        return self

    @classmethod
    def from_settings(cls) -> "BudgetAlertConfig":
        """Build a config from the global settings."""
        return cls(
            warn_threshold=settings.warn_threshold,
            alert_threshold=settings.alert_threshold,
            critical_threshold=settings.critical_threshold,
            hourly_rate=settings.hourly_rate,
            fallback_limit_multiplier=settings.fallback_limit_multiplier,
        )


class BudgetAlertEngine:
    """Classifies spend against budgets and rolls projects up for the dashboard."""

    def __init__(self, config: Optional[BudgetAlertConfig] = None):
        self.config = config or BudgetAlertConfig.from_settings()

    def classify(self, spent: float, total: float) -> BudgetClassification:
        """Alert tier for spent against total.

        An undefined budget (total <= 0) is always ok. Spending at or past the
        limit shares the critical tier with 90%+. The display percent is capped
        at 100 while the raw ratio keeps the overspend.
        """
        if total <= 0:
            return BudgetClassification(level=AlertLevel.OK, ratio=0.0, display_percent=0.0)

        ratio = spent / total
        cfg = self.config
        if ratio >= cfg.critical_threshold:
            level = AlertLevel.CRITICAL
        elif ratio >= cfg.alert_threshold:
            level = AlertLevel.ALERT
        elif ratio >= cfg.warn_threshold:
            level = AlertLevel.WARN
        else:
            level = AlertLevel.OK

        display = max(0.0, min(ratio * 100, 100.0))
        return BudgetClassification(level=level, ratio=ratio, display_percent=display)

    def chapter_limit(self, chapter: BudgetChapter) -> float:
        """Notional chapter ceiling: estimated hours at the hourly rate, else cost x multiplier."""
        limit = (chapter.estimated_hours or 0.0) * self.config.hourly_rate
        if limit > 0:
            return limit
        return chapter.cost * self.config.fallback_limit_multiplier

    def chapter_indicator(self, chapter: BudgetChapter) -> ChapterIndicator:
        """Approximate tier for a chapter. Only project budgets are real."""
        limit = self.chapter_limit(chapter)
        return ChapterIndicator(
            chapter_id=chapter.id,
            chapter_name=chapter.name,
            cost=chapter.cost,
            notional_limit=limit,
            classification=self.classify(chapter.cost, limit),
        )

    def project_status(self, project: BudgetProject) -> ProjectBudgetStatus:
        return ProjectBudgetStatus(
            project_id=project.id,
            project_name=project.name,
            budget_total=project.budget_total,
            budget_spent=project.budget_spent,
            budget_remaining=project.budget_remaining,
            classification=self.classify(project.budget_spent, project.budget_total),
        )

    def aggregate_and_alert(self, projects: Sequence[BudgetProject]) -> BudgetOverview:
        """Overall totals, per-project tiers and the banner alert list.

        Alerts cover every project not at ok, highest percent first. The input
        projects are only read.
        """
        total_budget = sum(p.budget_total for p in projects)
        total_spent = sum(p.budget_spent for p in projects)
        statuses = [self.project_status(p) for p in projects]

        alerts = [
            self._alert(status)
            for status in statuses
            if status.classification.level != AlertLevel.OK
        ]
        alerts.sort(key=lambda a: a.display_percent, reverse=True)

        overview = BudgetOverview(
            total_budget=total_budget,
            total_spent=total_spent,
            total_remaining=total_budget - total_spent,
            overall=self.classify(total_spent, total_budget),
            projects=statuses,
            alerts=alerts,
        )
        if alerts:
            logger.debug(
                "%d of %d projects past the ok tier (overall %s)",
                len(alerts), len(statuses), overview.overall.level.value,
            )
        return overview

    def _alert(self, status: ProjectBudgetStatus) -> ProjectAlert:
        classification = status.classification
        message = (
            f"{status.project_name} is at {classification.display_percent:.0f}% of budget"
            f"{BANNER_SUFFIX.get(classification.level, '')}"
        )
        return ProjectAlert(
            project_id=status.project_id,
            project_name=status.project_name,
            level=classification.level,
            display_percent=classification.display_percent,
            ratio=classification.ratio,
            message=message,
        )

    def level_counts(self, projects: Iterable[BudgetProject]) -> Dict[AlertLevel, int]:
        """Number of projects in each tier, every tier present."""
        counts = {level: 0 for level in AlertLevel}
        for project in projects:
            counts[self.classify(project.budget_spent, project.budget_total).level] += 1
        return counts


def tree_stats(projects: Sequence[BudgetProject]) -> ProjectTreeStats:
    """Counts for the summary panel; progress 1.0 means completed."""
    return ProjectTreeStats(
        total_projects=len(projects),
        active_projects=sum(1 for p in projects if 0 < p.status_percent < 1),
        completed_projects=sum(1 for p in projects if p.status_percent >= 1),
        total_chapters=sum(p.chapter_count for p in projects),
        total_tasks=sum(p.total_tasks for p in projects),
    )


def classify(spent: float, total: float) -> BudgetClassification:
    """Convenience function using a settings-configured engine."""
    return BudgetAlertEngine().classify(spent, total)


def aggregate_and_alert(projects: Sequence[BudgetProject]) -> BudgetOverview:
    """Convenience function using a settings-configured engine."""
    return BudgetAlertEngine().aggregate_and_alert(projects)

"""Budget contracts for the project -> chapter -> task hierarchy and its alert results."""

from pydantic import BaseModel, BeforeValidator, Field, model_validator, field_validator
from typing import Annotated, Any, List, Optional
from enum import Enum

from .estimate_contracts import FeedModel


def _clamp_fraction(value: Any) -> Any:
    """Pull a numeric progress value into 0-1; exporters round past the ends."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return min(max(value, 0.0), 1.0)
    return value


ProgressFraction = Annotated[float, BeforeValidator(_clamp_fraction)]


class AlertLevel(str, Enum):
    """Spend-to-budget alert tier."""
    OK = "ok"
    WARN = "warn"  # Past halfway
    ALERT = "alert"  # Near limit
    CRITICAL = "critical"  # At or over limit


class TaskPriority(str, Enum):
    """Task priority as exported upstream."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class BudgetTask(FeedModel):
    """Leaf task of a chapter."""
    id: str
    name: str = ""
    agent: str = ""
    status: str = ""
    cost: Optional[float] = Field(None, ge=0)
    estimated_time: Optional[float] = None
    actual_time: Optional[float] = None
    priority: Optional[TaskPriority] = None

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value: Any) -> Any:
        """Accept any casing; unknown priorities are dropped rather than rejected."""
        if isinstance(value, str):
            value = value.strip().lower()
            if value in {p.value for p in TaskPriority}:
                return value
            return None
        return value


class BudgetChapter(FeedModel):
    """A chapter of a project. Chapters have no budget ceiling of their own."""
    id: str
    name: str = ""
    status_percent: ProgressFraction = Field(0.0, ge=0.0, le=1.0, description="Progress 0-1, supplied upstream")
    cost: float = Field(0.0, ge=0, description="Sum of task costs")
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    tasks: List[BudgetTask] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def derive_cost(cls, data: Any) -> Any:
        """Sum task costs when the exporter omits the chapter total."""
        if not isinstance(data, dict) or data.get("cost") is not None:
            return data
        total = 0.0
        for task in data.get("tasks") or []:
            cost = task.get("cost") if isinstance(task, dict) else getattr(task, "cost", None)
            total += cost or 0.0
        return {**data, "cost": total}


class BudgetProject(FeedModel):
    """Top-level project with a real budget."""
    id: str
    name: str = ""
    client: str = ""
    budget_total: float = 0.0
    budget_spent: float = 0.0
    budget_remaining: float = Field(0.0, description="total - spent; negative when overspent")
    status_percent: ProgressFraction = Field(0.0, ge=0.0, le=1.0)
    total_tasks: int = Field(0, ge=0)
    completed_tasks: int = Field(0, ge=0)
    chapters: List[BudgetChapter] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def derive_missing_fields(cls, data: Any) -> Any:
        """Derive remaining budget and task count when the exporter omits them."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        total = data.get("budgetTotal", data.get("budget_total")) or 0.0
        spent = data.get("budgetSpent", data.get("budget_spent")) or 0.0
        if data.get("budgetRemaining") is None and data.get("budget_remaining") is None:
            # Never clamped: overspend must stay visible
            data["budget_remaining"] = total - spent
        if data.get("totalTasks") is None and data.get("total_tasks") is None:
            count = 0
            for chapter in data.get("chapters") or []:
                tasks = chapter.get("tasks") if isinstance(chapter, dict) else chapter.tasks
                count += len(tasks or [])
            data["total_tasks"] = count
        return data

    @property
    def chapter_count(self) -> int:
        return len(self.chapters)


class ProjectsSnapshot(FeedModel):
    """Budget snapshot feed document."""
    projects: List[BudgetProject] = Field(..., description="Full project tree, replaced on every poll")


class BudgetClassification(BaseModel):
    """Alert tier for a (spent, total) pair."""
    level: AlertLevel
    ratio: float = Field(..., description="Raw spent/total; 0 when the budget is undefined")
    display_percent: float = Field(..., ge=0, le=100, description="Percent capped at 100 for display")

    @property
    def is_over_limit(self) -> bool:
        return self.ratio >= 1.0


class ProjectBudgetStatus(BaseModel):
    """Classification of one project's real budget."""
    project_id: str
    project_name: str
    budget_total: float
    budget_spent: float
    budget_remaining: float
    classification: BudgetClassification


class ProjectAlert(BaseModel):
    """A project whose spend has left the ok tier, for the alert banner."""
    project_id: str
    project_name: str
    level: AlertLevel
    display_percent: float
    ratio: float
    message: str


class ChapterIndicator(BaseModel):
    """Approximate alert tier for a chapter against a synthetic limit."""
    chapter_id: str
    chapter_name: str
    cost: float
    notional_limit: float
    classification: BudgetClassification


class BudgetOverview(BaseModel):
    """Aggregated spend across every project plus the banner alerts."""
    total_budget: float
    total_spent: float
    total_remaining: float
    overall: BudgetClassification
    projects: List[ProjectBudgetStatus] = Field(default_factory=list)
    alerts: List[ProjectAlert] = Field(default_factory=list)

    def has_alerts(self) -> bool:
        return bool(self.alerts)


class ProjectTreeStats(BaseModel):
    """Counts across the project tree for the summary panel."""
    total_projects: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    total_chapters: int = 0
    total_tasks: int = 0

"""Pydantic contracts for the ops analytics engines.

Feed documents and every derived result are typed through these contracts.
"""

from .estimate_contracts import (
    FeedModel,
    Tendency,
    ConfidenceBand,
    confidence_band,
    EstimateRecord,
    EstimateHistory,
    AgentStatistic,
    Prediction,
)

from .budget_contracts import (
    AlertLevel,
    TaskPriority,
    BudgetTask,
    BudgetChapter,
    BudgetProject,
    ProjectsSnapshot,
    BudgetClassification,
    ProjectBudgetStatus,
    ProjectAlert,
    ChapterIndicator,
    BudgetOverview,
    ProjectTreeStats,
)

__all__ = [
    # Estimates
    "FeedModel",
    "Tendency",
    "ConfidenceBand",
    "confidence_band",
    "EstimateRecord",
    "EstimateHistory",
    "AgentStatistic",
    "Prediction",
    # Budget
    "AlertLevel",
    "TaskPriority",
    "BudgetTask",
    "BudgetChapter",
    "BudgetProject",
    "ProjectsSnapshot",
    "BudgetClassification",
    "ProjectBudgetStatus",
    "ProjectAlert",
    "ChapterIndicator",
    "BudgetOverview",
    "ProjectTreeStats",
]

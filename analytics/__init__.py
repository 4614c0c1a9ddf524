"""Analytics engines: estimate accuracy and budget alerts.

Both engines are pure: they read the snapshot they are given and return new
contract objects.
"""

from .estimate_accuracy import (
    EstimateAccuracyConfig,
    EstimateAccuracyEngine,
    compute_agent_statistics,
    predict_duration,
    filter_records,
    known_agents,
)
from .budget_alerts import (
    BudgetAlertConfig,
    BudgetAlertEngine,
    classify,
    aggregate_and_alert,
    tree_stats,
)

__all__ = [
    "EstimateAccuracyConfig",
    "EstimateAccuracyEngine",
    "compute_agent_statistics",
    "predict_duration",
    "filter_records",
    "known_agents",
    "BudgetAlertConfig",
    "BudgetAlertEngine",
    "classify",
    "aggregate_and_alert",
    "tree_stats",
]

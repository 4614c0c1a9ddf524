"""Feed access: HTTP snapshot client and periodic pollers."""

from typing import Optional

from config import settings
from contracts import EstimateHistory, ProjectsSnapshot

from .feed_client import FeedClient, FeedUnavailableError, parse_document
from .snapshot import Snapshot, SnapshotPoller


def estimate_history_poller(client: Optional[FeedClient] = None) -> SnapshotPoller[EstimateHistory]:
    """Poller for the estimate history feed at the configured interval."""
    client = client or FeedClient()
    return SnapshotPoller(
        client.fetch_estimate_history,
        settings.estimates_poll_interval_seconds,
        name="estimate-history",
    )


def projects_poller(client: Optional[FeedClient] = None) -> SnapshotPoller[ProjectsSnapshot]:
    """Poller for the budget snapshot feed at the configured interval."""
    client = client or FeedClient()
    return SnapshotPoller(
        client.fetch_projects,
        settings.projects_poll_interval_seconds,
        name="projects",
    )


__all__ = [
    "FeedClient",
    "FeedUnavailableError",
    "parse_document",
    "Snapshot",
    "SnapshotPoller",
    "estimate_history_poller",
    "projects_poller",
]

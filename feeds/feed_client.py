"""HTTP client for the read-only JSON snapshots the engines consume.

Documents are fetched with a cache-busting query parameter. Any failure is
raised as FeedUnavailableError so callers can show "unavailable" instead of an
empty document that would read as "no issues".
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from config import settings
from contracts import EstimateHistory, ProjectsSnapshot


DocumentT = TypeVar("DocumentT", bound=BaseModel)


class FeedUnavailableError(RuntimeError):
    """A feed could not be fetched, decoded or validated."""

    def __init__(self, feed: str, reason: str):
        super().__init__(f"{feed} feed unavailable: {reason}")
        self.feed = feed
        self.reason = reason


def parse_document(feed: str, payload: Any, model: Type[DocumentT]) -> DocumentT:
    """Validate a decoded JSON payload against a feed contract."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise FeedUnavailableError(feed, f"invalid document ({e.error_count()} errors)") from e


class FeedClient:
    """Fetches the estimate history and budget snapshot documents."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.feed_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds

    def _url(self, path: str) -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def fetch_json(self, feed: str, path: str) -> Any:
        """GET a document and decode it; raises FeedUnavailableError on any failure."""
        params: Dict[str, Any] = {"t": int(time.time() * 1000)}
        try:
            r = requests.get(self._url(path), params=params, timeout=self.timeout)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as e:
            raise FeedUnavailableError(feed, str(e)) from e
        except ValueError as e:
            raise FeedUnavailableError(feed, "response is not valid JSON") from e

    def fetch_estimate_history(self) -> EstimateHistory:
        """Fetch and validate the estimate history document."""
        payload = self.fetch_json("estimate-history", settings.estimate_history_path)
        return parse_document("estimate-history", payload, EstimateHistory)

    def fetch_projects(self) -> ProjectsSnapshot:
        """Fetch and validate the project budget snapshot."""
        payload = self.fetch_json("projects", settings.projects_path)
        return parse_document("projects", payload, ProjectsSnapshot)

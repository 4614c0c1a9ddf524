"""Tests for the snapshot feed client (no live HTTP)."""

import pytest
import requests
from unittest.mock import MagicMock, patch

from config import settings
from contracts import EstimateHistory, ProjectsSnapshot
from feeds import FeedClient, FeedUnavailableError, parse_document


def _response(payload=None, status_error=None, json_error=None) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = MagicMock(side_effect=status_error)
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


class TestFeedClient:
    """FeedClient fetches JSON documents and reports failures explicitly."""

    def test_fetch_estimate_history(self):
        payload = {"entries": [
            {"taskId": "t1", "estimatedHours": 2, "actualHours": 3, "agentId": "azul", "projectType": "web", "ratio": 1.5},
        ]}
        client = FeedClient(base_url="http://feeds.test/")
        with patch("requests.get", return_value=_response(payload)) as mock_get:
            history = client.fetch_estimate_history()

        assert isinstance(history, EstimateHistory)
        assert history.entries[0].ratio == 1.5
        url = mock_get.call_args.args[0]
        assert url == "http://feeds.test" + settings.estimate_history_path
        assert "t" in mock_get.call_args.kwargs["params"]
        assert mock_get.call_args.kwargs["timeout"] == client.timeout

    def test_cache_buster_changes_between_calls(self):
        client = FeedClient(base_url="http://feeds.test")
        with patch("requests.get", return_value=_response({"projects": []})) as mock_get, \
                patch("feeds.feed_client.time") as mock_time:
            mock_time.time.side_effect = [1.0, 2.0]
            client.fetch_projects()
            client.fetch_projects()
        first, second = (c.kwargs["params"]["t"] for c in mock_get.call_args_list)
        assert first != second

    def test_fetch_projects(self):
        payload = {"projects": [{"id": "p1", "name": "Site", "budgetTotal": 1000, "budgetSpent": 950}]}
        client = FeedClient(base_url="http://feeds.test")
        with patch("requests.get", return_value=_response(payload)):
            snapshot = client.fetch_projects()
        assert isinstance(snapshot, ProjectsSnapshot)
        assert snapshot.projects[0].budget_remaining == 50

    def test_http_error_is_unavailable(self):
        client = FeedClient(base_url="http://feeds.test")
        response = _response(status_error=requests.HTTPError("503 Server Error"))
        with patch("requests.get", return_value=response):
            with pytest.raises(FeedUnavailableError, match="projects feed unavailable"):
                client.fetch_projects()

    def test_connection_error_is_unavailable(self):
        client = FeedClient(base_url="http://feeds.test")
        with patch("requests.get", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(FeedUnavailableError) as exc_info:
                client.fetch_estimate_history()
        assert exc_info.value.feed == "estimate-history"

    def test_invalid_json_is_unavailable(self):
        client = FeedClient(base_url="http://feeds.test")
        with patch("requests.get", return_value=_response(json_error=ValueError("bad json"))):
            with pytest.raises(FeedUnavailableError, match="not valid JSON"):
                client.fetch_estimate_history()

    def test_invalid_document_is_unavailable(self):
        """A malformed document is never turned into an empty history."""
        client = FeedClient(base_url="http://feeds.test")
        payload = {"entries": [{"taskId": "t1"}]}
        with patch("requests.get", return_value=_response(payload)):
            with pytest.raises(FeedUnavailableError, match="invalid document"):
                client.fetch_estimate_history()

    def test_bad_entries_do_not_blank_feed(self):
        payload = {"entries": [
            {"taskId": "t0", "estimatedHours": 0, "agentId": "azul"},
            {"taskId": "t1", "estimatedHours": 2, "actualHours": 2, "agentId": "azul", "ratio": 1.0},
        ]}
        client = FeedClient(base_url="http://feeds.test")
        with patch("requests.get", return_value=_response(payload)):
            history = client.fetch_estimate_history()
        assert [e.task_id for e in history.entries] == ["t1"]

    def test_empty_path_uses_base_url(self):
        client = FeedClient(base_url="http://feeds.test/export.json")
        with patch("requests.get", return_value=_response({"entries": []})) as mock_get:
            client.fetch_json("estimate-history", "")
        assert mock_get.call_args.args[0] == "http://feeds.test/export.json"

    def test_defaults_from_settings(self):
        with patch.object(settings, "feed_base_url", "http://configured.test/"):
            client = FeedClient()
        assert client.base_url == "http://configured.test"
        assert client.timeout == settings.http_timeout_seconds


class TestParseDocument:

    def test_not_a_mapping(self):
        with pytest.raises(FeedUnavailableError):
            parse_document("projects", ["not", "a", "document"], ProjectsSnapshot)

    def test_missing_key_is_unavailable(self):
        """A document without its list is not read as 'no projects'."""
        with pytest.raises(FeedUnavailableError):
            parse_document("projects", {}, ProjectsSnapshot)

    def test_empty_list_is_valid(self):
        assert parse_document("projects", {"projects": []}, ProjectsSnapshot).projects == []

"""Tests for the CLI commands against local JSON exports."""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from contracts import EstimateHistory, ProjectsSnapshot
from feeds import FeedUnavailableError
from main import cli, load_document


HISTORY = {
    "entries": [
        {"taskId": f"azul-{i}", "estimatedHours": 10, "actualHours": 10 * r, "agentId": "azul",
         "projectType": "web", "ratio": r}
        for i, r in enumerate([1.0, 1.2, 0.8, 1.1])
    ] + [
        {"taskId": "agency-0", "estimatedHours": 5, "agentId": "agency", "projectType": "data"},
    ]
}

PROJECTS = {
    "projects": [
        {"id": "p1", "name": "Alpha", "budgetTotal": 1000, "budgetSpent": 950, "statusPercent": 0.6, "chapters": []},
        {"id": "p2", "name": "Beta", "budgetTotal": 1000, "budgetSpent": 100, "statusPercent": 1.0, "chapters": []},
    ]
}


@pytest.fixture
def history_file(tmp_path):
    path = tmp_path / "estimate-history.json"
    path.write_text(json.dumps(HISTORY))
    return str(path)


@pytest.fixture
def projects_file(tmp_path):
    path = tmp_path / "projects.json"
    path.write_text(json.dumps(PROJECTS))
    return str(path)


class TestLoadDocument:

    def test_loads_local_file(self, history_file):
        history = load_document(history_file, "estimate-history", EstimateHistory)
        assert len(history.entries) == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FeedUnavailableError, match="cannot read"):
            load_document(str(tmp_path / "missing.json"), "estimate-history", EstimateHistory)

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(FeedUnavailableError, match="not valid JSON"):
            load_document(str(path), "estimate-history", EstimateHistory)

    def test_url_source_uses_feed_client(self):
        with patch("main.FeedClient") as mock_cls:
            mock_cls.return_value.fetch_json.return_value = HISTORY
            history = load_document("http://feeds.test/history.json", "estimate-history", EstimateHistory)
        mock_cls.assert_called_once_with(base_url="http://feeds.test/history.json")
        assert len(history.entries) == 5


class TestCommands:

    def test_accuracy(self, history_file):
        result = CliRunner().invoke(cli, ["accuracy", history_file])
        assert result.exit_code == 0
        assert "azul" in result.output
        assert "on target" in result.output

    def test_accuracy_no_completed_tasks(self, history_file):
        result = CliRunner().invoke(cli, ["accuracy", history_file, "--project-type", "data"])
        assert result.exit_code == 0
        assert "No completed tasks" in result.output

    def test_predict(self, history_file):
        result = CliRunner().invoke(cli, ["predict", history_file, "--hours", "10", "--agent", "azul"])
        assert result.exit_code == 0
        assert "10.25h" in result.output
        assert "typically on-time" in result.output

    def test_predict_insufficient_history(self, history_file):
        result = CliRunner().invoke(cli, ["predict", history_file, "--hours", "4", "--agent", "agency"])
        assert result.exit_code == 0
        assert "35%" in result.output
        assert "insufficient history" in result.output

    def test_predict_rejects_non_positive_hours(self, history_file):
        result = CliRunner().invoke(cli, ["predict", history_file, "--hours", "0", "--agent", "azul"])
        assert result.exit_code != 0

    def test_budget(self, projects_file):
        result = CliRunner().invoke(cli, ["budget", projects_file])
        assert result.exit_code == 0
        assert "Alpha is at 95% of budget - over limit!" in result.output
        assert "Beta" in result.output

    def test_unavailable_source_exits_with_error(self, tmp_path):
        result = CliRunner().invoke(cli, ["budget", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "unavailable" in result.output

    def test_watch_renders_unavailable_feeds(self):
        estimates = MagicMock(available=False, is_stale=True, interval_seconds=60)
        projects = MagicMock(available=False, is_stale=True, interval_seconds=60)
        with patch("main.estimate_history_poller", return_value=estimates), \
                patch("main.projects_poller", return_value=projects), \
                patch("main.time.sleep"):
            result = CliRunner().invoke(cli, ["watch", "--base-url", "http://feeds.test", "--cycles", "1"])
        assert result.exit_code == 0
        assert "Estimate history unavailable" in result.output
        assert "Budget data unavailable" in result.output
        estimates.start.assert_called_once()
        projects.stop.assert_called_once()

    def test_watch_renders_snapshots(self):
        estimates = MagicMock(available=True, is_stale=False, interval_seconds=60)
        estimates.current.data = EstimateHistory.model_validate(HISTORY)
        projects = MagicMock(available=True, is_stale=False, interval_seconds=60)
        projects.current.data = ProjectsSnapshot.model_validate(PROJECTS)
        with patch("main.estimate_history_poller", return_value=estimates), \
                patch("main.projects_poller", return_value=projects), \
                patch("main.time.sleep"):
            result = CliRunner().invoke(cli, ["watch", "--cycles", "1"])
        assert result.exit_code == 0
        assert "azul" in result.output
        assert "over limit!" in result.output

    def test_watch_renders_before_first_sleep(self):
        estimates = MagicMock(available=False, is_stale=True, interval_seconds=60)
        projects = MagicMock(available=False, is_stale=True, interval_seconds=60)
        with patch("main.estimate_history_poller", return_value=estimates), \
                patch("main.projects_poller", return_value=projects), \
                patch("main.time.sleep") as mock_sleep:
            result = CliRunner().invoke(cli, ["watch", "--cycles", "1"])
        assert result.exit_code == 0
        assert "Refresh 1" in result.output
        mock_sleep.assert_not_called()
        estimates.wait_for_first_poll.assert_called_once()
        projects.wait_for_first_poll.assert_called_once()

    def test_watch_sleeps_between_refreshes(self):
        estimates = MagicMock(available=False, is_stale=True, interval_seconds=30)
        projects = MagicMock(available=False, is_stale=True, interval_seconds=60)
        with patch("main.estimate_history_poller", return_value=estimates), \
                patch("main.projects_poller", return_value=projects), \
                patch("main.time.sleep") as mock_sleep:
            result = CliRunner().invoke(cli, ["watch", "--cycles", "2"])
        assert result.exit_code == 0
        assert "Refresh 2" in result.output
        mock_sleep.assert_called_once_with(30)


class TestChapterTiers:

    def test_budget_chapters_flag(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(json.dumps({"projects": [{
            "id": "p1", "name": "Alpha", "budgetTotal": 1000, "budgetSpent": 300,
            "chapters": [
                {"id": "c1", "name": "Build", "cost": 200, "estimatedHours": 10, "statusPercent": 0.5},
                {"id": "c2", "name": "Design", "cost": 100},
            ],
        }]}))
        result = CliRunner().invoke(cli, ["budget", str(path), "--chapters"])
        assert result.exit_code == 0
        assert "Chapters" in result.output
        assert "Build" in result.output
        assert "alert" in result.output
        assert "warn" in result.output

    def test_budget_without_flag_hides_chapters(self, projects_file):
        result = CliRunner().invoke(cli, ["budget", projects_file])
        assert result.exit_code == 0
        assert "Chapters" not in result.output

    def test_budget_chapters_flag_without_chapters(self, projects_file):
        result = CliRunner().invoke(cli, ["budget", projects_file, "--chapters"])
        assert result.exit_code == 0
        assert "No chapters in this snapshot" in result.output

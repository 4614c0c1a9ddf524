#!/usr/bin/env python3
"""Ops Analytics CLI - estimate accuracy and budget alerts from exported snapshots.

Usage:
    # Per-agent estimate accuracy from a local export
    python main.py accuracy ./estimate-history.json

    # Predict a 10 hour task for an agent, straight from the dashboard feed
    python main.py predict http://localhost:3000/hub/estimate-history.json --hours 10 --agent azul

    # Budget overview with the alert banner
    python main.py budget ./projects.json

    # Poll both feeds and print a summary every interval
    python main.py watch
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Type, TypeVar

import click
from pydantic import BaseModel
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from analytics import (
    BudgetAlertEngine,
    EstimateAccuracyEngine,
    filter_records,
    tree_stats,
)
from config import settings
from contracts import AlertLevel, EstimateHistory, ProjectsSnapshot, Tendency
from feeds import (
    FeedClient,
    FeedUnavailableError,
    estimate_history_poller,
    parse_document,
    projects_poller,
)


console = Console()

DocumentT = TypeVar("DocumentT", bound=BaseModel)

LEVEL_STYLE = {
    AlertLevel.OK: "green",
    AlertLevel.WARN: "yellow",
    AlertLevel.ALERT: "dark_orange",
    AlertLevel.CRITICAL: "red",
}

TENDENCY_LABEL = {
    Tendency.OVER: "tends over",
    Tendency.UNDER: "tends under",
    Tendency.ACCURATE: "on target",
}


def load_document(source: str, feed: str, model: Type[DocumentT]) -> DocumentT:
    """Load a feed document from an http(s) URL or a local JSON file.

    Raises:
        FeedUnavailableError: if the document cannot be read or validated
    """
    if source.startswith(("http://", "https://")):
        payload = FeedClient(base_url=source).fetch_json(feed, "")
        return parse_document(feed, payload, model)

    path = Path(source)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise FeedUnavailableError(feed, f"cannot read {path}: {e}") from e
    except ValueError as e:
        raise FeedUnavailableError(feed, f"{path} is not valid JSON") from e
    return parse_document(feed, payload, model)


def _load_or_exit(source: str, feed: str, model: Type[DocumentT]) -> DocumentT:
    try:
        return load_document(source, feed, model)
    except FeedUnavailableError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def render_accuracy(history: EstimateHistory, project_type: Optional[str], agent: Optional[str]) -> None:
    engine = EstimateAccuracyEngine()
    records = filter_records(history.entries, project_type)
    stats = engine.compute_agent_statistics(records)
    if agent:
        stats = [s for s in stats if s.agent_id == agent]

    if not stats:
        console.print("[dim]No completed tasks for this context yet[/dim]")
        return

    table = Table(title="Estimate Accuracy")
    table.add_column("Agent")
    table.add_column("Tasks", justify="right")
    table.add_column("Avg ratio", justify="right")
    table.add_column("Spread", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Tendency")
    for stat in stats:
        table.add_row(
            stat.agent_id,
            str(stat.sample_count),
            f"{stat.avg_ratio:.2f}x",
            f"±{stat.std_dev * 100:.0f}%",
            f"{stat.confidence}% ({stat.band.value})",
            TENDENCY_LABEL[stat.tendency],
        )
    console.print(table)


def render_budget(snapshot: ProjectsSnapshot, show_chapters: bool = False) -> None:
    engine = BudgetAlertEngine()
    overview = engine.aggregate_and_alert(snapshot.projects)
    stats = tree_stats(snapshot.projects)

    style = LEVEL_STYLE[overview.overall.level]
    console.print(Panel.fit(
        f"[bold]Spent:[/bold] ${overview.total_spent:,.2f} of ${overview.total_budget:,.2f} "
        f"([{style}]{overview.overall.display_percent:.0f}%[/{style}])\n"
        f"[bold]Remaining:[/bold] ${overview.total_remaining:,.2f}\n"
        f"[dim]{stats.total_projects} projects ({stats.active_projects} active, "
        f"{stats.completed_projects} complete) · {stats.total_chapters} chapters · "
        f"{stats.total_tasks} tasks[/dim]",
        title="Budget Overview",
    ))

    for alert in overview.alerts:
        alert_style = LEVEL_STYLE[alert.level]
        marker = "✖" if alert.level == AlertLevel.CRITICAL else "⚠"
        console.print(f"[{alert_style}]{marker} {alert.message}[/{alert_style}]")

    table = Table(title="Projects")
    table.add_column("Project")
    table.add_column("Spent", justify="right")
    table.add_column("Budget", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Level")
    for status in overview.projects:
        level = status.classification.level
        table.add_row(
            status.project_name,
            f"${status.budget_spent:,.2f}",
            f"${status.budget_total:,.2f}",
            f"${status.budget_remaining:,.2f}",
            f"{status.classification.display_percent:.0f}%",
            f"[{LEVEL_STYLE[level]}]{level.value}[/{LEVEL_STYLE[level]}]",
        )
    console.print(table)

    if show_chapters:
        render_chapters(engine, snapshot)


def render_chapters(engine: BudgetAlertEngine, snapshot: ProjectsSnapshot) -> None:
    """Approximate tier per chapter; chapters have no budget of their own."""
    table = Table(title="Chapters")
    table.add_column("Project")
    table.add_column("Chapter")
    table.add_column("Progress", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Level")
    for project in snapshot.projects:
        for chapter in project.chapters:
            indicator = engine.chapter_indicator(chapter)
            level = indicator.classification.level
            table.add_row(
                project.name,
                indicator.chapter_name,
                f"{chapter.status_percent * 100:.0f}%",
                f"${indicator.cost:,.2f}",
                f"~${indicator.notional_limit:,.2f}",
                f"[{LEVEL_STYLE[level]}]{level.value}[/{LEVEL_STYLE[level]}]",
            )
    if table.row_count:
        console.print(table)
    else:
        console.print("[dim]No chapters in this snapshot[/dim]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def cli(verbose: bool):
    """Ops Analytics: estimate accuracy and budget alerts for the operations dashboard."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@cli.command()
@click.argument("source")
@click.option("--project-type", "-t", default=None, help="Only use history for this project type")
@click.option("--agent", "-a", default=None, help="Only show this agent")
def accuracy(source: str, project_type: Optional[str], agent: Optional[str]):
    """Show per-agent estimate accuracy from SOURCE (file or URL)."""
    history = _load_or_exit(source, "estimate-history", EstimateHistory)
    render_accuracy(history, project_type, agent)


@cli.command()
@click.argument("source")
@click.option("--hours", "-h", "estimated_hours", type=click.FloatRange(min=0, min_open=True), required=True,
              help="Estimated hours for the new task")
@click.option("--agent", "-a", required=True, help="Agent that will do the task")
@click.option("--project-type", "-t", default=None, help="Only use history for this project type")
def predict(source: str, estimated_hours: float, agent: str, project_type: Optional[str]):
    """Predict the real duration of a task from SOURCE history."""
    history = _load_or_exit(source, "estimate-history", EstimateHistory)
    records = filter_records(history.entries, project_type)
    result = EstimateAccuracyEngine().predict_duration(estimated_hours, agent, records)

    delta = result.predicted_hours - estimated_hours
    delta_text = f" ({delta:+.1f}h)" if delta else ""
    console.print(Panel.fit(
        f"[bold]Predicted actual:[/bold] {result.predicted_hours}h{delta_text}\n"
        f"[bold]Confidence:[/bold] {result.confidence}% ({result.band.value})\n"
        f"[dim]Based on {result.sample_count} tasks: {result.note}[/dim]",
        title=f"Prediction for {agent}",
    ))


@cli.command()
@click.argument("source")
@click.option("--chapters", "-c", "show_chapters", is_flag=True, help="Also show an approximate tier per chapter")
def budget(source: str, show_chapters: bool):
    """Show budget totals, alerts and per-project tiers from SOURCE."""
    snapshot = _load_or_exit(source, "projects", ProjectsSnapshot)
    render_budget(snapshot, show_chapters)


@cli.command()
@click.option("--base-url", default=None, help=f"Feed base URL (default: {settings.feed_base_url})")
@click.option("--cycles", type=int, default=0, help="Stop after this many refreshes (0 = run until interrupted)")
def watch(base_url: Optional[str], cycles: int):
    """Poll both feeds and re-render on every interval."""
    client = FeedClient(base_url=base_url)
    estimates = estimate_history_poller(client)
    projects = projects_poller(client)
    interval = min(estimates.interval_seconds, projects.interval_seconds)

    estimates.start()
    projects.start()
    refreshes = 0
    try:
        for poller in (estimates, projects):
            poller.wait_for_first_poll(client.timeout)
        while True:
            refreshes += 1
            console.rule(f"Refresh {refreshes}")
            for poller in (estimates, projects):
                if poller.available and poller.is_stale:
                    console.print(f"[dim]{poller.name}: showing last good snapshot ({poller.last_error})[/dim]")
            if estimates.available:
                render_accuracy(estimates.current.data, None, None)
            else:
                console.print("[yellow]Estimate history unavailable[/yellow]")
            if projects.available:
                render_budget(projects.current.data)
            else:
                console.print("[yellow]Budget data unavailable[/yellow]")
            if 0 < cycles <= refreshes:
                break
            time.sleep(interval)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
    finally:
        estimates.stop()
        projects.stop()


if __name__ == "__main__":
    cli()

"""MCP server for weekload: exposes the week's capacity operations to AI assistants."""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

from weekload.errors import ValidationError, WeekloadError
from weekload.gatekeeper import CommitState
from weekload.persistence import Store
from weekload.planner import RedistributionSuggestion
from weekload.service import WeekEngine

mcp = FastMCP(
    "weekload",
    instructions="""\
weekload tracks how much committed work a week can hold. Simple tasks and \
project milestones each carry a time estimate in minutes. Committing a unit \
adds its estimate to the week's load; the usable budget is the weekly minutes \
minus a buffer percentage.

Key concepts:
- **Overload**: committed minutes above the usable budget. get_week_status \
reports it with a percentage and the excess.
- **Blocked commit**: commit_task / commit_milestone answer with status 409 when \
the commit would overload the week. Nothing is changed. Ask the user, then either \
retry with force=true (the commit goes through and the overload is reported as a \
warning) or preview a redistribution.
- **Dry run**: validate_commitment answers can_commit with the load the week would \
have, and changes nothing.
- **Redistribution**: preview_redistribution lists the fewest, largest commitments \
to drop (milestones before tasks at equal size). execute_redistribution applies a \
plan; a batch that stops early keeps what it applied and reports the rest.

Every tool returns JSON with a "status" field: 200 on success, 400 for invalid \
input, 404 for unknown ids, 409 for blocked commits.\
""",
)


def _get_engine() -> WeekEngine:
    return WeekEngine(Store())


def _ok(payload: dict) -> str:
    return json.dumps({"status": 200, **payload}, indent=2)


def _err(e: WeekloadError) -> str:
    return json.dumps(e.to_dict(), indent=2)


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------


@mcp.tool()
def get_week_status() -> str:
    """Committed minutes, usable minutes and overload state for the active week."""
    try:
        return _ok(_get_engine().week_status().to_dict())
    except WeekloadError as e:
        return _err(e)


@mcp.tool()
def get_capacity_config() -> str:
    """Return the weekly minutes and buffer percentage."""
    try:
        cfg = _get_engine().get_config()
    except WeekloadError as e:
        return _err(e)
    return _ok({**cfg.to_dict(), "usable_minutes": cfg.usable_minutes})


@mcp.tool()
def preview_redistribution() -> str:
    """Suggest commitments to drop so the week fits. Empty when not overloaded."""
    try:
        return _ok(_get_engine().preview_redistribution().to_dict())
    except WeekloadError as e:
        return _err(e)


@mcp.tool()
def list_commitments() -> str:
    """List all tasks and projects with their commitment flags."""
    engine = _get_engine()
    try:
        tasks = engine.list_tasks()
        projects = engine.list_projects()
    except WeekloadError as e:
        return _err(e)
    return _ok({
        "tasks": [{"id": t.id, **t.to_dict()} for t in tasks],
        "projects": [{"id": p.id, **p.to_dict()} for p in projects],
    })


@mcp.tool()
def validate_commitment(
    task_id: str | None = None,
    project_id: str | None = None,
    milestone_id: str | None = None,
) -> str:
    """Check whether committing a task or milestone would fit, without committing it.

    Pass task_id for a simple task, or project_id and milestone_id for a milestone.

    Args:
        task_id: Task ID (e.g. "T-5")
        project_id: Project ID owning the milestone
        milestone_id: Milestone ID (e.g. "M-7")
    """
    engine = _get_engine()
    try:
        if task_id is not None:
            outcome = engine.validate_commit_task(task_id)
        elif project_id is not None and milestone_id is not None:
            outcome = engine.validate_commit_milestone(project_id, milestone_id)
        else:
            raise ValidationError("Pass task_id, or project_id and milestone_id.")
    except WeekloadError as e:
        return _err(e)
    return _ok({"can_commit": outcome.state != CommitState.BLOCKED, **outcome.to_dict()})


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------


@mcp.tool()
def set_capacity_config(weekly_minutes: int | None = None, buffer_percentage: float | None = None) -> str:
    """Update the capacity config. Only provided fields are changed.

    Args:
        weekly_minutes: Focus minutes available per week (positive integer)
        buffer_percentage: Share of the week kept as slack, 0-100
    """
    try:
        cfg = _get_engine().set_config({"weekly_minutes": weekly_minutes, "buffer_percentage": buffer_percentage})
    except WeekloadError as e:
        return _err(e)
    return _ok({**cfg.to_dict(), "usable_minutes": cfg.usable_minutes})


@mcp.tool()
def add_task(title: str, time_estimate: int = 60, priority: str = "normal") -> str:
    """Add a simple task.

    Args:
        title: Task title
        time_estimate: Estimated minutes
        priority: "low", "normal" or "high"
    """
    try:
        t = _get_engine().add_task(title, time_estimate, priority)
    except WeekloadError as e:
        return _err(e)
    return _ok({"task": {"id": t.id, **t.to_dict()}})


@mcp.tool()
def add_project(title: str, parent_id: str | None = None) -> str:
    """Add a project, optionally nested under another project."""
    try:
        p = _get_engine().add_project(title, parent_id=parent_id)
    except WeekloadError as e:
        return _err(e)
    return _ok({"project": {"id": p.id, **p.to_dict()}})


@mcp.tool()
def add_milestone(project_id: str, title: str, time_estimate: int = 45) -> str:
    """Add a milestone to a project.

    Args:
        project_id: Project ID (e.g. "P-2")
        title: Milestone title
        time_estimate: Estimated minutes
    """
    try:
        m = _get_engine().add_milestone(project_id, title, time_estimate)
    except WeekloadError as e:
        return _err(e)
    return _ok({"project_id": project_id, "milestone": m.to_dict()})


@mcp.tool()
def commit_task(task_id: str, force: bool = False) -> str:
    """Commit a simple task to this week.

    Args:
        task_id: Task ID (e.g. "T-5")
        force: Commit even if the week would be overloaded
    """
    try:
        return _ok(_get_engine().commit_task(task_id, force=force).to_dict())
    except WeekloadError as e:
        return _err(e)


@mcp.tool()
def commit_milestone(project_id: str, milestone_id: str, force: bool = False) -> str:
    """Commit a project milestone to this week.

    Args:
        project_id: Project ID (e.g. "P-2")
        milestone_id: Milestone ID (e.g. "M-7")
        force: Commit even if the week would be overloaded
    """
    try:
        return _ok(_get_engine().commit_milestone(project_id, milestone_id, force=force).to_dict())
    except WeekloadError as e:
        return _err(e)


@mcp.tool()
def uncommit_task(task_id: str) -> str:
    """Take a simple task off this week."""
    try:
        return _ok(_get_engine().uncommit_task(task_id).to_dict())
    except WeekloadError as e:
        return _err(e)


@mcp.tool()
def uncommit_milestone(project_id: str, milestone_id: str) -> str:
    """Take a milestone off this week."""
    try:
        return _ok(_get_engine().uncommit_milestone(project_id, milestone_id).to_dict())
    except WeekloadError as e:
        return _err(e)


@mcp.tool()
def complete_task(task_id: str) -> str:
    """Mark a simple task as done. It stays flagged but stops counting."""
    try:
        t = _get_engine().complete_task(task_id)
    except WeekloadError as e:
        return _err(e)
    return _ok({"task": {"id": t.id, **t.to_dict()}})


@mcp.tool()
def complete_milestone(project_id: str, milestone_id: str) -> str:
    """Mark a milestone as completed."""
    try:
        m = _get_engine().complete_milestone(project_id, milestone_id)
    except WeekloadError as e:
        return _err(e)
    return _ok({"project_id": project_id, "milestone": m.to_dict()})


@mcp.tool()
def execute_redistribution(suggestions: list[dict] | None = None) -> str:
    """Apply a redistribution plan.

    Without arguments a fresh plan is computed and applied. Pass the
    suggestions from preview_redistribution to apply exactly those; if one
    of them no longer applies, the batch stops there and reports it.

    Args:
        suggestions: Optional list of suggestion objects from preview_redistribution
    """
    try:
        parsed = None
        if suggestions is not None:
            parsed = [RedistributionSuggestion.from_dict(s) for s in suggestions]
        return _ok(_get_engine().execute_redistribution(parsed).to_dict())
    except WeekloadError as e:
        return _err(e)


def main():
    """Entry point for the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

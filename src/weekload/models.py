"""Task, project, milestone and capacity config definitions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date

DEFAULT_WEEKLY_MINUTES = 2400
DEFAULT_BUFFER_PERCENTAGE = 20
DEFAULT_TASK_MINUTES = 60
DEFAULT_MILESTONE_MINUTES = 45


class TaskStatus(enum.StrEnum):
    ACTIVE = "active"
    DONE = "done"


class ProjectStatus(enum.StrEnum):
    BACKLOG = "backlog"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Priority(enum.StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class UnitKind(enum.StrEnum):
    TASK = "task"
    MILESTONE = "milestone"


def current_week_id(day: date | None = None) -> str:
    """ISO week identifier, e.g. ``2026-W42``."""
    year, week, _ = (day or date.today()).isocalendar()
    return f"{year}-W{week:02d}"


@dataclass
class CapacityConfig:
    """Weekly focus budget and the slack reserved out of it."""

    weekly_minutes: int = DEFAULT_WEEKLY_MINUTES
    buffer_percentage: float = DEFAULT_BUFFER_PERCENTAGE

    @property
    def usable_minutes(self) -> float:
        return self.weekly_minutes * (100 - self.buffer_percentage) / 100

    def to_dict(self) -> dict:
        return {
            "weekly_minutes": self.weekly_minutes,
            "buffer_percentage": self.buffer_percentage,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CapacityConfig:
        return cls(
            weekly_minutes=d.get("weekly_minutes", DEFAULT_WEEKLY_MINUTES),
            buffer_percentage=d.get("buffer_percentage", DEFAULT_BUFFER_PERCENTAGE),
        )


@dataclass
class Task:
    """A simple task; committed to the week through its ``this_week`` flag."""

    id: str
    title: str
    time_estimate: int = DEFAULT_TASK_MINUTES
    status: TaskStatus = TaskStatus.ACTIVE
    this_week: bool = False
    week_committed: str | None = None
    priority: Priority = Priority.NORMAL

    @property
    def completed(self) -> bool:
        return self.status == TaskStatus.DONE

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "time_estimate": self.time_estimate,
            "status": self.status.value,
            "this_week": self.this_week,
            "week_committed": self.week_committed,
            "priority": self.priority.value,
        }

    @classmethod
    def from_dict(cls, task_id: str, d: dict) -> Task:
        return cls(
            id=task_id,
            title=d["title"],
            time_estimate=d.get("time_estimate", DEFAULT_TASK_MINUTES),
            status=TaskStatus(d.get("status", "active")),
            this_week=d.get("this_week", False),
            week_committed=d.get("week_committed"),
            priority=Priority(d.get("priority", "normal")),
        )


@dataclass
class Milestone:
    id: str
    title: str
    time_estimate: int = DEFAULT_MILESTONE_MINUTES
    completed: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "time_estimate": self.time_estimate,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Milestone:
        return cls(
            id=d["id"],
            title=d["title"],
            time_estimate=d.get("time_estimate", DEFAULT_MILESTONE_MINUTES),
            completed=d.get("completed", False),
        )


@dataclass
class Project:
    """A project decomposed into milestones, some of which may be committed."""

    id: str
    title: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    parent_id: str | None = None
    milestones: list[Milestone] = field(default_factory=list)
    committed_milestones: list[str] = field(default_factory=list)
    week_committed: str | None = None

    @property
    def this_week(self) -> bool:
        return bool(self.committed_milestones)

    @property
    def is_open(self) -> bool:
        """Archived and completed projects no longer count toward the week."""
        return self.status in (ProjectStatus.BACKLOG, ProjectStatus.ACTIVE)

    def get_milestone(self, milestone_id: str) -> Milestone | None:
        return next((m for m in self.milestones if m.id == milestone_id), None)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "status": self.status.value,
            "parent_id": self.parent_id,
            "milestones": [m.to_dict() for m in self.milestones],
            "committed_milestones": self.committed_milestones,
            "week_committed": self.week_committed,
        }

    @classmethod
    def from_dict(cls, project_id: str, d: dict) -> Project:
        return cls(
            id=project_id,
            title=d["title"],
            status=ProjectStatus(d.get("status", "active")),
            parent_id=d.get("parent_id"),
            milestones=[Milestone.from_dict(m) for m in d.get("milestones", [])],
            committed_milestones=list(d.get("committed_milestones", [])),
            week_committed=d.get("week_committed"),
        )


@dataclass(frozen=True)
class CommitmentUnit:
    """The atomic thing that can be committed: a simple task or a milestone."""

    kind: UnitKind
    id: str
    time_estimate: int
    completed: bool = False
    parent_project_id: str | None = None

    def to_dict(self) -> dict:
        d = {
            "kind": self.kind.value,
            "id": self.id,
            "time_estimate": self.time_estimate,
            "completed": self.completed,
        }
        if self.parent_project_id is not None:
            d["parent_project_id"] = self.parent_project_id
        return d

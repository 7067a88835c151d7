"""Request/response operations over one user's active week.

Every operation runs inside the ``(user_id, week_id)`` critical section:
the database is loaded, validated, mutated and saved before the section is
released, so a commit is always checked against the totals it is applied to.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from weekload import hierarchy, planner
from weekload.config_store import CapacityConfigStore
from weekload.errors import PartialApplicationError, ValidationError
from weekload.gatekeeper import CommitmentGatekeeper, CommitOutcome
from weekload.ledger import CommitmentLedger
from weekload.locks import DEFAULT_TIMEOUT, week_lock
from weekload.models import (
    CapacityConfig,
    CommitmentUnit,
    Milestone,
    Priority,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    UnitKind,
    current_week_id,
)
from weekload.overload import OverloadStatus, evaluate, format_minutes
from weekload.persistence import Store, generate_id
from weekload.planner import ExecutionReport, RedistributionPlan, RedistributionSuggestion

logger = logging.getLogger(__name__)


def _check_estimate(minutes) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
        raise ValidationError(f"time_estimate must be a non-negative integer, got {minutes!r}")
    return minutes


def _parse_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(v.value for v in enum_cls)
        raise ValidationError(f"Invalid {field_name} '{value}'. Valid: {valid}") from None


@dataclass
class WeekSession:
    """The loaded state of one week, alive only inside the critical section."""

    config: CapacityConfig
    tasks: dict[str, Task]
    projects: dict[str, Project]
    ledger: CommitmentLedger

    @property
    def gatekeeper(self) -> CommitmentGatekeeper:
        return CommitmentGatekeeper(self.ledger, self.config)

    def status(self) -> OverloadStatus:
        return evaluate(self.ledger.committed_minutes(), self.config)


@dataclass(frozen=True)
class WeekStatus:
    week_id: str
    status: OverloadStatus
    units: tuple[CommitmentUnit, ...]

    @property
    def task_count(self) -> int:
        return sum(1 for u in self.units if u.kind == UnitKind.TASK)

    @property
    def milestone_count(self) -> int:
        return sum(1 for u in self.units if u.kind == UnitKind.MILESTONE)

    def to_dict(self) -> dict:
        d = {"week_id": self.week_id}
        d.update(self.status.to_dict())
        d["task_count"] = self.task_count
        d["milestone_count"] = self.milestone_count
        d["units"] = [u.to_dict() for u in self.units]
        return d


@dataclass(frozen=True)
class RedistributionResult:
    report: ExecutionReport
    before: OverloadStatus
    after: OverloadStatus

    @property
    def message(self) -> str:
        if not self.before.is_overloaded and not self.report.applied:
            return "No overload detected. Your week is within capacity."
        if self.after.is_overloaded:
            return f"Partially resolved. Still overloaded by {format_minutes(self.after.excess_minutes)}"
        return "Overload resolved! Your week is now within capacity."

    def to_dict(self) -> dict:
        d = {"message": self.message}
        d.update(self.report.to_dict())
        d["before"] = self.before.to_dict()
        d["after"] = self.after.to_dict()
        return d


class WeekEngine:
    def __init__(
        self,
        store: Store | None = None,
        user_id: str | None = None,
        week_id: str | None = None,
        lock_timeout: float = DEFAULT_TIMEOUT,
    ):
        self.store = store or Store()
        self.user_id = user_id or os.environ.get("WEEKLOAD_USER", "default")
        self.week_id = week_id or current_week_id()
        self.lock_timeout = lock_timeout
        self.configs = CapacityConfigStore(self.store)

    def _lock(self):
        return week_lock(self.user_id, self.week_id, self.store.lock_path, self.lock_timeout)

    @contextmanager
    def session(self, write: bool = True) -> Iterator[WeekSession]:
        """Load, yield and (for writes) save the week under its lock.

        Nothing is saved when the body raises, so a rejected operation leaves
        the database as it was.
        """
        with self._lock():
            config, tasks, projects = self.store.load()
            created = config is None
            s = WeekSession(
                config=config or CapacityConfig(),
                tasks=tasks,
                projects=projects,
                ledger=CommitmentLedger(tasks, projects, self.week_id),
            )
            yield s
            if write or created:
                self.store.save(s.config, s.tasks, s.projects)

    # -----------------------------------------------------------------------
    # Capacity config
    # -----------------------------------------------------------------------

    def get_config(self) -> CapacityConfig:
        with self._lock():
            return self.configs.get_config()

    def set_config(self, partial: dict) -> CapacityConfig:
        with self._lock():
            return self.configs.set_config(partial)

    # -----------------------------------------------------------------------
    # Status
    # -----------------------------------------------------------------------

    def week_status(self) -> WeekStatus:
        with self.session(write=False) as s:
            return WeekStatus(
                week_id=self.week_id,
                status=s.status(),
                units=tuple(s.ledger.committed_units()),
            )

    # -----------------------------------------------------------------------
    # Commitments
    # -----------------------------------------------------------------------

    def commit_task(self, task_id: str, force: bool = False) -> CommitOutcome:
        with self.session() as s:
            return s.gatekeeper.commit(s.ledger.task_unit(task_id), force=force)

    def commit_milestone(self, project_id: str, milestone_id: str, force: bool = False) -> CommitOutcome:
        with self.session() as s:
            unit = s.ledger.milestone_unit(project_id, milestone_id)
            s.ledger.open_project(project_id)
            return s.gatekeeper.commit(unit, force=force)

    def validate_commit_task(self, task_id: str) -> CommitOutcome:
        """Outcome committing *task_id* would have, without committing it."""
        with self.session(write=False) as s:
            return s.gatekeeper.evaluate(s.ledger.task_unit(task_id))

    def validate_commit_milestone(self, project_id: str, milestone_id: str) -> CommitOutcome:
        with self.session(write=False) as s:
            unit = s.ledger.milestone_unit(project_id, milestone_id)
            s.ledger.open_project(project_id)
            return s.gatekeeper.evaluate(unit)

    def uncommit_task(self, task_id: str) -> OverloadStatus:
        with self.session() as s:
            s.ledger.uncommit_simple_task(task_id)
            return s.status()

    def uncommit_milestone(self, project_id: str, milestone_id: str) -> OverloadStatus:
        with self.session() as s:
            s.ledger.uncommit_milestone(project_id, milestone_id)
            return s.status()

    # -----------------------------------------------------------------------
    # Redistribution
    # -----------------------------------------------------------------------

    def preview_redistribution(self) -> RedistributionPlan:
        with self.session(write=False) as s:
            return planner.plan(s.ledger, s.status())

    def execute_redistribution(
        self,
        suggestions: list[RedistributionSuggestion] | None = None,
    ) -> RedistributionResult:
        """Apply *suggestions*, or a freshly computed plan when none are given.

        A batch that stops early is still saved; the result reports what was
        applied and what was skipped.
        """
        with self.session() as s:
            before = s.status()
            if suggestions is None:
                suggestions = planner.plan(s.ledger, before).suggestions
            if not before.is_overloaded:
                # Nothing to resolve; commitments are only dropped to fix an overload.
                report = ExecutionReport(skipped=list(suggestions))
                if suggestions:
                    report.failure = "No overload detected; nothing was changed."
            else:
                try:
                    report = planner.execute(s.ledger, suggestions)
                except PartialApplicationError as e:
                    report = e.report
            result = RedistributionResult(report=report, before=before, after=s.status())
            logger.info(
                "Redistribution: %d applied, %d skipped, %d -> %d min",
                report.applied_count, len(report.skipped),
                before.committed_minutes, result.after.committed_minutes,
            )
            return result

    # -----------------------------------------------------------------------
    # Tasks, projects and milestones
    # -----------------------------------------------------------------------

    def add_task(self, title: str, time_estimate: int = 60, priority: str = "normal") -> Task:
        if not title.strip():
            raise ValidationError("Title is required.")
        prio = _parse_enum(Priority, priority, "priority")
        with self.session() as s:
            tid = generate_id("T", s.tasks)
            s.tasks[tid] = Task(id=tid, title=title, time_estimate=_check_estimate(time_estimate), priority=prio)
            return s.tasks[tid]

    def add_project(self, title: str, parent_id: str | None = None, status: str = "active") -> Project:
        if not title.strip():
            raise ValidationError("Title is required.")
        project_status = _parse_enum(ProjectStatus, status, "status")
        with self.session() as s:
            pid = generate_id("P", s.projects)
            s.projects[pid] = Project(id=pid, title=title, status=project_status)
            if parent_id is not None:
                hierarchy.reparent(s.projects, pid, parent_id)
            return s.projects[pid]

    def add_milestone(self, project_id: str, title: str, time_estimate: int = 45) -> Milestone:
        if not title.strip():
            raise ValidationError("Title is required.")
        with self.session() as s:
            project = s.ledger.project(project_id)
            existing = [m.id for p in s.projects.values() for m in p.milestones]
            m = Milestone(id=generate_id("M", existing), title=title, time_estimate=_check_estimate(time_estimate))
            project.milestones.append(m)
            return m

    def set_task_estimate(self, task_id: str, minutes: int) -> Task:
        with self.session() as s:
            t = s.ledger.task(task_id)
            t.time_estimate = _check_estimate(minutes)
            return t

    def set_milestone_estimate(self, project_id: str, milestone_id: str, minutes: int) -> Milestone:
        with self.session() as s:
            m = s.ledger.milestone(project_id, milestone_id)
            m.time_estimate = _check_estimate(minutes)
            return m

    def complete_task(self, task_id: str) -> Task:
        with self.session() as s:
            t = s.ledger.task(task_id)
            t.status = TaskStatus.DONE
            return t

    def complete_milestone(self, project_id: str, milestone_id: str) -> Milestone:
        with self.session() as s:
            m = s.ledger.milestone(project_id, milestone_id)
            m.completed = True
            return m

    def set_project_status(self, project_id: str, status: str) -> Project:
        project_status = _parse_enum(ProjectStatus, status, "status")
        with self.session() as s:
            project = s.ledger.project(project_id)
            project.status = project_status
            return project

    def delete_task(self, task_id: str) -> Task:
        with self.session() as s:
            return s.tasks.pop(s.ledger.task(task_id).id)

    def delete_project(self, project_id: str) -> list[str]:
        with self.session() as s:
            return s.ledger.remove_project(project_id)

    def reparent_project(self, project_id: str, parent_id: str | None) -> Project:
        with self.session() as s:
            return hierarchy.reparent(s.projects, project_id, parent_id)

    def list_tasks(self) -> list[Task]:
        with self.session(write=False) as s:
            return list(s.tasks.values())

    def list_projects(self) -> list[Project]:
        with self.session(write=False) as s:
            return list(s.projects.values())

    def project_tree(self) -> list[tuple[Project, int]]:
        with self.session(write=False) as s:
            return hierarchy.walk(s.projects)

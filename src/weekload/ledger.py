"""The set of units committed to the active week."""

from __future__ import annotations

import copy
import logging

from weekload.errors import LedgerIntegrityError, NotFoundError, ValidationError
from weekload.models import (
    CommitmentUnit,
    Milestone,
    Project,
    Task,
    TaskStatus,
    UnitKind,
    current_week_id,
)

logger = logging.getLogger(__name__)


class CommitmentLedger:
    """Committed simple tasks plus, per project, its committed milestone ids.

    The ledger works over the task and project objects themselves: a task is
    committed through its ``this_week`` flag, a milestone by appearing in its
    project's ``committed_milestones``. Totals are summed on every read.
    """

    def __init__(
        self,
        tasks: dict[str, Task],
        projects: dict[str, Project],
        week_id: str | None = None,
    ):
        self.tasks = tasks
        self.projects = projects
        self.week_id = week_id or current_week_id()

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    def task(self, task_id: str) -> Task:
        if task_id not in self.tasks:
            raise NotFoundError(f"Task {task_id} not found.")
        return self.tasks[task_id]

    def project(self, project_id: str) -> Project:
        if project_id not in self.projects:
            raise NotFoundError(f"Project {project_id} not found.")
        return self.projects[project_id]

    def open_project(self, project_id: str) -> Project:
        """The project, provided new milestone commitments are still allowed on it."""
        project = self.project(project_id)
        if not project.is_open:
            raise ValidationError(f"Project {project_id} is {project.status.value}; its milestones cannot be committed.")
        return project

    def milestone(self, project_id: str, milestone_id: str) -> Milestone:
        project = self.project(project_id)
        m = project.get_milestone(milestone_id)
        if m is None:
            raise NotFoundError(f"Milestone {milestone_id} does not belong to project {project_id}.")
        return m

    def task_unit(self, task_id: str) -> CommitmentUnit:
        t = self.task(task_id)
        return CommitmentUnit(
            kind=UnitKind.TASK,
            id=t.id,
            time_estimate=t.time_estimate,
            completed=t.completed,
        )

    def milestone_unit(self, project_id: str, milestone_id: str) -> CommitmentUnit:
        m = self.milestone(project_id, milestone_id)
        return CommitmentUnit(
            kind=UnitKind.MILESTONE,
            id=m.id,
            time_estimate=m.time_estimate,
            completed=m.completed,
            parent_project_id=project_id,
        )

    def is_committed(self, unit: CommitmentUnit) -> bool:
        if unit.kind == UnitKind.TASK:
            return self.task(unit.id).this_week
        return unit.id in self.project(unit.parent_project_id).committed_milestones

    # -----------------------------------------------------------------------
    # Mutations (all idempotent; each returns whether anything changed)
    # -----------------------------------------------------------------------

    def commit_simple_task(self, task_id: str) -> bool:
        t = self.task(task_id)
        if t.this_week:
            return False
        t.this_week = True
        t.week_committed = self.week_id
        logger.info("Committed task %s (%d min) to %s", task_id, t.time_estimate, self.week_id)
        return True

    def uncommit_simple_task(self, task_id: str) -> bool:
        t = self.task(task_id)
        if not t.this_week:
            return False
        t.this_week = False
        t.week_committed = None
        logger.info("Uncommitted task %s", task_id)
        return True

    def commit_milestone(self, project_id: str, milestone_id: str) -> bool:
        m = self.milestone(project_id, milestone_id)
        project = self.open_project(project_id)
        if milestone_id in project.committed_milestones:
            return False
        project.committed_milestones.append(milestone_id)
        project.week_committed = self.week_id
        logger.info(
            "Committed milestone %s of %s (%d min) to %s",
            milestone_id, project_id, m.time_estimate, self.week_id,
        )
        return True

    def uncommit_milestone(self, project_id: str, milestone_id: str) -> bool:
        self.milestone(project_id, milestone_id)
        project = self.projects[project_id]
        if milestone_id not in project.committed_milestones:
            return False
        project.committed_milestones.remove(milestone_id)
        if not project.committed_milestones:
            project.week_committed = None
        logger.info("Uncommitted milestone %s of %s", milestone_id, project_id)
        return True

    def commit(self, unit: CommitmentUnit) -> bool:
        if unit.kind == UnitKind.TASK:
            return self.commit_simple_task(unit.id)
        return self.commit_milestone(unit.parent_project_id, unit.id)

    def uncommit(self, unit: CommitmentUnit) -> bool:
        if unit.kind == UnitKind.TASK:
            return self.uncommit_simple_task(unit.id)
        return self.uncommit_milestone(unit.parent_project_id, unit.id)

    def remove_project(self, project_id: str) -> list[str]:
        """Delete a project; its committed milestones leave the ledger with it."""
        project = self.project(project_id)
        released = list(project.committed_milestones)
        del self.projects[project_id]
        for child in self.projects.values():
            if child.parent_id == project_id:
                child.parent_id = project.parent_id
        if released:
            logger.info("Removed project %s; released milestones %s", project_id, ", ".join(released))
        return released

    # -----------------------------------------------------------------------
    # Totals
    # -----------------------------------------------------------------------

    def committed_units(self) -> list[CommitmentUnit]:
        """Units that currently count toward the week.

        Completed units and milestones of archived or completed projects stay
        flagged but are left out.
        """
        units: list[CommitmentUnit] = []
        for t in self.tasks.values():
            if t.this_week and t.status == TaskStatus.ACTIVE:
                units.append(self.task_unit(t.id))
        for project in self.projects.values():
            if not project.is_open:
                continue
            for mid in project.committed_milestones:
                m = project.get_milestone(mid)
                if m is not None and not m.completed:
                    units.append(self.milestone_unit(project.id, mid))
        return units

    def entries(self) -> dict[tuple[UnitKind, str], CommitmentUnit]:
        return {(u.kind, u.id): u for u in self.committed_units()}

    def committed_minutes(self) -> int:
        """Sum of time estimates over the counting units.

        Raises LedgerIntegrityError when the sum disagrees with the ledger's
        own entries, which happens only if one unit is committed twice.
        """
        units = self.committed_units()
        total = sum(u.time_estimate for u in units)
        by_entry = sum(u.time_estimate for u in self.entries().values())
        if total != by_entry:
            logger.error("Ledger bookkeeping defect: %d min summed, %d min in entries", total, by_entry)
            raise LedgerIntegrityError(
                f"committed minutes {total} disagree with ledger entries {by_entry}"
            )
        return total

    def snapshot(self) -> dict:
        """Plain-data view of what is committed, for before/after comparisons."""
        return {
            "tasks": sorted(tid for tid, t in self.tasks.items() if t.this_week),
            "milestones": {
                pid: list(p.committed_milestones)
                for pid, p in sorted(self.projects.items())
                if p.committed_milestones
            },
        }

    def copy(self) -> CommitmentLedger:
        return CommitmentLedger(copy.deepcopy(self.tasks), copy.deepcopy(self.projects), self.week_id)

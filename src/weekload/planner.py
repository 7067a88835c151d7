"""Redistribution planning: which commitments to drop to fit the week."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field, replace

from weekload.errors import NotFoundError, PartialApplicationError, ValidationError
from weekload.ledger import CommitmentLedger
from weekload.models import CommitmentUnit, UnitKind
from weekload.overload import OverloadStatus, format_minutes

logger = logging.getLogger(__name__)


class SuggestionAction(enum.StrEnum):
    DEFER = "defer"
    UNCOMMIT = "uncommit"


@dataclass(frozen=True)
class RedistributionSuggestion:
    """One proposed removal. Stale as soon as the ledger changes."""

    target_kind: UnitKind
    target_id: str
    minutes_freed: int
    action: SuggestionAction
    parent_project_id: str | None = None

    def to_dict(self) -> dict:
        d = {
            "target_kind": self.target_kind.value,
            "target_id": self.target_id,
            "minutes_freed": self.minutes_freed,
            "action": self.action.value,
        }
        if self.parent_project_id is not None:
            d["parent_project_id"] = self.parent_project_id
        return d

    @classmethod
    def from_dict(cls, d: dict) -> RedistributionSuggestion:
        try:
            return cls(
                target_kind=UnitKind(d["target_kind"]),
                target_id=d["target_id"],
                minutes_freed=d.get("minutes_freed", 0),
                action=SuggestionAction(d["action"]),
                parent_project_id=d.get("parent_project_id"),
            )
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Malformed suggestion {d!r}: {e}") from e

    @classmethod
    def for_unit(cls, unit: CommitmentUnit) -> RedistributionSuggestion:
        if unit.kind == UnitKind.MILESTONE:
            action = SuggestionAction.UNCOMMIT
        else:
            action = SuggestionAction.DEFER
        return cls(
            target_kind=unit.kind,
            target_id=unit.id,
            minutes_freed=unit.time_estimate,
            action=action,
            parent_project_id=unit.parent_project_id,
        )


@dataclass
class RedistributionPlan:
    suggestions: list[RedistributionSuggestion] = field(default_factory=list)
    excess_minutes: float = 0
    partial: bool = False

    @property
    def minutes_freed(self) -> int:
        return sum(s.minutes_freed for s in self.suggestions)

    @property
    def message(self) -> str:
        if not self.excess_minutes:
            return "No overload detected. Your week is within capacity."
        return f"Your week is overloaded by {format_minutes(self.excess_minutes)}"

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "excess": self.excess_minutes,
            "minutes_freed": self.minutes_freed,
            "partial": self.partial,
            "suggestions": [s.to_dict() for s in self.suggestions],
        }


def _natural_key(unit_id: str) -> list:
    """Order ``T-2`` before ``T-10``."""
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", unit_id)]


def _rank_key(unit: CommitmentUnit):
    # Largest first; milestones ahead of tasks at equal size; then by id.
    kind_rank = 0 if unit.kind == UnitKind.MILESTONE else 1
    return (-unit.time_estimate, kind_rank, _natural_key(unit.id))


def plan(ledger: CommitmentLedger, overload: OverloadStatus) -> RedistributionPlan:
    """Greedy largest-first selection that frees at least the excess.

    Taking the biggest units first reaches any threshold with the fewest
    items. If the whole committed set is not enough, all of it is returned
    with ``partial=True``.
    """
    if not overload.is_overloaded:
        return RedistributionPlan()

    excess = overload.excess_minutes
    ranked = sorted(ledger.committed_units(), key=_rank_key)

    suggestions: list[RedistributionSuggestion] = []
    freed = 0
    for unit in ranked:
        if freed >= excess:
            break
        suggestions.append(RedistributionSuggestion.for_unit(unit))
        freed += unit.time_estimate

    result = RedistributionPlan(suggestions=suggestions, excess_minutes=excess, partial=freed < excess)
    if result.partial:
        logger.warning(
            "Committed set frees only %d of %s excess minutes; returning all %d units",
            freed, excess, len(suggestions),
        )
    return result


@dataclass
class ExecutionReport:
    applied: list[RedistributionSuggestion] = field(default_factory=list)
    skipped: list[RedistributionSuggestion] = field(default_factory=list)
    failure: str | None = None

    @property
    def partial(self) -> bool:
        return bool(self.skipped)

    @property
    def applied_count(self) -> int:
        return len(self.applied)

    @property
    def minutes_freed(self) -> int:
        return sum(s.minutes_freed for s in self.applied)

    def to_dict(self) -> dict:
        d = {
            "applied_count": self.applied_count,
            "minutes_freed": self.minutes_freed,
            "partial": self.partial,
            "applied": [s.to_dict() for s in self.applied],
            "skipped": [s.to_dict() for s in self.skipped],
        }
        if self.failure:
            d["failure"] = self.failure
        return d


def _apply(ledger: CommitmentLedger, s: RedistributionSuggestion) -> RedistributionSuggestion:
    """Uncommit the target of *s* and return it with the minutes actually freed.

    A target that no longer counts toward the week (uncommitted or completed
    since the plan was made) fails the suggestion instead of being reported
    as applied.
    """
    if s.target_kind == UnitKind.TASK:
        unit = ledger.task_unit(s.target_id)
    else:
        if s.parent_project_id is None:
            raise NotFoundError(f"Milestone {s.target_id} has no parent project.")
        unit = ledger.milestone_unit(s.parent_project_id, s.target_id)
    if (unit.kind, unit.id) not in ledger.entries():
        raise ValidationError(f"{unit.kind.value.capitalize()} {unit.id} is no longer committed to this week.")
    ledger.uncommit(unit)
    return replace(s, minutes_freed=unit.time_estimate)


def execute(ledger: CommitmentLedger, suggestions: list[RedistributionSuggestion]) -> ExecutionReport:
    """Apply suggestions in order as one batch.

    Stops at the first failure and raises PartialApplicationError carrying
    the report. Mutations applied before the failure are kept.
    """
    report = ExecutionReport()
    for i, s in enumerate(suggestions):
        try:
            applied = _apply(ledger, s)
        except (NotFoundError, ValidationError) as e:
            report.skipped = list(suggestions[i:])
            report.failure = e.message
            logger.warning(
                "Redistribution stopped at %s %s: %s (%d applied, %d skipped)",
                s.target_kind.value, s.target_id, e.message, len(report.applied), len(report.skipped),
            )
            raise PartialApplicationError(
                f"Applied {len(report.applied)} of {len(suggestions)} changes: {e.message}",
                report,
            ) from e
        report.applied.append(applied)
    logger.info("Redistribution applied %d changes, freeing %d min", report.applied_count, report.minutes_freed)
    return report

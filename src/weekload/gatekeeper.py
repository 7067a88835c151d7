"""Validate a commitment against capacity before the ledger is touched.

Each attempt goes Proposed -> Validating -> Accepted | Blocked, and a
blocked attempt with ``force=True`` ends as AcceptedWithWarning. Nothing is
pending between calls; every attempt resolves inside one call.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from weekload.errors import CapacityBlockedError
from weekload.ledger import CommitmentLedger
from weekload.models import CapacityConfig, CommitmentUnit
from weekload.overload import OverloadStatus, format_minutes, simulate

logger = logging.getLogger(__name__)


class CommitState(enum.StrEnum):
    ACCEPTED = "accepted"
    BLOCKED = "blocked"
    ACCEPTED_WITH_WARNING = "accepted_with_warning"


@dataclass(frozen=True)
class CommitOutcome:
    state: CommitState
    unit: CommitmentUnit
    status: OverloadStatus
    changed: bool = True

    @property
    def message(self) -> str | None:
        if not self.status.is_overloaded:
            return None
        return (
            f"Committing this {self.unit.kind.value} would overload your week "
            f"by {format_minutes(self.status.excess_minutes)}"
        )

    def to_dict(self) -> dict:
        d = {
            "state": self.state.value,
            "changed": self.changed,
            "unit": self.unit.to_dict(),
        }
        d.update(self.status.to_dict())
        if self.message:
            d["message"] = self.message
        return d


class CommitmentGatekeeper:
    def __init__(self, ledger: CommitmentLedger, config: CapacityConfig):
        self.ledger = ledger
        self.config = config

    def evaluate(self, unit: CommitmentUnit, force: bool = False) -> CommitOutcome:
        """Decide the outcome of committing *unit* without mutating the ledger."""
        current = self.ledger.committed_minutes()

        if self.ledger.is_committed(unit):
            # Re-committing is a no-op success, never a block.
            status = simulate(current, 0, self.config)
            state = CommitState.ACCEPTED_WITH_WARNING if status.is_overloaded else CommitState.ACCEPTED
            return CommitOutcome(state=state, unit=unit, status=status, changed=False)

        additional = 0 if unit.completed else unit.time_estimate
        status = simulate(current, additional, self.config)
        if not status.is_overloaded:
            state = CommitState.ACCEPTED
        elif force:
            state = CommitState.ACCEPTED_WITH_WARNING
        else:
            state = CommitState.BLOCKED
        return CommitOutcome(state=state, unit=unit, status=status)

    def commit(self, unit: CommitmentUnit, force: bool = False) -> CommitOutcome:
        """Commit *unit* or raise CapacityBlockedError leaving the ledger untouched."""
        outcome = self.evaluate(unit, force=force)
        if outcome.state == CommitState.BLOCKED:
            logger.warning("Blocked commit of %s %s: %s", unit.kind.value, unit.id, outcome.message)
            raise CapacityBlockedError(outcome.message, outcome.status)

        if outcome.changed:
            self.ledger.commit(unit)
            if outcome.state == CommitState.ACCEPTED_WITH_WARNING:
                logger.info("Forced commit of %s %s over capacity (%d%%)", unit.kind.value, unit.id, outcome.status.percentage)
        return outcome

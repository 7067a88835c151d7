"""Overload detection: a pure function of committed minutes and config.

Nothing here is stored. Editing a time estimate or the config changes the
next reading directly, with no reconciliation pass.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from weekload.models import CapacityConfig


@dataclass(frozen=True)
class OverloadStatus:
    committed_minutes: int
    usable_minutes: float

    @property
    def is_overloaded(self) -> bool:
        return self.committed_minutes > self.usable_minutes

    @property
    def excess_minutes(self) -> float:
        return max(0, self.committed_minutes - self.usable_minutes)

    @property
    def percentage(self) -> int:
        # Halves round up, so 102.5% reads as 103%.
        return math.floor(self.committed_minutes * 100 / self.usable_minutes + 0.5)

    @property
    def color(self) -> str:
        return capacity_color(self.percentage)

    def to_dict(self) -> dict:
        return {
            "committed": self.committed_minutes,
            "usable": self.usable_minutes,
            "committed_formatted": format_minutes(self.committed_minutes),
            "usable_formatted": format_minutes(self.usable_minutes),
            "overload": {
                "is_overloaded": self.is_overloaded,
                "percentage": self.percentage,
                "excess": self.excess_minutes,
                "excess_formatted": format_minutes(self.excess_minutes),
                "color": self.color,
            },
        }


def evaluate(committed_minutes: int, config: CapacityConfig) -> OverloadStatus:
    return OverloadStatus(committed_minutes=committed_minutes, usable_minutes=config.usable_minutes)


def simulate(committed_minutes: int, additional_minutes: int, config: CapacityConfig) -> OverloadStatus:
    """Reading the week would have if *additional_minutes* were committed."""
    return evaluate(committed_minutes + additional_minutes, config)


def format_minutes(minutes: float) -> str:
    """``"5.6h"`` for an hour or more, ``"45min"`` below that."""
    if minutes >= 60:
        return f"{minutes / 60:.1f}h"
    return f"{round(minutes)}min"


def capacity_color(percentage: int) -> str:
    if percentage <= 80:
        return "green"
    if percentage <= 100:
        return "yellow"
    return "red"

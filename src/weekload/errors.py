"""Error taxonomy for the commitment engine.

Every error except :class:`LedgerIntegrityError` is an expected outcome that a
caller handles (show a dialog, offer a retry). Each carries the status code it
maps to at a request/response boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from weekload.overload import OverloadStatus
    from weekload.planner import ExecutionReport


class WeekloadError(Exception):
    http_status = 500
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"status": self.http_status, "error": self.code, "message": self.message}


class ValidationError(WeekloadError):
    http_status = 400
    code = "validation_error"


class NotFoundError(WeekloadError):
    http_status = 404
    code = "not_found"


class CapacityBlockedError(WeekloadError):
    """Commit would overload the week and no override was given."""

    http_status = 409
    code = "capacity_overload"

    def __init__(self, message: str, overload: OverloadStatus):
        super().__init__(message)
        self.overload = overload

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["overload"] = self.overload.to_dict()
        d["can_force"] = True
        return d


class PartialApplicationError(WeekloadError):
    """A redistribution batch stopped early; applied mutations are kept."""

    http_status = 207
    code = "partial_application"

    def __init__(self, message: str, report: ExecutionReport):
        super().__init__(message)
        self.report = report

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update(self.report.to_dict())
        return d


class LockTimeoutError(WeekloadError):
    http_status = 423
    code = "week_locked"


class LedgerIntegrityError(RuntimeError):
    """Committed-minute bookkeeping disagrees with the ledger's own entries."""

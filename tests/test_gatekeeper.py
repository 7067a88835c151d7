import pytest

from weekload.errors import CapacityBlockedError
from weekload.gatekeeper import CommitmentGatekeeper, CommitState
from weekload.ledger import CommitmentLedger
from weekload.models import CapacityConfig, Milestone, Project, Task


def _gatekeeper() -> CommitmentGatekeeper:
    tasks = {
        "T-1": Task("T-1", "Deep work", 1000, this_week=True),
        "T-2": Task("T-2", "Planning", 900, this_week=True),
        "T-3": Task("T-3", "Admin", 100),
        "T-4": Task("T-4", "Tiny", 20),
    }
    projects = {
        "P-1": Project("P-1", "Launch", milestones=[Milestone("M-1", "Draft", 200)]),
    }
    ledger = CommitmentLedger(tasks, projects, week_id="2026-W43")
    return CommitmentGatekeeper(ledger, CapacityConfig(weekly_minutes=2400, buffer_percentage=20))


def test_accepted_within_capacity():
    gk = _gatekeeper()
    outcome = gk.commit(gk.ledger.task_unit("T-4"))
    assert outcome.state == CommitState.ACCEPTED
    assert outcome.changed
    assert outcome.message is None
    assert outcome.status.committed_minutes == 1920
    assert gk.ledger.tasks["T-4"].this_week


def test_blocked_commit_leaves_ledger_untouched():
    gk = _gatekeeper()
    before = gk.ledger.snapshot()
    with pytest.raises(CapacityBlockedError) as exc_info:
        gk.commit(gk.ledger.task_unit("T-3"))

    e = exc_info.value
    assert e.http_status == 409
    assert e.overload.excess_minutes == 80
    assert e.overload.percentage == 104
    assert "would overload your week by 1.3h" in e.message
    assert gk.ledger.snapshot() == before
    assert gk.ledger.committed_minutes() == 1900


def test_force_commits_and_reports_overload():
    gk = _gatekeeper()
    outcome = gk.commit(gk.ledger.task_unit("T-3"), force=True)
    assert outcome.state == CommitState.ACCEPTED_WITH_WARNING
    assert outcome.status.is_overloaded
    assert outcome.status.excess_minutes == 80
    assert gk.ledger.tasks["T-3"].this_week
    assert gk.ledger.committed_minutes() == 2000


def test_blocked_milestone():
    gk = _gatekeeper()
    unit = gk.ledger.milestone_unit("P-1", "M-1")
    assert gk.evaluate(unit).state == CommitState.BLOCKED
    with pytest.raises(CapacityBlockedError) as exc_info:
        gk.commit(unit)
    assert "milestone" in exc_info.value.message
    assert gk.ledger.projects["P-1"].committed_milestones == []


def test_evaluate_does_not_mutate():
    gk = _gatekeeper()
    before = gk.ledger.snapshot()
    gk.evaluate(gk.ledger.task_unit("T-4"))
    gk.evaluate(gk.ledger.task_unit("T-3"), force=True)
    assert gk.ledger.snapshot() == before


def test_recommit_is_noop_even_when_overloaded():
    gk = _gatekeeper()
    gk.commit(gk.ledger.task_unit("T-3"), force=True)
    outcome = gk.commit(gk.ledger.task_unit("T-3"))
    assert outcome.changed is False
    assert outcome.state == CommitState.ACCEPTED_WITH_WARNING
    assert gk.ledger.committed_minutes() == 2000


def test_outcome_to_dict():
    gk = _gatekeeper()
    d = gk.commit(gk.ledger.task_unit("T-3"), force=True).to_dict()
    assert d["state"] == "accepted_with_warning"
    assert d["overload"]["is_overloaded"] is True
    assert d["unit"]["id"] == "T-3"
    assert "message" in d

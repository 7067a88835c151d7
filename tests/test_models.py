from datetime import date

from weekload.models import (
    CapacityConfig,
    Milestone,
    Priority,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    current_week_id,
)


def test_task_serialization():
    t = Task(
        id="T-1",
        title="Write report",
        time_estimate=90,
        status=TaskStatus.DONE,
        this_week=True,
        week_committed="2026-W43",
        priority=Priority.HIGH,
    )
    d = t.to_dict()
    assert d["time_estimate"] == 90
    assert d["this_week"] is True
    assert d["status"] == "done"

    t2 = Task.from_dict("T-1", d)
    assert t2 == t
    assert t2.completed


def test_task_defaults_from_sparse_dict():
    t = Task.from_dict("T-9", {"title": "Quick"})
    assert t.time_estimate == 60
    assert t.status == TaskStatus.ACTIVE
    assert t.this_week is False


def test_project_serialization():
    p = Project(
        id="P-1",
        title="Launch",
        status=ProjectStatus.BACKLOG,
        parent_id="P-0",
        milestones=[Milestone("M-1", "Draft", 120), Milestone("M-2", "Ship", completed=True)],
        committed_milestones=["M-1"],
    )
    p2 = Project.from_dict("P-1", p.to_dict())
    assert p2.milestones[1].time_estimate == 45
    assert p2.milestones[1].completed is True
    assert p2.committed_milestones == ["M-1"]
    assert p2.this_week
    assert p2.is_open


def test_archived_project_is_not_open():
    assert not Project("P-1", "Old", status=ProjectStatus.ARCHIVED).is_open
    assert not Project("P-2", "Shipped", status=ProjectStatus.COMPLETED).is_open


def test_usable_minutes():
    assert CapacityConfig(2400, 20).usable_minutes == 1920
    assert CapacityConfig(1000, 25).usable_minutes == 750
    assert CapacityConfig(600, 0).usable_minutes == 600


def test_current_week_id():
    assert current_week_id(date(2026, 10, 19)) == "2026-W43"
    assert current_week_id(date(2027, 1, 1)) == "2026-W53"

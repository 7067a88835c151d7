import json

import pytest

from weekload import mcp_server


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEEKLOAD_DB", raising=False)
    return tmp_path


def _call(fn, *args, **kwargs) -> dict:
    return json.loads(fn(*args, **kwargs))


def test_blocked_commit_returns_409_payload(workspace):
    _call(mcp_server.set_capacity_config, weekly_minutes=2400, buffer_percentage=20)
    for minutes in (1000, 900, 100):
        _call(mcp_server.add_task, f"Task {minutes}", minutes)
    _call(mcp_server.commit_task, "T-1")
    _call(mcp_server.commit_task, "T-2")

    blocked = _call(mcp_server.commit_task, "T-3")
    assert blocked["status"] == 409
    assert blocked["can_force"] is True
    assert blocked["overload"]["overload"]["excess"] == 80

    forced = _call(mcp_server.commit_task, "T-3", force=True)
    assert forced["status"] == 200
    assert forced["state"] == "accepted_with_warning"

    preview = _call(mcp_server.preview_redistribution)
    assert preview["suggestions"][0]["target_id"] == "T-1"

    executed = _call(mcp_server.execute_redistribution, preview["suggestions"])
    assert executed["applied_count"] == 1

    status = _call(mcp_server.get_week_status)
    assert status["overload"]["is_overloaded"] is False


def test_errors_map_to_status_codes(workspace):
    assert _call(mcp_server.set_capacity_config, buffer_percentage=150)["status"] == 400
    assert _call(mcp_server.commit_milestone, "P-1", "M-1")["status"] == 404
    assert _call(mcp_server.uncommit_task, "T-1")["status"] == 404
    assert _call(mcp_server.execute_redistribution, [{"target_id": "T-1"}])["status"] == 400


def test_milestone_round(workspace):
    project = _call(mcp_server.add_project, "Launch")["project"]
    m = _call(mcp_server.add_milestone, project["id"], "Draft", 120)["milestone"]
    committed = _call(mcp_server.commit_milestone, project["id"], m["id"])
    assert committed["state"] == "accepted"
    assert committed["committed"] == 120

    _call(mcp_server.complete_milestone, project["id"], m["id"])
    assert _call(mcp_server.get_week_status)["committed"] == 0


def test_validate_commitment_is_a_dry_run(workspace):
    _call(mcp_server.set_capacity_config, weekly_minutes=600, buffer_percentage=0)
    _call(mcp_server.add_task, "Report", 400)
    _call(mcp_server.add_task, "Slides", 300)
    _call(mcp_server.commit_task, "T-1")

    check = _call(mcp_server.validate_commitment, task_id="T-2")
    assert check["status"] == 200
    assert check["can_commit"] is False
    assert check["state"] == "blocked"
    assert check["committed"] == 700
    assert _call(mcp_server.get_week_status)["committed"] == 400

    assert _call(mcp_server.validate_commitment, task_id="T-1")["changed"] is False
    assert _call(mcp_server.validate_commitment)["status"] == 400
    assert _call(mcp_server.validate_commitment, project_id="P-1", milestone_id="M-1")["status"] == 404

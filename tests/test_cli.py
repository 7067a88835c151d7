from typer.testing import CliRunner

from weekload.cli import app

runner = CliRunner()


def test_commit_block_force_and_redistribute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEEKLOAD_DB", raising=False)

    result = runner.invoke(app, ["init", "--weekly-minutes", "600", "--buffer", "0"])
    assert result.exit_code == 0, result.stdout

    runner.invoke(app, ["add-task", "Write report", "-m", "400"])
    runner.invoke(app, ["add-task", "Slides", "-m", "300"])

    result = runner.invoke(app, ["commit", "T-1"])
    assert result.exit_code == 0, result.stdout
    assert "Committed T-1" in result.stdout

    result = runner.invoke(app, ["commit", "T-2"])
    assert result.exit_code == 2
    assert "Blocked" in result.stdout

    result = runner.invoke(app, ["commit", "T-2", "--force"])
    assert result.exit_code == 0, result.stdout
    assert "anyway" in result.stdout

    result = runner.invoke(app, ["status"])
    assert "Overloaded by 1.7h" in result.stdout

    result = runner.invoke(app, ["plan"])
    assert "Your week is overloaded" in result.stdout
    assert "defer" in result.stdout
    assert "T-1" in result.stdout

    result = runner.invoke(app, ["redistribute"])
    assert result.exit_code == 0, result.stdout
    assert "Overload resolved" in result.stdout

    result = runner.invoke(app, ["status"])
    assert "Overloaded" not in result.stdout


def test_milestones_and_projects(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEEKLOAD_DB", raising=False)

    runner.invoke(app, ["add-project", "Launch"])
    runner.invoke(app, ["add-milestone", "P-1", "Draft", "-m", "90"])

    result = runner.invoke(app, ["commit-milestone", "P-1", "M-1"])
    assert result.exit_code == 0, result.stdout
    assert "Committed M-1" in result.stdout

    result = runner.invoke(app, ["commit-milestone", "P-1", "M-7"])
    assert result.exit_code == 1
    assert "does not belong" in result.stdout

    result = runner.invoke(app, ["list"])
    assert "committed" in result.stdout

    result = runner.invoke(app, ["delete-project", "P-1"])
    assert "Released milestones: M-1" in result.stdout


def test_config_validation(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEEKLOAD_DB", raising=False)

    result = runner.invoke(app, ["config"])
    assert "Weekly minutes: 2400" in result.stdout

    result = runner.invoke(app, ["config", "--buffer", "100"])
    assert result.exit_code == 1

    result = runner.invoke(app, ["config", "--buffer", "25"])
    assert "Usable:         1800 min" in result.stdout


def test_check_does_not_commit(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEEKLOAD_DB", raising=False)

    runner.invoke(app, ["init", "--weekly-minutes", "600", "--buffer", "0"])
    runner.invoke(app, ["add-task", "Write report", "-m", "400"])
    runner.invoke(app, ["add-task", "Slides", "-m", "300"])

    result = runner.invoke(app, ["check", "T-1"])
    assert result.exit_code == 0, result.stdout
    assert "T-1 fits this week" in result.stdout

    runner.invoke(app, ["commit", "T-1"])
    result = runner.invoke(app, ["check", "T-2"])
    assert result.exit_code == 0, result.stdout
    assert "would overload your week by 1.7h" in result.stdout

    result = runner.invoke(app, ["status"])
    assert "Overloaded" not in result.stdout


def test_list_nests_projects(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEEKLOAD_DB", raising=False)

    runner.invoke(app, ["add-project", "Work"])
    runner.invoke(app, ["add-project", "Launch", "--parent", "P-1"])
    runner.invoke(app, ["add-milestone", "P-2", "Draft"])

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0, result.stdout
    assert "    P-2  Launch" in result.stdout
    assert "[ ] M-1 Draft (45 min)" in result.stdout

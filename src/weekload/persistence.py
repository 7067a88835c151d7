"""JSON file persistence for tasks, projects and capacity config."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from weekload.models import CapacityConfig, Project, Task

DEFAULT_DB_FILE = "weekload.json"

logger = logging.getLogger(__name__)


def default_db_path() -> Path:
    return Path(os.environ.get("WEEKLOAD_DB", DEFAULT_DB_FILE))


class Store:
    """Reads and writes one user's database (JSON file)."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path is not None else default_db_path()

    @property
    def lock_path(self) -> Path:
        return self.db_path.with_name(self.db_path.name + ".lock")

    def load(self) -> tuple[CapacityConfig | None, dict[str, Task], dict[str, Project]]:
        """Return (config_or_None, {task_id: Task}, {project_id: Project})."""
        if not self.db_path.exists():
            return None, {}, {}

        raw = json.loads(self.db_path.read_text())

        config = None
        if "config" in raw:
            config = CapacityConfig.from_dict(raw["config"])

        tasks = {tid: Task.from_dict(tid, d) for tid, d in raw.get("tasks", {}).items()}
        projects = {pid: Project.from_dict(pid, d) for pid, d in raw.get("projects", {}).items()}
        return config, tasks, projects

    def save(
        self,
        config: CapacityConfig | None,
        tasks: dict[str, Task],
        projects: dict[str, Project],
    ) -> None:
        """Persist config + tasks + projects to disk.

        Writes to a sibling temp file first so a crash never leaves a
        half-written database behind.
        """
        raw: dict = {}
        if config is not None:
            raw["config"] = config.to_dict()
        raw["tasks"] = {tid: t.to_dict() for tid, t in tasks.items()}
        raw["projects"] = {pid: p.to_dict() for pid, p in projects.items()}
        tmp = self.db_path.with_name(self.db_path.name + ".tmp")
        tmp.write_text(json.dumps(raw, indent=4))
        tmp.replace(self.db_path)
        logger.debug("Saved %d tasks, %d projects to %s", len(tasks), len(projects), self.db_path)


def generate_id(prefix: str, existing) -> str:
    """Generate the next ``<prefix>-N`` id."""
    numbers = []
    for key in existing:
        head, _, tail = key.partition("-")
        if head == prefix and tail.isdigit():
            numbers.append(int(tail))
    return f"{prefix}-{max(numbers, default=0) + 1}"

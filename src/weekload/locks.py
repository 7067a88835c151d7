"""Critical sections keyed by (user_id, week_id)."""

from __future__ import annotations

import fcntl
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from weekload.errors import LockTimeoutError

DEFAULT_TIMEOUT = 5.0
POLL_INTERVAL = 0.05

_registry_guard = threading.Lock()
_registry: dict[tuple[str, str], threading.Lock] = {}


def _lock_for(key: tuple[str, str]) -> threading.Lock:
    with _registry_guard:
        lock = _registry.get(key)
        if lock is None:
            lock = _registry[key] = threading.Lock()
        return lock


@contextmanager
def _file_lock(lock_path: Path, deadline: float) -> Iterator[None]:
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    handle = lock_path.open("a+", encoding="utf-8")
    try:
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(f"Week is busy (lock: {lock_path}); try again.")
                time.sleep(POLL_INTERVAL)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        handle.close()


@contextmanager
def week_lock(
    user_id: str,
    week_id: str,
    lock_path: Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Iterator[None]:
    """Hold the exclusive section for one user's week.

    Threads in this process serialize on a per-key lock; other processes
    writing the same database serialize on an flock of *lock_path*. Waiting
    is bounded by *timeout*, after which LockTimeoutError is raised.
    """
    deadline = time.monotonic() + timeout
    lock = _lock_for((user_id, week_id))
    if not lock.acquire(timeout=timeout):
        raise LockTimeoutError(f"Week {week_id} for {user_id} is busy; try again.")
    try:
        if lock_path is None:
            yield
        else:
            with _file_lock(lock_path, deadline):
                yield
    finally:
        lock.release()

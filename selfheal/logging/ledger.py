from __future__ import annotations

import json
import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

try:
    import fcntl
except ImportError:  # Windows: in-process lock only.
    fcntl = None

from selfheal.config.schema import LedgerConfig
from selfheal.core.exceptions import LedgerWriteConflict
from selfheal.core.metadata import HealingEvent, HealingStats

log = logging.getLogger(__name__)

LOCK_RETRY_DELAY = 0.01

_process_locks: dict[str, threading.Lock] = {}
_process_locks_guard = threading.Lock()


def _process_lock(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _process_locks_guard:
        return _process_locks.setdefault(key, threading.Lock())


class HealingLedger:
    """Append-only JSON Lines record of every selector substitution.

    Each append takes an in-process lock and an advisory ``flock`` on a sidecar
    ``.lock`` file, so parallel workers sharing one directory never interleave
    or drop records.
    """

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self.config = config or LedgerConfig()
        self.path = Path(self.config.path)
        self.root = self.path.parent
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    def append(self, event: HealingEvent) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        line = json.dumps(event.to_record(), ensure_ascii=False) + "\n"
        with self.locked():
            with self.path.open("ab") as handle:
                if handle.tell() and not self._ends_with_newline():
                    # Terminate a line torn by an earlier crash so this record stays intact.
                    handle.write(b"\n")
                handle.write(line.encode("utf-8"))
                handle.flush()
                os.fsync(handle.fileno())

    def read_all(self) -> list[HealingEvent]:
        if not self.path.exists():
            return []
        events: list[HealingEvent] = []
        with self.path.open("rb") as handle:
            for number, raw in enumerate(handle, start=1):
                if not raw.strip():
                    continue
                try:
                    events.append(HealingEvent.from_record(json.loads(raw.decode("utf-8"))))
                except (ValueError, KeyError, TypeError) as exc:
                    log.warning("Skipping malformed ledger line %s in %s: %s", number, self.path, exc)
        return events

    def stats(self) -> HealingStats:
        events = self.read_all()
        total = len(events)
        if not total:
            return HealingStats(total_healings=0, recent_healings=[], success_rate_estimate=0.0)
        window = self.config.recent_window
        return HealingStats(
            total_healings=total,
            recent_healings=events[-window:] if window else [],
            success_rate_estimate=total / (total + 1) * 100,
        )

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as handle:
            handle.seek(-1, os.SEEK_END)
            return handle.read(1) == b"\n"

    @contextmanager
    def locked(self) -> Iterator[None]:
        timeout = self.config.lock_timeout_seconds
        thread_lock = _process_lock(self.path)
        if not thread_lock.acquire(timeout=timeout):
            raise LedgerWriteConflict(f"Timed out after {timeout}s waiting for {self.path}")
        try:
            if fcntl is None:
                yield
                return
            self.root.mkdir(parents=True, exist_ok=True)
            with self.lock_path.open("a") as lock_file:
                self._acquire_file_lock(lock_file, timeout)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            thread_lock.release()

    def _acquire_file_lock(self, lock_file, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        while True:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except OSError as exc:
                if time.monotonic() >= deadline:
                    raise LedgerWriteConflict(
                        f"Timed out after {timeout}s waiting for {self.lock_path}"
                    ) from exc
                time.sleep(LOCK_RETRY_DELAY)

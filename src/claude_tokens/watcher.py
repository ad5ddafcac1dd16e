from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .models import RefreshTrigger

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_FALLBACK_SECONDS = 60.0

_RELEVANT_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}


class _SourceFileHandler(FileSystemEventHandler):
    """Forwards events for a fixed set of file names inside one directory."""

    def __init__(self, names: Iterable[str], callback: Callable[[], None]):
        super().__init__()
        self._names = set(names)
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return
        candidates = [event.src_path, getattr(event, "dest_path", "")]
        for candidate in candidates:
            if candidate and os.path.basename(os.fsdecode(candidate)) in self._names:
                self._callback()
                return


class ChangeDetector:
    """Coalesces file notifications into debounced ``FILE_CHANGED`` triggers.

    Scheduling is deadline based: every raw notification moves the debounce
    deadline to ``now + debounce``; the trigger fires once the deadline passes
    without another notification. Independently a fallback deadline fires
    ``FALLBACK_POLL`` every ``fallback_interval`` seconds so a silently broken
    watch never leaves the summary stale for longer than that.

    ``poll``/``next_deadline`` expose the scheduler for callers that drive it
    with their own clock; ``start`` runs it on a daemon thread.
    """

    def __init__(
        self,
        paths: Iterable[Path],
        on_change: Callable[[RefreshTrigger], None],
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        fallback_interval: float = DEFAULT_FALLBACK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if debounce <= 0 or fallback_interval <= 0:
            raise ValueError("debounce and fallback_interval must be positive")
        self.paths = [Path(path).expanduser() for path in paths]
        self.debounce = debounce
        self.fallback_interval = fallback_interval
        self._on_change = on_change
        self._clock = clock
        self._lock = threading.Lock()
        self._condition = threading.Condition(self._lock)
        self._debounce_deadline: Optional[float] = None
        self._fallback_deadline = clock() + fallback_interval
        self._observer: Optional[Observer] = None
        self._runner: Optional[threading.Thread] = None
        self._stopped = False
        self.watched_dirs: List[Path] = []

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def notify(self, now: Optional[float] = None) -> None:
        with self._condition:
            now = self._clock() if now is None else now
            self._debounce_deadline = now + self.debounce
            self._condition.notify()

    def poll(self, now: Optional[float] = None) -> List[RefreshTrigger]:
        with self._condition:
            return self._collect_due(self._clock() if now is None else now)

    def next_deadline(self) -> float:
        with self._condition:
            return self._next_deadline_locked()

    def _next_deadline_locked(self) -> float:
        if self._debounce_deadline is None:
            return self._fallback_deadline
        return min(self._debounce_deadline, self._fallback_deadline)

    def _collect_due(self, now: float) -> List[RefreshTrigger]:
        due: List[RefreshTrigger] = []
        if self._debounce_deadline is not None and now >= self._debounce_deadline:
            self._debounce_deadline = None
            due.append(RefreshTrigger.FILE_CHANGED)
        if now >= self._fallback_deadline:
            due.append(RefreshTrigger.FALLBACK_POLL)
            # Skip whole missed intervals (e.g. after sleep) instead of firing a burst.
            missed = int((now - self._fallback_deadline) // self.fallback_interval) + 1
            self._fallback_deadline += missed * self.fallback_interval
        return due

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._runner is not None:
            return
        with self._condition:
            self._stopped = False
            self._fallback_deadline = self._clock() + self.fallback_interval
        self._install_watches()
        self._runner = threading.Thread(
            target=self._run_loop, name="change-detector", daemon=True
        )
        self._runner.start()

    def stop(self) -> None:
        with self._condition:
            self._stopped = True
            self._debounce_deadline = None
            self._condition.notify_all()
        runner, self._runner = self._runner, None
        if runner is not None and runner is not threading.current_thread():
            runner.join(timeout=5.0)
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
        self.watched_dirs = []

    def __enter__(self) -> "ChangeDetector":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _install_watches(self) -> None:
        by_dir: Dict[Path, Set[str]] = {}
        for path in self.paths:
            by_dir.setdefault(path.parent, set()).add(path.name)

        observer = Observer()
        watched: List[Path] = []
        for directory, names in by_dir.items():
            if not directory.is_dir():
                logger.info("not watching %s: directory does not exist", directory)
                continue
            try:
                observer.schedule(
                    _SourceFileHandler(names, self.notify), str(directory), recursive=False
                )
            except OSError as exc:
                logger.info("not watching %s: %s", directory, exc)
                continue
            watched.append(directory)

        if not watched:
            logger.info("no file watches installed; relying on %.0fs fallback poll", self.fallback_interval)
            return
        try:
            observer.start()
        except (OSError, RuntimeError) as exc:
            logger.info("file watcher failed to start (%s); relying on fallback poll", exc)
            return
        self._observer = observer
        self.watched_dirs = watched
        logger.debug("watching %s", ", ".join(str(path) for path in watched))

    def _run_loop(self) -> None:
        while True:
            with self._condition:
                if self._stopped:
                    return
                now = self._clock()
                due = self._collect_due(now)
                if not due:
                    self._condition.wait(timeout=max(0.0, self._next_deadline_locked() - now))
                    continue
            for trigger in due:
                try:
                    self._on_change(trigger)
                except Exception:
                    logger.exception("change callback failed for %s", trigger.value)


__all__ = ["ChangeDetector", "DEFAULT_DEBOUNCE_SECONDS", "DEFAULT_FALLBACK_SECONDS"]

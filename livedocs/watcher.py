"""Filesystem watching for the served root.

Wraps a watchdog observer, turning its events into ChangeEvents with paths
relative to the root. A supervisor thread keeps the observer running: when the
root disappears or becomes unreadable the observer is torn down and restarted
once the root is back.
"""

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from livedocs.exceptions import WatcherIOError
from livedocs.paths import normalize_view_id

logger = logging.getLogger(__name__)

CREATED = "created"
MODIFIED = "modified"
REMOVED = "removed"
DIR_CREATED = "directory-created"
DIR_REMOVED = "directory-removed"

KINDS = (CREATED, MODIFIED, REMOVED, DIR_CREATED, DIR_REMOVED)


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    path: str


def relative_path(root: Path, raw) -> str | None:
    """Root-relative forward-slash path, or None if raw is the root or outside it."""

    if isinstance(raw, bytes):
        raw = os.fsdecode(raw)
    rel = os.path.relpath(raw, root)
    if rel == "." or rel == ".." or rel.startswith(".." + os.sep):
        return None
    return normalize_view_id(rel)


def _created(root: Path, raw, is_directory: bool) -> list[ChangeEvent]:
    rel = relative_path(root, raw)
    if rel is None:
        return []
    return [ChangeEvent(DIR_CREATED if is_directory else CREATED, rel)]


def _removed(root: Path, raw, is_directory: bool) -> list[ChangeEvent]:
    rel = relative_path(root, raw)
    if rel is None:
        return []
    return [ChangeEvent(DIR_REMOVED if is_directory else REMOVED, rel)]


def translate(root: Path, event: FileSystemEvent) -> list[ChangeEvent]:
    """Map one watchdog event onto zero or more ChangeEvents.

    Moves become a removal of the source followed by a creation of the
    destination. Directory modifications and open/close notifications carry
    nothing a viewer could see, so they are dropped.
    """

    kind = event.event_type
    if kind == EVENT_TYPE_CREATED:
        return _created(root, event.src_path, event.is_directory)
    if kind == EVENT_TYPE_DELETED:
        return _removed(root, event.src_path, event.is_directory)
    if kind == EVENT_TYPE_MODIFIED:
        if event.is_directory:
            return []
        rel = relative_path(root, event.src_path)
        return [ChangeEvent(MODIFIED, rel)] if rel is not None else []
    if kind == EVENT_TYPE_MOVED:
        return (_removed(root, event.src_path, event.is_directory)
                + _created(root, event.dest_path, event.is_directory))
    return []


class _ChangeHandler(FileSystemEventHandler):

    def __init__(self, root: Path, callback: Callable[[ChangeEvent], None]):
        super().__init__()
        self.root = root
        self.callback = callback

    def on_any_event(self, event):
        for change in translate(self.root, event):
            logger.info("File event %s: %s", change.kind, change.path)
            try:
                self.callback(change)
            except Exception:
                logger.exception("Change callback failed for %s", change.path)


class ChangeWatcher:
    """Recursive watcher over ``root`` that keeps itself alive."""

    def __init__(self, root: Path, callback: Callable[[ChangeEvent], None],
                 retry_interval: float = 5.0, observer_factory=Observer):
        self.root = Path(root)
        self.callback = callback
        self.retry_interval = retry_interval
        self._observer_factory = observer_factory
        self._observer = None
        self._root_id = None
        self._suspended = False
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._supervisor = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    @property
    def running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self):
        self._stopping.clear()
        self.check()
        self._supervisor = threading.Thread(
            target=self._supervise, name="livedocs-watch-supervisor", daemon=True
        )
        self._supervisor.start()

    def stop(self):
        self._stopping.set()
        if self._supervisor is not None:
            self._supervisor.join(timeout=self.retry_interval + 1)
            self._supervisor = None
        with self._lock:
            self._stop_observer()

    def check(self) -> bool:
        """Run one supervision step. Returns True when the root is being watched."""

        with self._lock:
            try:
                root_id = self._stat_root()
            except WatcherIOError as e:
                if not self._suspended:
                    logger.warning("%s; retrying every %ss", e, self.retry_interval)
                    self._suspended = True
                self._stop_observer()
                return False

            if self._observer is not None and self._healthy(root_id):
                return True

            self._stop_observer()
            try:
                self._start_observer(root_id)
            except WatcherIOError as e:
                if not self._suspended:
                    logger.warning("%s; retrying every %ss", e, self.retry_interval)
                    self._suspended = True
                return False

            if self._suspended:
                logger.info("Watching %s again", self.root)
                self._suspended = False
            return True

    def _supervise(self):
        while not self._stopping.wait(self.retry_interval):
            self.check()

    def _stat_root(self):
        try:
            st = os.stat(self.root)
        except OSError as e:
            raise WatcherIOError(f"Cannot read served root {self.root}: {e.strerror}") from e
        if not os.path.isdir(self.root) or not os.access(self.root, os.R_OK | os.X_OK):
            raise WatcherIOError(f"Served root {self.root} is not a readable directory")
        return (st.st_dev, st.st_ino)

    def _healthy(self, root_id) -> bool:
        if root_id != self._root_id or not self._observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in self._observer.emitters)

    def _start_observer(self, root_id):
        observer = self._observer_factory()
        try:
            observer.schedule(_ChangeHandler(self.root, self.callback), str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            raise WatcherIOError(f"Cannot watch {self.root}: {e}") from e
        self._observer = observer
        self._root_id = root_id
        logger.debug("Observer started on %s", self.root)

    def _stop_observer(self):
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=self.retry_interval)

"""Live-reload fan-out.

Every open browser tab holds one WebSocket registered here as a ViewerSession
together with the view identifier of the page it loaded. Change events are
broadcast to all sessions; each session only receives the events that
``should_reload`` says affect its view.
"""

import json
import logging
import queue
import threading

from simple_websocket import ConnectionClosed

from livedocs.paths import is_markdown, normalize_view_id
from livedocs.watcher import ChangeEvent

logger = logging.getLogger(__name__)


def should_reload(view_id: str, changed_path: str) -> bool:
    """Decide whether a viewer showing ``view_id`` must reload after a change
    to ``changed_path``.

    A document view reloads only for its own file. A directory view (the root
    included) also reloads for anything nested under it, at any depth; at the
    root only top-level paths count.
    """

    view_id = normalize_view_id(view_id)
    changed_path = normalize_view_id(changed_path)

    if changed_path == view_id:
        return True
    if is_markdown(view_id):
        return False
    if not view_id:
        return "/" not in changed_path
    return changed_path.startswith(view_id + "/")


def update_message(event: ChangeEvent) -> str:
    return json.dumps({"type": "update", "path": event.path, "event": event.kind})


class ViewerSession:

    def __init__(self, ws, view_id: str, outbox_size: int = 32):
        self.ws = ws
        self.view_id = normalize_view_id(view_id)
        self.outbox = queue.Queue(maxsize=outbox_size)

    def __repr__(self):
        return f"<ViewerSession view={self.view_id!r}>"

    @property
    def ready(self) -> bool:
        return bool(getattr(self.ws, "connected", False))

    def offer(self, message: str) -> bool:
        """Queue a message for this viewer without blocking."""
        try:
            self.outbox.put_nowait(message)
        except queue.Full:
            return False
        return True

    def pump(self, poll_interval: float = 1.0):
        """Drain the outbox into the socket until the connection closes.

        Runs on the connection's own handler thread.
        """
        while self.ready:
            try:
                message = self.outbox.get(timeout=poll_interval)
            except queue.Empty:
                continue
            try:
                self.ws.send(message)
            except ConnectionClosed:
                break


class ViewerRegistry:
    """Thread-safe set of open viewer sessions."""

    def __init__(self):
        self._sessions: set[ViewerSession] = set()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def add(self, session: ViewerSession):
        with self._lock:
            self._sessions.add(session)
        logger.info("Client connected (view=%r)", session.view_id)

    def remove(self, session: ViewerSession):
        with self._lock:
            self._sessions.discard(session)
        logger.info("Client disconnected (view=%r)", session.view_id)

    def snapshot(self) -> list[ViewerSession]:
        with self._lock:
            return list(self._sessions)

    def broadcast(self, event: ChangeEvent) -> int:
        """Offer ``event`` to every ready session whose view it affects.

        Returns the number of sessions that accepted it.
        """
        message = update_message(event)
        delivered = 0
        for session in self.snapshot():
            if not session.ready:
                continue
            if not should_reload(session.view_id, event.path):
                continue
            if session.offer(message):
                delivered += 1
            else:
                logger.debug("Dropped %s for %r: outbox full", event.path, session)
        return delivered

from livedocs.exceptions import ForbiddenPath, LivedocsError, NotFound, StartupConfigurationError, WatcherIOError
from livedocs.livereload import ViewerRegistry, ViewerSession, should_reload
from livedocs.paths import normalize_view_id, resolve_request
from livedocs.server import create_app
from livedocs.watcher import ChangeEvent, ChangeWatcher

__version__ = "0.1.0"

__all__ = [
    "ChangeEvent",
    "ChangeWatcher",
    "ForbiddenPath",
    "LivedocsError",
    "NotFound",
    "StartupConfigurationError",
    "ViewerRegistry",
    "ViewerSession",
    "WatcherIOError",
    "create_app",
    "normalize_view_id",
    "resolve_request",
    "should_reload",
]

class LivedocsError(Exception):
    pass


class ForbiddenPath(LivedocsError):
    """Traversal attempt or a file kind that is never served."""


class NotFound(LivedocsError):
    pass


class StartupConfigurationError(LivedocsError):
    """The server cannot start with the given settings."""


class WatcherIOError(LivedocsError):
    """The served root could not be watched."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from livedocs.exceptions import StartupConfigurationError

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
BUNDLED_DOCS = PACKAGE_DIR / "docs"
STATIC_DIR = PACKAGE_DIR / "static"

_DEFAULTS = {
    "port": 3000,
    "host": "0.0.0.0",
    "dir": None,
    "watch_retry_interval": 5,
    "ping_interval": 25,
    "outbox_size": 32,
    "log_level": "INFO",
}


@dataclass(frozen=True)
class Settings:
    root: Path
    host: str = _DEFAULTS["host"]
    port: int = _DEFAULTS["port"]
    watch_retry_interval: float = _DEFAULTS["watch_retry_interval"]
    ping_interval: float = _DEFAULTS["ping_interval"]
    outbox_size: int = _DEFAULTS["outbox_size"]
    log_level: str = _DEFAULTS["log_level"]


def load_config(path: Path | None) -> dict:
    cfg = dict(_DEFAULTS)
    if path is None:
        return cfg
    path = Path(path)
    if not path.is_file():
        raise StartupConfigurationError(f"Config file {path} does not exist.")
    try:
        with open(path, encoding="utf-8") as f:
            user = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("could not load %s: %s", path.name, e)
        return cfg
    if not isinstance(user, dict):
        logger.warning("ignoring %s: expected a JSON object", path.name)
        return cfg
    unknown = set(user) - set(_DEFAULTS)
    if unknown:
        logger.warning("ignoring unknown keys in %s: %s", path.name, ", ".join(sorted(unknown)))
    cfg.update({k: v for k, v in user.items() if k in _DEFAULTS})
    return cfg


def resolve_root(raw: str | None) -> Path:
    root = Path(raw).expanduser().resolve() if raw else BUNDLED_DOCS
    if not root.is_dir():
        raise StartupConfigurationError(f"Error: Directory {root} does not exist.")
    return root


def build_settings(cfg: dict, overrides: dict | None = None) -> Settings:
    """Merge CLI overrides (None means "not given") over ``cfg`` and validate."""

    merged = dict(cfg)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    try:
        port = int(merged["port"])
        retry = max(0.5, float(merged["watch_retry_interval"]))
        ping = float(merged["ping_interval"])
        outbox = max(1, int(merged["outbox_size"]))
    except (TypeError, ValueError) as e:
        raise StartupConfigurationError(f"Invalid configuration value: {e}") from e
    if not 0 < port < 65536:
        raise StartupConfigurationError(f"Invalid port {port}")
    return Settings(
        root=resolve_root(merged["dir"]),
        host=str(merged["host"]),
        port=port,
        watch_retry_interval=retry,
        ping_interval=ping,
        outbox_size=outbox,
        log_level=str(merged["log_level"]).upper(),
    )

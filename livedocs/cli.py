import argparse
import logging
import sys

from livedocs.config import build_settings, load_config
from livedocs.exceptions import StartupConfigurationError
from livedocs.livereload import ViewerRegistry
from livedocs.server import create_app
from livedocs.watcher import ChangeWatcher

logger = logging.getLogger("livedocs")


def build_parser() -> argparse.ArgumentParser:
    # -h is the host flag, so help lives on --help only
    p = argparse.ArgumentParser(
        prog="livedocs",
        description="Serve a directory of markdown files with live reload.",
        add_help=False,
    )
    p.add_argument("--help", action="help", help="show this help message and exit")
    p.add_argument("-p", "--port", type=int, default=None, help="port to listen on (default 3000)")
    p.add_argument("-h", "--host", default=None, help="interface to bind (default 0.0.0.0)")
    p.add_argument("-d", "--dir", dest="dir", default=None, help="directory to serve")
    p.add_argument("directory", nargs="?", default=None, help="directory to serve (same as --dir)")
    p.add_argument("-c", "--config", default=None, help="JSON config file")
    p.add_argument("--log-level", default=None, help="logging level (default INFO)")
    return p


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
        settings = build_settings(cfg, {
            "port": args.port,
            "host": args.host,
            "dir": args.dir or args.directory,
            "log_level": args.log_level,
        })
    except StartupConfigurationError as e:
        print(e, file=sys.stderr)
        return 1

    setup_logging(settings.log_level)

    viewers = ViewerRegistry()
    app = create_app(settings, viewers)
    watcher = ChangeWatcher(settings.root, viewers.broadcast, retry_interval=settings.watch_retry_interval)

    print(f"Markdown server running at http://{settings.host}:{settings.port}")
    print(f"Serving files from {settings.root}")
    with watcher:
        try:
            app.run(host=settings.host, port=settings.port, threaded=True, use_reloader=False)
        except KeyboardInterrupt:
            pass
    return 0

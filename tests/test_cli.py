"""Tests for argument parsing and startup configuration."""

import json
from pathlib import Path

import pytest

from livedocs import cli
from livedocs.config import BUNDLED_DOCS, build_settings, load_config
from livedocs.exceptions import StartupConfigurationError


class TestParser:

    def test_flags(self) -> None:
        args = cli.build_parser().parse_args(["-p", "8080", "-h", "127.0.0.1", "-d", "notes"])
        assert args.port == 8080
        assert args.host == "127.0.0.1"
        assert args.dir == "notes"

    def test_positional_directory(self) -> None:
        args = cli.build_parser().parse_args(["notes"])
        assert args.directory == "notes"
        assert args.dir is None

    def test_long_flags(self) -> None:
        args = cli.build_parser().parse_args(["--port", "1", "--host", "::1", "--dir", "x"])
        assert (args.port, args.host, args.dir) == (1, "::1", "x")


class TestSettings:

    def test_defaults_use_bundled_docs(self) -> None:
        settings = build_settings(load_config(None))
        assert settings.root == BUNDLED_DOCS
        assert settings.port == 3000
        assert settings.host == "0.0.0.0"

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(StartupConfigurationError):
            build_settings(load_config(None), {"dir": str(tmp_path / "missing")})

    def test_file_is_not_a_directory(self, tmp_path: Path) -> None:
        f = tmp_path / "a.md"
        f.write_text("x", encoding="utf-8")
        with pytest.raises(StartupConfigurationError):
            build_settings(load_config(None), {"dir": str(f)})

    def test_config_file_and_overrides(self, tmp_path: Path, docs_root: Path) -> None:
        cfg_file = tmp_path / "livedocs.json"
        cfg_file.write_text(json.dumps({"port": 4000, "host": "127.0.0.1", "dir": str(docs_root)}))
        settings = build_settings(load_config(cfg_file), {"port": 5000, "host": None})
        assert settings.port == 5000
        assert settings.host == "127.0.0.1"
        assert settings.root == docs_root.resolve()

    def test_missing_config_file(self, tmp_path: Path) -> None:
        with pytest.raises(StartupConfigurationError):
            load_config(tmp_path / "nope.json")

    def test_unreadable_config_falls_back_to_defaults(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "bad.json"
        cfg_file.write_text("{not json")
        assert load_config(cfg_file)["port"] == 3000

    def test_invalid_port(self, docs_root: Path) -> None:
        with pytest.raises(StartupConfigurationError):
            build_settings(load_config(None), {"dir": str(docs_root), "port": 70000})


class TestMain:

    def test_missing_directory_exits_before_serving(self, tmp_path: Path, monkeypatch, capsys) -> None:
        def fail(*args, **kwargs):
            raise AssertionError("server must not be created")

        monkeypatch.setattr(cli, "create_app", fail)
        assert cli.main(["-d", str(tmp_path / "missing")]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_serves_with_watcher(self, docs_root: Path, monkeypatch) -> None:
        calls = {}

        class FakeApp:
            def run(self, **kwargs):
                calls["run"] = kwargs

        class FakeWatcher:
            def __init__(self, root, callback, retry_interval):
                calls["watch"] = root

            def __enter__(self):
                calls["started"] = True
                return self

            def __exit__(self, *exc):
                calls["stopped"] = True

        monkeypatch.setattr(cli, "create_app", lambda settings, viewers: FakeApp())
        monkeypatch.setattr(cli, "ChangeWatcher", FakeWatcher)
        monkeypatch.setattr(cli, "setup_logging", lambda level: None)

        assert cli.main(["-p", "8123", "-h", "127.0.0.1", str(docs_root)]) == 0
        assert calls["run"]["port"] == 8123
        assert calls["run"]["host"] == "127.0.0.1"
        assert calls["watch"] == docs_root.resolve()
        assert calls["started"] and calls["stopped"]

import base64
from pathlib import Path

import pytest

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture
def docs_root(tmp_path: Path) -> Path:
    """A small served root:

    index.md, notes.md, a.md, b.txt, pixel.png, guide/intro.md,
    guide/sub/deep.md, c/
    """
    root = tmp_path / "docs"
    root.mkdir()
    (root / "index.md").write_text("# Home\n\nWelcome to the docs.\n", encoding="utf-8")
    (root / "notes.md").write_text("# Notes\n\nSome *notes*.\n", encoding="utf-8")
    (root / "a.md").write_text("# A\n", encoding="utf-8")
    (root / "b.txt").write_text("plain text\n", encoding="utf-8")
    (root / "pixel.png").write_bytes(PNG_BYTES)
    (root / "guide" / "sub").mkdir(parents=True)
    (root / "guide" / "intro.md").write_text("# Intro\n", encoding="utf-8")
    (root / "guide" / "sub" / "deep.md").write_text("# Deep\n", encoding="utf-8")
    (root / "c").mkdir()
    return root


class FakeWebSocket:
    """Stands in for a simple_websocket.Server."""

    def __init__(self, connected: bool = True, close_after: int | None = None):
        self.connected = connected
        self.close_after = close_after
        self.sent: list[str] = []

    def send(self, data):
        self.sent.append(data)
        if self.close_after is not None and len(self.sent) >= self.close_after:
            self.connected = False


@pytest.fixture
def fake_ws():
    return FakeWebSocket

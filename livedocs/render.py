import mimetypes
import os
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

import markdown
from markupsafe import escape

from livedocs.exceptions import ForbiddenPath
from livedocs.paths import is_markdown, parent_href, to_view_id

INDEX_NAME = "index.md"
PREVIEW_LINES = 10

FOLDER_ICON = "\U0001F4C1"
FILE_ICON = "\U0001F4C4"

_MD_EXTENSIONS = ["fenced_code", "tables", "toc", "sane_lists"]


@dataclass(frozen=True)
class Page:
    html: str
    title: str
    view_id: str


def auto_link_urls(text: str) -> str:
    return re.sub(
        r'(?<!\]\()(?<!\()(?<!<)(https?://[^\s<>\)\]]+)',
        lambda m: f'[{m.group(1)}]({m.group(1)})',
        text,
    )


def render_markdown(text: str) -> str:
    text = auto_link_urls(text)
    html = markdown.markdown(text, extensions=_MD_EXTENSIONS)
    html = re.sub(
        r'<a href="(https?://[^"]+)"',
        r'<a href="\1" target="_blank" rel="noopener noreferrer"',
        html,
    )
    return html


def url_for_view(view_id: str, is_dir: bool = False) -> str:
    if not view_id:
        return "/"
    return "/" + quote(view_id) + ("/" if is_dir else "")


def classify(path: Path) -> str:
    """Return "markdown" or "image" for servable files, else ForbiddenPath."""

    if is_markdown(path.name):
        return "markdown"
    mime, _ = mimetypes.guess_type(str(path))
    if mime and mime.startswith("image/"):
        return "image"
    raise ForbiddenPath(str(path))


def list_entries(directory: Path) -> list[tuple[str, bool]]:

    entries = []
    with os.scandir(directory) as it:
        for entry in it:
            is_dir = entry.is_dir()
            if not is_dir and not is_markdown(entry.name):
                continue
            entries.append((entry.name, is_dir))
    entries.sort(key=lambda e: (not e[1], e[0].lower()))
    return entries


def render_index_preview(root: Path, directory: Path) -> str:
    index = directory / INDEX_NAME
    if not index.is_file():
        return ""
    with open(index, encoding="utf-8", errors="replace") as f:
        head = "".join(line for _, line in zip(range(PREVIEW_LINES), f))
    href = url_for_view(to_view_id(root, index))
    return f'<a href="{href}" class="index-preview">{render_markdown(head)}</a>'


def render_directory(root: Path, directory: Path) -> Page:
    view_id = to_view_id(root, directory)
    title = f"Index of /{view_id}/" if view_id else "Index of /"

    parts = [render_index_preview(root, directory)]
    parts.append(f"<h1>{escape(title)}</h1>")
    parts.append('<ul class="file-list">')

    up = parent_href(view_id)
    if up is not None:
        parts.append(f'<li><span class="icon">{FOLDER_ICON}</span><a href="{up}">..</a></li>')

    for name, is_dir in list_entries(directory):
        child = f"{view_id}/{name}" if view_id else name
        icon = FOLDER_ICON if is_dir else FILE_ICON
        href = url_for_view(child, is_dir=is_dir)
        label = escape(name + ("/" if is_dir else ""))
        parts.append(f'<li><span class="icon">{icon}</span><a href="{href}">{label}</a></li>')

    parts.append("</ul>")
    return Page(html="".join(parts), title=title, view_id=view_id)


def render_document(root: Path, path: Path) -> Page:
    if not is_markdown(path.name):
        raise ForbiddenPath(str(path))
    text = path.read_text(encoding="utf-8", errors="replace")
    return Page(html=render_markdown(text), title=path.name, view_id=to_view_id(root, path))

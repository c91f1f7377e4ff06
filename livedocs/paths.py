import os
import re
from dataclasses import dataclass
from pathlib import Path

from livedocs.exceptions import ForbiddenPath, NotFound

_SEP_RE = re.compile(r"[\\/]+")


@dataclass(frozen=True)
class Target:
    path: Path
    rel: str
    is_dir: bool


def normalize_view_id(raw: str) -> str:
    """Canonical form of a relative path: forward slashes, no leading or
    trailing slash, no empty or "." segments. The root is ""."""

    parts = [p for p in _SEP_RE.split(raw or "") if p and p != "."]
    return "/".join(parts)


def to_view_id(root: Path, path: Path) -> str:
    rel = os.path.relpath(path, root)
    if rel == ".":
        return ""
    return normalize_view_id(rel)


def parent_href(view_id: str) -> str | None:
    view_id = normalize_view_id(view_id)
    if not view_id:
        return None
    parts = view_id.split("/")
    if len(parts) == 1:
        return "/"
    return "/" + "/".join(parts[:-1]) + "/"


def is_markdown(name: str) -> bool:
    return name.endswith(".md")


def _inside(root: Path, candidate: Path) -> bool:
    root_s = os.path.normpath(root)
    cand_s = os.path.normpath(candidate)
    try:
        return os.path.commonpath([root_s, cand_s]) == root_s
    except ValueError:
        return False


def resolve_request(root: Path, request_path: str) -> Target:
    """Map an already percent-decoded request path onto the served root.

    Falls back to ``<path>.md`` when the literal path does not exist. Raises
    ForbiddenPath for ``..`` segments and NotFound when nothing matches.
    """

    segments = _SEP_RE.split(request_path or "")
    if ".." in segments:
        raise ForbiddenPath(request_path)

    rel = normalize_view_id(request_path)
    candidate = root / rel if rel else root
    if not _inside(root, candidate):
        raise ForbiddenPath(request_path)

    if not candidate.exists() and not candidate.name.endswith(".md") and rel:
        md_candidate = candidate.with_name(candidate.name + ".md")
        if md_candidate.exists():
            candidate = md_candidate

    if not candidate.exists():
        raise NotFound(request_path)

    return Target(path=candidate, rel=to_view_id(root, candidate), is_dir=candidate.is_dir())

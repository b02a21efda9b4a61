"""Pure validation and planning helpers for the project hierarchy.

Nothing here touches storage: callers pass in the collections they already
hold, which keeps every rule testable without a store.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from ..errors import ValidationError
from .types import CascadePlan, Document, Folder, Persona

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100
TITLE_MAX_LENGTH = 200

# Characters rejected in project/folder/persona names (path + markup hazards)
_NAME_STRIP_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
_TITLE_STRIP_RE = re.compile(r"[<>\x00-\x1f\x7f]")
_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")


def _clean(raw: str, strip_re: re.Pattern[str], max_length: int, field: str) -> str:
    if not isinstance(raw, str):
        raise ValidationError(f"{field} must be text.")
    # Whitespace first so tabs/newlines become spaces instead of vanishing
    cleaned = _WS_RE.sub(" ", raw)
    cleaned = strip_re.sub("", cleaned)
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    if not cleaned:
        raise ValidationError(f"{field} cannot be empty.")
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters.")
    return cleaned


def sanitize_name(
    raw: str, *, max_length: int = NAME_MAX_LENGTH, field: str = "Name"
) -> str:
    """Filter, collapse whitespace and trim a display name.

    Raises ValidationError when nothing is left or the result is longer than
    ``max_length``.  Idempotent: a returned value sanitizes to itself, and a
    rejected value stays rejected.
    """
    return _clean(raw, _NAME_STRIP_RE, max_length, field)


def sanitize_title(raw: str) -> str:
    """Document base titles: like sanitize_name but only markup brackets go."""
    return _clean(raw, _TITLE_STRIP_RE, TITLE_MAX_LENGTH, "Document title")


def content_stats(content: str) -> tuple[int, int]:
    """Return (word_count, char_count) with markup tags ignored."""
    if not content:
        return 0, 0
    words = len(_TAG_RE.sub(" ", content).split())
    chars = len(_TAG_RE.sub("", content))
    return words, chars


# ---------------------------------------------------------------------------
# Version chains
# ---------------------------------------------------------------------------


def chain(documents: Iterable[Document], project_id: str, base_title: str) -> list[Document]:
    """Members of one version chain, ascending by version."""
    members = [
        d for d in documents if d.project_id == project_id and d.base_title == base_title
    ]
    return sorted(members, key=lambda d: d.version)


def next_version(documents: Iterable[Document], project_id: str, base_title: str) -> int:
    """1 if the chain does not exist yet, else its highest version + 1."""
    versions = [d.version for d in chain(documents, project_id, base_title)]
    if not versions:
        return 1
    return max(versions) + 1


# ---------------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------------


def would_create_cycle(
    folders: Iterable[Folder], folder_id: str, new_parent_id: str | None
) -> bool:
    """True if re-parenting ``folder_id`` under ``new_parent_id`` makes a loop.

    Walks up from the new parent; reaching ``folder_id`` (or an existing
    loop) means the move must be refused.
    """
    if new_parent_id is None:
        return False
    if new_parent_id == folder_id:
        return True
    by_id = {f.id: f for f in folders}
    seen: set[str] = set()
    current: str | None = new_parent_id
    while current is not None:
        if current == folder_id:
            return True
        if current in seen:
            logger.warning("Existing folder cycle detected at %s", current)
            return True
        seen.add(current)
        parent = by_id.get(current)
        current = parent.parent_folder_id if parent else None
    return False


def folder_path(folders: Iterable[Folder], folder_id: str) -> list[Folder]:
    """Folders from the project root down to ``folder_id`` (inclusive).

    Stops at a repeated id instead of looping on corrupted data.
    """
    by_id = {f.id: f for f in folders}
    path: list[Folder] = []
    seen: set[str] = set()
    current: str | None = folder_id
    while current is not None and current in by_id:
        if current in seen:
            logger.warning("Folder cycle while building path for %s", folder_id)
            break
        seen.add(current)
        folder = by_id[current]
        path.append(folder)
        current = folder.parent_folder_id
    path.reverse()
    return path


# ---------------------------------------------------------------------------
# Cascade planning
# ---------------------------------------------------------------------------


def plan_cascade_delete(
    project_id: str,
    folders: Iterable[Folder],
    documents: Iterable[Document],
    personas: Iterable[Persona],
) -> CascadePlan:
    """List every owned entity a project delete removes.  No side effects."""
    return CascadePlan(
        project_id=project_id,
        folder_ids=[f.id for f in folders if f.project_id == project_id],
        document_ids=[d.id for d in documents if d.project_id == project_id],
        persona_ids=[p.id for p in personas if p.project_id == project_id],
    )

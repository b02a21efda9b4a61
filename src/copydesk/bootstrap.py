"""Session startup and the caller-facing actions that span several modules.

``initialize()`` is the only place a default project may be created, and it
does so strictly after the app state has hydrated: before that, "no active
project" only means the persisted pointer has not been read yet.
"""

from __future__ import annotations

import logging
from typing import Any

from .context import DeskContext
from .errors import CopyDeskError, NotFoundError
from .hierarchy.types import Document, Project
from .state.tools import get_tool

logger = logging.getLogger(__name__)

# Pre-project brand voice, written by older versions as one global object
LEGACY_BRAND_VOICE_KEY = "legacy-brand-voice"
MIGRATIONS_KEY = "migrations"
_BRAND_VOICE_MIGRATION = "brand_voice_to_project"

_LEGACY_FIELD_NAMES = {
    "brandName": "brand_name",
    "brandTone": "tone",
    "approvedPhrases": "approved_phrases",
    "forbiddenWords": "forbidden_words",
    "brandValues": "values",
    "missionStatement": "mission",
}
_BRAND_VOICE_FIELDS = {
    "brand_name",
    "tone",
    "approved_phrases",
    "forbidden_words",
    "values",
    "mission",
}


async def initialize(ctx: DeskContext) -> Project:
    """Hydrate, then make sure there is a valid active project.

    Returns the active project.
    """
    await ctx.state.hydrate()
    await ctx.state.wait_until_hydrated()

    projects = await ctx.projects.list()
    if not projects:
        created = await ctx.projects.ensure_default_project(ctx.config.default_project_name)
        projects = [created] if created else await ctx.projects.list()

    active = await _repair_pointers(ctx, projects)
    await migrate_legacy_brand_voice(ctx)
    logger.info("Session ready: project %r (%d total)", active.name, len(projects))
    return active


async def _repair_pointers(ctx: DeskContext, projects: list[Project]) -> Project:
    state = ctx.state.state
    if state.active_tool_id and get_tool(state.active_tool_id) is None:
        logger.warning("Active tool %s no longer exists, clearing", state.active_tool_id)
        ctx.state.set_active_tool(None)

    by_id = {p.id: p for p in projects}
    active = by_id.get(state.active_project_id or "")
    if active is None:
        active = projects[0]
        if state.active_project_id:
            logger.warning(
                "Active project %s no longer exists, falling back to %s",
                state.active_project_id,
                active.id,
            )
        ctx.state.set_active_project_id(active.id)
        return active

    document_id = state.active_document_id
    if document_id:
        doc = await ctx.documents.get(active.id, document_id)
        if doc is None:
            logger.warning("Active document %s is gone or belongs elsewhere, clearing", document_id)
            ctx.state.set_active_document_id(None)
    return active


async def migrate_legacy_brand_voice(ctx: DeskContext) -> bool:
    """Move a pre-project brand voice into the active project, once.

    Returns True if something was migrated.  A failed migration is still
    recorded as done so it cannot retry on every start.
    """
    flags = ctx.local.read_dict(MIGRATIONS_KEY)
    if flags.get(_BRAND_VOICE_MIGRATION):
        return False

    migrated = False
    try:
        legacy = ctx.local.load(LEGACY_BRAND_VOICE_KEY)
        if isinstance(legacy, dict) and legacy:
            target = ctx.state.state.active_project_id
            if target is None:
                projects = ctx.projects.local_list()
                target = projects[0].id if projects else None
            if target is None:
                logger.warning("No project to receive the legacy brand voice")
            elif ctx.brand_voice.cached(target) is not None:
                logger.info("Project %s already has a brand voice, legacy one dropped", target)
            else:
                await ctx.brand_voice.save(target, _legacy_fields(legacy))
                migrated = True
                logger.info("Migrated legacy brand voice into project %s", target)
        elif legacy is not None:
            logger.warning("Ignoring unusable legacy brand voice: %r", type(legacy).__name__)
        ctx.local.delete(LEGACY_BRAND_VOICE_KEY)
    except (CopyDeskError, OSError) as e:
        logger.error("Legacy brand voice migration failed: %s", e)

    flags[_BRAND_VOICE_MIGRATION] = True
    ctx.local.write(MIGRATIONS_KEY, flags)
    return migrated


def _legacy_fields(legacy: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in legacy.items():
        name = _LEGACY_FIELD_NAMES.get(key, key)
        if name in _BRAND_VOICE_FIELDS:
            fields[name] = value
    return fields


# ---------------------------------------------------------------------------
# Caller-facing actions
# ---------------------------------------------------------------------------


async def switch_project(ctx: DeskContext, project_id: str) -> Project:
    """Make ``project_id`` active; the open document and tool output are cleared."""
    await ctx.state.wait_until_hydrated()
    project = await ctx.projects.get(None, project_id)
    if project is None:
        raise NotFoundError(f"Project not found: {project_id}")
    await ctx.autosaver.flush()
    ctx.state.set_active_project_id(project.id)
    return project


async def open_document(ctx: DeskContext, document_id: str) -> Document:
    """Open a document of the active project.

    Raises NotFoundError for an unknown id and InvariantViolation for a
    document of another project.
    """
    await ctx.state.wait_until_hydrated()
    doc = await ctx.documents.get(None, document_id)
    if doc is None:
        raise NotFoundError(f"Document not found: {document_id}")
    if ctx.state.state.active_document_id != doc.id:
        await ctx.autosaver.flush()
    ctx.state.set_active_document_id(doc.id)
    return doc


async def delete_project(ctx: DeskContext, project_id: str) -> None:
    """Delete a project with everything it owns.

    If it was the active project, the first remaining project becomes
    active.  Deleting the last project raises InvariantViolation.
    """
    await ctx.state.wait_until_hydrated()
    await ctx.autosaver.flush()
    await ctx.projects.remove(None, project_id)
    if ctx.state.state.active_project_id == project_id:
        remaining = ctx.projects.local_list()
        ctx.state.set_active_project_id(remaining[0].id if remaining else None)

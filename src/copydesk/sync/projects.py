"""ProjectSync - projects, the last-project invariant and cascading delete."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import InvariantViolation, NotFoundError, ValidationError
from ..hierarchy.types import CascadePlan, Document, Folder, Persona, Project
from ..hierarchy.validation import plan_cascade_delete, sanitize_name
from ..storage.local import (
    DOCUMENTS_KEY,
    FOLDERS_KEY,
    PERSONAS_KEY,
    PROJECTS_KEY,
    LocalStore,
)
from ..utils import new_id, now_iso
from .base import EntitySync

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "My First Project"


class ProjectSync(EntitySync):
    entity_name = "project"
    local_key = PROJECTS_KEY
    resource = "projects"

    def _from_dict(self, data: dict[str, Any]) -> Project:
        return Project.from_dict(data)

    def _scope_of(self, entity: Project) -> str | None:
        return None

    def _remote_scope_params(self, scope_id: str | None) -> dict[str, str]:
        return {}

    def _from_remote(self, data: dict[str, Any], local: Project | None) -> Project:
        project = Project.from_dict(data)
        # Brand voices live in their own remote resource; the projects
        # endpoint omits or nulls them, so the local copy stands
        if project.brand_voice is None and local is not None:
            project.brand_voice = local.brand_voice
        return project

    def _sort(self, items: list[Project]) -> list[Project]:
        return sorted(items, key=lambda p: p.created_at)

    def _build(self, scope_id: str | None, fields: dict[str, Any]) -> Project:
        name = sanitize_name(fields.get("name", ""), field="Project name")
        now = now_iso()
        return Project(id=new_id(), name=name, created_at=now, updated_at=now)

    def _clean_partial(self, partial: dict[str, Any]) -> dict[str, Any]:
        unknown = set(partial) - {"name"}
        if unknown:
            raise ValidationError(
                f"Project fields cannot be updated: {', '.join(sorted(unknown))}"
            )
        cleaned = {}
        if "name" in partial:
            cleaned["name"] = sanitize_name(partial["name"], field="Project name")
        return cleaned

    def _apply(self, existing: Project, partial: dict[str, Any]) -> Project:
        merged = super()._apply(existing, partial)
        merged.updated_at = now_iso()
        return merged

    # --- Project-specific operations ---

    async def ensure_default_project(self, name: str = DEFAULT_PROJECT_NAME) -> Project | None:
        """Create a project only if none exists.  Returns it, or None if not needed.

        Callers must only invoke this once app state has hydrated.
        """
        if await self.list():
            return None
        project = await self.create(None, {"name": name})
        logger.info("Created default project %s", project.id)
        return project

    def plan_delete(self, project_id: str) -> CascadePlan:
        """Compute the cascade set from the local mirror.  No side effects."""

        def _parse(key: str, model: Any) -> list[Any]:
            out = []
            for raw in self._local.read_list(key):
                if not isinstance(raw, dict):
                    continue
                try:
                    out.append(model.from_dict(raw))
                except (KeyError, TypeError, ValueError):
                    continue
            return out

        return plan_cascade_delete(
            project_id,
            _parse(FOLDERS_KEY, Folder),
            _parse(DOCUMENTS_KEY, Document),
            _parse(PERSONAS_KEY, Persona),
        )

    async def remove(self, scope_id: str | None, entity_id: str) -> bool:
        """Delete a project and everything it owns.

        Raises InvariantViolation (nothing changed) if it is the only
        project, NotFoundError if it does not exist.  The cascade set is
        planned before anything is deleted; each child is then removed
        locally and logged, since the remote store offers no transaction.
        """
        projects = await self.list()
        if not any(p.id == entity_id for p in projects):
            raise NotFoundError(f"Project not found: {entity_id}")
        if len(projects) <= 1:
            raise InvariantViolation(
                "Cannot delete the last project. At least one project must exist."
            )

        plan = self.plan_delete(entity_id)
        logger.info(
            "Deleting project %s: %d folder(s), %d document(s), %d persona(s)",
            entity_id,
            len(plan.folder_ids),
            len(plan.document_ids),
            len(plan.persona_ids),
        )

        # Remote cascades server-side
        await self._remote_delete(entity_id)

        for key, ids in (
            (DOCUMENTS_KEY, plan.document_ids),
            (FOLDERS_KEY, plan.folder_ids),
            (PERSONAS_KEY, plan.persona_ids),
        ):
            if ids:
                removed = _drop_ids(self._local, key, set(ids))
                logger.info("Purged %d/%d local %s", removed, len(ids), key)
        self._local_drop({entity_id})
        logger.info("Removed project %s", entity_id)
        return True


def _drop_ids(local: LocalStore, key: str, ids: set[str]) -> int:
    records = local.read_list(key)
    kept = []
    for r in records:
        if isinstance(r, dict) and r.get("id") in ids:
            logger.debug("Purging %s record %s", key, r.get("id"))
            continue
        kept.append(r)
    if len(kept) != len(records):
        local.write(key, kept)
    return len(records) - len(kept)

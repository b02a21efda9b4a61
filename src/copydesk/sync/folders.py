"""FolderSync - nested folders inside a project.

Deleting a folder that still holds subfolders or documents is refused
rather than cascading or re-parenting; the user empties it first.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import InvariantViolation, NotFoundError, ValidationError
from ..hierarchy.types import Folder
from ..hierarchy.validation import folder_path, sanitize_name, would_create_cycle
from ..storage.local import DOCUMENTS_KEY, FOLDERS_KEY
from ..utils import new_id, now_iso
from .base import EntitySync

logger = logging.getLogger(__name__)


class FolderSync(EntitySync):
    entity_name = "folder"
    local_key = FOLDERS_KEY
    resource = "folders"

    def _from_dict(self, data: dict[str, Any]) -> Folder:
        return Folder.from_dict(data)

    def _sort(self, items: list[Folder]) -> list[Folder]:
        return sorted(items, key=lambda f: f.name.casefold())

    def _check_parent(self, project_id: str, parent_id: Any) -> str | None:
        if parent_id is None:
            return None
        if not isinstance(parent_id, str) or not parent_id:
            raise ValidationError("parent_folder_id must be a folder id or None.")
        parent = self.cached(parent_id)
        if parent is None:
            raise NotFoundError(f"Parent folder not found: {parent_id}")
        if parent.project_id != project_id:
            raise ValidationError("Parent folder belongs to a different project.")
        return parent_id

    def _build(self, scope_id: str | None, fields: dict[str, Any]) -> Folder:
        if not scope_id:
            raise ValidationError("Folders must belong to a project.")
        name = sanitize_name(fields.get("name", ""), field="Folder name")
        now = now_iso()
        return Folder(
            id=new_id(),
            project_id=scope_id,
            name=name,
            parent_folder_id=self._check_parent(scope_id, fields.get("parent_folder_id")),
            created_at=now,
            updated_at=now,
        )

    def _clean_partial(self, partial: dict[str, Any]) -> dict[str, Any]:
        unknown = set(partial) - {"name", "parent_folder_id"}
        if unknown:
            raise ValidationError(
                f"Folder fields cannot be updated: {', '.join(sorted(unknown))}"
            )
        cleaned: dict[str, Any] = {}
        if "name" in partial:
            cleaned["name"] = sanitize_name(partial["name"], field="Folder name")
        if "parent_folder_id" in partial:
            cleaned["parent_folder_id"] = partial["parent_folder_id"] or None
        return cleaned

    def _apply(self, existing: Folder, partial: dict[str, Any]) -> Folder:
        if "parent_folder_id" in partial:
            new_parent = self._check_parent(existing.project_id, partial["parent_folder_id"])
            if would_create_cycle(self._load_all(), existing.id, new_parent):
                raise ValidationError(
                    f"Cannot move folder {existing.name!r} into itself or one of its subfolders."
                )
        merged = super()._apply(existing, partial)
        merged.updated_at = now_iso()
        return merged

    def _before_remove(self, scope_id: str | None, entity_id: str) -> None:
        folder = self.cached(entity_id)
        name = folder.name if folder else entity_id
        if any(f.parent_folder_id == entity_id for f in self._load_all()):
            raise InvariantViolation(
                f"Cannot delete folder {name!r} because it contains subfolders. "
                "Delete or move them first."
            )
        for r in self._local.read_list(DOCUMENTS_KEY):
            if isinstance(r, dict) and r.get("folder_id") == entity_id:
                raise InvariantViolation(
                    f"Cannot delete folder {name!r} because it contains documents. "
                    "Delete or move them first."
                )

    # --- Folder-specific operations ---

    async def move(
        self, project_id: str, folder_id: str, new_parent_id: str | None
    ) -> Folder:
        """Re-parent a folder (None = project root); cycles are refused."""
        return await self.update(project_id, folder_id, {"parent_folder_id": new_parent_id})

    async def children(self, project_id: str, parent_id: str | None) -> list[Folder]:
        """Direct subfolders of ``parent_id`` (None = root level)."""
        return [f for f in await self.list(project_id) if f.parent_folder_id == parent_id]

    def path(self, project_id: str, folder_id: str) -> list[Folder]:
        """Breadcrumb from the project root down to ``folder_id``."""
        return folder_path(self.local_list(project_id), folder_id)

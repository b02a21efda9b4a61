"""DocumentSync - documents and their version chains.

A chain is every document sharing ``(project_id, base_title)``; versions
are assigned by ``next_version`` so the triple stays unique.  Saving a new
version appends to the chain; renaming forks a new chain and leaves the old
one exactly as it was.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import NotFoundError, ValidationError
from ..hierarchy.types import Document, DocumentMetadata
from ..hierarchy.validation import chain, content_stats, next_version, sanitize_title
from ..storage.local import DOCUMENTS_KEY, FOLDERS_KEY, PROJECTS_KEY
from ..utils import new_id, now_iso
from .base import EntitySync

logger = logging.getLogger(__name__)

_UPDATABLE = {"content", "folder_id", "metadata"}
_METADATA_UPDATABLE = {"template_id", "tags"}


class DocumentSync(EntitySync):
    entity_name = "document"
    local_key = DOCUMENTS_KEY
    resource = "documents"

    def _from_dict(self, data: dict[str, Any]) -> Document:
        return Document.from_dict(data)

    def _sort(self, items: list[Document]) -> list[Document]:
        # Newest edit first
        return sorted(items, key=lambda d: d.modified_at, reverse=True)

    # --- Validation ---

    def _check_project(self, project_id: str | None) -> str:
        if not project_id:
            raise ValidationError("Documents must belong to a project.")
        known = {r.get("id") for r in self._local.read_list(PROJECTS_KEY) if isinstance(r, dict)}
        if project_id not in known:
            raise NotFoundError(f"Project not found: {project_id}")
        return project_id

    def _check_folder(self, project_id: str, folder_id: Any) -> str | None:
        if folder_id is None:
            return None
        if not isinstance(folder_id, str) or not folder_id:
            raise ValidationError("folder_id must be a folder id or None.")
        for r in self._local.read_list(FOLDERS_KEY):
            if isinstance(r, dict) and r.get("id") == folder_id:
                if r.get("project_id") != project_id:
                    raise ValidationError("Folder belongs to a different project.")
                return folder_id
        raise NotFoundError(f"Folder not found: {folder_id}")

    def _build(self, scope_id: str | None, fields: dict[str, Any]) -> Document:
        project_id = self._check_project(scope_id)
        base_title = sanitize_title(fields.get("base_title", ""))
        content = fields.get("content", "")
        if not isinstance(content, str):
            raise ValidationError("Document content must be a string.")
        tags = fields.get("tags") or []
        if not isinstance(tags, list):
            raise ValidationError("Document tags must be a list.")

        words, chars = content_stats(content)
        now = now_iso()
        return Document(
            id=new_id(),
            project_id=project_id,
            base_title=base_title,
            version=next_version(self._load_all(), project_id, base_title),
            content=content,
            folder_id=self._check_folder(project_id, fields.get("folder_id")),
            parent_version_id=fields.get("parent_version_id"),
            created_at=now,
            modified_at=now,
            metadata=DocumentMetadata(
                word_count=words,
                char_count=chars,
                template_id=fields.get("template_id"),
                tags=[str(t) for t in tags],
            ),
        )

    def _clean_partial(self, partial: dict[str, Any]) -> dict[str, Any]:
        unknown = set(partial) - _UPDATABLE
        if unknown:
            raise ValidationError(
                f"Document fields cannot be updated: {', '.join(sorted(unknown))} "
                "(use rename or create_version to change title or version)"
            )
        cleaned: dict[str, Any] = {}
        if "content" in partial:
            if not isinstance(partial["content"], str):
                raise ValidationError("Document content must be a string.")
            cleaned["content"] = partial["content"]
        if "folder_id" in partial:
            folder_id = partial["folder_id"]
            if folder_id is not None and (not isinstance(folder_id, str) or not folder_id):
                raise ValidationError("folder_id must be a folder id or None.")
            cleaned["folder_id"] = folder_id
        if "metadata" in partial:
            meta = partial["metadata"]
            if not isinstance(meta, dict) or set(meta) - _METADATA_UPDATABLE:
                raise ValidationError("Only metadata.template_id and metadata.tags can be set.")
            if "tags" in meta and not isinstance(meta["tags"], list):
                raise ValidationError("Document tags must be a list.")
            cleaned["metadata"] = dict(meta)
        return cleaned

    def _apply(self, existing: Document, partial: dict[str, Any]) -> Document:
        if "folder_id" in partial:
            self._check_folder(existing.project_id, partial["folder_id"])
        data = existing.to_dict()
        meta = dict(data["metadata"])
        meta.update(partial.get("metadata", {}))
        if "content" in partial and partial["content"] != existing.content:
            meta["word_count"], meta["char_count"] = content_stats(partial["content"])
        data.update({k: v for k, v in partial.items() if k != "metadata"})
        data["metadata"] = meta
        data["modified_at"] = now_iso()
        return Document.from_dict(data)

    def _remote_partial(self, merged: Document, cleaned: dict[str, Any]) -> dict[str, Any]:
        # Send the whole metadata object; the server replaces it wholesale
        out = dict(cleaned)
        out["metadata"] = merged.metadata.to_dict()
        out["modified_at"] = merged.modified_at
        return out

    # --- Version chains ---

    async def create_version(
        self, project_id: str, source_id: str, content: str | None = None
    ) -> Document:
        """Save a new version of ``source_id`` (content copied unless given)."""
        source = await self._require(project_id, source_id)
        doc = await self.create(
            project_id,
            {
                "base_title": source.base_title,
                "content": source.content if content is None else content,
                "folder_id": source.folder_id,
                "template_id": source.metadata.template_id,
                "tags": list(source.metadata.tags),
                "parent_version_id": source.id,
            },
        )
        logger.info("Saved %s (from %s)", doc.title, source.id)
        return doc

    async def rename(self, project_id: str, document_id: str, new_base_title: str) -> Document:
        """Fork the document into the chain ``new_base_title``.

        The source and the rest of its chain are not modified.  A brand new
        title starts at version 1; a title that already names another chain
        continues that chain at its next version so versions stay unique.
        """
        base_title = sanitize_title(new_base_title)
        source = await self._require(project_id, document_id)
        if base_title == source.base_title:
            return source
        doc = await self.create(
            project_id,
            {
                "base_title": base_title,
                "content": source.content,
                "folder_id": source.folder_id,
                "template_id": source.metadata.template_id,
                "tags": list(source.metadata.tags),
            },
        )
        logger.info("Renamed %r → %r as %s", source.title, base_title, doc.id)
        return doc

    async def versions(self, project_id: str, base_title: str) -> list[Document]:
        """Chain members, ascending by version."""
        return chain(await self.list(project_id), project_id, base_title)

    async def latest_version(self, project_id: str, base_title: str) -> Document | None:
        members = await self.versions(project_id, base_title)
        return members[-1] if members else None

    async def base_titles(self, project_id: str) -> list[str]:
        """Distinct chain names in the project, most recently edited first."""
        seen: dict[str, None] = {}
        for doc in await self.list(project_id):
            seen.setdefault(doc.base_title, None)
        return list(seen)

    async def _require(self, project_id: str, document_id: str) -> Document:
        doc = self.cached(document_id)
        if doc is None or doc.project_id != project_id:
            doc = await self.get(project_id, document_id)
        if doc is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return doc

"""BrandVoiceSync - the per-project brand voice singleton.

Locally the brand voice is embedded in its project's record under
``brand_voice``; remotely it is the ``brand-voices`` resource addressed by
``project_id`` and written by upsert (POST).  The project id doubles as the
entity id, so the uniform CRUD signatures accept and ignore ``entity_id``.
Same read/write rules as EntitySync.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import NotFoundError, RemoteUnavailable, ValidationError
from ..hierarchy.types import BrandVoice
from ..hierarchy.validation import sanitize_name
from ..storage.local import PROJECTS_KEY, LocalStore
from ..storage.remote import RemoteStore
from ..utils import now_iso

logger = logging.getLogger(__name__)

_LIST_FIELDS = ("approved_phrases", "forbidden_words", "values")
_TEXT_FIELDS = ("tone", "mission")
_FIELDS = {"brand_name", *_LIST_FIELDS, *_TEXT_FIELDS}


def clean_brand_voice_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate a (partial) brand voice; raise ValidationError on bad input."""
    unknown = set(fields) - _FIELDS
    if unknown:
        raise ValidationError(f"Unknown brand voice fields: {', '.join(sorted(unknown))}")
    cleaned: dict[str, Any] = {}
    if "brand_name" in fields:
        cleaned["brand_name"] = sanitize_name(fields["brand_name"], field="Brand name")
    for key in _TEXT_FIELDS:
        if key in fields:
            if not isinstance(fields[key], str):
                raise ValidationError(f"Brand voice {key} must be text.")
            cleaned[key] = fields[key].strip()
    for key in _LIST_FIELDS:
        if key in fields:
            value = fields[key]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValidationError(f"Brand voice {key} must be a list of strings.")
            cleaned[key] = [v.strip() for v in value if v.strip()]
    return cleaned


class BrandVoiceSync:
    entity_name = "brand voice"
    resource = "brand-voices"

    def __init__(self, local: LocalStore, remote: RemoteStore | None = None) -> None:
        self._local = local
        self._remote = remote

    # --- Local helpers ---

    def _project_record(self, records: list[Any], project_id: str) -> dict[str, Any] | None:
        for r in records:
            if isinstance(r, dict) and r.get("id") == project_id:
                return r
        return None

    def cached(self, project_id: str) -> BrandVoice | None:
        record = self._project_record(self._local.read_list(PROJECTS_KEY), project_id)
        raw = record.get("brand_voice") if record else None
        if not isinstance(raw, dict):
            return None
        try:
            return BrandVoice.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed local brand voice for %s: %s", project_id, e)
            return None

    def _local_set(self, project_id: str, voice: BrandVoice | None) -> None:
        records = self._local.read_list(PROJECTS_KEY)
        record = self._project_record(records, project_id)
        if record is None:
            raise NotFoundError(f"Project not found: {project_id}")
        record["brand_voice"] = voice.to_dict() if voice else None
        self._local.write(PROJECTS_KEY, records)

    def _require_project(self, project_id: str) -> None:
        if self._project_record(self._local.read_list(PROJECTS_KEY), project_id) is None:
            raise NotFoundError(f"Project not found: {project_id}")

    # --- Read path ---

    async def get(self, project_id: str, entity_id: str | None = None) -> BrandVoice | None:
        if self._remote is not None:
            try:
                record = await self._remote.get(self.resource, project_id=project_id)
                if record is not None:
                    try:
                        voice = BrandVoice.from_dict(record)
                    except (KeyError, TypeError, ValueError) as e:
                        raise RemoteUnavailable(f"malformed brand voice: {e}") from e
                    try:
                        self._local_set(project_id, voice)
                    except NotFoundError:
                        logger.debug("Project %s not mirrored yet, brand voice not cached", project_id)
                    return voice
            except RemoteUnavailable as e:
                logger.warning(
                    "Remote get of brand voice for %s failed, falling back to local: %s",
                    project_id,
                    e,
                )
        return self.cached(project_id)

    async def list(self, project_id: str) -> list[BrandVoice]:
        voice = await self.get(project_id)
        return [voice] if voice else []

    # --- Write path ---

    async def save(self, project_id: str, fields: dict[str, Any]) -> BrandVoice:
        """Create or replace fields of the project's brand voice (upsert)."""
        cleaned = clean_brand_voice_fields(fields)
        self._require_project(project_id)

        existing = self.cached(project_id)
        base = existing.to_dict() if existing else {}
        if "brand_name" not in cleaned and "brand_name" not in base:
            raise ValidationError("Brand name cannot be empty.")
        merged = BrandVoice.from_dict({**base, **cleaned, "saved_at": now_iso()})

        if self._remote is not None:
            try:
                await self._remote.create(
                    self.resource, {"project_id": project_id, **merged.to_dict()}
                )
            except RemoteUnavailable as e:
                logger.warning(
                    "Remote save of brand voice for %s failed, saved locally only: %s",
                    project_id,
                    e,
                )

        self._local_set(project_id, merged)
        logger.info("Saved brand voice %r for project %s", merged.brand_name, project_id)
        return merged

    async def create(self, project_id: str, fields: dict[str, Any]) -> BrandVoice:
        return await self.save(project_id, fields)

    async def update(
        self, project_id: str, entity_id: str | None, partial: dict[str, Any]
    ) -> BrandVoice:
        if self.cached(project_id) is None and await self.get(project_id) is None:
            raise NotFoundError(f"Project {project_id} has no brand voice")
        return await self.save(project_id, partial)

    async def remove(self, project_id: str, entity_id: str | None = None) -> bool:
        existed = self.cached(project_id) is not None
        remote_ok = False
        if self._remote is not None:
            try:
                await self._remote.delete(self.resource, project_id=project_id)
                remote_ok = True
            except RemoteUnavailable as e:
                logger.warning(
                    "Remote delete of brand voice for %s failed, removed locally only: %s",
                    project_id,
                    e,
                )
        if existed:
            self._local_set(project_id, None)
            logger.info("Removed brand voice for project %s", project_id)
        return existed or remote_ok

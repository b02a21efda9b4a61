"""PersonaSync - audience profiles owned by a project."""

from __future__ import annotations

from typing import Any

from ..errors import ValidationError
from ..hierarchy.types import Persona
from ..hierarchy.validation import sanitize_name
from ..photo import MAX_ENCODED_PHOTO_CHARS
from ..storage.local import PERSONAS_KEY
from ..utils import new_id, now_iso
from .base import EntitySync

_TEXT_FIELDS = ("demographics", "psychographics", "pain_points", "language_patterns", "goals")
_TEXT_MAX_LENGTH = 5000


def _check_text(field: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"Persona {field} must be text.")
    value = value.strip()
    if len(value) > _TEXT_MAX_LENGTH:
        raise ValidationError(f"Persona {field} cannot exceed {_TEXT_MAX_LENGTH} characters.")
    return value


def _check_photo(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not value.startswith(("data:image/", "https://")):
        raise ValidationError("Persona photo must be a normalized image (see normalize_photo).")
    if len(value) > MAX_ENCODED_PHOTO_CHARS:
        raise ValidationError("Persona photo is too large; normalize it first.")
    return value


class PersonaSync(EntitySync):
    entity_name = "persona"
    local_key = PERSONAS_KEY
    resource = "personas"

    def _from_dict(self, data: dict[str, Any]) -> Persona:
        return Persona.from_dict(data)

    def _sort(self, items: list[Persona]) -> list[Persona]:
        return sorted(items, key=lambda p: p.name.casefold())

    def _build(self, scope_id: str | None, fields: dict[str, Any]) -> Persona:
        if not scope_id:
            raise ValidationError("Personas must belong to a project.")
        now = now_iso()
        return Persona(
            id=new_id(),
            project_id=scope_id,
            name=sanitize_name(fields.get("name", ""), field="Persona name"),
            photo_url=_check_photo(fields.get("photo_url")),
            created_at=now,
            updated_at=now,
            **{f: _check_text(f, fields.get(f, "")) for f in _TEXT_FIELDS},
        )

    def _clean_partial(self, partial: dict[str, Any]) -> dict[str, Any]:
        unknown = set(partial) - {"name", "photo_url", *_TEXT_FIELDS}
        if unknown:
            raise ValidationError(
                f"Persona fields cannot be updated: {', '.join(sorted(unknown))}"
            )
        cleaned: dict[str, Any] = {}
        for key, value in partial.items():
            if key == "name":
                cleaned[key] = sanitize_name(value, field="Persona name")
            elif key == "photo_url":
                cleaned[key] = _check_photo(value)
            else:
                cleaned[key] = _check_text(key, value)
        return cleaned

    def _apply(self, existing: Persona, partial: dict[str, Any]) -> Persona:
        merged = super()._apply(existing, partial)
        merged.updated_at = now_iso()
        return merged

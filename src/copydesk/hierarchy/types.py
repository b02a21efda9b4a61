"""Data models for the project hierarchy.

Project → {Folder*, Document*, Persona*, BrandVoice?}.  Every model
round-trips through the snake_case dict shape used both in the local JSON
files and on the remote wire.  ``from_dict`` raises KeyError/TypeError/
ValueError on records without an id or with unusable values so callers can
treat them as malformed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def derive_title(base_title: str, version: int) -> str:
    """Display title of a chain member: "Brief", "Brief v2", "Brief v3"..."""
    if version <= 1:
        return base_title
    return f"{base_title} v{version}"


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


@dataclass
class BrandVoice:
    """Project-scoped brand voice guidelines (singleton per project)."""

    brand_name: str
    tone: str = ""
    approved_phrases: list[str] = field(default_factory=list)
    forbidden_words: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)
    mission: str = ""
    saved_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "brand_name": self.brand_name,
            "tone": self.tone,
            "approved_phrases": list(self.approved_phrases),
            "forbidden_words": list(self.forbidden_words),
            "values": list(self.values),
            "mission": self.mission,
            "saved_at": self.saved_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BrandVoice:
        return cls(
            brand_name=str(data["brand_name"]),
            tone=str(data.get("tone", "")),
            approved_phrases=_str_list(data.get("approved_phrases")),
            forbidden_words=_str_list(data.get("forbidden_words")),
            values=_str_list(data.get("values")),
            mission=str(data.get("mission", "")),
            saved_at=str(data.get("saved_at", "")),
        )


@dataclass
class Project:
    """Top-level organizational unit.

    Folders, documents and personas live in their own collections and point
    back via ``project_id``; only the brand voice is embedded.
    """

    id: str
    name: str
    created_at: str = ""
    updated_at: str = ""
    brand_voice: BrandVoice | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "brand_voice": self.brand_voice.to_dict() if self.brand_voice else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        bv = data.get("brand_voice")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=str(data.get("created_at", "")),
            updated_at=str(data.get("updated_at", "")),
            brand_voice=BrandVoice.from_dict(bv) if isinstance(bv, dict) else None,
        )


@dataclass
class Folder:
    """Organizational container for documents; nests via parent_folder_id."""

    id: str
    project_id: str
    name: str
    parent_folder_id: str | None = None  # None = project root
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "parent_folder_id": self.parent_folder_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Folder:
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            name=str(data["name"]),
            parent_folder_id=data.get("parent_folder_id") or None,
            created_at=str(data.get("created_at", "")),
            updated_at=str(data.get("updated_at", "")),
        )


@dataclass
class DocumentMetadata:
    word_count: int = 0
    char_count: int = 0
    template_id: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_count": self.word_count,
            "char_count": self.char_count,
            "template_id": self.template_id,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentMetadata:
        return cls(
            word_count=int(data.get("word_count", 0) or 0),
            char_count=int(data.get("char_count", 0) or 0),
            template_id=data.get("template_id") or None,
            tags=_str_list(data.get("tags")),
        )


@dataclass
class Document:
    """One member of a version chain.

    The chain is the set of documents sharing ``(project_id, base_title)``;
    no document owns the others.  ``content`` is opaque editor output.
    """

    id: str
    project_id: str
    base_title: str
    version: int = 1
    content: str = ""
    folder_id: str | None = None
    parent_version_id: str | None = None  # document this version was made from
    created_at: str = ""
    modified_at: str = ""
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)

    @property
    def title(self) -> str:
        return derive_title(self.base_title, self.version)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "folder_id": self.folder_id,
            "base_title": self.base_title,
            "title": self.title,
            "version": self.version,
            "parent_version_id": self.parent_version_id,
            "content": self.content,
            "created_at": self.created_at,
            "modified_at": self.modified_at,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        version = int(data.get("version", 1))
        if version < 1:
            raise ValueError(f"document version must be positive, got {version}")
        meta = data.get("metadata")
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            base_title=str(data["base_title"]),
            version=version,
            content=str(data.get("content") or ""),
            folder_id=data.get("folder_id") or None,
            parent_version_id=data.get("parent_version_id") or None,
            created_at=str(data.get("created_at", "")),
            modified_at=str(data.get("modified_at", "")),
            metadata=DocumentMetadata.from_dict(meta if isinstance(meta, dict) else {}),
        )


@dataclass
class Persona:
    """Target audience profile; referenced (not owned) by generation requests."""

    id: str
    project_id: str
    name: str
    demographics: str = ""
    psychographics: str = ""
    pain_points: str = ""
    language_patterns: str = ""
    goals: str = ""
    photo_url: str | None = None  # normalized data URL, see photo.py
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "demographics": self.demographics,
            "psychographics": self.psychographics,
            "pain_points": self.pain_points,
            "language_patterns": self.language_patterns,
            "goals": self.goals,
            "photo_url": self.photo_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Persona:
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            name=str(data["name"]),
            demographics=str(data.get("demographics", "")),
            psychographics=str(data.get("psychographics", "")),
            pain_points=str(data.get("pain_points", "")),
            language_patterns=str(data.get("language_patterns", "")),
            goals=str(data.get("goals", "")),
            photo_url=data.get("photo_url") or None,
            created_at=str(data.get("created_at", "")),
            updated_at=str(data.get("updated_at", "")),
        )


@dataclass
class CascadePlan:
    """Everything a project delete will remove, computed before deleting."""

    project_id: str
    folder_ids: list[str] = field(default_factory=list)
    document_ids: list[str] = field(default_factory=list)
    persona_ids: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.folder_ids) + len(self.document_ids) + len(self.persona_ids)

"""EntitySync - shared read-through/write-through rules for every entity type.

Read path:
    Try the remote store.  On success overwrite the local mirror for that
    scope and return the remote data.  On any failure (network, timeout,
    auth, HTTP error, malformed body) log it and return the local data,
    empty rather than raising.

Write path:
    1. read the existing entity from the local store,
    2. issue the remote write (failure is logged, never fatal),
    3. persist ``existing ⊕ partial`` to the local store.
    The local mirror is never refreshed from a remote read right after a
    write: the remote store does not guarantee read-after-write, and
    trusting its echo resurrects stale data (e.g. a title from before a
    rename).

Ownership: for the span of one CRUD call the instance owns its working copy
of the collection.  Local read-modify-write steps never await, so the event
loop cannot interleave another write to the same key between them; the
merge step re-reads the collection after the remote await and replaces only
the target entity.  This assumes a single logical writer (one session).
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import NotFoundError, RemoteUnavailable
from ..storage.local import LocalStore
from ..storage.remote import RemoteStore

logger = logging.getLogger(__name__)

# Keys that may be taken from a remote create echo
_ECHO_KEYS = ("id", "created_at", "updated_at", "modified_at")


class EntitySync:
    """Base adapter; subclasses supply the entity-specific hooks."""

    entity_name = "entity"
    local_key = ""
    resource = ""

    def __init__(self, local: LocalStore, remote: RemoteStore | None = None) -> None:
        self._local = local
        self._remote = remote

    # --- Hooks ---

    def _from_dict(self, data: dict[str, Any]) -> Any:
        raise NotImplementedError

    def _to_dict(self, entity: Any) -> dict[str, Any]:
        return entity.to_dict()

    def _scope_of(self, entity: Any) -> str | None:
        """Scope (owning project id) of an entity; None for unscoped types."""
        return entity.project_id

    def _build(self, scope_id: str | None, fields: dict[str, Any]) -> Any:
        """Validate ``fields`` and construct a new entity.  Never touches the remote."""
        raise NotImplementedError

    def _clean_partial(self, partial: dict[str, Any]) -> dict[str, Any]:
        """Validate an update; return the cleaned partial.  Never touches the remote."""
        raise NotImplementedError

    def _apply(self, existing: Any, partial: dict[str, Any]) -> Any:
        """Return ``existing`` with the cleaned partial applied."""
        data = self._to_dict(existing)
        data.update(partial)
        return self._from_dict(data)

    def _remote_partial(self, merged: Any, cleaned: dict[str, Any]) -> dict[str, Any]:
        """Body of the remote update for an already-merged entity."""
        return cleaned

    def _from_remote(self, data: dict[str, Any], local: Any | None) -> Any:
        """Convert a remote record; ``local`` is the mirror's current copy."""
        return self._from_dict(data)

    def _sort(self, items: list[Any]) -> list[Any]:
        return items

    def _remote_scope_params(self, scope_id: str | None) -> dict[str, str]:
        return {"project_id": scope_id} if scope_id is not None else {}

    # --- Local mirror helpers (synchronous, never await) ---

    def _load_all(self) -> list[Any]:
        items = []
        for raw in self._local.read_list(self.local_key):
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object %s record in local store", self.entity_name)
                continue
            try:
                items.append(self._from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed local %s record: %s", self.entity_name, e)
        return items

    def _save_all(self, items: list[Any]) -> None:
        self._local.write(self.local_key, [self._to_dict(e) for e in items])

    def _in_scope(self, entity: Any, scope_id: str | None) -> bool:
        return scope_id is None or self._scope_of(entity) == scope_id

    def local_list(self, scope_id: str | None = None) -> list[Any]:
        """Local mirror only, no remote call."""
        return self._sort([e for e in self._load_all() if self._in_scope(e, scope_id)])

    def cached(self, entity_id: str) -> Any | None:
        """Local mirror lookup by id, no remote call."""
        for e in self._load_all():
            if e.id == entity_id:
                return e
        return None

    def _local_put(self, entity: Any) -> None:
        items = self._load_all()
        for i, e in enumerate(items):
            if e.id == entity.id:
                items[i] = entity
                break
        else:
            items.append(entity)
        self._save_all(items)

    def _local_drop(self, ids: set[str]) -> int:
        items = self._load_all()
        kept = [e for e in items if e.id not in ids]
        if len(kept) != len(items):
            self._save_all(kept)
        return len(items) - len(kept)

    def _mirror_scope(self, scope_id: str | None, fresh: list[Any]) -> None:
        """Replace the mirror's copy of one scope with ``fresh``."""
        others = [e for e in self._load_all() if not self._in_scope(e, scope_id)]
        self._save_all(others + fresh)

    def _parse_remote(self, records: list[dict[str, Any]]) -> list[Any]:
        local_by_id = {e.id: e for e in self._load_all()}
        try:
            return [self._from_remote(r, local_by_id.get(r.get("id"))) for r in records]
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteUnavailable(f"malformed {self.entity_name} record: {e}") from e

    # --- Read path ---

    async def list(self, scope_id: str | None = None) -> list[Any]:
        if self._remote is not None:
            try:
                records = await self._remote.list(
                    self.resource, **self._remote_scope_params(scope_id)
                )
                fresh = [e for e in self._parse_remote(records) if self._in_scope(e, scope_id)]
                self._mirror_scope(scope_id, fresh)
                logger.debug("Loaded %d %s(s) from remote", len(fresh), self.entity_name)
                return self._sort(fresh)
            except RemoteUnavailable as e:
                logger.warning(
                    "Remote list of %s failed, falling back to local: %s", self.entity_name, e
                )
        return self.local_list(scope_id)

    async def get(self, scope_id: str | None, entity_id: str) -> Any | None:
        if self._remote is not None:
            try:
                record = await self._remote.get(self.resource, id=entity_id)
                if record is not None:
                    [entity] = self._parse_remote([record])
                    if self._in_scope(entity, scope_id):
                        self._local_put(entity)
                        return entity
                    logger.warning(
                        "Remote %s %s is outside scope %s", self.entity_name, entity_id, scope_id
                    )
                    return None
                logger.debug("Remote has no %s %s, checking local", self.entity_name, entity_id)
            except RemoteUnavailable as e:
                logger.warning(
                    "Remote get of %s %s failed, falling back to local: %s",
                    self.entity_name,
                    entity_id,
                    e,
                )
        entity = self.cached(entity_id)
        if entity is None or not self._in_scope(entity, scope_id):
            return None
        return entity

    # --- Write path ---

    async def create(self, scope_id: str | None, fields: dict[str, Any]) -> Any:
        entity = self._build(scope_id, fields)
        if self._remote is not None:
            try:
                echo = await self._remote.create(self.resource, self._to_dict(entity))
                adopted = {k: echo[k] for k in _ECHO_KEYS if echo.get(k)}
                if adopted:
                    entity = self._from_dict({**self._to_dict(entity), **adopted})
            except RemoteUnavailable as e:
                logger.warning(
                    "Remote create of %s failed, saved locally only: %s", self.entity_name, e
                )
        self._local_put(entity)
        logger.info("Created %s %s", self.entity_name, entity.id)
        return entity

    async def update(
        self, scope_id: str | None, entity_id: str, partial: dict[str, Any]
    ) -> Any:
        cleaned = self._clean_partial(partial)

        # 1. local read
        existing = self.cached(entity_id)
        if existing is None or not self._in_scope(existing, scope_id):
            # Never mirrored on this device yet; seed it through the read path
            existing = await self.get(scope_id, entity_id)
        if existing is None:
            raise NotFoundError(f"{self.entity_name.capitalize()} not found: {entity_id}")
        merged = self._apply(existing, cleaned)

        # 2. remote write
        if self._remote is not None:
            try:
                await self._remote.update(
                    self.resource, entity_id, self._remote_partial(merged, cleaned)
                )
            except RemoteUnavailable as e:
                logger.warning(
                    "Remote update of %s %s failed, saved locally only: %s",
                    self.entity_name,
                    entity_id,
                    e,
                )

        # 3. local merge write
        self._local_put(merged)
        logger.info("Updated %s %s", self.entity_name, entity_id)
        return merged

    async def remove(self, scope_id: str | None, entity_id: str) -> bool:
        existing = self.cached(entity_id)
        if existing is not None and not self._in_scope(existing, scope_id):
            return False
        self._before_remove(scope_id, entity_id)
        remote_ok = await self._remote_delete(entity_id)
        dropped = self._local_drop({entity_id})
        if dropped or remote_ok:
            logger.info("Removed %s %s", self.entity_name, entity_id)
        return bool(dropped) or remote_ok

    def _before_remove(self, scope_id: str | None, entity_id: str) -> None:
        """Raise to refuse a delete before anything is touched."""

    async def _remote_delete(self, entity_id: str) -> bool:
        if self._remote is None:
            return False
        try:
            await self._remote.delete(self.resource, id=entity_id)
            return True
        except RemoteUnavailable as e:
            logger.warning(
                "Remote delete of %s %s failed, removed locally only: %s",
                self.entity_name,
                entity_id,
                e,
            )
            return False

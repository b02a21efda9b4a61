"""Shared fixtures: a temp local store, an in-memory remote, wired syncs."""

import copy
from collections import defaultdict
from pathlib import Path
from typing import Any

import pytest

from copydesk.errors import RemoteUnavailable
from copydesk.storage.local import LocalStore
from copydesk.sync.brand_voice import BrandVoiceSync
from copydesk.sync.documents import DocumentSync
from copydesk.sync.folders import FolderSync
from copydesk.sync.personas import PersonaSync
from copydesk.sync.projects import ProjectSync


class FakeRemote:
    """In-memory stand-in for RemoteStore.

    Flip ``online`` to False to make every call raise RemoteUnavailable,
    as a dropped network would.  ``calls`` records (operation, resource).
    """

    def __init__(self) -> None:
        self.online = True
        self.tables: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, resource: str) -> None:
        self.calls.append((op, resource))
        if not self.online:
            raise RemoteUnavailable(f"{op} {resource}: connection refused")

    @staticmethod
    def _key_field(resource: str) -> str:
        return "project_id" if resource == "brand-voices" else "id"

    async def list(self, resource: str, **params: str) -> list[dict[str, Any]]:
        self._check("list", resource)
        rows = list(self.tables[resource].values())
        if "project_id" in params:
            rows = [r for r in rows if r.get("project_id") == params["project_id"]]
        return copy.deepcopy(rows)

    async def get(self, resource: str, **params: str) -> dict[str, Any] | None:
        self._check("get", resource)
        row = self.tables[resource].get(params.get(self._key_field(resource), ""))
        return copy.deepcopy(row) if row else None

    async def create(self, resource: str, body: dict[str, Any]) -> dict[str, Any]:
        self._check("create", resource)
        row = copy.deepcopy(body)
        self.tables[resource][row[self._key_field(resource)]] = row
        return copy.deepcopy(row)

    async def update(
        self, resource: str, entity_id: str, partial: dict[str, Any]
    ) -> dict[str, Any] | None:
        self._check("update", resource)
        row = self.tables[resource].get(entity_id)
        if row is None:
            raise RemoteUnavailable(f"update {resource}: not found", status_code=404)
        row.update(copy.deepcopy(partial))
        return copy.deepcopy(row)

    async def delete(self, resource: str, **params: str) -> None:
        self._check("delete", resource)
        self.tables[resource].pop(params.get(self._key_field(resource), ""), None)

    async def aclose(self) -> None:
        pass


@pytest.fixture
def local(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "data")


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def projects(local: LocalStore, remote: FakeRemote) -> ProjectSync:
    return ProjectSync(local, remote)


@pytest.fixture
def documents(local: LocalStore, remote: FakeRemote) -> DocumentSync:
    return DocumentSync(local, remote)


@pytest.fixture
def folders(local: LocalStore, remote: FakeRemote) -> FolderSync:
    return FolderSync(local, remote)


@pytest.fixture
def personas(local: LocalStore, remote: FakeRemote) -> PersonaSync:
    return PersonaSync(local, remote)


@pytest.fixture
def brand_voice(local: LocalStore, remote: FakeRemote) -> BrandVoiceSync:
    return BrandVoiceSync(local, remote)


@pytest.fixture
async def acme(projects: ProjectSync):
    return await projects.create(None, {"name": "Acme"})

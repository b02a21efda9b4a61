"""DeskContext — bundles config with the stores, syncs and state for a session.

Built once by ``create_desk_context()`` and passed explicitly to the
caller-facing actions in ``bootstrap.py``; nothing in the package keeps
session state in module globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from .autosave import AutoSaver
from .settings import DeskConfig
from .state.app_state import AppStateStore
from .state.tools import TOOL_IDS, ToolSwitchController
from .storage.local import LocalStore
from .storage.remote import RemoteStore
from .sync.brand_voice import BrandVoiceSync
from .sync.documents import DocumentSync
from .sync.folders import FolderSync
from .sync.personas import PersonaSync
from .sync.projects import ProjectSync


@dataclass
class DeskContext:
    """Runtime context for one editing session."""

    config: DeskConfig
    local: LocalStore
    remote: RemoteStore | None
    projects: ProjectSync
    documents: DocumentSync
    folders: FolderSync
    personas: PersonaSync
    brand_voice: BrandVoiceSync
    state: AppStateStore
    tools: ToolSwitchController
    autosaver: AutoSaver

    async def aclose(self) -> None:
        """Flush pending autosaves and close the remote client."""
        await self.autosaver.close()
        if self.remote is not None:
            await self.remote.aclose()


def create_desk_context(config: DeskConfig, *, remote: RemoteStore | None = None) -> DeskContext:
    """Build a DeskContext from a DeskConfig.

    The remote store is created only when ``remote_url`` is configured;
    tests may pass their own ``remote``.
    """
    local = LocalStore(config.data_dir)
    if remote is None and config.remote_enabled:
        remote = RemoteStore(
            config.remote_url,
            api_key=config.remote_api_key,
            timeout=config.remote_timeout,
        )

    documents = DocumentSync(local, remote)
    state = AppStateStore(local, tool_ids=TOOL_IDS, resolve_document=documents.cached)

    return DeskContext(
        config=config,
        local=local,
        remote=remote,
        projects=ProjectSync(local, remote),
        documents=documents,
        folders=FolderSync(local, remote),
        personas=PersonaSync(local, remote),
        brand_voice=BrandVoiceSync(local, remote),
        state=state,
        tools=ToolSwitchController(state),
        autosaver=AutoSaver(documents, config.autosave_delay),
    )

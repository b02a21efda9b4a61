"""AppStateStore - active pointers, panels, per-tool run state and hydration.

One explicitly constructed instance per session (see ``context.py``); there
is no module-level singleton.  Lifecycle:

    not_hydrated ──hydrate()──▶ hydrating ──▶ hydrated

``hydrated`` is entered exactly once, also when the persisted state cannot
be read (fail open).  Anything that decides "nothing is active, create a
default" must wait for ``hydrated`` first; during ``hydrating`` the
persisted pointers simply have not been loaded yet.

Only active pointers, sidebar flags and the active tool are persisted, and
only once hydrated: a write while hydrating would overwrite the very
pointers being loaded.  Tool runs (result/error/loading) are request-scoped
and never persisted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from ..errors import InvariantViolation, LocalCorrupt, NotFoundError
from ..hierarchy.types import Document
from ..storage.local import APP_STATE_KEY, LocalStore
from .selection import ExclusiveGroup

logger = logging.getLogger(__name__)

NOT_HYDRATED = "not_hydrated"
HYDRATING = "hydrating"
HYDRATED = "hydrated"

# Keys of AppState written to the app-state key
_PERSISTED_FIELDS = (
    "active_project_id",
    "active_document_id",
    "active_tool_id",
    "left_sidebar_open",
    "right_sidebar_open",
)


@dataclass
class ToolRun:
    """Transient output of one tool."""

    result: Any = None
    error: str | None = None
    loading: bool = False

    @property
    def is_initial(self) -> bool:
        return self.result is None and self.error is None and not self.loading


@dataclass
class AppState:
    active_project_id: str | None = None
    active_document_id: str | None = None
    active_tool_id: str | None = None
    left_sidebar_open: bool = True
    right_sidebar_open: bool = True
    phase: str = NOT_HYDRATED
    tool_runs: dict[str, ToolRun] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Persisted subset only."""
        return {k: getattr(self, k) for k in _PERSISTED_FIELDS}

    def load_persisted(self, data: dict[str, Any]) -> None:
        """Apply a persisted subset, ignoring unknown keys and bad types."""
        for key in ("active_project_id", "active_document_id", "active_tool_id"):
            value = data.get(key)
            if value is None or (isinstance(value, str) and value):
                setattr(self, key, value)
            else:
                logger.warning("Ignoring invalid persisted %s: %r", key, value)
        for key in ("left_sidebar_open", "right_sidebar_open"):
            value = data.get(key)
            if isinstance(value, bool):
                setattr(self, key, value)


Listener = Callable[[AppState], None]


class AppStateStore:
    """Owns AppState; every mutation persists (when hydrated) and notifies."""

    def __init__(
        self,
        local: LocalStore,
        *,
        tool_ids: Iterable[str] = (),
        resolve_document: Callable[[str], Document | None] | None = None,
    ) -> None:
        self._local = local
        self._resolve_document = resolve_document
        self.state = AppState()
        self.state.tool_runs = {tool_id: ToolRun() for tool_id in tool_ids}
        self.sections = ExclusiveGroup()
        self._listeners: list[Listener] = []
        self._hydrated = asyncio.Event()
        # Token of the run each tool is currently waiting on
        self._run_tokens: dict[str, int] = {}
        self._next_token = 0

    # --- Lifecycle ---

    @property
    def phase(self) -> str:
        return self.state.phase

    @property
    def is_hydrated(self) -> bool:
        return self.state.phase == HYDRATED

    async def hydrate(self) -> None:
        """Load the persisted subset.  Runs once; later calls are no-ops."""
        if self.state.phase != NOT_HYDRATED:
            return
        self.state.phase = HYDRATING
        self._notify()
        try:
            data = await asyncio.to_thread(self._local.load, APP_STATE_KEY, {})
            if not isinstance(data, dict):
                raise LocalCorrupt(APP_STATE_KEY, f"expected dict, got {type(data).__name__}")
            self.state.load_persisted(data)
            logger.info(
                "Hydrated app state (project=%s, document=%s, tool=%s)",
                self.state.active_project_id,
                self.state.active_document_id,
                self.state.active_tool_id,
            )
        except (LocalCorrupt, OSError) as e:
            logger.warning("Could not restore app state, starting fresh: %s", e)
        finally:
            self.state.phase = HYDRATED
            self._hydrated.set()
            self._notify()

    async def wait_until_hydrated(self) -> None:
        await self._hydrated.wait()

    # --- Listeners ---

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register ``callback(state)``; returns the unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self.state)
            except Exception:
                logger.exception("App state listener failed")

    def _changed(self) -> None:
        self._persist()
        self._notify()

    def _persist(self) -> None:
        if not self.is_hydrated:
            logger.debug("Skipping app state persist while %s", self.state.phase)
            return
        try:
            self._local.write(APP_STATE_KEY, self.state.to_dict())
        except OSError as e:
            logger.warning("Failed to persist app state: %s", e)

    # --- Active pointers ---

    def set_active_project_id(self, project_id: str | None) -> None:
        """Switch project; the open document and all tool output are dropped."""
        self.state.active_project_id = project_id
        self.state.active_document_id = None
        self._reset_tool_runs()
        logger.info("Active project: %s", project_id)
        self._changed()

    def set_active_document_id(self, document_id: str | None) -> None:
        if document_id is not None:
            if self.state.active_project_id is None:
                raise InvariantViolation("Select a project before opening a document.")
            doc = self._resolve_document(document_id) if self._resolve_document else None
            if doc is None:
                raise NotFoundError(f"Document not found: {document_id}")
            if doc.project_id != self.state.active_project_id:
                raise InvariantViolation(
                    f"Document {doc.title!r} does not belong to the active project."
                )
        self.state.active_document_id = document_id
        self._changed()

    def set_active_tool(self, tool_id: str | None) -> None:
        """Select a tool; selecting one while the right panel is hidden shows it."""
        self.state.active_tool_id = tool_id
        if tool_id is not None and not self.state.right_sidebar_open:
            self.state.right_sidebar_open = True
        self._changed()

    # --- Sidebars and sections ---

    def toggle_left_sidebar(self) -> None:
        self.set_left_sidebar_open(not self.state.left_sidebar_open)

    def toggle_right_sidebar(self) -> None:
        self.set_right_sidebar_open(not self.state.right_sidebar_open)

    def set_left_sidebar_open(self, is_open: bool) -> None:
        # The tool sections live in the left panel; reopening starts collapsed
        if is_open and not self.state.left_sidebar_open:
            self.sections.reset()
        self.state.left_sidebar_open = is_open
        self._changed()

    def set_right_sidebar_open(self, is_open: bool) -> None:
        self.state.right_sidebar_open = is_open
        self._changed()

    def toggle_section(self, section_id: str) -> None:
        self.sections.toggle(section_id)
        self._notify()

    # --- Tool runs ---

    def tool_run(self, tool_id: str) -> ToolRun:
        return self.state.tool_runs.setdefault(tool_id, ToolRun())

    def reset_tool_runs(self) -> None:
        self._reset_tool_runs()
        self._notify()

    def _reset_tool_runs(self) -> None:
        for tool_id in self.state.tool_runs:
            self.state.tool_runs[tool_id] = ToolRun()
        # Runs still in flight no longer own their slot
        self._run_tokens.clear()

    def begin_tool_run(self, tool_id: str) -> int:
        """Mark ``tool_id`` loading; returns the token its result must carry."""
        self._next_token += 1
        self._run_tokens[tool_id] = self._next_token
        self.state.tool_runs[tool_id] = ToolRun(loading=True)
        self._notify()
        return self._next_token

    def finish_tool_run(
        self, tool_id: str, token: int, *, result: Any = None, error: str | None = None
    ) -> bool:
        """Store a run's outcome; returns False if the run went stale."""
        if self._run_tokens.get(tool_id) != token:
            logger.debug("Dropping stale result for tool %s", tool_id)
            return False
        del self._run_tokens[tool_id]
        self.state.tool_runs[tool_id] = ToolRun(result=result, error=error)
        self._notify()
        return True

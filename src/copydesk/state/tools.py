"""Tool registry and the switch controller that keeps one tool active.

Two questions are answered separately, in this order: is a tool selected,
and can the selected tool run (some need an open document)?  Folding both
into one document-first check shows a selected tool as "nothing selected".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ..errors import ValidationError
from .app_state import AppStateStore

logger = logging.getLogger(__name__)

# panel_view() results
VIEW_NONE = "none"
VIEW_NEEDS_DOCUMENT = "needs_document"
VIEW_READY = "ready"


@dataclass(frozen=True)
class SectionConfig:
    id: str
    name: str
    description: str


@dataclass(frozen=True)
class ToolConfig:
    id: str
    name: str
    section: str
    description: str
    requires_document: bool


SECTIONS: tuple[SectionConfig, ...] = (
    SectionConfig("optimizer", "My Copy Optimizer", "Improve and refine your copy"),
    SectionConfig("brand", "Brand & Audience", "Brand voice and target personas"),
    SectionConfig("insights", "My Insights", "Analyze and align your copy"),
)

TOOLS: tuple[ToolConfig, ...] = (
    ToolConfig("tone-shifter", "Tone Shifter", "optimizer", "Rewrite in different tones", True),
    ToolConfig("expand", "Expand", "optimizer", "Make copy longer and more detailed", True),
    ToolConfig("shorten", "Shorten", "optimizer", "Make copy more concise", True),
    ToolConfig(
        "rewrite-channel", "Rewrite for Channel", "optimizer", "Adapt for different platforms", True
    ),
    ToolConfig("personas", "Personas", "brand", "Target audience profiles", False),
    ToolConfig("brand-voice", "Brand Voice", "brand", "Brand tone & style guidelines", False),
    ToolConfig(
        "competitor-analyzer", "Competitor Analyzer", "insights", "Analyze competitor copy", False
    ),
    ToolConfig("persona-alignment", "Persona Alignment", "insights", "Check persona fit", True),
    ToolConfig("brand-alignment", "Brand Alignment", "insights", "Check brand consistency", True),
)

TOOL_IDS: tuple[str, ...] = tuple(t.id for t in TOOLS)


def get_tool(tool_id: str) -> ToolConfig | None:
    for tool in TOOLS:
        if tool.id == tool_id:
            return tool
    return None


def tools_in_section(section_id: str) -> list[ToolConfig]:
    return [t for t in TOOLS if t.section == section_id]


class ToolSwitchController:
    """Mutual exclusion over the registered tools, backed by AppStateStore."""

    def __init__(self, store: AppStateStore, tools: tuple[ToolConfig, ...] = TOOLS) -> None:
        self._store = store
        self._tools = {t.id: t for t in tools}
        for tool_id in self._tools:
            store.tool_run(tool_id)

    @property
    def active_tool(self) -> ToolConfig | None:
        tool_id = self._store.state.active_tool_id
        return self._tools.get(tool_id) if tool_id else None

    def _require(self, tool_id: str) -> ToolConfig:
        tool = self._tools.get(tool_id)
        if tool is None:
            raise ValidationError(f"Unknown tool: {tool_id}")
        return tool

    def activate_tool(self, tool_id: str) -> None:
        """Make ``tool_id`` the active tool; a no-op when it already is."""
        self._require(tool_id)
        if self._store.state.active_tool_id == tool_id:
            return
        # Every tool, not just the previous one: a background run may have
        # landed output on a tool that is no longer shown.
        self._store.reset_tool_runs()
        self._store.set_active_tool(tool_id)
        logger.debug("Activated tool %s", tool_id)

    def deactivate(self) -> None:
        if self._store.state.active_tool_id is None:
            return
        self._store.reset_tool_runs()
        self._store.set_active_tool(None)

    def panel_view(self, has_document: bool) -> str:
        tool = self.active_tool
        if tool is None:
            return VIEW_NONE
        if tool.requires_document and not has_document:
            return VIEW_NEEDS_DOCUMENT
        return VIEW_READY

    async def run_tool(self, tool_id: str, action: Callable[[], Awaitable[Any]]) -> bool:
        """Run ``action`` as ``tool_id``'s current request.

        Returns True when the outcome was stored, False when the run went
        stale (tool or project switched while it was in flight).
        """
        self._require(tool_id)
        token = self._store.begin_tool_run(tool_id)
        try:
            result = await action()
        except Exception as e:
            logger.warning("Tool %s failed: %s", tool_id, e)
            return self._store.finish_tool_run(tool_id, token, error=str(e) or type(e).__name__)
        return self._store.finish_tool_run(tool_id, token, result=result)

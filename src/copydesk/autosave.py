"""AutoSaver — debounced document saves.

Each keystroke batch calls ``schedule()``; the content is written through
``DocumentSync.update`` once the document has been idle for ``delay``
seconds.  Scheduling again restarts that document's timer, so only the
latest content is saved.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .errors import CopyDeskError

if TYPE_CHECKING:
    from .sync.documents import DocumentSync

logger = logging.getLogger(__name__)


class AutoSaver:
    """Per-document debounce timers in front of DocumentSync.update."""

    def __init__(self, documents: DocumentSync, delay: float) -> None:
        self._documents = documents
        self._delay = delay
        self._pending: dict[str, tuple[str, str]] = {}  # document_id → (project_id, content)
        self._timers: dict[str, asyncio.Task[None]] = {}  # still sleeping
        self._saving: set[asyncio.Task[None]] = set()  # past the delay, writing
        self._closed = False

    @property
    def pending_ids(self) -> set[str]:
        return set(self._pending)

    def schedule(self, project_id: str, document_id: str, content: str) -> None:
        """Queue ``content`` for ``document_id``, restarting its idle timer."""
        if self._closed:
            raise RuntimeError("AutoSaver is closed")
        self._pending[document_id] = (project_id, content)
        timer = self._timers.pop(document_id, None)
        if timer:
            timer.cancel()
        self._timers[document_id] = asyncio.create_task(self._fire(document_id))

    async def _fire(self, document_id: str) -> None:
        await asyncio.sleep(self._delay)
        # From here on the save must not be cancelled by a newer schedule()
        task = self._timers.pop(document_id, None)
        if task is not None:
            self._saving.add(task)
        try:
            await self._save(document_id)
        finally:
            if task is not None:
                self._saving.discard(task)

    async def _save(self, document_id: str) -> None:
        entry = self._pending.pop(document_id, None)
        if entry is None:
            return
        project_id, content = entry
        try:
            await self._documents.update(project_id, document_id, {"content": content})
            logger.debug("Autosaved document %s (%d chars)", document_id, len(content))
        except CopyDeskError as e:
            logger.warning("Autosave of document %s failed: %s", document_id, e)

    async def flush(self) -> None:
        """Save every pending edit now and wait for in-flight saves."""
        for document_id, timer in list(self._timers.items()):
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
            self._timers.pop(document_id, None)
        for document_id in list(self._pending):
            await self._save(document_id)
        if self._saving:
            await asyncio.gather(*self._saving, return_exceptions=True)

    async def close(self) -> None:
        """Flush and refuse further scheduling."""
        await self.flush()
        self._closed = True
        logger.debug("AutoSaver closed")

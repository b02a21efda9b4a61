"""Device-local key/value store backed by one JSON file per key.

Logical keys: ``projects``, ``documents``, ``folders``, ``personas`` (lists)
and ``app-state`` (object).  Each caller reads a key's whole value, mutates
it in memory and writes it back whole; writes are atomic (temp file +
rename) so a crash never leaves half a collection on disk.

Calls are synchronous on purpose: a read-modify-write of one key never
yields to the event loop, which is what keeps same-key updates from
interleaving without locks.

Corruption self-heals: ``read_list``/``read_dict`` reset a key that fails to
parse, or holds the wrong top-level type, to an empty value and log it.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from ..errors import LocalCorrupt
from ..utils import atomic_write_json

logger = logging.getLogger(__name__)

PROJECTS_KEY = "projects"
DOCUMENTS_KEY = "documents"
FOLDERS_KEY = "folders"
PERSONAS_KEY = "personas"
APP_STATE_KEY = "app-state"

_KEY_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class LocalStore:
    """JSON-file key/value store rooted at ``data_dir``."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid local store key: {key!r}")
        return self._data_dir / f"{key}.json"

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def load(self, key: str, default: Any = None) -> Any:
        """Return the decoded value of ``key`` or ``default`` if absent.

        Raises LocalCorrupt if the file exists but is not valid UTF-8 JSON.
        """
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return default
        except UnicodeDecodeError as e:
            raise LocalCorrupt(key, f"not UTF-8: {e}") from e
        except OSError as e:
            raise LocalCorrupt(key, f"unreadable: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise LocalCorrupt(key, f"invalid JSON: {e}") from e

    def write(self, key: str, value: Any) -> None:
        atomic_write_json(self.path_for(key), value)

    def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink()
            return True
        except FileNotFoundError:
            return False

    # --- Self-healing typed readers ---

    def read_list(self, key: str) -> list[Any]:
        """Load a list key; anything unusable is reset to ``[]``."""
        return self._read_typed(key, list)

    def read_dict(self, key: str) -> dict[str, Any]:
        """Load an object key; anything unusable is reset to ``{}``."""
        return self._read_typed(key, dict)

    def _read_typed(self, key: str, expected: type) -> Any:
        try:
            value = self.load(key)
            if value is None:
                return expected()
            if not isinstance(value, expected):
                raise LocalCorrupt(
                    key, f"expected {expected.__name__}, got {type(value).__name__}"
                )
            return value
        except LocalCorrupt as e:
            logger.warning("Local store key corrupt (%s), resetting to empty", e)
            empty = expected()
            try:
                self.write(key, empty)
            except OSError:
                logger.exception("Failed to reset corrupt key %s", key)
            return empty

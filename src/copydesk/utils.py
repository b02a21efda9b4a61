"""Shared helpers: base directory resolution, atomic JSON writes, ids, timestamps."""

from __future__ import annotations

import json
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def copydesk_dir() -> Path:
    """Return the base config/data directory.

    ``$COPYDESK_DIR`` wins; otherwise ``~/.copydesk``.
    """
    env = os.environ.get("COPYDESK_DIR", "").strip()
    if env:
        return Path(env).expanduser()
    return Path.home() / ".copydesk"


def atomic_write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON to ``path`` via a temp file in the same directory + rename.

    Readers never observe a half-written file; parent dirs are created.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def new_id() -> str:
    """Client-generated entity id (UUID4 string)."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()

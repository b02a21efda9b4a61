"""Settings - reads settings.toml + .env to produce a DeskConfig.

The local store always works; the remote mirror is enabled only when
``remote_url`` is configured.

Key entities:
  - DeskConfig: frozen dataclass with all resolved config.
  - load_settings(): parse .env + settings.toml → DeskConfig.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .utils import copydesk_dir

logger = logging.getLogger(__name__)

# Remote calls must never hang the UI for longer than this
MAX_REMOTE_TIMEOUT = 30.0

# ---------------------------------------------------------------------------
# DeskConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeskConfig:
    """Resolved configuration.

    All path attributes are pre-resolved; no further env lookups needed.
    """

    config_dir: Path = field(default_factory=lambda: copydesk_dir())
    data_dir: Path = field(default_factory=lambda: copydesk_dir() / "data")

    # Remote mirror ("" = local-only)
    remote_url: str = ""
    remote_api_key: str = ""  # resolved from remote_api_key_env
    remote_timeout: float = MAX_REMOTE_TIMEOUT

    # Editing
    autosave_delay: float = 1.0
    default_project_name: str = "My First Project"

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_url)


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------


def load_settings(config_dir: Path | None = None) -> DeskConfig:
    """Read .env + settings.toml and return a DeskConfig.

    Args:
        config_dir: Override for the base config directory.
                    Defaults to ``copydesk_dir()``.

    A missing settings.toml is not an error: defaults give a local-only
    desk under ``config_dir/data``.
    """
    if config_dir is None:
        config_dir = copydesk_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    # Load .env files (local cwd first, then config_dir)
    local_env = Path(".env")
    global_env = config_dir / ".env"
    if local_env.is_file():
        load_dotenv(local_env)
    if global_env.is_file():
        load_dotenv(global_env)

    toml_path = config_dir / "settings.toml"
    raw: dict = {}
    if toml_path.is_file():
        with open(toml_path, "rb") as f:
            raw = tomllib.load(f)
    else:
        logger.info("No settings file at %s, using local-only defaults", toml_path)

    return _build_config(config_dir, raw)


def _build_config(config_dir: Path, raw: dict) -> DeskConfig:
    """Validate raw TOML values and build a DeskConfig."""
    storage = raw.get("storage", {})
    remote = raw.get("remote", {})
    editor = raw.get("editor", {})

    data_dir_raw = storage.get("data_dir", "")
    if data_dir_raw:
        data_dir = Path(data_dir_raw).expanduser()
        if not data_dir.is_absolute():
            data_dir = config_dir / data_dir
    else:
        data_dir = config_dir / "data"

    # Env var wins over the file so deployments can point at another API
    remote_url = os.getenv("COPYDESK_REMOTE_URL", "") or str(remote.get("url", ""))
    remote_url = remote_url.rstrip("/")
    if remote_url and not remote_url.startswith(("http://", "https://")):
        raise ValueError(f"remote.url must be an http(s) URL, got {remote_url!r}")

    # Resolve API key from env var name
    api_key_env = str(remote.get("api_key_env", ""))
    remote_api_key = os.getenv(api_key_env, "") if api_key_env else ""
    if api_key_env and not remote_api_key:
        logger.warning(
            "remote.api_key_env=%s is not set; remote calls will be unauthenticated",
            api_key_env,
        )

    timeout = float(remote.get("timeout", MAX_REMOTE_TIMEOUT))
    if timeout <= 0:
        raise ValueError("remote.timeout must be positive.")
    if timeout > MAX_REMOTE_TIMEOUT:
        logger.warning(
            "remote.timeout=%.1f exceeds %.0fs, clamping", timeout, MAX_REMOTE_TIMEOUT
        )
        timeout = MAX_REMOTE_TIMEOUT

    autosave_delay = float(editor.get("autosave_delay", 1.0))
    if autosave_delay < 0:
        raise ValueError("editor.autosave_delay cannot be negative.")

    default_name = str(editor.get("default_project_name", "My First Project")).strip()
    if not default_name:
        raise ValueError("editor.default_project_name cannot be empty.")

    return DeskConfig(
        config_dir=config_dir,
        data_dir=data_dir,
        remote_url=remote_url,
        remote_api_key=remote_api_key,
        remote_timeout=timeout,
        autosave_delay=autosave_delay,
        default_project_name=default_name,
    )

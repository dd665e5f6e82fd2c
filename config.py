"""
Runtime configuration for wup.

Settings come from environment variables with Windows-friendly defaults.
Log files live under %LOCALAPPDATA%\\wup\\logs unless WUP_LOG_DIR says
otherwise.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

DEFAULT_NODE_PACKAGE_ID = "OpenJS.NodeJS.LTS"
DEFAULT_NODE_INDEX_URL = "https://nodejs.org/dist/index.json"


@dataclass
class WupConfig:
    """Resolved settings shared by all commands."""

    log_dir: Path
    winget: str = "winget"
    nvm: str = "nvm"
    node_package_id: str = DEFAULT_NODE_PACKAGE_ID
    node_index_url: str = DEFAULT_NODE_INDEX_URL

    @property
    def upgrade_log_dir(self) -> Path:
        return self.log_dir / "upgrades"

    @property
    def download_dir(self) -> Path:
        return self.log_dir.parent / "downloads"

    def ensure_dirs(self) -> None:
        """Create log directories; they are append-only and never cleaned."""
        self.upgrade_log_dir.mkdir(parents=True, exist_ok=True)


def default_log_dir() -> Path:
    """Find the base log directory."""
    env_dir = os.environ.get("WUP_LOG_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    local_app_data = os.environ.get("LOCALAPPDATA")
    if local_app_data:
        return Path(local_app_data) / "wup" / "logs"

    return Path.home() / ".wup" / "logs"


def _resolve_tool(env_var: str, name: str) -> str:
    override = os.environ.get(env_var)
    if override:
        return override
    return shutil.which(name) or name


def load_config() -> WupConfig:
    """Build the configuration from the environment."""
    return WupConfig(
        log_dir=default_log_dir(),
        winget=_resolve_tool("WUP_WINGET", "winget"),
        nvm=_resolve_tool("WUP_NVM", "nvm"),
        node_package_id=os.environ.get("WUP_NODE_PACKAGE_ID") or DEFAULT_NODE_PACKAGE_ID,
        node_index_url=os.environ.get("WUP_NODE_INDEX_URL") or DEFAULT_NODE_INDEX_URL,
    )

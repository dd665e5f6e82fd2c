"""
installer.py - Download and silently run Node.js MSI installers.
"""

from __future__ import annotations

import json
import logging
import platform as _platform
import shutil
import subprocess
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from retry_utils import NETWORK_ERRORS, network_retry

logger = logging.getLogger(__name__)

NODE_DIST_BASE = "https://nodejs.org/dist"

# platform.machine() -> Node.js dist architecture
_ARCH_MAP = {
    "amd64": "x64",
    "x86_64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "x86": "x86",
    "i386": "x86",
    "i686": "x86",
}


@dataclass
class NodeRelease:
    """One entry of the Node.js release index."""

    version: str
    lts: str
    files: list[str] = field(default_factory=list)

    def msi_url(self, arch: str, base: str = NODE_DIST_BASE) -> str:
        return f"{base}/{self.version}/node-{self.version}-{arch}.msi"

    def has_msi(self, arch: str) -> bool:
        return f"win-{arch}-msi" in self.files


def node_arch() -> str:
    return _ARCH_MAP.get(_platform.machine().lower(), "x64")


@network_retry()
def fetch_release_index(url: str) -> list[dict[str, Any]]:
    req = urllib.request.Request(url, headers={"Accept": "application/json"})
    with urllib.request.urlopen(req, timeout=30) as response:
        data = json.loads(response.read().decode("utf-8"))
    return data if isinstance(data, list) else []


def latest_lts(index: list[dict[str, Any]], arch: str) -> NodeRelease | None:
    """Pick the newest LTS release that ships an MSI for ``arch``.

    The index is ordered newest first; ``lts`` is false or a codename.
    """
    for entry in index:
        if not isinstance(entry, dict):
            continue
        lts = entry.get("lts")
        if not lts:
            continue
        release = NodeRelease(
            version=str(entry.get("version", "")),
            lts=str(lts),
            files=list(entry.get("files", [])),
        )
        if release.version and release.has_msi(arch):
            return release
    return None


def fetch_latest_lts(index_url: str, arch: str | None = None) -> NodeRelease | None:
    """Return the latest LTS release, or None if the index cannot be read."""
    try:
        index = fetch_release_index(index_url)
    except NETWORK_ERRORS + (ValueError,) as e:
        logger.warning("Could not read Node.js release index %s: %s", index_url, e)
        return None
    return latest_lts(index, arch or node_arch())


@network_retry()
def download_installer(url: str, dest_dir: Path) -> Path:
    """Download ``url`` into ``dest_dir`` and return the file path.

    Writes to a ``.part`` file first so an interrupted download never looks
    complete.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / url.rsplit("/", 1)[-1]
    partial = target.with_name(target.name + ".part")

    logger.info("Downloading %s", url)
    with urllib.request.urlopen(url, timeout=60) as response, open(partial, "wb") as out:
        shutil.copyfileobj(response, out)
    partial.replace(target)
    return target


def run_msi_installer(msi_path: Path, log_path: Path | None = None) -> int:
    """Run an MSI silently and wait for it; returns msiexec's exit code."""
    cmd = ["msiexec", "/i", str(msi_path), "/qn", "/norestart"]
    if log_path is not None:
        cmd += ["/l*v", str(log_path)]

    logger.info("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, check=False)
    except OSError as e:
        logger.warning("Could not start msiexec: %s", e)
        return -1
    return result.returncode

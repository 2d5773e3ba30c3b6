"""Read package.json manifests and locate workspace roots on disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"
PNPM_WORKSPACE = "pnpm-workspace.yaml"
LERNA_JSON = "lerna.json"
RUSH_JSON = "rush.json"

DEFAULT_WORKSPACE_TOOL = "npm run"

# Lock/config file -> script runner, checked in order.
_TOOL_MARKERS = (
    (PNPM_WORKSPACE, "pnpm"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    (RUSH_JSON, "rushx"),
    (LERNA_JSON, "lerna run"),
    ("package-lock.json", "npm run"),
)

_LERNA_DEFAULT_PACKAGES = ["packages/*"]


class ManifestError(Exception):
    """A manifest exists but cannot be read or is not a JSON object."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def read_manifest(path: Path) -> dict[str, Any]:
    """
    Parse a package.json file.

    Raises:
        ManifestError: if the file cannot be read, is not valid JSON, or its
            top level is not an object.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ManifestError(path, e.strerror or str(e)) from e
    except json.JSONDecodeError as e:
        raise ManifestError(path, f"invalid JSON ({e.msg} at line {e.lineno})") from e
    if not isinstance(data, dict):
        raise ManifestError(path, "top level is not an object")
    return data


def _read_json_or_none(path: Path) -> dict[str, Any] | None:
    """Read an optional JSON config file; None if missing."""
    if not path.is_file():
        return None
    return read_manifest(path)


def _start_dir(start: Path) -> Path:
    start = Path(start).resolve()
    return start if start.is_dir() else start.parent


def nearest_manifest_file(start: Path) -> Path | None:
    """
    Return the closest package.json at or above *start*.

    *start* may be a file (the search begins in its directory) or a directory.
    Returns None when no ancestor holds a package.json.
    """
    current = _start_dir(start)
    for directory in (current, *current.parents):
        candidate = directory / PACKAGE_JSON
        if candidate.is_file():
            return candidate
    return None


def _declares_workspace(directory: Path) -> bool:
    if (directory / PNPM_WORKSPACE).is_file():
        return True
    if (directory / LERNA_JSON).is_file() or (directory / RUSH_JSON).is_file():
        return True
    manifest = directory / PACKAGE_JSON
    if not manifest.is_file():
        return False
    try:
        data = read_manifest(manifest)
    except ManifestError as e:
        logger.debug("Ignoring unreadable manifest while looking for root: %s", e)
        return False
    return bool(_package_json_globs(data))


def find_workspace_root(path: Path) -> Path | None:
    """
    Return the nearest ancestor directory that declares a workspace.

    A directory declares a workspace when it has a package.json with a
    ``workspaces`` field, a pnpm-workspace.yaml, a lerna.json or a rush.json.
    """
    current = _start_dir(path)
    for directory in (current, *current.parents):
        if _declares_workspace(directory):
            return directory
    return None


def _package_json_globs(data: dict[str, Any]) -> list[str]:
    workspaces = data.get("workspaces")
    if isinstance(workspaces, dict):
        # yarn classic: {"packages": [...], "nohoist": [...]}
        workspaces = workspaces.get("packages")
    if isinstance(workspaces, list):
        return [w for w in workspaces if isinstance(w, str)]
    return []


def _pnpm_globs(root: Path) -> list[str] | None:
    path = root / PNPM_WORKSPACE
    if not path.is_file():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(path, str(e)) from e
    packages = data.get("packages") if isinstance(data, dict) else None
    if not isinstance(packages, list):
        return []
    return [p for p in packages if isinstance(p, str)]


def workspace_globs(root: Path) -> list[str]:
    """
    Return the member glob patterns a workspace root declares.

    Precedence: pnpm-workspace.yaml, package.json ``workspaces``, lerna.json
    ``packages``. Patterns starting with ``!`` are exclusions.
    """
    root = Path(root)
    pnpm = _pnpm_globs(root)
    if pnpm:
        return pnpm

    manifest = root / PACKAGE_JSON
    if manifest.is_file():
        globs = _package_json_globs(read_manifest(manifest))
        if globs:
            return globs

    lerna = _read_json_or_none(root / LERNA_JSON)
    if lerna is not None:
        packages = lerna.get("packages")
        if isinstance(packages, list) and packages:
            return [p for p in packages if isinstance(p, str)]
        return list(_LERNA_DEFAULT_PACKAGES)

    rush = _read_json_or_none(root / RUSH_JSON)
    if rush is not None:
        projects = rush.get("projects") or []
        return [
            p["projectFolder"]
            for p in projects
            if isinstance(p, dict) and isinstance(p.get("projectFolder"), str)
        ]
    return []


def detect_workspace_tool(root: Path) -> str | None:
    """Return the script-runner command for the workspace at *root*, if detectable."""
    root = Path(root)
    for marker, tool in _TOOL_MARKERS:
        if (root / marker).exists():
            return tool
    return None


def resolve_workspace_tool(root: Path, override: str | None = None) -> str:
    """Configured override, else the detected tool, else ``npm run``."""
    if override and override.strip():
        return override.strip()
    return detect_workspace_tool(root) or DEFAULT_WORKSPACE_TOOL

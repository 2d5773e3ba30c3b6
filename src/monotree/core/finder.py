"""Discover the member packages of a JavaScript monorepo workspace."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from monotree.core.manifest import (
    PACKAGE_JSON,
    ManifestError,
    find_workspace_root,
    read_manifest,
    resolve_workspace_tool,
    workspace_globs,
)

logger = logging.getLogger(__name__)

_SKIP_DIRS = frozenset({"node_modules", ".git"})


def _string_map(value: Any) -> dict[str, str]:
    """Keep only string -> string entries of a manifest mapping, in order."""
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items() if isinstance(k, str)}


@dataclass(frozen=True)
class Package:
    """One workspace member, as read from its package.json."""

    name: str
    version: str
    path: Path  # absolute path to package.json
    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    optional_dependencies: Mapping[str, str] = field(default_factory=dict)
    peer_dependencies: Mapping[str, str] = field(default_factory=dict)
    scripts: Mapping[str, str] = field(default_factory=dict)
    private: bool = False
    tool: str = ""

    @property
    def directory(self) -> Path:
        return self.path.parent

    def declared_dependencies(
        self,
        *,
        include_dev: bool = True,
        include_peer: bool = False,
    ) -> dict[str, str]:
        """
        Merge the dependency fields used for graph building.

        Order is dependencies, optionalDependencies, devDependencies, then
        peerDependencies; a name keeps the position and range of its first
        occurrence.
        """
        sections = [self.dependencies, self.optional_dependencies]
        if include_dev:
            sections.append(self.dev_dependencies)
        if include_peer:
            sections.append(self.peer_dependencies)
        merged: dict[str, str] = {}
        for section in sections:
            for name, spec in section.items():
                merged.setdefault(name, spec)
        return merged

    def script_command(self, script: str) -> str:
        """Command line that runs *script* with the workspace tool."""
        return f"{self.tool} {script}".strip()

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dict."""
        return {
            "name": self.name,
            "version": self.version,
            "path": str(self.path),
            "dependencies": dict(self.dependencies),
            "devDependencies": dict(self.dev_dependencies),
            "optionalDependencies": dict(self.optional_dependencies),
            "peerDependencies": dict(self.peer_dependencies),
            "scripts": dict(self.scripts),
            "private": self.private,
            "tool": self.tool,
        }


def package_from_manifest(path: Path, data: dict[str, Any], tool: str = "") -> Package | None:
    """Build a Package from parsed package.json data; None if it has no name."""
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    version = data.get("version")
    return Package(
        name=name.strip(),
        version=version if isinstance(version, str) else "",
        path=Path(path).resolve(),
        dependencies=_string_map(data.get("dependencies")),
        dev_dependencies=_string_map(data.get("devDependencies")),
        optional_dependencies=_string_map(data.get("optionalDependencies")),
        peer_dependencies=_string_map(data.get("peerDependencies")),
        scripts=_string_map(data.get("scripts")),
        private=bool(data.get("private", False)),
        tool=tool,
    )


def _normalize_glob(pattern: str) -> str:
    pattern = pattern.strip()
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern.rstrip("/")


def _expand_glob(root: Path, pattern: str) -> list[Path]:
    """Directories under *root* matching *pattern*, sorted; node_modules skipped."""
    pattern = _normalize_glob(pattern)
    if not pattern or pattern == ".":
        return []
    if Path(pattern).is_absolute():
        logger.warning("Ignoring absolute workspace pattern: %s", pattern)
        return []
    matches = []
    for candidate in root.glob(pattern):
        if not candidate.is_dir():
            continue
        rel_parts = candidate.relative_to(root).parts
        if any(part in _SKIP_DIRS for part in rel_parts):
            continue
        matches.append(candidate)
    return sorted(matches)


def _member_directories(root: Path, globs: list[str]) -> list[Path]:
    """Expand include/exclude globs in declaration order, without duplicates."""
    excluded: set[Path] = set()
    for pattern in globs:
        if pattern.startswith("!"):
            excluded.update(p.resolve() for p in _expand_glob(root, pattern[1:]))

    seen: set[Path] = set()
    members: list[Path] = []
    for pattern in globs:
        if pattern.startswith("!"):
            continue
        for directory in _expand_glob(root, pattern):
            resolved = directory.resolve()
            if resolved in seen or resolved in excluded or resolved == root:
                continue
            seen.add(resolved)
            members.append(resolved)
    return members


def enumerate_workspace_packages(root: Path, *, tool: str | None = None) -> list[Package]:
    """
    List the member packages of the workspace at *root* in discovery order.

    Args:
        root: Workspace root directory.
        tool: Workspace-tool command to attach to each package. Detected from
            the root when None.

    Returns:
        Packages in glob declaration order (sorted within one glob). Empty if
        the root has no package.json.

    Raises:
        ManifestError: if a member's package.json exists but cannot be parsed.
    """
    root = Path(root).resolve()
    if not (root / PACKAGE_JSON).is_file():
        logger.warning("No %s at workspace root %s", PACKAGE_JSON, root)
        return []
    if tool is None:
        tool = resolve_workspace_tool(root)

    packages: list[Package] = []
    names: set[str] = set()
    for directory in _member_directories(root, workspace_globs(root)):
        manifest = directory / PACKAGE_JSON
        if not manifest.is_file():
            continue
        pkg = package_from_manifest(manifest, read_manifest(manifest), tool)
        if pkg is None:
            logger.warning("Skipping %s: manifest has no name", manifest)
            continue
        if pkg.name in names:
            logger.warning("Duplicate package name %r at %s; keeping the first", pkg.name, manifest)
            continue
        names.add(pkg.name)
        packages.append(pkg)
    logger.debug("Discovered %d packages under %s", len(packages), root)
    return packages


@dataclass
class WorkspaceInfo:
    """A workspace root found by scan_for_workspaces."""

    path: Path
    tool: str
    packages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize to dict for JSON output."""
        return {
            "path": str(self.path),
            "tool": self.tool,
            "packages": self.packages,
        }


def scan_for_workspaces(
    roots: list[Path] | None = None,
    *,
    max_depth: int = 3,
) -> list[WorkspaceInfo]:
    """
    Find workspace roots at or below the given directories.

    Args:
        roots: Directories to scan. Defaults to the current directory.
        max_depth: How deep to recurse below each root.

    Returns:
        One WorkspaceInfo per workspace root, in scan order. A workspace is not
        searched for nested workspaces.
    """
    if roots is None:
        roots = [Path.cwd()]

    workspaces: list[WorkspaceInfo] = []
    seen: set[Path] = set()

    def _scan_dir(p: Path, depth: int) -> None:
        if depth > max_depth or p in seen:
            return
        seen.add(p)
        if find_workspace_root(p) == p:
            info = WorkspaceInfo(path=p, tool=resolve_workspace_tool(p))
            try:
                info.packages = [pkg.name for pkg in enumerate_workspace_packages(p, tool=info.tool)]
            except ManifestError as e:
                logger.warning("Cannot list packages of %s: %s", p, e)
            workspaces.append(info)
            return  # Don't recurse into a workspace
        try:
            children = sorted(p.iterdir())
        except PermissionError:
            return
        for child in children:
            if child.is_dir() and not child.name.startswith(".") and child.name not in _SKIP_DIRS:
                _scan_dir(child, depth + 1)

    for root in roots:
        root_path = Path(root).resolve()
        if root_path.is_dir():
            _scan_dir(root_path, 0)
    return workspaces

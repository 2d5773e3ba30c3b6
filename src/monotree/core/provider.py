"""Serve the workspace dependency tree to views and track the active package."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Sequence

from monotree.config import Settings
from monotree.core.events import Signal
from monotree.core.finder import Package, enumerate_workspace_packages, package_from_manifest
from monotree.core.manifest import (
    PACKAGE_JSON,
    find_workspace_root,
    nearest_manifest_file,
    read_manifest,
    resolve_workspace_tool,
)
from monotree.core.resolver import DependencyGraph, dependents, resolve_dependencies
from monotree.core.tree import DependencyTree, TreeNode

logger = logging.getLogger(__name__)

LOADING_TEXT = "Workspace: Loading..."
TITLE_TEXT = "Dependency Graph"


@dataclass(frozen=True)
class Snapshot:
    """Everything produced by one load. Replaced as a whole, never patched."""

    root_path: Path
    root_package: Package
    tool: str
    packages: tuple[Package, ...]
    graph: DependencyGraph
    tree: DependencyTree

    @property
    def name(self) -> str:
        return self.root_package.name

    @property
    def package_count(self) -> int:
        return len(self.tree)

    @cached_property
    def dependents(self) -> dict[str, tuple[str, ...]]:
        return dependents(self.graph)


def read_root_package(root: Path, tool: str) -> Package:
    """Package for the workspace root manifest; named after the directory if unnamed."""
    manifest = root / PACKAGE_JSON
    if manifest.is_file():
        pkg = package_from_manifest(manifest, read_manifest(manifest), tool)
        if pkg is not None:
            return pkg
    return Package(name=root.name, version="", path=manifest, tool=tool)


class DependencyTreeProvider:
    """
    Load a workspace into a DependencyTree and answer view queries.

    Loads build a fresh Snapshot and swap it in under a lock, so the last load
    to complete wins and readers never see a partly built tree. A load that
    raises leaves the previous snapshot in place.

    Signals:
        on_tree_changed: emitted with no arguments after refresh() and after
            locate() moves to another workspace root.
        on_circular_dependency: emitted with a CircularDependency when a child
            query walks back onto the expansion path.
    """

    def __init__(
        self,
        workspace_root: Path | str | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._workspace_root = Path(workspace_root).resolve() if workspace_root else None
        self.settings = settings if settings is not None else Settings.from_env()
        self._snapshot: Snapshot | None = None
        self._stale = True
        self._generation = 0  # bumped by refresh() and clear()
        self._active: TreeNode | None = None
        self._lock = threading.Lock()
        self.on_tree_changed = Signal()
        self.on_circular_dependency = Signal()

    @property
    def workspace_root(self) -> Path | None:
        return self._workspace_root

    @property
    def snapshot(self) -> Snapshot | None:
        """Last successful load, or None before the first one."""
        return self._snapshot

    @property
    def is_stale(self) -> bool:
        """True before the first load and after refresh(), until the next load."""
        return self._snapshot is None or self._stale

    @property
    def active_node(self) -> TreeNode | None:
        return self._active

    @property
    def workspace_tool(self) -> str | None:
        return self._snapshot.tool if self._snapshot else None

    def build_snapshot(self, root: Path) -> Snapshot:
        """Enumerate, resolve and materialize *root* without touching provider state."""
        tool = resolve_workspace_tool(root, self.settings.workspace_tool_override)
        packages = enumerate_workspace_packages(root, tool=tool)
        graph = resolve_dependencies(
            packages,
            include_dev=self.settings.include_dev,
            include_peer=self.settings.include_peer,
        )
        tree = DependencyTree.build(
            read_root_package(root, tool),
            graph,
            packages,
            on_circular_dependency=self.on_circular_dependency,
        )
        return Snapshot(
            root_path=root,
            root_package=tree.root.package,
            tool=tool,
            packages=tuple(packages),
            graph=graph,
            tree=tree,
        )

    def load(self, root: Path | str | None = None) -> Snapshot:
        """
        Load *root* (default: the current workspace root) and make it current.

        Raises:
            ValueError: if no root is given and none is set.
            ManifestError: if a manifest cannot be parsed; state is unchanged.
        """
        target = Path(root).resolve() if root is not None else self._workspace_root
        if target is None:
            raise ValueError("No workspace root to load")
        with self._lock:
            generation = self._generation
        logger.debug("Loading workspace %s", target)
        snapshot = self.build_snapshot(target)
        with self._lock:
            self._snapshot = snapshot
            self._workspace_root = target
            # A refresh() during the build keeps the tree stale.
            self._stale = self._generation != generation
            if self._active is not None:
                name = self._active.name
                self._active = snapshot.tree.node(name) if name in snapshot.tree else None
        logger.debug(
            "Loaded %s: %d packages, tool %r", snapshot.name, snapshot.package_count, snapshot.tool
        )
        return snapshot

    def _current(self) -> Snapshot | None:
        """Current snapshot, loading first if never loaded or invalidated."""
        if self._workspace_root is not None and self.is_stale:
            return self.load()
        return self._snapshot

    def get_roots(self) -> list[TreeNode]:
        """The workspace RootNode, or nothing when no packages were discovered."""
        snapshot = self._current()
        if snapshot is None or not len(snapshot.tree):
            return []
        return [snapshot.tree.root]

    def get_children(
        self,
        node: TreeNode | None = None,
        ancestors: Sequence[str] = (),
    ) -> list[TreeNode]:
        """
        Children of *node* in the current load; the roots when *node* is None.

        *ancestors* are the package names above *node* on the expansion path
        (not including the workspace root) and drive circular dependency
        notices.
        """
        if node is None:
            return self.get_roots()
        snapshot = self._current()
        if snapshot is None:
            return []
        if node.is_root:
            node = snapshot.tree.root
        return snapshot.tree.children(node, ancestors)

    def get_first(self) -> TreeNode | None:
        """First package node in enumeration order."""
        snapshot = self._current()
        if snapshot is None:
            return None
        return next(iter(snapshot.tree.index.values()), None)

    def dependents_of(self, name: str) -> tuple[str, ...]:
        """Workspace packages that depend on *name* in the current load."""
        snapshot = self._current()
        if snapshot is None:
            return ()
        return snapshot.dependents.get(name, ())

    def refresh(self) -> None:
        """Invalidate the tree; the next query reloads from disk."""
        with self._lock:
            self._generation += 1
            self._stale = True
        self.on_tree_changed.emit()

    def clear(self) -> None:
        """Drop the loaded tree and active package (workspace closed)."""
        with self._lock:
            self._snapshot = None
            self._active = None
            self._generation += 1
            self._stale = True

    def locate(self, file_path: Path | str) -> TreeNode | None:
        """
        Map *file_path* to its package node, switching workspaces if needed.

        Returns None, leaving state untouched, when the file has no owning
        package.json, the manifest has no name, or no workspace root encloses
        it. Returns None with the active package cleared when the package is
        not part of the loaded tree.
        """
        manifest = nearest_manifest_file(Path(file_path))
        if manifest is None:
            return None
        name = read_manifest(manifest).get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        root = find_workspace_root(manifest.parent)
        if root is None:
            return None

        changed = root != self._workspace_root
        if changed:
            snapshot = self.load(root)
        else:
            snapshot = self._current()
        tree = snapshot.tree
        name = name.strip()
        node = tree.node(name) if name in tree else None
        with self._lock:
            self._active = node
        if changed:
            logger.debug("Workspace root changed to %s", root)
            self.on_tree_changed.emit()
        return node

    set_active_file = locate

    def status_summary(self) -> str:
        snapshot = self._snapshot
        if snapshot is None:
            return LOADING_TEXT
        return f"Workspace: {snapshot.name}, {snapshot.package_count} packages"

    def title_text(self) -> str:
        return TITLE_TEXT if self._snapshot is not None else LOADING_TEXT

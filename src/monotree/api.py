"""Public API: use monotree from Python or from other tools."""

from __future__ import annotations

from pathlib import Path

from monotree.config import Settings
from monotree.core.finder import Package, WorkspaceInfo, scan_for_workspaces
from monotree.core.manifest import find_workspace_root
from monotree.core.provider import DependencyTreeProvider, Snapshot
from monotree.core.resolver import DependencyGraph
from monotree.core.tree import TreeNode


def workspace_root_or_cwd(root: Path | str | None) -> Path:
    """Explicit root, else the workspace enclosing the current directory."""
    if root is not None:
        return Path(root).resolve()
    found = find_workspace_root(Path.cwd())
    return found if found is not None else Path.cwd().resolve()


def load_workspace(
    root: Path | str | None = None,
    *,
    settings: Settings | None = None,
) -> DependencyTreeProvider:
    """
    Create a provider for a workspace and load it.

    Args:
        root: Workspace root directory. Defaults to the workspace enclosing the
            current directory.
        settings: Load options; read from the environment when None.

    Returns:
        A loaded DependencyTreeProvider.
    """
    provider = DependencyTreeProvider(workspace_root_or_cwd(root), settings=settings)
    provider.load()
    return provider


def build_graph(
    root: Path | str | None = None,
    *,
    settings: Settings | None = None,
) -> DependencyGraph:
    """Return the in-workspace dependency graph (name -> dependency names)."""
    return load_workspace(root, settings=settings).snapshot.graph


def get_package_info(
    name: str,
    root: Path | str | None = None,
    *,
    settings: Settings | None = None,
) -> Package | None:
    """Return the workspace package called *name*, or None if the workspace has none."""
    snapshot: Snapshot = load_workspace(root, settings=settings).snapshot
    tree = snapshot.tree
    return tree.node(name).package if name in tree else None


def locate_package(
    file_path: Path | str,
    *,
    settings: Settings | None = None,
) -> TreeNode | None:
    """Return the tree node of the workspace package that owns *file_path*."""
    provider = DependencyTreeProvider(settings=settings)
    return provider.locate(file_path)


def scan_workspaces(
    roots: list[Path] | None = None,
    *,
    max_depth: int = 3,
) -> list[WorkspaceInfo]:
    """
    Find monorepo workspace roots at or below *roots*.

    Args:
        roots: Directories to start scanning from. Defaults to the current directory.
        max_depth: How deep to recurse below each root.

    Returns:
        List of WorkspaceInfo for each discovered workspace.
    """
    return scan_for_workspaces(roots=roots, max_depth=max_depth)

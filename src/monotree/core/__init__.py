"""Core library: workspace discovery, dependency resolution, lazy dependency tree."""

from monotree.core.events import Signal
from monotree.core.finder import (
    Package,
    WorkspaceInfo,
    enumerate_workspace_packages,
    scan_for_workspaces,
)
from monotree.core.manifest import (
    ManifestError,
    detect_workspace_tool,
    find_workspace_root,
    nearest_manifest_file,
    read_manifest,
)
from monotree.core.provider import DependencyTreeProvider, Snapshot
from monotree.core.resolver import (
    DependencyGraph,
    external_dependencies,
    find_cycles,
    resolve_dependencies,
)
from monotree.core.tree import (
    CircularDependency,
    DependencyTree,
    RootNode,
    TreeNode,
    materialize,
)

__all__ = [
    "Signal",
    "Package",
    "WorkspaceInfo",
    "enumerate_workspace_packages",
    "scan_for_workspaces",
    "ManifestError",
    "detect_workspace_tool",
    "find_workspace_root",
    "nearest_manifest_file",
    "read_manifest",
    "DependencyTreeProvider",
    "Snapshot",
    "DependencyGraph",
    "external_dependencies",
    "find_cycles",
    "resolve_dependencies",
    "CircularDependency",
    "DependencyTree",
    "RootNode",
    "TreeNode",
    "materialize",
]

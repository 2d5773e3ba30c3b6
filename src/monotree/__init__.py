"""monotree: browse the package dependency graph of a JavaScript monorepo (library, TUI, CLI)."""

from importlib.metadata import version, PackageNotFoundError

from monotree.api import (
    build_graph,
    get_package_info,
    load_workspace,
    locate_package,
    scan_workspaces,
    workspace_root_or_cwd,
)
from monotree.config import Settings
from monotree.core.finder import Package, WorkspaceInfo
from monotree.core.provider import DependencyTreeProvider

__all__ = [
    "build_graph",
    "get_package_info",
    "load_workspace",
    "locate_package",
    "scan_workspaces",
    "workspace_root_or_cwd",
    "DependencyTreeProvider",
    "Package",
    "Settings",
    "WorkspaceInfo",
    "__version__",
]

try:
    __version__ = version("monotree")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package

"""Wrap a dependency graph into tree nodes whose children are resolved on demand."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, Iterable, Sequence

from monotree.core.events import Signal
from monotree.core.finder import Package
from monotree.core.resolver import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TreeNode:
    """
    One workspace package in the tree.

    Edges are kept as package names; they are turned into nodes only when
    children are requested, through the owning DependencyTree's index.
    Nodes compare by identity, which is stable within one load.
    """

    package: Package
    dependencies: tuple[str, ...] = ()

    is_root: ClassVar[bool] = False

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def version(self) -> str:
        return self.package.version

    @property
    def path(self) -> str:
        return str(self.package.path)

    @property
    def expandable(self) -> bool:
        """True when the node has children to show (collapsed), False for a leaf."""
        return bool(self.dependencies)

    @property
    def label(self) -> str:
        return self.name

    @property
    def description(self) -> str:
        return self.version

    @property
    def tooltip(self) -> str:
        return self.path

    def to_dict(self) -> dict:
        """Serialize node (without expanding children) to a JSON-friendly dict."""
        return {
            "name": self.name,
            "version": self.version,
            "path": self.path,
            "root": self.is_root,
            "dependencies": list(self.dependencies),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, dependencies={self.dependencies!r})"


@dataclass(eq=False, repr=False)
class RootNode(TreeNode):
    """Synthetic node for the whole workspace; its children are all member packages."""

    is_root: ClassVar[bool] = True

    @property
    def package_count(self) -> int:
        return len(self.dependencies)

    @property
    def description(self) -> str:
        return f"{self.package_count} packages"


# name -> node, in workspace enumeration order
NodeIndex = dict[str, TreeNode]


@dataclass(frozen=True)
class CircularDependency:
    """Notice that expanding *parent* reaches *child*, which is already on the path."""

    parent: str
    child: str

    @property
    def message(self) -> str:
        return f"Circular dependency: {self.parent} -> {self.child}"


def materialize(
    root: Package,
    graph: DependencyGraph,
    packages: Iterable[Package],
) -> tuple[RootNode, NodeIndex]:
    """
    Create one TreeNode per package plus the workspace RootNode.

    Args:
        root: Package read from the workspace root manifest.
        graph: Dependency graph of *packages*.
        packages: Workspace packages in enumeration order.

    Returns:
        (RootNode, NodeIndex); the index keeps the order of *packages*.
    """
    index: NodeIndex = {}
    for pkg in packages:
        index[pkg.name] = TreeNode(package=pkg, dependencies=tuple(graph.get(pkg.name, ())))
    root_node = RootNode(package=root, dependencies=tuple(index))
    return root_node, index


class DependencyTree:
    """A materialized workspace: root node, node index and child queries."""

    def __init__(
        self,
        root: RootNode,
        index: NodeIndex,
        *,
        on_circular_dependency: Signal | None = None,
    ) -> None:
        self.root = root
        self.index = index
        self.on_circular_dependency = (
            on_circular_dependency if on_circular_dependency is not None else Signal()
        )

    @classmethod
    def build(
        cls,
        root: Package,
        graph: DependencyGraph,
        packages: Iterable[Package],
        *,
        on_circular_dependency: Signal | None = None,
    ) -> DependencyTree:
        root_node, index = materialize(root, graph, packages)
        return cls(root_node, index, on_circular_dependency=on_circular_dependency)

    def __len__(self) -> int:
        return len(self.index)

    def __contains__(self, name: object) -> bool:
        return name in self.index

    def node(self, name: str) -> TreeNode:
        """Return the node for *name*; raises KeyError if it is not in this load."""
        return self.index[name]

    def children(self, node: TreeNode, ancestors: Sequence[str] = ()) -> list[TreeNode]:
        """
        Resolve the children of *node*.

        The root yields every package node in enumeration order. Any other node
        yields its dependencies that are present in the index; names missing
        from the index are skipped. A child that is *node* itself or one of
        *ancestors* (names from the top of the expansion path down to, not
        including, *node*) triggers a CircularDependency notice; the child is
        still returned.
        """
        if node.is_root:
            return list(self.index.values())
        if not node.dependencies:
            return []

        on_path = set(ancestors)
        on_path.add(node.name)
        result: list[TreeNode] = []
        for name in node.dependencies:
            child = self.index.get(name)
            if child is None:
                continue
            if name in on_path:
                notice = CircularDependency(parent=node.name, child=name)
                logger.info(notice.message)
                self.on_circular_dependency.emit(notice)
            result.append(child)
        return result

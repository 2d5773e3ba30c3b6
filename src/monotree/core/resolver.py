"""Resolve declared dependencies to edges between workspace packages."""

from __future__ import annotations

from typing import Iterable

from monotree.core.finder import Package

# name -> names of the workspace packages it depends on, in declaration order.
DependencyGraph = dict[str, tuple[str, ...]]


def resolve_dependencies(
    packages: Iterable[Package],
    *,
    include_dev: bool = True,
    include_peer: bool = False,
) -> DependencyGraph:
    """
    Compute the in-workspace dependency graph of a package set.

    A declared dependency becomes an edge when its name is another package of
    the same workspace. Two policies apply:

    - Workspace packages shadow registry packages: a declared name that
      matches a workspace package always resolves to that package.
    - Version ranges are not checked. A range the workspace version does not
      satisfy (or a ``workspace:`` protocol range) still produces the edge.

    Self-references are dropped. Every package is a key of the result, mapped
    to an empty tuple when it has no in-workspace dependencies.

    Args:
        packages: Packages of one workspace load.
        include_dev: Follow devDependencies.
        include_peer: Follow peerDependencies.

    Returns:
        The dependency graph, keyed in the iteration order of *packages*.
    """
    by_name = {pkg.name: pkg for pkg in packages}
    graph: DependencyGraph = {}
    for name, pkg in by_name.items():
        declared = pkg.declared_dependencies(include_dev=include_dev, include_peer=include_peer)
        graph[name] = tuple(dep for dep in declared if dep in by_name and dep != name)
    return graph


def external_dependencies(
    packages: Iterable[Package],
    *,
    include_dev: bool = True,
    include_peer: bool = False,
) -> dict[str, list[str]]:
    """Declared dependencies of each package that are not workspace packages (sorted)."""
    packages = list(packages)
    names = {pkg.name for pkg in packages}
    return {
        pkg.name: sorted(
            dep
            for dep in pkg.declared_dependencies(include_dev=include_dev, include_peer=include_peer)
            if dep not in names
        )
        for pkg in packages
    }


def dependents(graph: DependencyGraph) -> dict[str, tuple[str, ...]]:
    """Reverse adjacency: name -> packages that depend on it."""
    reverse: dict[str, list[str]] = {name: [] for name in graph}
    for name, deps in graph.items():
        for dep in deps:
            reverse.setdefault(dep, []).append(name)
    return {name: tuple(users) for name, users in reverse.items()}


def find_cycles(graph: DependencyGraph) -> list[list[str]]:
    """
    List dependency cycles, one per back edge found by depth-first search.

    Each cycle is reported once, rotated so its smallest name comes first, and
    closed (first name repeated at the end). This walks the whole graph; the
    tree view does not call it.
    """
    cycles: list[list[str]] = []
    seen: set[tuple[str, ...]] = set()
    done: set[str] = set()

    def _visit(name: str, stack: list[str], on_stack: set[str]) -> None:
        stack.append(name)
        on_stack.add(name)
        for dep in graph.get(name, ()):
            if dep in on_stack:
                cycle = stack[stack.index(dep):]
                pivot = cycle.index(min(cycle))
                key = tuple(cycle[pivot:] + cycle[:pivot])
                if key not in seen:
                    seen.add(key)
                    cycles.append([*key, key[0]])
            elif dep not in done:
                _visit(dep, stack, on_stack)
        stack.pop()
        on_stack.discard(name)
        done.add(name)

    for name in graph:
        if name not in done:
            _visit(name, [], set())
    return cycles

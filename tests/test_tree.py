"""Tests for monotree.core.tree module."""

from __future__ import annotations

from pathlib import Path

import pytest

from monotree.core.events import Signal
from monotree.core.finder import Package
from monotree.core.resolver import resolve_dependencies
from monotree.core.tree import (
    CircularDependency,
    DependencyTree,
    RootNode,
    TreeNode,
    materialize,
)


def _pkg(name: str, *deps: str) -> Package:
    return Package(
        name=name,
        version="1.0.0",
        path=Path(f"/repo/packages/{name}/package.json"),
        dependencies={d: "*" for d in deps},
    )


ROOT = Package(name="repo", version="0.0.0", path=Path("/repo/package.json"))


def _tree(*packages: Package) -> DependencyTree:
    return DependencyTree.build(ROOT, resolve_dependencies(packages), packages)


def _example() -> DependencyTree:
    return _tree(
        _pkg("app", "lib-a"),
        _pkg("lib-a", "lib-b", "left-pad"),
        _pkg("lib-b"),
    )


class TestTreeNode:
    """Tests for TreeNode and RootNode."""

    def test_fields(self) -> None:
        node = TreeNode(package=_pkg("app"), dependencies=("lib",))
        assert node.name == "app"
        assert node.version == "1.0.0"
        assert node.path == "/repo/packages/app/package.json"
        assert node.label == "app"
        assert node.description == "1.0.0"
        assert node.tooltip == node.path
        assert node.is_root is False

    def test_expandable_follows_dependencies(self) -> None:
        assert TreeNode(package=_pkg("a"), dependencies=("b",)).expandable is True
        assert TreeNode(package=_pkg("a")).expandable is False

    def test_identity_equality(self) -> None:
        pkg = _pkg("a")
        assert TreeNode(package=pkg) != TreeNode(package=pkg)

    def test_to_dict(self) -> None:
        node = TreeNode(package=_pkg("app"), dependencies=("lib",))
        assert node.to_dict() == {
            "name": "app",
            "version": "1.0.0",
            "path": "/repo/packages/app/package.json",
            "root": False,
            "dependencies": ["lib"],
        }

    def test_root_node(self) -> None:
        root = RootNode(package=ROOT, dependencies=("a", "b", "c"))
        assert root.is_root is True
        assert root.package_count == 3
        assert root.description == "3 packages"
        assert root.name == "repo"
        assert root.expandable is True


class TestMaterialize:
    """Tests for materialize."""

    def test_index_and_root(self) -> None:
        packages = [_pkg("app", "lib-a"), _pkg("lib-a", "lib-b"), _pkg("lib-b")]
        graph = resolve_dependencies(packages)
        root, index = materialize(ROOT, graph, packages)
        assert list(index) == ["app", "lib-a", "lib-b"]
        assert root.dependencies == ("app", "lib-a", "lib-b")
        assert root.description == "3 packages"
        assert index["app"].dependencies == ("lib-a",)
        assert index["app"].expandable is True
        assert index["lib-b"].expandable is False

    def test_missing_graph_key_defaults_to_leaf(self) -> None:
        packages = [_pkg("app")]
        _root, index = materialize(ROOT, {}, packages)
        assert index["app"].dependencies == ()


class TestChildren:
    """Tests for DependencyTree.children."""

    def test_root_children_in_enumeration_order(self) -> None:
        tree = _tree(_pkg("zeta"), _pkg("alpha"), _pkg("mid"))
        assert [n.name for n in tree.children(tree.root)] == ["zeta", "alpha", "mid"]

    def test_root_children_include_packages_with_dependents(self) -> None:
        tree = _example()
        assert [n.name for n in tree.children(tree.root)] == ["app", "lib-a", "lib-b"]
        assert len(tree.children(tree.root)) == tree.root.package_count

    def test_package_children(self) -> None:
        tree = _example()
        app = tree.node("app")
        assert tree.children(app) == [tree.node("lib-a")]

    def test_leaf(self) -> None:
        tree = _example()
        assert tree.children(tree.node("lib-b")) == []

    def test_node_identity_stable(self) -> None:
        tree = _example()
        first = tree.children(tree.node("app"))[0]
        again = tree.children(tree.root)[1]
        assert first is again

    def test_missing_dependency_omitted(self) -> None:
        tree = _example()
        stale = TreeNode(package=_pkg("app"), dependencies=("removed", "lib-a"))
        assert [n.name for n in tree.children(stale)] == ["lib-a"]

    def test_node_lookup_fails_loudly(self) -> None:
        tree = _example()
        with pytest.raises(KeyError):
            tree.node("left-pad")

    def test_contains_and_len(self) -> None:
        tree = _example()
        assert "app" in tree
        assert "left-pad" not in tree
        assert len(tree) == 3


class TestCircularDependency:
    """Cycle notices raised while expanding."""

    def _collect(self, tree: DependencyTree) -> list[CircularDependency]:
        notices: list[CircularDependency] = []
        tree.on_circular_dependency.connect(notices.append)
        return notices

    def test_two_cycle(self) -> None:
        tree = _tree(_pkg("a", "b"), _pkg("b", "a"))
        notices = self._collect(tree)

        a_children = tree.children(tree.node("a"))
        assert [n.name for n in a_children] == ["b"]
        assert notices == []

        b_children = tree.children(a_children[0], ancestors=["a"])
        assert [n.name for n in b_children] == ["a"]
        assert notices == [CircularDependency(parent="b", child="a")]

    def test_expanding_from_other_side(self) -> None:
        tree = _tree(_pkg("a", "b"), _pkg("b", "a"))
        notices = self._collect(tree)
        tree.children(tree.node("b"))
        tree.children(tree.node("a"), ancestors=("b",))
        assert notices == [CircularDependency(parent="a", child="b")]

    def test_one_notice_per_expansion(self) -> None:
        tree = _tree(_pkg("a", "b"), _pkg("b", "a"))
        notices = self._collect(tree)
        b = tree.node("b")
        tree.children(b, ancestors=("a",))
        tree.children(b, ancestors=("a",))
        assert len(notices) == 2

    def test_transitive_cycle(self) -> None:
        tree = _tree(_pkg("a", "b"), _pkg("b", "c"), _pkg("c", "a"))
        notices = self._collect(tree)
        tree.children(tree.node("a"))
        tree.children(tree.node("b"), ancestors=("a",))
        assert notices == []
        children = tree.children(tree.node("c"), ancestors=("a", "b"))
        assert [n.name for n in children] == ["a"]
        assert notices == [CircularDependency(parent="c", child="a")]

    def test_root_never_reports(self) -> None:
        tree = _tree(_pkg("a", "b"), _pkg("b", "a"))
        notices = self._collect(tree)
        tree.children(tree.root)
        assert notices == []

    def test_shared_signal(self) -> None:
        signal = Signal()
        received: list[CircularDependency] = []
        signal.connect(received.append)
        packages = (_pkg("a", "b"), _pkg("b", "a"))
        tree = DependencyTree.build(
            ROOT, resolve_dependencies(packages), packages, on_circular_dependency=signal
        )
        tree.children(tree.node("b"), ancestors=("a",))
        assert len(received) == 1

    def test_message(self) -> None:
        notice = CircularDependency(parent="a", child="b")
        assert notice.message == "Circular dependency: a -> b"

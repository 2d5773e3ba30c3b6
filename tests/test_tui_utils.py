"""Tests for TUI utility functions (non-interactive parts)."""

from __future__ import annotations

from pathlib import Path

from monotree.config import Settings
from monotree.core.finder import Package
from monotree.core.tree import RootNode, TreeNode
from monotree.tui.app import (
    MonoTreeApp,
    _ancestor_names,
    _format_node,
    _iter_loaded,
    _node_label,
    _relabel_active,
)

from conftest import write_manifest


class MockWidgetNode:
    """Stand-in for a textual tree node: data, label, parent and children."""

    def __init__(self, data: object, parent: "MockWidgetNode | None" = None) -> None:
        self.data = data
        self.parent = parent
        self.children: list[MockWidgetNode] = []
        self.label = ""
        if parent is not None:
            parent.children.append(self)

    def set_label(self, label: str) -> None:
        self.label = label


def _node(name: str, *deps: str, scripts: dict[str, str] | None = None) -> TreeNode:
    pkg = Package(
        name=name,
        version="2.1.0",
        path=Path(f"/repo/packages/{name}/package.json"),
        scripts=scripts or {},
        tool="yarn",
    )
    return TreeNode(package=pkg, dependencies=deps)


ROOT = RootNode(
    package=Package(name="repo", version="", path=Path("/repo/package.json"), tool="yarn"),
    dependencies=("app", "lib"),
)


class TestNodeLabel:
    """Tests for _node_label helper."""

    def test_package(self) -> None:
        label = _node_label(_node("app"))
        assert "app" in label
        assert "v2.1.0" in label

    def test_active_package_highlighted(self) -> None:
        assert "bold yellow" in _node_label(_node("app"), active=True)
        assert "bold yellow" not in _node_label(_node("app"))

    def test_root_shows_count(self) -> None:
        assert "2 packages" in _node_label(ROOT)


class TestAncestorNames:
    """Tests for _ancestor_names helper."""

    def test_top_level(self) -> None:
        root = MockWidgetNode(ROOT)
        assert _ancestor_names(MockWidgetNode(_node("app"), root)) == ()

    def test_nested(self) -> None:
        hidden = MockWidgetNode(None)
        root = MockWidgetNode(ROOT, hidden)
        a = MockWidgetNode(_node("a"), root)
        b = MockWidgetNode(_node("b"), a)
        c = MockWidgetNode(_node("c"), b)
        assert _ancestor_names(c) == ("a", "b")


class TestFormatNode:
    """Tests for _format_node helper."""

    def test_root(self) -> None:
        text = _format_node(ROOT)
        assert "Workspace" in text
        assert "Packages: [cyan]2[/]" in text
        assert "yarn" in text
        assert "/repo/package.json" in text

    def test_package(self) -> None:
        text = _format_node(_node("app", "lib-a", "lib-b"), dependents=("web",))
        assert "lib-a, lib-b" in text
        assert "Used by[/] [cyan]1[/]" in text
        assert "web" in text
        assert "/repo/packages/app/package.json" in text

    def test_no_dependencies(self) -> None:
        text = _format_node(_node("leaf"))
        assert text.count("(none)") == 2

    def test_scripts_use_workspace_tool(self) -> None:
        text = _format_node(_node("app", scripts={"build": "tsc", "test": "jest"}))
        assert "yarn build" in text
        assert "yarn test" in text


class TestIterLoaded:
    """Tests for _iter_loaded helper."""

    def test_breadth_first(self) -> None:
        root = MockWidgetNode(ROOT)
        a = MockWidgetNode(_node("a"), root)
        MockWidgetNode(_node("a1"), a)
        MockWidgetNode(_node("b"), root)
        assert [tn.data.name for tn in _iter_loaded(root)] == ["a", "b", "a1"]

    def test_empty(self) -> None:
        assert list(_iter_loaded(MockWidgetNode(ROOT))) == []


class TestRelabelActive:
    """Tests for _relabel_active helper."""

    def test_moves_highlight_at_any_depth(self) -> None:
        old, new, other = _node("old"), _node("new"), _node("other")
        root = MockWidgetNode(ROOT)
        old_tn = MockWidgetNode(old, root)
        holder = MockWidgetNode(other, root)
        nested_new = MockWidgetNode(new, holder)
        top_new = MockWidgetNode(new, root)

        _relabel_active(root, old, new)

        assert "bold yellow" not in old_tn.label
        assert "old" in old_tn.label
        assert "bold yellow" in nested_new.label
        assert "bold yellow" in top_new.label
        assert holder.label == ""

    def test_clear_active(self) -> None:
        old = _node("old")
        root = MockWidgetNode(ROOT)
        old_tn = MockWidgetNode(old, root)
        _relabel_active(root, old, None)
        assert old_tn.label == _node_label(old)


class TestLoadWorker:
    """Tests for MonoTreeApp._load_worker (called directly, no event loop)."""

    def _loose_file(self, tmp_path: Path) -> Path:
        write_manifest(tmp_path / "loose", {"name": "loose"})
        return tmp_path / "loose" / "index.js"

    def test_unowned_file_keeps_loaded_tree(self, example_workspace: Path, tmp_path: Path) -> None:
        app = MonoTreeApp(example_workspace, settings=Settings())
        before = app.provider.load()
        app._pending_file = self._loose_file(tmp_path)
        assert app._load_worker() is None
        assert app.provider.snapshot is before
        assert app._pending_file is None

    def test_owned_file_in_same_workspace(self, example_workspace: Path) -> None:
        app = MonoTreeApp(example_workspace, settings=Settings())
        before = app.provider.load()
        app._pending_file = example_workspace / "packages" / "lib-a" / "index.js"
        node = app._load_worker()
        assert node is not None and node.name == "lib-a"
        assert app.provider.snapshot is before

    def test_unowned_file_before_first_load(self, example_workspace: Path, tmp_path: Path) -> None:
        app = MonoTreeApp(
            example_workspace, settings=Settings(), active_file=self._loose_file(tmp_path)
        )
        app._load_worker()
        assert app.provider.snapshot is not None
        assert app.provider.snapshot.name == "repo"

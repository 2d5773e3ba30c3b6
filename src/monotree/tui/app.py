"""Textual TUI for browsing a monorepo's package dependency tree."""

from __future__ import annotations

import sys
from collections import deque
from pathlib import Path
from typing import Any, Iterator

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, Static, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from monotree.api import workspace_root_or_cwd
from monotree.config import Settings
from monotree.core.provider import DependencyTreeProvider, Snapshot
from monotree.core.tree import CircularDependency

COLOR_HEADER = "bold magenta"
COLOR_ROOT = "bold green"
COLOR_PKG = "white"
COLOR_STATS = "cyan"
COLOR_PATH = "dim"
COLOR_ACTIVE = "bold yellow"


def _node_label(node: Any, *, active: bool = False) -> str:
    """Tree label: name plus version (package) or package count (workspace root)."""
    if getattr(node, "is_root", False):
        return f"[{COLOR_ROOT}]{node.name}[/] [dim]{node.description}[/]"
    color = COLOR_ACTIVE if active else COLOR_PKG
    version = f" [dim]v{node.version}[/]" if node.version else ""
    return f"[{color}]{node.name}[/]{version}"


def _ancestor_names(tn: Any) -> tuple[str, ...]:
    """Package names above a tree widget node, top first; the workspace root is skipped."""
    names: list[str] = []
    parent = tn.parent
    while parent is not None:
        data = parent.data
        if data is not None and not getattr(data, "is_root", False):
            names.append(data.name)
        parent = parent.parent
    return tuple(reversed(names))


def _iter_loaded(tn: Any) -> Iterator[Any]:
    """Widget nodes below *tn* that have been added so far, breadth first."""
    queue = deque(tn.children)
    while queue:
        child = queue.popleft()
        yield child
        queue.extend(child.children)


def _relabel_active(tn: Any, previous: Any, active: Any) -> None:
    """Redraw the loaded labels of the previous and the new active package."""
    for child in _iter_loaded(tn):
        data = child.data
        if data is not None and (data is previous or data is active):
            child.set_label(_node_label(data, active=data is active))

def _format_node(node: Any, dependents: tuple[str, ...] = ()) -> str:
    """Details panel text for a package node."""
    if getattr(node, "is_root", False):
        return "\n".join(
            [
                f"[{COLOR_HEADER}]Workspace[/]",
                f"  [{COLOR_ROOT}]{node.name}[/]  [dim]v{node.version or '?'}[/]",
                "",
                f"  Packages: [{COLOR_STATS}]{node.package_count}[/]",
                f"  Tool:     [{COLOR_STATS}]{node.package.tool}[/]",
                "",
                f"[{COLOR_HEADER}]Path[/]",
                f"  [{COLOR_PATH}]{node.path}[/]",
            ]
        )

    deps = ", ".join(node.dependencies) or "(none)"
    used_by = ", ".join(dependents) or "(none)"
    lines = [
        f"[{COLOR_HEADER}]Package[/]",
        f"  [{COLOR_PKG}]{node.name}[/]  [dim]v{node.version or '?'}[/]",
        "",
        f"[{COLOR_HEADER}]Workspace dependencies[/] [{COLOR_STATS}]{len(node.dependencies)}[/]",
        f"  {deps}",
        f"[{COLOR_HEADER}]Used by[/] [{COLOR_STATS}]{len(dependents)}[/]",
        f"  {used_by}",
    ]
    scripts = node.package.scripts
    if scripts:
        lines.append(f"[{COLOR_HEADER}]Scripts[/]")
        for script in scripts:
            lines.append(f"  [{COLOR_STATS}]{node.package.script_command(script)}[/]")
    lines += [
        "",
        f"[{COLOR_HEADER}]Path[/]",
        f"  [{COLOR_PATH}]{node.path}[/]",
    ]
    return "\n".join(lines)


class WorkspaceChanged(Message):
    """Posted (from any thread) when the provider reports a tree change."""


class SearchScreen(ModalScreen[str | None]):
    """Modal to search for packages among the loaded tree nodes."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    SearchScreen {
        align: center middle;
        padding: 2 4;
    }
    SearchScreen #search_input {
        width: 60;
        margin: 1 0;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("[bold cyan]Search[/]\n\nPackage name or partial match.", markup=True)
            yield Input(placeholder="package name...", id="search_input")
            yield Static(
                "[dim]Enter[/] = Search  ·  [dim]Escape[/] = Cancel  ·  "
                "then [bold]n[/] / [bold]N[/] = next / previous",
                markup=True,
            )

    def on_mount(self) -> None:
        self.query_one("#search_input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        value = event.value.strip()
        self.dismiss(value or None)

    def action_cancel(self) -> None:
        self.dismiss(None)


class LocateScreen(ModalScreen[Path | None]):
    """Modal to enter a file path; its owning package becomes the active package."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    LocateScreen {
        align: center middle;
        padding: 2 4;
    }
    LocateScreen #locate_input {
        width: 60;
        margin: 1 0;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(
                "[bold cyan]Open file[/]\n\n"
                "Path of a file; its package is selected (other workspaces are loaded).",
                markup=True,
            )
            yield Input(placeholder="/path/to/repo/packages/app/src/index.ts", id="locate_input")
            yield Static("[dim]Enter[/] = Open  ·  [dim]Escape[/] = Cancel", markup=True)

    def on_mount(self) -> None:
        self.query_one("#locate_input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        value = event.value.strip()
        if not value:
            self.dismiss(None)
            return
        p = Path(value).expanduser().resolve()
        if not p.exists():
            self.notify(f"Path does not exist: {p}", severity="warning", timeout=3)
            return
        self.dismiss(p)

    def action_cancel(self) -> None:
        self.dismiss(None)


class MonoTreeApp(App[None]):
    """Terminal UI over a DependencyTreeProvider; children are added on expand."""

    TITLE = "monotree"
    BINDINGS = [
        Binding("o", "locate", "Open file"),
        Binding("/", "search", "Search"),
        Binding("n", "next_match", "Next match", show=False),
        Binding("N", "prev_match", "Prev match", show=False),
        Binding("d", "toggle_details", "Details"),
        Binding("r", "refresh", "Refresh"),
        Binding("c", "collapse_all", "Collapse"),
        Binding("q", "quit", "Quit"),
    ]

    DEFAULT_CSS = """
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def __init__(
        self,
        workspace_root: Path | None = None,
        *,
        settings: Settings | None = None,
        active_file: Path | str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.provider = DependencyTreeProvider(workspace_root, settings=settings)
        self._pending_file = Path(active_file) if active_file else None
        self._shown: Snapshot | None = None
        self._labelled_active: Any = None
        self._search_matches: list[TreeNode] = []
        self._search_index = 0
        self._details_visible = True

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="main_container"):
            yield Tree(self.provider.status_summary(), id="dep_tree")
            yield Static("[dim]Loading workspace...[/]", id="details", markup=True)
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = self.provider.status_summary()
        self.provider.on_tree_changed.connect(self._on_tree_changed)
        self.provider.on_circular_dependency.connect(self._on_circular_dependency)
        self._start_load()

    def on_unmount(self) -> None:
        self.provider.on_tree_changed.disconnect(self._on_tree_changed)
        self.provider.on_circular_dependency.disconnect(self._on_circular_dependency)

    # Provider notifications

    def _on_tree_changed(self) -> None:
        # May run in the load worker thread; post_message is thread safe.
        self.post_message(WorkspaceChanged())

    def _on_circular_dependency(self, notice: CircularDependency) -> None:
        self.notify(notice.message, severity="information", timeout=4)

    def on_workspace_changed(self, _message: WorkspaceChanged) -> None:
        if self.provider.is_stale:
            self._start_load()
        elif self.provider.snapshot is not self._shown:
            self._show_snapshot()

    # Loading

    def _start_load(self) -> None:
        name = "locate" if self._pending_file is not None else "load"
        self.sub_title = "Workspace: Loading..."
        self.run_worker(self._load_worker, name=name, thread=True, exclusive=True, group="load")

    def _load_worker(self) -> Any:
        """
        Load (or locate the pending file) in a background thread.

        A located file that no workspace package owns leaves the loaded tree
        alone; the workspace is only loaded when nothing is shown yet.
        """
        if self._pending_file is not None:
            path, self._pending_file = self._pending_file, None
            node = self.provider.locate(path)
            if node is not None or self.provider.snapshot is not None:
                return node
        if self.provider.workspace_root is None:
            return self.provider.load(workspace_root_or_cwd(None))
        return self.provider.load()

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker.group != "load":
            return
        if event.state == WorkerState.SUCCESS:
            if event.worker.name == "locate" and event.worker.result is None:
                self.notify("No workspace package owns that file", severity="warning", timeout=3)
            if self.provider.snapshot is not self._shown:
                self._show_snapshot()
            self.sub_title = self.provider.status_summary()
            self._select_active()
        elif event.state == WorkerState.ERROR:
            # The previous tree stays; only report.
            self.sub_title = self.provider.status_summary()
            self._set_details(f"[red]Error loading workspace: {event.worker.error!s}[/]")
            self.notify(str(event.worker.error), severity="error", timeout=5)

    # Tree population

    def _add_children(self, tn: TreeNode, children: list[Any]) -> None:
        active = self.provider.active_node
        for child in children:
            label = _node_label(child, active=child is active)
            if child.expandable:
                tn.add(label, data=child, allow_expand=True)
            else:
                tn.add_leaf(label, data=child)

    def _show_snapshot(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.clear()
        self._search_matches = []
        self._shown = self.provider.snapshot
        self._labelled_active = self.provider.active_node
        self.sub_title = self.provider.status_summary()
        self.title = f"monotree · {self.provider.title_text()}"

        roots = self.provider.get_roots()
        if not roots:
            tree.root.set_label("[dim]No packages in workspace[/]")
            tree.root.data = None
            self._set_details(
                f"No workspace packages found under {self.provider.workspace_root}.\n\n"
                "[dim]o[/] = Open a file in another workspace"
            )
            return
        root = roots[0]
        tree.root.set_label(_node_label(root))
        tree.root.data = root
        self._add_children(tree.root, self.provider.get_children(root))
        tree.root.expand()
        self._set_details(_format_node(root))
        tree.focus()

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        tn = event.node
        node = tn.data
        if node is None or getattr(node, "is_root", False) or tn.children:
            return
        children = self.provider.get_children(node, _ancestor_names(tn))
        self._add_children(tn, children)

    def _show_details(self, node: Any) -> None:
        if node is None:
            return
        if getattr(node, "is_root", False):
            self._set_details(_format_node(node))
        else:
            self._set_details(_format_node(node, self.provider.dependents_of(node.name)))

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        self._show_details(event.node.data)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        self._show_details(event.node.data)

    def _set_details(self, text: str) -> None:
        self.query_one("#details", Static).update(text)

    def _select_active(self) -> None:
        """Highlight the active package and select its first loaded widget node."""
        active = self.provider.active_node
        tree = self.query_one("#dep_tree", Tree)
        previous, self._labelled_active = self._labelled_active, active
        if previous is not active:
            _relabel_active(tree.root, previous, active)
        if active is None:
            return
        match = next((tn for tn in _iter_loaded(tree.root) if tn.data is active), None)
        if match is not None:
            tree.select_node(match)
            tree.scroll_to_node(match)
            self._show_details(active)

    # Actions

    def action_refresh(self) -> None:
        self.provider.refresh()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()

    def action_locate(self) -> None:
        self.push_screen(LocateScreen(), self._on_locate_done)

    def _on_locate_done(self, path: Path | None) -> None:
        if path is None:
            return
        self._pending_file = path
        self._start_load()

    def action_search(self) -> None:
        self.push_screen(SearchScreen(), self._on_search_done)

    def _on_search_done(self, query: str | None) -> None:
        if not query:
            return
        tree = self.query_one("#dep_tree", Tree)
        self._search_matches = []
        self._search_index = 0
        self._collect_matches(tree.root, query.lower())
        if not self._search_matches:
            self.notify(f"No matches for '{query}'", severity="warning", timeout=2)
            return
        self.notify(
            f"Found {len(self._search_matches)} match(es) for '{query}'",
            severity="information",
            timeout=2,
        )
        self._goto_match(0)

    def _collect_matches(self, tn: TreeNode, query: str) -> None:
        """Collect loaded nodes whose package name contains *query*."""
        node = tn.data
        if node is not None and not getattr(node, "is_root", False) and query in node.name.lower():
            self._search_matches.append(tn)
        for child in tn.children:
            self._collect_matches(child, query)

    def _goto_match(self, index: int) -> None:
        if not self._search_matches:
            return
        self._search_index = index % len(self._search_matches)
        match = self._search_matches[self._search_index]
        parent = match.parent
        while parent is not None:
            parent.expand()
            parent = parent.parent
        tree = self.query_one("#dep_tree", Tree)
        tree.select_node(match)
        tree.scroll_to_node(match)

    def action_next_match(self) -> None:
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index + 1)

    def action_prev_match(self) -> None:
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index - 1)

    def action_toggle_details(self) -> None:
        self._details_visible = not self._details_visible
        self.query_one("#details", Static).styles.display = (
            "block" if self._details_visible else "none"
        )


def main() -> None:
    """Entry point for the monotree TUI."""
    root = Path(sys.argv[1]).resolve() if len(sys.argv) > 1 else None
    MonoTreeApp(root).run()


if __name__ == "__main__":
    main()

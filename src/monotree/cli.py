"""Command-line interface for monotree: list packages, show trees, graphs and cycles."""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import subprocess
import sys
from pathlib import Path

from monotree.api import workspace_root_or_cwd
from monotree.config import Settings
from monotree.core.finder import scan_for_workspaces
from monotree.core.manifest import ManifestError
from monotree.core.provider import DependencyTreeProvider
from monotree.core.resolver import DependencyGraph, external_dependencies, find_cycles
from monotree.core.tree import TreeNode

logger = logging.getLogger("monotree")


def _settings_from_args(args: argparse.Namespace) -> Settings:
    """Environment settings with command-line flags applied on top."""
    return Settings.from_env().with_overrides(
        workspace_tool_override=getattr(args, "tool", None),
        include_dev=False if getattr(args, "no_dev", False) else None,
        include_peer=True if getattr(args, "peer", False) else None,
    )


def _provider(args: argparse.Namespace) -> DependencyTreeProvider:
    root = workspace_root_or_cwd(getattr(args, "workspace", None))
    provider = DependencyTreeProvider(root, settings=_settings_from_args(args))
    provider.load()
    return provider


def _expand(
    provider: DependencyTreeProvider,
    node: TreeNode,
    *,
    max_depth: int | None,
    depth: int = 0,
    ancestors: tuple[str, ...] = (),
) -> dict:
    """Expand *node* the way a view would, stopping at cycles and max_depth."""
    data = node.to_dict()
    data["cycle"] = False
    data["children"] = []
    if max_depth is not None and depth >= max_depth:
        return data
    path = ancestors if node.is_root else (*ancestors, node.name)
    for child in provider.get_children(node, ancestors):
        if child.name in path:
            leaf = child.to_dict()
            leaf["cycle"] = True
            leaf["children"] = []
            data["children"].append(leaf)
            continue
        data["children"].append(
            _expand(provider, child, max_depth=max_depth, depth=depth + 1, ancestors=path)
        )
    return data


def _print_tree_text(node: dict, prefix: str = "", is_last: bool = True, top: bool = True) -> None:
    """Print an expanded tree (from _expand) with box-drawing branches."""
    version = f" ({node['version']})" if node.get("version") else ""
    marker = " [cycle]" if node.get("cycle") else ""
    if top:
        print(f"{node['name']}{version}{marker}")
        child_prefix = ""
    else:
        branch = "└── " if is_last else "├── "
        print(f"{prefix}{branch}{node['name']}{version}{marker}")
        child_prefix = prefix + ("    " if is_last else "│   ")
    children = node.get("children", [])
    for i, child in enumerate(children):
        _print_tree_text(child, child_prefix, i == len(children) - 1, top=False)


def cmd_list(args: argparse.Namespace) -> int:
    """List the packages of a workspace."""
    provider = _provider(args)
    snapshot = provider.snapshot
    packages = snapshot.packages

    externals = external_dependencies(
        packages,
        include_dev=provider.settings.include_dev,
        include_peer=provider.settings.include_peer,
    )
    if args.json:
        out = []
        for pkg in packages:
            entry = pkg.to_dict()
            entry["workspaceDependencies"] = list(snapshot.graph[pkg.name])
            if args.external:
                entry["externalDependencies"] = externals[pkg.name]
            out.append(entry)
        print(json.dumps(out, indent=2))
        return 0

    if not packages:
        print(f"No packages found in workspace: {snapshot.root_path}")
        return 1
    print(f"{provider.status_summary()} (tool: {snapshot.tool})\n")
    for pkg in packages:
        version = f" ({pkg.version})" if pkg.version else ""
        print(f"  {pkg.name}{version}")
        if args.verbose:
            print(f"    path: {pkg.path}")
            deps = snapshot.graph[pkg.name]
            print(f"    workspace deps: {', '.join(deps) if deps else '-'}")
        if args.external and externals[pkg.name]:
            print(f"    external deps: {', '.join(externals[pkg.name])}")
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    """Show the dependency tree of the workspace or of one package."""
    provider = _provider(args)
    if args.package:
        tree = provider.snapshot.tree
        if args.package not in tree:
            print(f"Package not found: {args.package}", file=sys.stderr)
            return 1
        start = tree.node(args.package)
    else:
        roots = provider.get_roots()
        if not roots:
            print("No packages found.", file=sys.stderr)
            return 1
        start = roots[0]

    expanded = _expand(provider, start, max_depth=args.depth)
    if args.json:
        print(json.dumps(expanded, indent=2))
    else:
        _print_tree_text(expanded)
    return 0


def _generate_dot(graph: DependencyGraph, title: str | None = None, highlight: str | None = None) -> str:
    """Generate DOT (Graphviz) format from a dependency graph."""
    lines = [
        "digraph dependencies {",
        "    rankdir=LR;",
        '    node [shape=box, style=rounded, fontname="sans-serif"];',
    ]
    if title:
        lines.insert(1, f'    label="{title}";')
        lines.insert(2, "    labelloc=t;")

    for name in graph:
        if name == highlight:
            lines.append(f'    "{name}" [style="rounded,filled", fillcolor=lightblue];')
        else:
            lines.append(f'    "{name}";')
    for parent, deps in graph.items():
        for child in deps:
            lines.append(f'    "{parent}" -> "{child}";')

    lines.append("}")
    return "\n".join(lines)


def _mermaid_id(name: str) -> str:
    """Convert a package name (possibly scoped, e.g. @acme/ui) to a Mermaid node ID."""
    return (
        name.replace("@", "")
        .replace("/", "__")
        .replace("-", "_")
        .replace(".", "_")
    )


def _generate_mermaid(
    graph: DependencyGraph, title: str | None = None, highlight: str | None = None
) -> str:
    """Generate Mermaid format from a dependency graph."""
    lines = ["graph LR"]
    if title:
        lines[0] = f"---\ntitle: {title}\n---\ngraph LR"

    for name in graph:
        lines.append(f'    {_mermaid_id(name)}["{name}"]')
    if highlight:
        lines.append(f"    style {_mermaid_id(highlight)} fill:#lightblue")
    for parent, deps in graph.items():
        for child in deps:
            lines.append(f"    {_mermaid_id(parent)} --> {_mermaid_id(child)}")

    return "\n".join(lines)


def _reachable(graph: DependencyGraph, start: str) -> DependencyGraph:
    """Subgraph of everything reachable from *start*, in graph order."""
    seen = {start}
    stack = [start]
    while stack:
        for dep in graph.get(stack.pop(), ()):
            if dep not in seen:
                seen.add(dep)
                stack.append(dep)
    return {name: deps for name, deps in graph.items() if name in seen}


def _check_graphviz() -> bool:
    """Check if Graphviz (dot) is available."""
    return shutil.which("dot") is not None


def _render_dot(dot_content: str, output_path: Path, format: str) -> bool:
    """Render DOT content to an image file using Graphviz."""
    if not _check_graphviz():
        print(
            "Error: Graphviz not found. Install it with:\n"
            "  Ubuntu/Debian: sudo apt install graphviz\n"
            "  macOS: brew install graphviz",
            file=sys.stderr,
        )
        return False
    try:
        result = subprocess.run(
            ["dot", f"-T{format}", "-o", str(output_path)],
            input=dot_content,
            capture_output=True,
            text=True,
            timeout=60,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        print(f"Error running Graphviz: {e}", file=sys.stderr)
        return False
    if result.returncode != 0:
        print(f"Graphviz error: {result.stderr}", file=sys.stderr)
        return False
    return True


def cmd_graph(args: argparse.Namespace) -> int:
    """Generate the workspace dependency graph in DOT or Mermaid format."""
    provider = _provider(args)
    snapshot = provider.snapshot
    graph = snapshot.graph
    if not graph:
        print(f"No packages found in workspace: {snapshot.root_path}", file=sys.stderr)
        return 1
    if args.package:
        if args.package not in graph:
            print(f"Package not found: {args.package}", file=sys.stderr)
            return 1
        graph = _reachable(graph, args.package)

    if args.no_title:
        title = None
    elif args.package:
        title = f"{args.package} dependencies"
    else:
        title = f"Workspace: {snapshot.name}"

    if args.format == "mermaid":
        output = _generate_mermaid(graph, title=title, highlight=args.package)
    else:
        output = _generate_dot(graph, title=title, highlight=args.package)

    if args.render:
        if args.format == "mermaid":
            print("Error: --render only works with DOT format.", file=sys.stderr)
            return 1
        base = args.package.replace("/", "_").lstrip("@") if args.package else snapshot.name
        out_path = Path(args.output) if args.output else Path(base)
        if out_path.suffix.lower() != f".{args.render}":
            out_path = out_path.with_suffix(f".{args.render}")
        if not _render_dot(output, out_path, args.render):
            return 1
        print(f"Graph image saved to: {out_path}", file=sys.stderr)
        return 0

    if args.output:
        Path(args.output).write_text(output)
        print(f"Graph written to: {args.output}", file=sys.stderr)
    else:
        print(output)
    return 0


def cmd_cycles(args: argparse.Namespace) -> int:
    """List circular dependencies between workspace packages."""
    provider = _provider(args)
    cycles = find_cycles(provider.snapshot.graph)
    if args.json:
        print(json.dumps(cycles, indent=2))
        return 1 if cycles else 0
    if not cycles:
        print("No circular dependencies.")
        return 0
    print(f"Found {len(cycles)} circular dependenc{'y' if len(cycles) == 1 else 'ies'}:\n")
    for cycle in cycles:
        print("  " + " -> ".join(cycle))
    return 1


def cmd_locate(args: argparse.Namespace) -> int:
    """Show the workspace package that owns a file."""
    provider = DependencyTreeProvider(settings=_settings_from_args(args))
    node = provider.locate(Path(args.file))
    if node is None:
        print(f"No workspace package owns: {args.file}", file=sys.stderr)
        return 1
    if args.json:
        data = node.package.to_dict()
        data["workspace"] = str(provider.workspace_root)
        data["workspaceDependencies"] = list(node.dependencies)
        data["dependents"] = list(provider.dependents_of(node.name))
        print(json.dumps(data, indent=2))
    else:
        print(f"{node.name} ({node.version or '?'})")
        print(f"  {provider.status_summary()}")
        print(f"  root: {provider.workspace_root}")
        print(f"  manifest: {node.path}")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Scan directories for monorepo workspaces."""
    roots = [Path(p) for p in args.paths] if args.paths else None
    workspaces = scan_for_workspaces(roots=roots, max_depth=args.depth)

    if args.json:
        print(json.dumps([ws.to_dict() for ws in workspaces], indent=2))
        return 0
    if not workspaces:
        print("No workspaces found.")
        return 0
    print(f"Found {len(workspaces)} workspace(s):\n")
    for ws in workspaces:
        print(f"  {ws.path}")
        print(f"    Tool: {ws.tool}")
        print(f"    Packages: {len(ws.packages)}")
        if args.verbose and ws.packages:
            for pkg in ws.packages[:20]:
                print(f"      - {pkg}")
            if len(ws.packages) > 20:
                print(f"      ... and {len(ws.packages) - 20} more")
        print()
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from monotree.tui.app import MonoTreeApp

    root = workspace_root_or_cwd(getattr(args, "workspace", None))
    app = MonoTreeApp(
        root,
        settings=_settings_from_args(args),
        active_file=getattr(args, "file", None),
    )
    app.run()
    return 0


def _workspace_options() -> argparse.ArgumentParser:
    """Options shared by every command that loads a workspace."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "-w",
        "--workspace",
        metavar="PATH",
        help="Workspace root (default: the workspace containing the current directory)",
    )
    parent.add_argument(
        "--tool",
        metavar="CMD",
        help="Override the detected workspace tool command (e.g. 'yarn')",
    )
    parent.add_argument(
        "--no-dev",
        action="store_true",
        help="Ignore devDependencies when building the graph",
    )
    parent.add_argument(
        "--peer",
        action="store_true",
        help="Follow peerDependencies when building the graph",
    )
    return parent


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the monotree CLI."""
    parser = argparse.ArgumentParser(
        prog="monotree",
        description="Explore the package dependency graph of a JavaScript monorepo.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    workspace_options = _workspace_options()

    # monotree list
    list_parser = subparsers.add_parser(
        "list",
        parents=[workspace_options],
        help="List workspace packages",
        description="List the packages of a workspace in discovery order.",
    )
    list_parser.add_argument("-v", "--verbose", action="store_true", help="Show paths and deps")
    list_parser.add_argument(
        "--external", action="store_true", help="Also show non-workspace dependencies"
    )
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_list)

    # monotree tree
    tree_parser = subparsers.add_parser(
        "tree",
        parents=[workspace_options],
        help="Show the dependency tree",
        description="Show the workspace tree, or the tree below one package.",
    )
    tree_parser.add_argument("package", nargs="?", help="Start from this package")
    tree_parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=None,
        help="Maximum tree depth (default: unlimited)",
    )
    tree_parser.add_argument("--json", action="store_true", help="Output as JSON")
    tree_parser.set_defaults(func=cmd_tree)

    # monotree graph
    graph_parser = subparsers.add_parser(
        "graph",
        parents=[workspace_options],
        help="Generate a dependency graph (DOT/Mermaid format)",
        description=(
            "Generate a visual dependency graph of the workspace, or of the "
            "packages reachable from one package."
        ),
    )
    graph_parser.add_argument("package", nargs="?", help="Only graph what this package reaches")
    graph_parser.add_argument(
        "-f",
        "--format",
        choices=["dot", "mermaid"],
        default="dot",
        help="Output format: dot (Graphviz) or mermaid (default: dot)",
    )
    graph_parser.add_argument("-o", "--output", metavar="FILE", help="Output file (default: stdout)")
    graph_parser.add_argument(
        "--no-title", action="store_true", help="Don't include a title in the graph"
    )
    graph_parser.add_argument(
        "--render",
        choices=["png", "svg", "pdf"],
        metavar="FORMAT",
        help="Render to image (png, svg, pdf). Requires Graphviz installed.",
    )
    graph_parser.set_defaults(func=cmd_graph)

    # monotree cycles
    cycles_parser = subparsers.add_parser(
        "cycles",
        parents=[workspace_options],
        help="List circular dependencies",
        description="Report every dependency cycle between workspace packages.",
    )
    cycles_parser.add_argument("--json", action="store_true", help="Output as JSON")
    cycles_parser.set_defaults(func=cmd_cycles)

    # monotree locate
    locate_parser = subparsers.add_parser(
        "locate",
        help="Show the package that owns a file",
        description="Find the workspace package whose package.json is closest to FILE.",
    )
    locate_parser.add_argument("file", help="Any file or directory inside a workspace")
    locate_parser.add_argument("--tool", metavar="CMD", help="Override the workspace tool command")
    locate_parser.add_argument("--json", action="store_true", help="Output as JSON")
    locate_parser.set_defaults(func=cmd_locate)

    # monotree scan
    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan for monorepo workspaces",
        description="Discover workspace roots below the given directories.",
    )
    scan_parser.add_argument("paths", nargs="*", help="Directories to scan (default: .)")
    scan_parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=3,
        help="Maximum recursion depth (default: 3)",
    )
    scan_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show packages in each workspace"
    )
    scan_parser.add_argument("--json", action="store_true", help="Output as JSON")
    scan_parser.set_defaults(func=cmd_scan)

    # monotree tui (default if no command)
    tui_parser = subparsers.add_parser(
        "tui",
        parents=[workspace_options],
        help="Launch the interactive terminal UI",
        description="Browse the workspace dependency tree interactively.",
    )
    tui_parser.add_argument(
        "--file",
        metavar="FILE",
        help="Start with the package that owns this file selected",
    )
    tui_parser.set_defaults(func=cmd_tui)

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if args.debug:
        logger.setLevel(logging.DEBUG)

    # Default to TUI if no command specified
    if args.command is None:
        return cmd_tui(argparse.Namespace(workspace=None, file=None))

    try:
        return args.func(args)
    except ManifestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

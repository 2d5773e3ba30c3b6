"""Shared fixtures: build real workspaces of package.json files under tmp_path."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest


def write_manifest(directory: Path, data: dict[str, Any]) -> Path:
    """Write *data* as directory/package.json, creating directories."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory: make_workspace({"app": {"dependencies": {...}}, ...}) -> root.

    Each package lives in <root>/<folder>/<name>; folder defaults to
    "packages". Values are merged into the generated manifest, and a
    "_folder" key picks another folder.
    """

    def _make(
        packages: dict[str, dict[str, Any]],
        *,
        root_name: str = "repo",
        workspaces: list[str] | None = None,
        root_extra: dict[str, Any] | None = None,
    ) -> Path:
        root = tmp_path / root_name
        manifest: dict[str, Any] = {
            "name": root_name,
            "version": "0.0.0",
            "private": True,
            "workspaces": workspaces if workspaces is not None else ["packages/*"],
        }
        manifest.update(root_extra or {})
        write_manifest(root, manifest)
        for name, extra in packages.items():
            extra = dict(extra)
            folder = extra.pop("_folder", "packages")
            data = {"name": name, "version": "1.0.0"}
            data.update(extra)
            write_manifest(root / folder / name.replace("/", "__").lstrip("@"), data)
        return root

    return _make


@pytest.fixture
def example_workspace(make_workspace: Callable[..., Path]) -> Path:
    """app -> lib-a -> lib-b, plus an external left-pad dependency."""
    return make_workspace(
        {
            "app": {"dependencies": {"lib-a": "^1.0.0"}},
            "lib-a": {"dependencies": {"lib-b": "^1.0.0", "left-pad": "^1.3.0"}},
            "lib-b": {},
        }
    )


@pytest.fixture
def cyclic_workspace(make_workspace: Callable[..., Path]) -> Path:
    """a <-> b."""
    return make_workspace(
        {
            "a": {"dependencies": {"b": "*"}},
            "b": {"dependencies": {"a": "*"}},
        },
        root_name="cyclic",
    )

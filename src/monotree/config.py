"""Runtime settings, read from the environment and overridable per call."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

ENV_WORKSPACE_TOOL = "MONOTREE_WORKSPACE_TOOL"
ENV_INCLUDE_DEV = "MONOTREE_INCLUDE_DEV"
ENV_INCLUDE_PEER = "MONOTREE_INCLUDE_PEER"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    """
    Options that shape a workspace load.

    workspace_tool_override replaces the detected script runner (e.g. ``"yarn"``)
    when non-empty. include_dev / include_peer select which dependency fields
    produce graph edges.
    """

    workspace_tool_override: str | None = None
    include_dev: bool = True
    include_peer: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from MONOTREE_* environment variables."""
        tool = os.environ.get(ENV_WORKSPACE_TOOL, "").strip()
        return cls(
            workspace_tool_override=tool or None,
            include_dev=_env_flag(ENV_INCLUDE_DEV, True),
            include_peer=_env_flag(ENV_INCLUDE_PEER, False),
        )

    def with_overrides(self, **changes: object) -> Settings:
        """Copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

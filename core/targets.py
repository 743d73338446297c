"""
Monitored Targets

Catalog of applications whose output can be monitored and the kind of
content surface each one exposes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple


class SurfaceKind(Enum):
    """How a target's visible content evolves"""
    APPEND_ONLY = "append_only"     # Scrollback grows by appending (terminals)
    MUTABLE_TREE = "mutable_tree"   # UI text tree rewritten in place (editors)


@dataclass(frozen=True)
class Target:
    """A monitorable application surface. Immutable for a session's lifetime."""
    name: str
    bundle_id: str
    surface_kind: SurfaceKind
    applescript: Optional[str] = None
    voice_prefixes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_append_only(self) -> bool:
        return self.surface_kind is SurfaceKind.APPEND_ONLY


TERMINAL_SCRIPT = (
    'tell application "Terminal" to if (count of windows) > 0 '
    'then get contents of selected tab of front window'
)

ITERM_SCRIPT = (
    'tell application "iTerm2" to tell current session of current tab '
    'of current window to get contents'
)

TERMINAL = Target(
    name="Terminal",
    bundle_id="com.apple.Terminal",
    surface_kind=SurfaceKind.APPEND_ONLY,
    applescript=TERMINAL_SCRIPT,
    voice_prefixes=("terminal", "shell", "bash", "zsh"),
)

ITERM2 = Target(
    name="iTerm2",
    bundle_id="com.googlecode.iterm2",
    surface_kind=SurfaceKind.APPEND_ONLY,
    applescript=ITERM_SCRIPT,
    voice_prefixes=("iterm",),
)

# Claude Code runs inside Terminal.app
CLAUDE_CODE = Target(
    name="Claude Code",
    bundle_id="com.apple.Terminal",
    surface_kind=SurfaceKind.APPEND_ONLY,
    applescript=TERMINAL_SCRIPT,
    voice_prefixes=("claude", "claude code"),
)

VS_CODE = Target(
    name="VS Code",
    bundle_id="com.microsoft.VSCode",
    surface_kind=SurfaceKind.MUTABLE_TREE,
    voice_prefixes=("code", "vs code", "vscode"),
)

CURSOR = Target(
    name="Cursor",
    bundle_id="com.todesktop.230313mzl4w4u92",
    surface_kind=SurfaceKind.MUTABLE_TREE,
    voice_prefixes=("cursor",),
)

WINDSURF = Target(
    name="Windsurf",
    bundle_id="com.codeium.windsurf",
    surface_kind=SurfaceKind.MUTABLE_TREE,
    voice_prefixes=("windsurf", "surf"),
)

KNOWN_TARGETS: List[Target] = [TERMINAL, ITERM2, CLAUDE_CODE, VS_CODE, CURSOR, WINDSURF]


def target_for_bundle_id(bundle_id: str) -> Optional[Target]:
    """Resolve a bundle identifier to its target (first catalog match)."""
    for target in KNOWN_TARGETS:
        if target.bundle_id == bundle_id:
            return target
    return None


def target_by_name(name: str) -> Optional[Target]:
    """Resolve a display name or voice prefix, case-insensitively."""
    wanted = name.strip().lower()
    for target in KNOWN_TARGETS:
        if target.name.lower() == wanted or wanted in target.voice_prefixes:
            return target
    return None


def enabled_targets(names: Optional[Iterable[str]] = None) -> List[Target]:
    """
    Catalog entries whose display names are listed, in catalog order.

    None enables the whole catalog; unknown names are ignored.
    """
    if names is None:
        return list(KNOWN_TARGETS)
    wanted = {str(name).strip().lower() for name in names}
    return [target for target in KNOWN_TARGETS if target.name.lower() in wanted]

"""
Accessibility Reader

Reads editor surfaces (VS Code, Cursor, Windsurf) through the OS
accessibility tree. The tree is owned by the OS and reached through opaque
node handles; a TreeBackend supplies the handful of queries the reader
needs.

Strategies, first success wins:
1. Focused element value, if substantial
2. Text gathered below the focused element's parent
3. Latest chat response assembled from deep static-text runs
4. Text-bearing nodes anywhere in the focused window

Tree queries are synchronous IPC into the target app, so a read runs in
the default executor and the event loop keeps ticking.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from core.targets import Target
from modules.readers.assembler import FragmentAssembler, TEXT_ROLES
from modules.readers.base import ContentReader
from utils.logger import get_logger

logger = get_logger('readers.accessibility')


class TreeBackend(ABC):
    """Read-only access to an application's accessibility tree"""

    @abstractmethod
    def is_trusted(self) -> bool:
        """Whether tree access is currently permitted. Never cache this."""
        pass

    def request_permission(self) -> bool:
        """Ask the OS to show its permission prompt"""
        return False

    @abstractmethod
    def application(self, target: Target) -> Optional[Any]:
        """Handle for the target's running application, or None"""
        pass

    def enable_tree(self, app: Any) -> bool:
        """Ask the application to expose its tree (Chromium keeps it off)"""
        return True

    @abstractmethod
    def focused_element(self, app: Any) -> Optional[Any]:
        pass

    @abstractmethod
    def focused_window(self, app: Any) -> Optional[Any]:
        pass

    @abstractmethod
    def parent(self, node: Any) -> Optional[Any]:
        pass

    @abstractmethod
    def children(self, node: Any) -> Iterable[Any]:
        pass

    @abstractmethod
    def role(self, node: Any) -> Optional[str]:
        pass

    @abstractmethod
    def value(self, node: Any) -> Optional[str]:
        pass


class AccessibilityReader(ContentReader):
    """Reads mutable-tree surfaces via a TreeBackend"""

    # Focused value / parent block must exceed this to count as content
    SUBSTANTIAL_LENGTH = 10
    PARENT_MAX_DEPTH = 5
    WINDOW_MAX_DEPTH = 15
    # Window fragments shorter than this are labels and buttons
    WINDOW_MIN_FRAGMENT = 20
    # Chat panels render deep; shallower text is explorer and status bar
    CHAT_MIN_DEPTH = 30
    CHAT_MAX_DEPTH = 49
    CHAT_MIN_GROUP = 100

    def __init__(self, backend: Optional[TreeBackend], max_fragments: int = 500):
        self.backend = backend
        self._has_requested_permission = False
        self.assembler = None
        if backend is not None:
            self.assembler = FragmentAssembler(
                children=backend.children,
                role=backend.role,
                value=backend.value,
                max_fragments=max_fragments,
            )

    def is_available(self) -> bool:
        return self.backend is not None

    async def read(self, target: Target) -> Optional[str]:
        if self.backend is None:
            logger.debug("No accessibility backend on this platform")
            return None

        try:
            return await asyncio.get_event_loop().run_in_executor(None, self._read, target)
        except Exception as e:
            logger.debug(f"Accessibility read failed for {target.name}: {e}")
            return None

    def _read(self, target: Target) -> Optional[str]:
        # Permission can be granted or revoked at runtime: check every call
        if not self.backend.is_trusted():
            if not self._has_requested_permission:
                logger.info("Accessibility permission not granted, prompting once")
                self.backend.request_permission()
                self._has_requested_permission = True
            else:
                logger.debug("Accessibility permission not granted")
            return None

        app = self.backend.application(target)
        if app is None:
            logger.debug(f"No running app for {target.bundle_id}")
            return None

        if not self.backend.enable_tree(app):
            logger.debug(f"Could not enable accessibility tree for {target.name}")

        focused = self.backend.focused_element(app)
        if focused is not None:
            text = self._focused_value(focused)
            if text:
                logger.debug(f"Focused value: {len(text)} chars")
                return text

            text = self._parent_block(focused)
            if text:
                logger.debug(f"Parent block: {len(text)} chars")
                return text

        text = self._chat_response(app)
        if text:
            logger.debug(f"Chat response: {len(text)} chars")
            return text

        text = self._window_scan(app)
        if text:
            logger.debug(f"Window scan: {len(text)} chars")
            return text

        logger.debug(f"All strategies returned nothing for {target.name}")
        return None

    def _focused_value(self, focused) -> Optional[str]:
        value = self.backend.value(focused)
        if value and len(value.strip()) > self.SUBSTANTIAL_LENGTH:
            return value
        return None

    def _parent_block(self, focused) -> Optional[str]:
        parent = self.backend.parent(focused)
        if parent is None:
            return None

        text = self.assembler.assemble(
            parent,
            max_depth=self.PARENT_MAX_DEPTH,
            roles=TEXT_ROLES,
            include_root=False,
        )
        if text and len(text) > self.SUBSTANTIAL_LENGTH:
            return text
        return None

    def _chat_response(self, app) -> Optional[str]:
        window = self.backend.focused_window(app)
        if window is None:
            return None

        return self.assembler.latest_response(
            window,
            min_depth=self.CHAT_MIN_DEPTH,
            max_depth=self.CHAT_MAX_DEPTH,
            min_group_chars=self.CHAT_MIN_GROUP,
        )

    def _window_scan(self, app) -> Optional[str]:
        window = self.backend.focused_window(app)
        if window is None:
            logger.debug("No focused window")
            return None

        return self.assembler.assemble(
            window,
            max_depth=self.WINDOW_MAX_DEPTH,
            min_length=self.WINDOW_MIN_FRAGMENT,
            roles=TEXT_ROLES,
        )

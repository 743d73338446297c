"""
macOS Accessibility Backend

TreeBackend over AXUIElement handles via PyObjC.
"""

from typing import Any, List, Optional

from AppKit import NSRunningApplication, NSWorkspace
from ApplicationServices import (
    AXIsProcessTrusted,
    AXIsProcessTrustedWithOptions,
    AXUIElementCopyAttributeValue,
    AXUIElementCreateApplication,
    AXUIElementSetAttributeValue,
    kAXChildrenAttribute,
    kAXErrorSuccess,
    kAXFocusedUIElementAttribute,
    kAXFocusedWindowAttribute,
    kAXParentAttribute,
    kAXRoleAttribute,
    kAXTrustedCheckOptionPrompt,
    kAXValueAttribute,
)

from core.targets import Target
from modules.readers.accessibility import TreeBackend
from utils.logger import get_logger

logger = get_logger('readers.macos_ax')


class MacAccessibilityBackend(TreeBackend):
    """AXUIElement queries. Handles are borrowed, never retained past a read."""

    def is_trusted(self) -> bool:
        return bool(AXIsProcessTrusted())

    def request_permission(self) -> bool:
        return bool(AXIsProcessTrustedWithOptions({kAXTrustedCheckOptionPrompt: True}))

    def application(self, target: Target) -> Optional[Any]:
        apps = NSRunningApplication.runningApplicationsWithBundleIdentifier_(target.bundle_id)
        if not apps:
            return None
        return AXUIElementCreateApplication(apps[0].processIdentifier())

    def enable_tree(self, app: Any) -> bool:
        err = AXUIElementSetAttributeValue(app, "AXManualAccessibility", True)
        return err == kAXErrorSuccess

    def focused_element(self, app: Any) -> Optional[Any]:
        return self._attribute(app, kAXFocusedUIElementAttribute)

    def focused_window(self, app: Any) -> Optional[Any]:
        return self._attribute(app, kAXFocusedWindowAttribute)

    def parent(self, node: Any) -> Optional[Any]:
        return self._attribute(node, kAXParentAttribute)

    def children(self, node: Any) -> List[Any]:
        return list(self._attribute(node, kAXChildrenAttribute) or [])

    def role(self, node: Any) -> Optional[str]:
        role = self._attribute(node, kAXRoleAttribute)
        return str(role) if role is not None else None

    def value(self, node: Any) -> Optional[str]:
        value = self._attribute(node, kAXValueAttribute)
        if not isinstance(value, str) or not value.strip():
            return None
        return str(value)

    @staticmethod
    def _attribute(element: Any, attribute: str) -> Optional[Any]:
        err, value = AXUIElementCopyAttributeValue(element, attribute, None)
        if err != kAXErrorSuccess:
            return None
        return value


def frontmost_bundle_id() -> Optional[str]:
    """Bundle identifier of the active application"""
    app = NSWorkspace.sharedWorkspace().frontmostApplication()
    if app is None:
        return None
    return app.bundleIdentifier()

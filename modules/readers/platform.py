"""
Platform capabilities - accessibility tree and frontmost-app lookup
"""

import platform
from typing import Callable, Optional

from core.targets import Target, target_for_bundle_id
from modules.readers.accessibility import TreeBackend
from utils.logger import get_logger

logger = get_logger('readers.platform')


def create_tree_backend() -> Optional[TreeBackend]:
    """
    Create the platform accessibility backend.

    Returns:
        Backend, or None where no accessibility tree is reachable
    """
    if platform.system() != "Darwin":
        logger.info(f"Accessibility tree reading not supported on {platform.system()}")
        return None

    try:
        from modules.readers.macos_ax import MacAccessibilityBackend
    except ImportError as e:
        logger.warning(f"PyObjC not installed, editor monitoring unavailable ({e})")
        return None

    return MacAccessibilityBackend()


def create_frontmost_provider() -> Optional[Callable[[], Optional[Target]]]:
    """
    Create a callable resolving the active application to a monitorable target.

    Returns:
        Provider, or None where the active application cannot be queried
    """
    if platform.system() != "Darwin":
        return None

    try:
        from modules.readers.macos_ax import frontmost_bundle_id
    except ImportError as e:
        logger.warning(f"PyObjC not installed, frontmost app unavailable ({e})")
        return None

    def frontmost() -> Optional[Target]:
        bundle_id = frontmost_bundle_id()
        if not bundle_id:
            return None
        return target_for_bundle_id(bundle_id)

    return frontmost

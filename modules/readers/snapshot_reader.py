"""
Content Snapshot Reader

Picks the reading strategy from the target's surface kind and stamps the
result as a Snapshot.
"""

import time
from typing import Callable, Optional

from core.snapshot import Snapshot
from core.targets import SurfaceKind, Target
from modules.readers.accessibility import AccessibilityReader
from modules.readers.applescript import AppleScriptReader
from modules.readers.base import ContentReader
from modules.readers.platform import create_tree_backend
from utils.logger import get_logger

logger = get_logger('readers.snapshot')


class ContentSnapshotReader:
    """Reads a target with the reader matching its surface kind"""

    def __init__(
        self,
        append_reader: Optional[ContentReader] = None,
        tree_reader: Optional[ContentReader] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.append_reader = append_reader or AppleScriptReader()
        self.tree_reader = tree_reader or AccessibilityReader(create_tree_backend())
        self.clock = clock

    def reader_for(self, target: Target) -> ContentReader:
        if target.surface_kind is SurfaceKind.APPEND_ONLY:
            return self.append_reader
        return self.tree_reader

    def can_read(self, target: Target) -> bool:
        """Whether the reader for this target works on the current platform"""
        return self.reader_for(target).is_available()

    async def read(self, target: Target) -> Optional[str]:
        """Full text of the target, or None. Never raises."""
        try:
            return await self.reader_for(target).read(target)
        except Exception as e:
            logger.error(f"Reader failed for {target.name}: {e}")
            return None

    async def snapshot(self, target: Target) -> Optional[Snapshot]:
        text = await self.read(target)
        if text is None:
            return None
        return Snapshot(text=text, target=target, captured_at=self.clock())

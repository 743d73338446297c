"""
Monitor Session

One session per dictation event:
initial snapshot -> drive the watcher to Done/TimedOut -> delta.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from core.snapshot import Snapshot
from core.targets import Target
from core.watcher import (
    MonitorConfig,
    Phase,
    StabilizationWatcher,
    strip_trailing_prompt,
)
from modules.diff.extractor import DiffExtractor, DiffResult
from modules.readers.snapshot_reader import ContentSnapshotReader
from utils.logger import get_logger

logger = get_logger('session')


class MonitorSession:
    """
    Watches one target for the output of one dictated command.

    The delta is always computed against the initial snapshot, never the
    previous poll, so output that scrolls by between polls is kept.
    """

    def __init__(
        self,
        target: Target,
        initial: Snapshot,
        config: MonitorConfig,
        reader: ContentSnapshotReader,
        extractor: Optional[DiffExtractor] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.target = target
        self.initial = initial
        self.latest = initial
        self.config = config
        self.reader = reader
        self.extractor = extractor or DiffExtractor()
        self.clock = clock

        self.watcher = StabilizationWatcher(
            target=target,
            initial_text=initial.text,
            config=config,
            clock=clock,
            sleep=sleep,
        )
        self.result: Optional[DiffResult] = None

    @property
    def phase(self) -> Phase:
        return self.watcher.phase

    @property
    def last_change_at(self) -> Optional[float]:
        return self.watcher.last_change_at

    async def _poll(self) -> Optional[str]:
        text = await self.reader.read(self.target)
        if text is None:
            logger.debug(f"{self.target.name}: no content this tick")
            return None
        if text != self.latest.text:
            self.latest = Snapshot(text=text, target=self.target, captured_at=self.clock())
        return text

    async def run(self) -> Optional[str]:
        """
        Wait for output to finish and return it.

        Returns:
            New output, or None when nothing new appeared. Never raises.
        """
        try:
            await self.watcher.run(self._poll)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Monitoring {self.target.name} failed: {e}", exc_info=True)

        # Done, TimedOut or failed: best effort against the latest observation
        return self._finish()

    def _finish(self) -> Optional[str]:
        try:
            self.result = self.extractor.extract(
                self.initial.text, self.latest.text, self.target.surface_kind
            )
        except Exception as e:
            logger.error(f"Diff failed for {self.target.name}: {e}")
            return None

        delta = self.result.delta
        if delta and self.watcher.completed_by_prompt:
            delta = strip_trailing_prompt(delta, self.config.prompt_max_line_length)

        if not delta:
            logger.info(f"{self.target.name}: no new output ({self.phase.value})")
            return None

        logger.info(f"{self.target.name}: captured {len(delta)} chars ({self.phase.value})")
        return delta


async def monitor(
    target: Target,
    initial_snapshot: Snapshot,
    config: Optional[MonitorConfig] = None,
    reader: Optional[ContentSnapshotReader] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[str]:
    """
    Wait for a target's new output after a dictated command.

    Args:
        target: Application to watch
        initial_snapshot: Content captured right after the command was typed
        config: Timing configuration
        reader: Snapshot reader (platform readers by default)

    Returns:
        The new output, or None if there was none. Never raises.
    """
    session = MonitorSession(
        target=target,
        initial=initial_snapshot,
        config=config or MonitorConfig(),
        reader=reader or ContentSnapshotReader(clock=clock),
        clock=clock,
        sleep=sleep,
    )
    return await session.run()

"""
App Watcher - continuous monitoring without dictation

Polls the frontmost monitorable application and reports new output once it
stops growing, so keyboard-driven commands get read back too.

Baselines live in a map owned by the orchestrator, keyed by the target's
bundle identifier. All reads and writes happen on the single event-loop
task that drives the polls, so no locking is needed.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from core.targets import Target
from modules.diff.extractor import DiffExtractor
from modules.handlers.base import CapturedOutput, OutputHandler
from modules.readers.snapshot_reader import ContentSnapshotReader
from utils.logger import get_logger

logger = get_logger('app_watcher')


@dataclass
class AppWatcherConfig:
    """Configuration for continuous watching"""
    enabled: bool = False
    idle_interval: float = 3.0          # low CPU when nothing changes
    active_interval: float = 0.5        # while content is growing
    stabilization_delay: float = 5.0    # quiet time before reporting
    minimum_change: int = 100           # smaller deltas are UI noise

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AppWatcherConfig":
        """
        Build from a config mapping (app_watcher.yaml).

        Raises:
            ValueError: On non-numeric or negative values
        """
        data = data or {}
        defaults = cls()
        values = {}
        for key in ('idle_interval', 'active_interval', 'stabilization_delay', 'minimum_change'):
            raw = data.get(key, getattr(defaults, key))
            try:
                value = float(raw)
            except (TypeError, ValueError):
                raise ValueError(f"{key} must be a number, got {raw!r}")
            if value < 0:
                raise ValueError(f"{key} must not be negative, got {value}")
            values[key] = value

        return cls(
            enabled=bool(data.get('enabled', defaults.enabled)),
            idle_interval=values['idle_interval'],
            active_interval=values['active_interval'],
            stabilization_delay=values['stabilization_delay'],
            minimum_change=int(values['minimum_change']),
        )


class AppWatcher:
    """Adaptive poller over the frontmost monitorable target"""

    def __init__(
        self,
        reader: ContentSnapshotReader,
        baselines: Dict[str, str],
        handler: OutputHandler,
        frontmost: Optional[Callable[[], Optional[Target]]],
        config: Optional[AppWatcherConfig] = None,
        extractor: Optional[DiffExtractor] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.reader = reader
        self.baselines = baselines
        self.handler = handler
        self.frontmost = frontmost
        self.config = config or AppWatcherConfig()
        self.extractor = extractor or DiffExtractor()
        self.clock = clock
        self.sleep = sleep

        self.last_seen: Dict[str, str] = {}
        self.last_change_at: Dict[str, float] = {}
        self.is_changing: Dict[str, bool] = {}
        self.current_target: Optional[Target] = None

        # Set while a dictation session owns the target
        self.paused = False

        self.is_running = False
        self._task: Optional[asyncio.Task] = None

    def update_baseline(self, target: Target, content: str):
        """
        Adopt content as already handled.

        Called after dictation-triggered monitoring so the same output is not
        reported a second time.
        """
        key = target.bundle_id
        self.baselines[key] = content
        self.last_seen[key] = content
        self.is_changing[key] = False

    def next_interval(self) -> float:
        target = self.current_target
        if target is not None and self.is_changing.get(target.bundle_id):
            return self.config.active_interval
        return self.config.idle_interval

    async def poll_once(self) -> Optional[str]:
        """
        One poll of the frontmost target.

        Returns:
            Delivered output, or None. Never raises.
        """
        try:
            return await self._poll()
        except Exception as e:
            logger.error(f"Watch poll failed: {e}", exc_info=True)
            return None

    async def _poll(self) -> Optional[str]:
        if self.paused:
            return None

        self.current_target = self.frontmost() if self.frontmost else None
        target = self.current_target
        if target is None:
            return None

        content = await self.reader.read(target)
        if content is None:
            return None

        key = target.bundle_id
        now = self.clock()

        if key not in self.baselines:
            # First sight: existing scrollback is not new output
            self.update_baseline(target, content)
            return None

        if content != self.last_seen.get(key):
            self.last_seen[key] = content
            if content != self.baselines[key]:
                self.is_changing[key] = True
                self.last_change_at[key] = now
            return None

        if not self.is_changing.get(key):
            return None

        if now - self.last_change_at[key] < self.config.stabilization_delay:
            return None

        self.is_changing[key] = False
        delta = self.extractor.diff(self.baselines[key], content, target.surface_kind)
        # Advance first so a failing handler cannot cause a re-report
        self.baselines[key] = content

        if len(delta) < self.config.minimum_change:
            logger.debug(f"{target.name}: change of {len(delta)} chars below threshold")
            return None

        logger.info(f"{target.name}: {len(delta)} chars of new output while watching")
        try:
            await self.handler.on_output(
                CapturedOutput(command="", target=target, output=delta, source="watch")
            )
        except Exception as e:
            logger.error(f"Output handler failed: {e}")
        return delta

    async def run(self):
        """Poll until stopped"""
        self.is_running = True
        logger.info("App watcher started")
        while self.is_running:
            await self.poll_once()
            await self.sleep(self.next_interval())

    def start(self):
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.ensure_future(self.run())

    async def stop(self):
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.current_target = None
        logger.info("App watcher stopped")

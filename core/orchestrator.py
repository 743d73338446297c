"""
Monitor Orchestrator

Entry point for dictation events: resolves the target, runs a monitor
session, keeps per-target baselines and hands the result to the output
handler. Also owns the continuous app watcher.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional

from core.app_watcher import AppWatcher, AppWatcherConfig
from core.session import MonitorSession
from core.snapshot import Snapshot
from core.targets import Target, target_for_bundle_id
from core.watcher import MonitorConfig
from modules.diff.extractor import DiffExtractor
from modules.handlers.base import CapturedOutput, OutputHandler
from modules.handlers.console import ConsoleOutputHandler
from modules.readers.snapshot_reader import ContentSnapshotReader
from utils.config import get_config_manager
from utils.logger import get_logger

logger = get_logger('orchestrator')


class MonitorOrchestrator:
    """
    Coordinates monitoring for dictated commands.

    Only one dictation is monitored at a time; events arriving while busy
    are ignored.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        reader: Optional[ContentSnapshotReader] = None,
        handler: Optional[OutputHandler] = None,
        watch_config: Optional[AppWatcherConfig] = None,
        frontmost: Optional[Callable[[], Optional[Target]]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or MonitorConfig()
        self.clock = clock
        self.sleep = sleep
        self.reader = reader or ContentSnapshotReader(clock=clock)
        self.handler = handler or ConsoleOutputHandler()
        self.extractor = DiffExtractor()

        # Last known content per bundle id, shared with the app watcher
        self.baselines: Dict[str, str] = {}
        # Last delivered output per bundle id, for the replay guard
        self.last_delivered: Dict[str, str] = {}

        self.app_watcher = AppWatcher(
            reader=self.reader,
            baselines=self.baselines,
            handler=self.handler,
            frontmost=frontmost,
            config=watch_config,
            extractor=self.extractor,
            clock=clock,
            sleep=sleep,
        )

        self.busy = False
        self.current_session: Optional[MonitorSession] = None
        self._current_task: Optional[asyncio.Future] = None
        self._cancel_requested = False

        logger.info(
            f"Orchestrator initialized (timeout={self.config.timeout}s, "
            f"prompt_detection={self.config.use_prompt_detection})"
        )

    @classmethod
    def from_config(cls, config_root: str = "config", **kwargs) -> "MonitorOrchestrator":
        """
        Build from config/modules/monitor.yaml and app_watcher.yaml.

        Missing files fall back to defaults; invalid values raise ValueError.
        """
        manager = get_config_manager(config_root)

        try:
            monitor_data = manager.load_module_config('monitor')
        except FileNotFoundError as e:
            logger.warning(f"{e}, using defaults")
            monitor_data = {}

        try:
            watch_data = manager.load_module_config('app_watcher')
        except FileNotFoundError as e:
            logger.warning(f"{e}, using defaults")
            watch_data = {}

        return cls(
            config=MonitorConfig.from_dict(monitor_data),
            watch_config=AppWatcherConfig.from_dict(watch_data),
            **kwargs
        )

    # ============================================
    # DICTATION
    # ============================================

    async def handle_dictation(self, command_text: str, bundle_id: str) -> Optional[str]:
        """
        Monitor the application a command was dictated into.

        Args:
            command_text: Transcribed command
            bundle_id: Application the text was typed into

        Returns:
            New output, or None. Never raises.
        """
        text = command_text.strip()
        if not text:
            return None

        target = target_for_bundle_id(bundle_id)
        if target is None:
            logger.debug(f"Ignoring dictation into unmonitored app {bundle_id or '(unknown)'}")
            return None

        if self.busy:
            logger.info(f"Busy, ignoring dictation: {text[:60]}")
            return None

        return await self.monitor_target(target, text)

    async def monitor_target(self, target: Target, command_text: str = "") -> Optional[str]:
        """Snapshot the target now, wait for its new output and deliver it."""
        self.busy = True
        self.app_watcher.paused = True
        self._cancel_requested = False
        try:
            initial = await self.reader.snapshot(target)
            if initial is None:
                initial = Snapshot(text="", target=target, captured_at=self.clock())

            session = MonitorSession(
                target=target,
                initial=initial,
                config=self.config,
                reader=self.reader,
                extractor=self.extractor,
                clock=self.clock,
                sleep=self.sleep,
            )
            self.current_session = session

            self._current_task = asyncio.ensure_future(session.run())
            try:
                output = await self._current_task
            except asyncio.CancelledError:
                if not self._cancel_requested:
                    raise
                logger.info(f"Monitoring {target.name} cancelled")
                return None

            output = self._guard_replay(target, session, output)
            self.app_watcher.update_baseline(target, session.latest.text)

            await self._deliver(CapturedOutput(command=command_text, target=target, output=output))
            return output

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Dictation monitoring failed: {e}", exc_info=True)
            return None
        finally:
            self.busy = False
            self.app_watcher.paused = False
            self.current_session = None
            self._current_task = None

    def cancel_current(self) -> bool:
        """Stop the running session. Returns True if one was cancelled."""
        if self._current_task is None or self._current_task.done():
            return False
        self._cancel_requested = True
        self._current_task.cancel()
        return True

    def _guard_replay(self, target: Target, session: MonitorSession, output: Optional[str]) -> Optional[str]:
        """Drop a full-content fallback that repeats what was already delivered."""
        key = target.bundle_id
        result = session.result

        if output and result is not None and result.used_fallback:
            if self.last_delivered.get(key) == output:
                logger.info(f"{target.name}: suppressing replay of delivered output")
                return None

        if output:
            self.last_delivered[key] = output
        return output

    async def _deliver(self, capture: CapturedOutput):
        try:
            if capture.is_empty():
                await self.handler.on_no_output(capture)
            else:
                await self.handler.on_output(capture)
        except Exception as e:
            logger.error(f"Output handler failed: {e}")

    # ============================================
    # CONTINUOUS WATCHING
    # ============================================

    def start_watching(self):
        self.app_watcher.start()

    async def stop_watching(self):
        await self.app_watcher.stop()

    async def shutdown(self):
        self.cancel_current()
        await self.stop_watching()
        logger.info("Orchestrator shut down")

"""
AppleScript Reader

Reads terminal scrollback (Terminal.app, iTerm2) through osascript.
"""

import asyncio
import shutil
from typing import Optional

from core.targets import Target
from modules.readers.base import ContentReader
from utils.logger import get_logger

logger = get_logger('readers.applescript')

OSASCRIPT = "/usr/bin/osascript"


class AppleScriptReader(ContentReader):
    """Runs each target's scrollback query through the OS scripting bridge"""

    def __init__(self, executable: str = OSASCRIPT, timeout: float = 5.0):
        self.executable = executable
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    async def read(self, target: Target) -> Optional[str]:
        if not target.applescript:
            logger.debug(f"No scrollback query for {target.name}")
            return None

        return await self.run_script(target.applescript)

    async def run_script(self, script: str) -> Optional[str]:
        """
        Run an AppleScript and return its trimmed stdout.

        Returns:
            Output text, or None on empty output, failure or timeout
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable, "-e", script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug(f"osascript unavailable: {e}")
            return None

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"osascript timed out after {self.timeout}s")
            if process.returncode is None:
                process.kill()
                await process.wait()
            return None

        if process.returncode != 0:
            logger.debug(f"osascript exited with {process.returncode}")
            return None

        output = stdout.decode("utf-8", errors="replace").strip()
        return output or None

"""
Console Handler - prints captured output
"""

from modules.handlers.base import CapturedOutput, OutputHandler
from utils.logger import get_logger, log_capture

logger = get_logger('handlers.console')


class ConsoleOutputHandler(OutputHandler):
    """Prints captures and records them in the transcript log"""

    def __init__(self, prefix: str = "Output: "):
        """
        Initialize console handler.

        Args:
            prefix: Prefix to show before output
        """
        self.prefix = prefix

    async def on_output(self, capture: CapturedOutput):
        print(f"\n[{capture.target.name}] {self.prefix}\n{capture.output}\n")
        log_capture(capture.command, capture.target.name, capture.output)

    async def on_no_output(self, capture: CapturedOutput):
        print(f"\n[{capture.target.name}] No new output.\n")
        logger.info(f"No new output for '{capture.command}' in {capture.target.name}")

"""
Output Handlers - Base Interface

Where captured output goes next: summarization, speech, display. The
monitor only hands over the delta with the command and target that
produced it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from core.targets import Target


@dataclass
class CapturedOutput:
    """Output of one dictated command"""
    command: str
    target: Target
    output: Optional[str]
    source: str = "dictation"   # 'dictation' or 'watch'

    def is_empty(self) -> bool:
        """Check if no new output was detected"""
        return not self.output or self.output.strip() == ""


class OutputHandler(ABC):
    """Receives captured output from the monitor"""

    @abstractmethod
    async def on_output(self, capture: CapturedOutput):
        """
        Handle new output.

        Args:
            capture: Command, target and the new output text
        """
        pass

    async def on_no_output(self, capture: CapturedOutput):
        """Handle a command that produced no new output"""
        pass

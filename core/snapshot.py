"""
Snapshot - immutable capture of a target's visible text
"""

from dataclasses import dataclass

from core.targets import Target


@dataclass(frozen=True)
class Snapshot:
    """Full-text capture of a target at a point in time"""
    text: str
    target: Target
    captured_at: float  # seconds on the capturing clock

    def is_empty(self) -> bool:
        """Check if nothing was captured"""
        return not self.text or self.text.strip() == ""

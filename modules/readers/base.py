"""
Content Readers - Base Interface

A reader acquires the full visible text of a target. Readers never raise:
any failure (application not running, no window, permission revoked,
transient OS error) is reported as None, meaning "no content this tick".
"""

from abc import ABC, abstractmethod
from typing import Optional

from core.targets import Target


class ContentReader(ABC):
    """Base interface for per-surface content readers"""

    @abstractmethod
    async def read(self, target: Target) -> Optional[str]:
        """
        Read the target's current visible text.

        Args:
            target: Application surface to read

        Returns:
            Full text, or None if nothing could be read
        """
        pass

    def is_available(self) -> bool:
        """Check if this reader can work on the current platform"""
        return True

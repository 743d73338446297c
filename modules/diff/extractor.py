"""
Diff Extractor

Computes the text a target produced between two snapshots.

Terminals grow by appending to their scrollback, so the delta is whatever
follows the longest common line prefix. Editor and chat surfaces rewrite
their text tree in place, so the delta is the set of lines that were not
present before.
"""

from dataclasses import dataclass
from typing import List

from core.targets import SurfaceKind
from utils.logger import get_logger

logger = get_logger('diff')


@dataclass(frozen=True)
class DiffResult:
    """Delta between two snapshots. Computed per poll, never persisted."""
    delta: str
    used_fallback: bool = False

    @property
    def had_new_content(self) -> bool:
        return bool(self.delta)


class DiffExtractor:
    """Selects the diff algorithm by surface kind"""

    def extract(self, before: str, after: str, kind: SurfaceKind) -> DiffResult:
        """
        Compute the new content in `after` relative to `before`.

        Args:
            before: Earlier snapshot text (the session's initial snapshot)
            after: Later snapshot text
            kind: Surface kind of the target both snapshots came from

        Returns:
            DiffResult, empty when nothing is new
        """
        if before == after:
            return DiffResult(delta="")

        if kind is SurfaceKind.APPEND_ONLY:
            return DiffResult(delta=self.append_only_delta(before, after))

        return self.mutable_tree_delta(before, after)

    def diff(self, before: str, after: str, kind: SurfaceKind) -> str:
        """Convenience wrapper returning only the delta text"""
        return self.extract(before, after, kind).delta

    @staticmethod
    def append_only_delta(before: str, after: str) -> str:
        """Lines after the common prefix, or in-place growth of the last line."""
        if before == after:
            return ""

        before_lines = before.split("\n")
        after_lines = after.split("\n")

        if len(after_lines) <= len(before_lines):
            # Streaming without newlines grows the existing last line
            if len(after) > len(before):
                return after[len(before):].strip()
            return ""

        common = 0
        for old, new in zip(before_lines, after_lines):
            if old != new:
                break
            common += 1

        return "\n".join(after_lines[common:]).strip()

    @staticmethod
    def mutable_tree_delta(before: str, after: str) -> DiffResult:
        """Set difference over trimmed lines, full text when inconclusive."""
        if before == after:
            return DiffResult(delta="")

        seen = {line for line in _trimmed_lines(before)}
        new_lines = [line for line in _trimmed_lines(after) if line not in seen]

        if new_lines:
            return DiffResult(delta="\n".join(new_lines))

        # Rewritten in place with no line-level match; the summarizer dedups
        logger.debug("Line diff inconclusive, returning full content")
        return DiffResult(delta=after.strip(), used_fallback=True)


def _trimmed_lines(text: str) -> List[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]

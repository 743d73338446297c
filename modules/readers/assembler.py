"""
Fragment Assembler

Editor and chat UIs expose their text as many small nodes. The assembler
walks a subtree in document order, keeps the text-bearing nodes, and joins
their text into one block.

Chat panels need more care: a streamed response is split into dozens of
static-text runs at one nesting depth, next to prompts and UI chrome at
other depths. latest_response() groups runs by depth and picks the most
recent block at the depth where responses live.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional

from utils.logger import get_logger

logger = get_logger('readers.assembler')

TEXT_ROLES = frozenset({"AXTextArea", "AXStaticText", "AXTextField"})
CHAT_ROLES = frozenset({"AXStaticText"})


@dataclass(frozen=True)
class TextFragment:
    """Leaf text found during one assembly pass"""
    text: str
    role: str
    depth: int


@dataclass
class FragmentGroup:
    """Consecutive fragments found at the same depth"""
    depth: int
    fragments: List[TextFragment] = field(default_factory=list)

    @property
    def text(self) -> str:
        # Runs of one paragraph carry their own spacing
        return "".join(fragment.text for fragment in self.fragments)


def group_by_depth(fragments: List[TextFragment]) -> List[FragmentGroup]:
    """Split fragments into runs of equal depth, keeping document order."""
    groups: List[FragmentGroup] = []
    for fragment in fragments:
        if groups and groups[-1].depth == fragment.depth:
            groups[-1].fragments.append(fragment)
        else:
            groups.append(FragmentGroup(depth=fragment.depth, fragments=[fragment]))
    return groups


class FragmentAssembler:
    """
    Depth-bounded, order-preserving text collection over an opaque tree.

    Nodes are never retained beyond a pass. The depth bound caps cost and
    also terminates on cyclic trees. Repeated phrases are kept: they are
    legitimate content.
    """

    def __init__(
        self,
        children: Callable[[Any], Iterable[Any]],
        role: Callable[[Any], Optional[str]],
        value: Callable[[Any], Optional[str]],
        max_fragments: int = 500,
    ):
        self._children = children
        self._role = role
        self._value = value
        self.max_fragments = max_fragments

    def collect(
        self,
        root: Any,
        max_depth: int,
        min_length: int = 0,
        roles: Optional[frozenset] = TEXT_ROLES,
        include_root: bool = True,
    ) -> List[TextFragment]:
        """
        Collect qualifying fragments in document order.

        Args:
            root: Node to start from (depth 0)
            max_depth: Deepest level visited
            min_length: Fragments must be longer than this
            roles: Accepted roles, or None for any role
            include_root: Whether the root itself may contribute text
        """
        def keep(text: str) -> bool:
            return bool(text.strip()) and len(text) > min_length

        fragments: List[TextFragment] = []
        self._walk(root, 0, max_depth, roles, keep, self.max_fragments, include_root, fragments)
        return fragments

    def assemble(
        self,
        root: Any,
        max_depth: int,
        min_length: int = 0,
        roles: Optional[frozenset] = TEXT_ROLES,
        include_root: bool = True,
    ) -> Optional[str]:
        """Collect and join fragments into one block, or None if none qualify."""
        fragments = self.collect(root, max_depth, min_length, roles, include_root)
        text = self.join(fragments)
        logger.debug(f"Assembled {len(fragments)} fragments ({len(text)} chars)")
        return text or None

    def latest_response(
        self,
        root: Any,
        min_depth: int = 30,
        max_depth: int = 49,
        min_group_chars: int = 100,
        limit: int = 2000,
    ) -> Optional[str]:
        """
        Most recent long block of chat text below root.

        Static-text runs deeper than min_depth are grouped by depth. Groups
        no longer than min_group_chars are labels and short prompts. The
        depth holding the largest group is taken as the response depth,
        and the last substantial group at that depth is returned.

        Args:
            root: Window to scan (depth 0)
            min_depth: Shallowest depth a chat panel renders at
            max_depth: Deepest level visited
            min_group_chars: A group must be longer than this
            limit: Cap on fragments gathered in one pass

        Returns:
            Stripped response text, or None when no group qualifies
        """
        fragments: List[TextFragment] = []
        # Whitespace-only runs are the spaces between words
        self._walk(root, 0, max_depth, CHAT_ROLES, bool, limit, True, fragments)

        deep = [fragment for fragment in fragments if fragment.depth >= min_depth]
        groups = [
            group for group in group_by_depth(deep)
            if len(group.text) > min_group_chars
        ]
        logger.debug(
            f"Chat assembly: {len(fragments)} fragments, {len(deep)} deep, "
            f"{len(groups)} substantial groups"
        )
        if not groups:
            return None

        response_depth = max(groups, key=lambda group: len(group.text)).depth
        latest = [group for group in groups if group.depth == response_depth][-1]
        return latest.text.strip() or None

    @staticmethod
    def join(fragments: List[TextFragment]) -> str:
        return "\n".join(fragment.text for fragment in fragments).strip()

    def _walk(self, node, depth, max_depth, roles, keep, limit, include_self, out):
        if depth > max_depth or len(out) >= limit:
            return

        if include_self:
            role = self._role(node) or ""
            if roles is None or role in roles:
                text = self._value(node)
                if text and keep(text):
                    out.append(TextFragment(text=text, role=role, depth=depth))

        for child in self._children(node) or ():
            self._walk(child, depth + 1, max_depth, roles, keep, limit, True, out)

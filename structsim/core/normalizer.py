"""Normalizer: raw syntax tree -> structural tree.

Identifiers, literals, comments and punctuation are removed so that two
samples differing only in naming or surface text produce the same tree.
"""

from typing import Iterator, List, Optional, Tuple

from .languages import LanguageProfile, PYTHON_PROFILE
from .types import RawNode, StructuralNode
from ..utils.logging_setup import get_logger

logger = get_logger(__name__)


class Normalizer:
    """Filters a raw tree into a :class:`StructuralNode` tree.

    The drop decision is made before a child is visited: a dropped node
    takes its entire subtree with it, and its children are never promoted
    to the parent. Surviving children keep source order.

    Traversal uses an explicit stack, so arbitrarily deep inputs cannot
    exhaust the interpreter's recursion limit.
    """

    def __init__(self, profile: Optional[LanguageProfile] = None):
        self.profile = profile or PYTHON_PROFILE

    def normalize(self, raw: RawNode) -> StructuralNode:
        """Build the structural tree rooted at ``raw``.

        The root itself is always retained. Never raises for a well-formed
        tree; unknown node types are kept.
        """
        should_keep = self.profile.should_keep
        # (raw node, iterator over its remaining children, kept child nodes)
        stack: List[Tuple[RawNode, Iterator[RawNode], List[StructuralNode]]] = [
            (raw, iter(raw.children), [])
        ]
        result: Optional[StructuralNode] = None
        dropped = 0

        while stack:
            node, pending, kept = stack[-1]
            for child in pending:
                if should_keep(child.type):
                    stack.append((child, iter(child.children), []))
                    break
                dropped += 1
            else:
                stack.pop()
                built = StructuralNode(node.type, tuple(kept))
                if stack:
                    stack[-1][2].append(built)
                else:
                    result = built

        logger.debug(f"Normalized {raw.type!r} tree, dropped {dropped} subtrees")
        return result

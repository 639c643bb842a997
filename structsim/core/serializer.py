"""Serializer: structural tree -> canonical depth-tagged token sequence.

The text form (``type:depth`` tokens joined by single spaces) is what gets
persisted for corpus entries, so ``encode`` and ``decode`` must stay
compatible with previously stored strings.
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from .types import StructuralNode, Token, TokenLike, canonical_label

TOKEN_SEPARATOR = " "
FIELD_SEPARATOR = ":"


class Serializer:
    """Pre-order depth-first flattening of a structural tree."""

    def serialize(self, root: StructuralNode) -> List[Token]:
        """Emit ``(label, depth)`` for each node, parent before children.

        Labels are canonical; children are visited left to right and the
        root has depth 0.
        """
        tokens: List[Token] = []
        stack: List[Tuple[StructuralNode, int]] = [(root, 0)]
        while stack:
            node, depth = stack.pop()
            tokens.append(Token(canonical_label(node.type), depth))
            for child in reversed(node.children):
                stack.append((child, depth + 1))
        return tokens

    def to_text(self, root: StructuralNode) -> str:
        """Serialize and encode in one step."""
        return encode(self.serialize(root))


def encode(tokens: Iterable[TokenLike]) -> str:
    """Join tokens into the canonical text form.

    Whitespace inside a type label is collapsed to ``_`` so the token
    separator can never appear inside a label.
    """
    return TOKEN_SEPARATOR.join(Token(*token).encode() for token in tokens)


def split_token(text: str) -> Tuple[str, Optional[str]]:
    """Split one encoded token on its last field separator.

    Returns ``(type, depth_text)``; ``depth_text`` is None when the token
    has no separator at all.
    """
    label, sep, depth = text.rpartition(FIELD_SEPARATOR)
    if not sep:
        return text, None
    return label, depth


def parse_depth(text: str) -> Optional[int]:
    """Depth field as a non-negative int, or None if it is not one."""
    if text and text.isascii() and text.isdigit():
        return int(text)
    return None


def iter_encoded(serialized: str) -> Iterator[str]:
    """Yield the non-empty encoded tokens of a canonical string."""
    for chunk in serialized.split():
        if chunk:
            yield chunk


def decode_with_stats(serialized: str) -> Tuple[List[Token], int]:
    """Parse a canonical string back into tokens, counting rejects.

    A token without any separator is read as its own literal text at
    depth 0. A token whose depth is missing or not a non-negative integer,
    or whose label is empty, is skipped and counted.

    Returns:
        Tuple of (tokens, skipped_count)
    """
    tokens: List[Token] = []
    skipped = 0
    for chunk in iter_encoded(serialized):
        label, depth_text = split_token(chunk)
        if depth_text is None:
            tokens.append(Token(chunk, 0))
            continue
        depth = parse_depth(depth_text)
        if depth is None or not label:
            skipped += 1
            continue
        tokens.append(Token(label, depth))
    return tokens, skipped


def decode(serialized: str) -> List[Token]:
    """Parse a canonical string back into tokens, dropping unparseable ones."""
    return decode_with_stats(serialized)[0]

"""Language-keyed filtering profiles.

Each profile decides which raw node types carry structure. The table is
static; configuration can derive extended copies with ``extend``.
"""

import re
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..errors import UnsupportedLanguageError

_ALPHA = re.compile(r"[A-Za-z]")

# Punctuation, bracket and quote tokens shared by C-like and Python grammars.
PUNCTUATION_TYPES = frozenset({
    ":", ",", ".", ";",
    "(", ")", "[", "]", "{", "}",
    "->", "=>", "...",
    '"', "'", '"""', "'''",
})


@dataclass(frozen=True)
class LanguageProfile:
    """Drop/keep policy for one language.

    Attributes:
        name: Language key, as used by the parser registry
        drop_types: Node types discarded together with their whole subtree
        always_keep: Node types retained regardless of the drop rules
        suffixes: Source file suffixes for this language
    """
    name: str
    drop_types: FrozenSet[str]
    always_keep: FrozenSet[str] = frozenset()
    suffixes: Tuple[str, ...] = ()

    def should_keep(self, node_type: str) -> bool:
        """Return True if a node of this type survives normalization.

        Unknown types are kept; a type with no letters at all is a raw
        operator or symbol and is dropped.
        """
        if node_type in self.always_keep:
            return True
        if node_type in self.drop_types:
            return False
        return _ALPHA.search(node_type) is not None

    def extend(self, extra_drop: Iterable[str] = (),
               always_keep: Iterable[str] = ()) -> "LanguageProfile":
        """Copy of this profile with additional drop and keep types."""
        return replace(
            self,
            drop_types=self.drop_types | frozenset(extra_drop),
            always_keep=self.always_keep | frozenset(always_keep),
        )


PYTHON_PROFILE = LanguageProfile(
    name="python",
    drop_types=frozenset({
        "comment",
        "identifier",
        "string",
        "string_content",
        "string_start",
        "string_end",
        "escape_sequence",
        "integer",
        "float",
        "true",
        "false",
        "none",
    }) | PUNCTUATION_TYPES,
    always_keep=frozenset({
        "function_definition",
        "class_definition",
        "decorated_definition",
        "if_statement",
        "for_statement",
        "while_statement",
        "try_statement",
        "with_statement",
        "return_statement",
        "yield",
        "import_statement",
        "import_from_statement",
    }),
    suffixes=(".py",),
)

_PROFILES: Dict[str, LanguageProfile] = {
    PYTHON_PROFILE.name: PYTHON_PROFILE,
}


def register_profile(profile: LanguageProfile) -> None:
    """Add or replace the profile for ``profile.name``."""
    _PROFILES[profile.name] = profile


def get_profile(language: str,
                overrides: Optional[Dict[str, Dict[str, List[str]]]] = None) -> LanguageProfile:
    """Look up a language profile, applying configured overrides.

    Args:
        language: Language key
        overrides: Mapping of language -> {"extra_drop": [...], "always_keep": [...]}

    Raises:
        UnsupportedLanguageError: if no profile is registered for ``language``
    """
    profile = _PROFILES.get(language)
    if profile is None:
        raise UnsupportedLanguageError(language, _PROFILES)
    extra = (overrides or {}).get(language)
    if extra:
        profile = profile.extend(
            extra_drop=extra.get("extra_drop", ()),
            always_keep=extra.get("always_keep", ()),
        )
    return profile


def supported_languages() -> List[str]:
    """Names of all registered profiles."""
    return sorted(_PROFILES)

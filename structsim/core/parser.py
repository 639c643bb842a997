"""tree-sitter parsing collaborator.

One ``TreeSitterParser`` is built by the caller and handed to the
pipeline; grammars are registered on it by language name.
"""

from typing import Callable, Dict, List, Optional

from tree_sitter import Language, Parser, Tree

from ..errors import UnsupportedLanguageError
from ..utils.logging_setup import get_logger

logger = get_logger(__name__)


def _python_language() -> Language:
    import tree_sitter_python

    return Language(tree_sitter_python.language())


# Grammars loaded on first use, keyed by language name.
DEFAULT_GRAMMARS: Dict[str, Callable[[], Language]] = {
    "python": _python_language,
}


class TreeSitterParser:
    """Owns the tree-sitter grammars and a parser per language."""

    def __init__(self, grammars: Optional[Dict[str, Callable[[], Language]]] = None):
        self._loaders: Dict[str, Callable[[], Language]] = dict(
            DEFAULT_GRAMMARS if grammars is None else grammars
        )
        self._parsers: Dict[str, Parser] = {}

    def register(self, name: str, language: Language) -> None:
        """Register an already built grammar under ``name``."""
        self._loaders[name] = lambda: language
        self._parsers.pop(name, None)

    def supported_languages(self) -> List[str]:
        return sorted(self._loaders)

    def _parser_for(self, language: str) -> Parser:
        parser = self._parsers.get(language)
        if parser is None:
            loader = self._loaders.get(language)
            if loader is None:
                raise UnsupportedLanguageError(language, self._loaders)
            parser = Parser(loader())
            self._parsers[language] = parser
            logger.debug(f"Loaded tree-sitter grammar for {language}")
        return parser

    def parse(self, code: str, language: str = "python") -> Tree:
        """Parse ``code``; syntax errors show up as ``ERROR`` nodes, not exceptions.

        Raises:
            UnsupportedLanguageError: if no grammar is registered for ``language``
        """
        return self._parser_for(language).parse(code.encode("utf-8"))

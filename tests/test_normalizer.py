"""Tests for the normalizer and language profiles."""

import pytest

from structsim.core.languages import (
    LanguageProfile,
    PYTHON_PROFILE,
    get_profile,
    supported_languages,
)
from structsim.core.normalizer import Normalizer
from structsim.core.types import StructuralNode
from structsim.errors import UnsupportedLanguageError

from conftest import node


def simple_function():
    """def add(a): return a + 1  # note"""
    return node(
        "module",
        node(
            "function_definition",
            node("def"),
            node("identifier"),
            node("parameters", node("("), node("identifier"), node(")")),
            node(":"),
            node(
                "block",
                node(
                    "return_statement",
                    node("return"),
                    node("binary_operator", node("identifier"), node("+"), node("integer")),
                ),
            ),
        ),
        node("comment"),
    )


class TestLanguageProfile:
    """Test the drop/keep policy."""

    def test_drops_listed_types(self):
        for node_type in ("comment", "identifier", "string", "integer", "true", "none", "(", ":"):
            assert PYTHON_PROFILE.should_keep(node_type) is False

    def test_drops_types_without_letters(self):
        for node_type in ("==", "+=", "<=", "**", "//"):
            assert PYTHON_PROFILE.should_keep(node_type) is False

    def test_unknown_types_are_kept(self):
        assert PYTHON_PROFILE.should_keep("list_comprehension") is True
        assert PYTHON_PROFILE.should_keep("ERROR") is True

    def test_always_keep_takes_precedence(self):
        profile = LanguageProfile(
            name="test",
            drop_types=frozenset({"decorator", "=="}),
            always_keep=frozenset({"decorator", "=="}),
        )
        assert profile.should_keep("decorator") is True
        assert profile.should_keep("==") is True

    def test_extend_adds_types(self):
        profile = PYTHON_PROFILE.extend(extra_drop=["lambda"], always_keep=["identifier"])
        assert profile.should_keep("lambda") is False
        assert profile.should_keep("identifier") is True
        # The static table is untouched
        assert PYTHON_PROFILE.should_keep("lambda") is True

    def test_get_profile_applies_overrides(self):
        profile = get_profile("python", {"python": {"extra_drop": ["pass_statement"]}})
        assert profile.should_keep("pass_statement") is False

    def test_get_profile_unknown_language(self):
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            get_profile("cobol")
        assert exc_info.value.language == "cobol"
        assert "python" in exc_info.value.supported

    def test_supported_languages(self):
        assert "python" in supported_languages()


class TestNormalizer:
    """Test raw tree filtering."""

    def test_filters_non_structural_nodes(self):
        result = Normalizer().normalize(simple_function())

        assert result == StructuralNode("module", (
            StructuralNode("function_definition", (
                StructuralNode("def"),
                StructuralNode("parameters"),
                StructuralNode("block", (
                    StructuralNode("return_statement", (
                        StructuralNode("return"),
                        StructuralNode("binary_operator"),
                    )),
                )),
            )),
        ))

    def test_dropped_node_takes_subtree(self):
        # Children of a dropped node are never promoted to its parent.
        raw = node(
            "expression_statement",
            node("string", node("interpolation", node("call"))),
            node("call"),
        )
        result = Normalizer().normalize(raw)

        assert result == StructuralNode("expression_statement", (StructuralNode("call"),))

    def test_preserves_source_order(self):
        raw = node("block", node("if_statement"), node("comment"), node("for_statement"),
                   node("while_statement"))
        result = Normalizer().normalize(raw)

        assert [child.type for child in result.children] == [
            "if_statement", "for_statement", "while_statement",
        ]

    def test_root_is_always_kept(self):
        result = Normalizer().normalize(node("comment", node("call")))
        assert result.type == "comment"
        assert result.children == (StructuralNode("call"),)

    def test_rename_invariance(self):
        a = node("module", node("assignment", node("identifier"), node("="), node("integer")))
        b = node("module", node("assignment", node("identifier"), node("="), node("float")),
                 node("comment"))
        normalizer = Normalizer()
        assert normalizer.normalize(a) == normalizer.normalize(b)

    def test_custom_profile(self):
        profile = PYTHON_PROFILE.extend(always_keep=["identifier"])
        result = Normalizer(profile).normalize(node("call", node("identifier"), node("(")))
        assert result == StructuralNode("call", (StructuralNode("identifier"),))

    def test_deep_tree_does_not_recurse(self):
        depth = 5000
        raw = node("leaf")
        for _ in range(depth):
            raw = node("block", raw)

        result = Normalizer().normalize(raw)

        assert result.depth() == depth
        assert result.size() == depth + 1

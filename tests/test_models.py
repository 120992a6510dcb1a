"""Tests for models, link type helpers and title derivation."""

import pytest
from pydantic import ValidationError

from memospace.models import (
    Category,
    Link,
    LinkColor,
    LinkType,
    Note,
    link_type_label,
    parse_link_color,
)
from memospace.titles import generate_simple_title, resolve_title


class TestGenerateSimpleTitle:
    """Tests for title derivation from content."""

    def test_question_answer_uses_question(self) -> None:
        assert generate_simple_title("Q: How do I rebase?\n\nA: Use git rebase") == (
            "How do I rebase?"
        )

    def test_long_question_truncated(self) -> None:
        question = "Why " + "very " * 20 + "long?"
        title = generate_simple_title(f"Q: {question}\n\nA: because")

        assert title.endswith("...")
        assert len(title) == 50

    def test_first_line(self) -> None:
        assert generate_simple_title("Shopping list\n- milk\n- eggs") == "Shopping list"

    def test_long_text_cut_at_word_boundary(self) -> None:
        content = "This sentence is deliberately long so that it runs past the fifty character limit"

        title = generate_simple_title(content)

        assert title == "This sentence is deliberately long so that it..."

    def test_short_content_as_is(self) -> None:
        assert generate_simple_title("  hello  ") == "hello"

    def test_resolve_title_prefers_explicit(self) -> None:
        assert resolve_title("body", " Mine ") == "Mine"
        assert resolve_title("body", "   ") == "body"
        assert resolve_title("body", None) == "body"


class TestLinkTypes:
    """Tests for link type and color helpers."""

    def test_builtin_label(self) -> None:
        assert link_type_label("FollowUp") == "FollowUp"

    def test_custom_label(self) -> None:
        assert link_type_label(" Inspired ") == "Inspired"
        assert link_type_label("  ") == "Custom"

    @pytest.mark.parametrize("value", ["yellow", "YELLOW", " Yellow "])
    def test_parse_color_case_insensitive(self, value: str) -> None:
        assert parse_link_color(value) is LinkColor.YELLOW

    def test_parse_unknown_color(self) -> None:
        assert parse_link_color("teal") is None
        assert parse_link_color(None) is None

    def test_link_accepts_enum_type(self) -> None:
        link = Link(source_id="a", target_id="b", link_type=LinkType.REFERENCE)

        assert link.link_type == "Reference"
        assert not link.is_custom

    def test_link_is_frozen(self) -> None:
        link = Link(source_id="a", target_id="b", link_type="Related")

        with pytest.raises(ValidationError):
            link.label = "x"


class TestNoteAndCategory:
    """Tests for note and category models."""

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Note(content="x", ai_confidence=1.5)

    def test_ids_are_unique(self) -> None:
        assert Note(content="x").id != Note(content="x").id

    def test_category_display_fields(self) -> None:
        category = Category(name="Ideas", path=["Work", "Ideas"])

        assert category.level == 1
        assert category.full_path == "Work → Ideas"
        dumped = category.model_dump(mode="json")
        assert dumped["full_path"] == "Work → Ideas"
        assert Category.model_validate(dumped).path == ["Work", "Ideas"]

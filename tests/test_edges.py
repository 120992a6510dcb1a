"""Tests for edge construction: grouping, curves, colors, direction and labels."""

import pytest

from memospace.graph.edges import (
    CURVE_ORDER,
    CurveStyle,
    build_edges,
    pair_key,
    resolve_color,
    resolve_directional,
    resolve_label,
)
from memospace.models import Link, LinkType


def _link(link_id: str, source: str = "a", target: str = "b", link_type="Related", **fields):
    return Link(id=link_id, source_id=source, target_id=target, link_type=link_type, **fields)


class TestVisibility:
    """Tests for the visibility filter."""

    def test_hidden_endpoint_discards_link(self) -> None:
        links = [_link("1", "a", "b"), _link("2", "a", "c")]

        edges = build_edges(links, {"a", "b"})

        assert [e.id for e in edges] == ["1"]

    def test_no_visible_notes(self) -> None:
        assert build_edges([_link("1")], []) == []


class TestGrouping:
    """Tests for pair grouping and curve assignment."""

    def test_pair_key_is_order_independent(self) -> None:
        assert pair_key("b", "a") == pair_key("a", "b") == ("a", "b")

    def test_curves_follow_collection_order(self) -> None:
        """Later links between the same pair get strictly later curve styles."""
        links = [_link("1"), _link("2", "b", "a"), _link("3"), _link("4", "b", "a")]

        edges = build_edges(links, {"a", "b"})

        assert [e.curve for e in edges] == [
            CurveStyle.STRAIGHT,
            CurveStyle.BEZIER,
            CurveStyle.BEZIER_OPPOSITE,
            CurveStyle.OFFSET,
        ]
        ranks = [e.curve_rank for e in edges]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == len(ranks)

    def test_reverse_links_keep_direction(self) -> None:
        edges = build_edges([_link("1", "a", "b"), _link("2", "b", "a")], {"a", "b"})

        assert [(e.source, e.target) for e in edges] == [("a", "b"), ("b", "a")]
        assert all(e.group_size == 2 for e in edges)

    def test_fifth_link_reuses_offset_curve(self) -> None:
        links = [_link(str(i)) for i in range(5)]

        edges = build_edges(links, {"a", "b"})

        assert edges[-1].curve is CurveStyle.OFFSET
        assert [e.group_index for e in edges] == [0, 1, 2, 3, 4]

    def test_separate_pairs_each_start_straight(self) -> None:
        links = [_link("1", "a", "b"), _link("2", "b", "c"), _link("3", "b", "a")]

        edges = build_edges(links, {"a", "b", "c"})

        by_id = {e.id: e for e in edges}
        assert by_id["1"].curve is CurveStyle.STRAIGHT
        assert by_id["2"].curve is CurveStyle.STRAIGHT
        assert by_id["3"].curve is CurveStyle.BEZIER
        assert [e.id for e in edges] == ["1", "3", "2"]

    def test_hidden_links_do_not_consume_curve_slots(self) -> None:
        links = [_link("1", "a", "b"), _link("2", "a", "c"), _link("3", "a", "b")]

        edges = build_edges(links, {"a", "b"})

        assert [e.curve for e in edges] == [CurveStyle.STRAIGHT, CurveStyle.BEZIER]

    def test_curve_order(self) -> None:
        assert CURVE_ORDER[0] is CurveStyle.STRAIGHT


class TestColor:
    """Tests for color resolution priority."""

    @pytest.mark.parametrize("link_type", ["Related", "Supports", "Contradicts", "my custom"])
    def test_explicit_color_wins(self, link_type: str) -> None:
        assert resolve_color(_link("1", link_type=link_type, color="yellow")) == "#eab308"

    def test_purple(self) -> None:
        assert resolve_color(_link("1", link_type="Reference", color="purple")) == "#8b5cf6"

    @pytest.mark.parametrize(
        ("link_type", "expected"),
        [
            ("Related", "#6b7280"),
            ("Reference", "#3b82f6"),
            ("FollowUp", "#10b981"),
            ("Contradicts", "#ef4444"),
            ("Supports", "#f59e0b"),
            ("Inspired by", "#8b5cf6"),
        ],
    )
    def test_type_fallback(self, link_type: str, expected: str) -> None:
        assert resolve_color(_link("1", link_type=link_type)) == expected

    def test_unknown_stored_color_is_purple(self) -> None:
        link = Link.model_validate(
            {"source_id": "a", "target_id": "b", "link_type": "Supports", "color": "magenta"}
        )

        assert resolve_color(link) == "#8b5cf6"

    def test_blank_stored_color_falls_back_to_type(self) -> None:
        assert resolve_color(_link("1", link_type="Supports", color=" ")) == "#f59e0b"


class TestDirection:
    """Tests for directionality resolution priority."""

    def test_explicit_false_beats_type_default(self) -> None:
        edge = build_edges([_link("1", link_type="Reference", directional=False)], {"a", "b"})[0]

        assert edge.has_arrowhead is False

    def test_explicit_true_beats_type_default(self) -> None:
        assert resolve_directional(_link("1", link_type="Related", directional=True)) is True

    @pytest.mark.parametrize(
        ("link_type", "expected"),
        [
            ("Reference", True),
            ("FollowUp", True),
            ("Supports", True),
            ("Related", False),
            ("Contradicts", False),
            ("custom", False),
        ],
    )
    def test_type_default(self, link_type: str, expected: bool) -> None:
        edge = build_edges([_link("1", link_type=link_type)], {"a", "b"})[0]

        assert edge.has_arrowhead is expected


class TestLabel:
    """Tests for label resolution."""

    def test_explicit_label(self) -> None:
        assert resolve_label(_link("1", link_type="Supports", label="backs")) == "backs"

    def test_empty_label_uses_type_name(self) -> None:
        assert resolve_label(_link("1", link_type="FollowUp", label="")) == "FollowUp"

    def test_custom_type_label(self) -> None:
        assert resolve_label(_link("1", link_type="Inspired by")) == "Inspired by"

    def test_enum_link_type(self) -> None:
        link = _link("1", link_type=LinkType.SUPPORTS)

        assert resolve_label(link) == "Supports"
        assert resolve_color(link) == "#f59e0b"

    def test_legacy_custom_document(self) -> None:
        link = Link.model_validate(
            {"source_id": "a", "target_id": "b", "link_type": {"Custom": "Sparked"}}
        )

        assert link.is_custom
        assert resolve_label(link) == "Sparked"
        assert link.display_name == "Sparked"

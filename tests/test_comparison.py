"""Tests for structural comparison and normalizers."""

from __future__ import annotations

import pytest

from qaflow.comparison import (
    ISO_TIMESTAMP_PATTERN,
    UUID_PATTERN,
    DiffConfig,
    DiffType,
    JSONDiff,
    JSONDiffItem,
    compose,
    mask_fields,
    mask_matching,
    strip_fields,
)


class TestJSONDiff:
    """Tests for JSONDiff."""

    def test_identical_values(self) -> None:
        diff = JSONDiff()
        value = {"data": {"todos": [{"text": "a", "done": False}]}, "status_code": 200}

        assert diff.compare(value, value) == []
        assert diff.equal(value, value)

    def test_changed_value(self) -> None:
        items = JSONDiff().compare({"status_code": 200}, {"status_code": 201})

        assert len(items) == 1
        assert items[0].path == "status_code"
        assert items[0].diff_type == DiffType.CHANGED
        assert items[0].old_value == 200
        assert items[0].new_value == 201

    def test_added_and_removed_keys(self) -> None:
        items = JSONDiff().compare({"a": 1, "b": 2}, {"b": 2, "c": 3})

        assert [(i.path, i.diff_type) for i in items] == [
            ("a", DiffType.REMOVED),
            ("c", DiffType.ADDED),
        ]

    def test_nested_list_paths(self) -> None:
        old = {"todos": [{"text": "a"}, {"text": "b"}]}
        new = {"todos": [{"text": "a"}, {"text": "B"}, {"text": "c"}]}
        items = JSONDiff().compare(old, new)

        assert [(i.path, i.diff_type) for i in items] == [
            ("todos[1].text", DiffType.CHANGED),
            ("todos[2]", DiffType.ADDED),
        ]

    def test_list_order_matters_by_default(self) -> None:
        assert not JSONDiff().equal([1, 2], [2, 1])

    def test_ignore_order(self) -> None:
        diff = JSONDiff(DiffConfig(ignore_order=True))

        assert diff.equal([1, 2, {"a": 1}], [{"a": 1}, 2, 1])
        items = diff.compare([1, 2], [2, 3])
        assert {(i.diff_type, i.old_value, i.new_value) for i in items} == {
            (DiffType.REMOVED, 1, None),
            (DiffType.ADDED, None, 3),
        }

    def test_bool_is_not_int(self) -> None:
        items = JSONDiff().compare({"done": 1}, {"done": True})
        assert items[0].diff_type == DiffType.TYPE_CHANGED

    def test_int_and_float_differ_in_type(self) -> None:
        assert not JSONDiff().equal(1, 1.0)

    def test_none_against_value(self) -> None:
        items = JSONDiff().compare(None, {"a": 1})

        assert items[0].path == "(root)"
        assert items[0].diff_type == DiffType.TYPE_CHANGED

    def test_root_change(self) -> None:
        items = JSONDiff().compare("a", "b")
        assert items[0].path == "(root)"

    def test_ignore_fields_and_patterns(self) -> None:
        diff = JSONDiff(DiffConfig(ignore_fields={"id"}, ignore_patterns=["*.created_at"]))
        old = {"id": 1, "todo": {"created_at": "x", "text": "a"}}
        new = {"id": 2, "todo": {"created_at": "y", "text": "a"}}

        assert diff.equal(old, new)

    def test_normalize_whitespace(self) -> None:
        assert JSONDiff(DiffConfig(normalize_whitespace=True)).equal("a  b\n", "a b")
        assert not JSONDiff().equal("a  b", "a b")

    def test_change_below_max_depth_is_reported(self) -> None:
        def nested(leaf: object, depth: int = 150) -> dict:
            value: object = leaf
            for _ in range(depth):
                value = {"a": value}
            return value

        items = JSONDiff().compare(nested(1), nested(2))

        assert len(items) == 1
        assert items[0].diff_type == DiffType.CHANGED
        assert items[0].path.startswith("a.a.a")
        assert JSONDiff().equal(nested(1), nested(1))

    def test_whole_subtree_compare_keeps_types_strict(self) -> None:
        diff = JSONDiff(DiffConfig(max_depth=0))

        assert not diff.equal({"done": [1]}, {"done": [True]})
        assert not diff.equal({"n": [1]}, {"n": [1.0]})
        assert diff.equal({"b": [1], "a": 2}, {"a": 2, "b": [1]})


class TestJSONDiffItem:
    """Tests for JSONDiffItem serialization and description."""

    def test_dict_roundtrip(self) -> None:
        item = JSONDiffItem(path="todos[0].done", diff_type=DiffType.CHANGED, old_value=True, new_value=False)
        assert JSONDiffItem.from_dict(item.to_dict()) == item

    @pytest.mark.parametrize(
        "item, expected",
        [
            (JSONDiffItem("a", DiffType.ADDED, new_value=1), "+ a: 1"),
            (JSONDiffItem("a", DiffType.REMOVED, old_value="x"), '- a: "x"'),
            (JSONDiffItem("a.b", DiffType.CHANGED, old_value=True, new_value=False), "~ a.b: true -> false"),
            (JSONDiffItem("", DiffType.TYPE_CHANGED, old_value=None, new_value=[]), "~ (root): null -> []"),
        ],
    )
    def test_describe(self, item: JSONDiffItem, expected: str) -> None:
        assert item.describe() == expected


class TestNormalizers:
    """Tests for the ready-made normalizers."""

    def test_strip_fields_at_any_depth(self) -> None:
        value = {"data": {"todos": [{"id": "a", "text": "x"}, {"id": "b", "text": "y"}]}, "id": 1}

        assert strip_fields("id")(value) == {"data": {"todos": [{"text": "x"}, {"text": "y"}]}}

    def test_strip_fields_does_not_mutate(self) -> None:
        value = {"id": 1, "nested": {"id": 2}}
        strip_fields("id")(value)

        assert value == {"id": 1, "nested": {"id": 2}}

    def test_strip_fields_is_deterministic(self) -> None:
        normalize = strip_fields("id", "created_at")
        value = {"id": 1, "created_at": "now", "text": "a"}

        assert normalize(value) == normalize(value) == {"text": "a"}

    def test_mask_fields_keeps_keys(self) -> None:
        value = {"todo": {"id": "abc", "text": "x"}}

        assert mask_fields("id")(value) == {"todo": {"id": "<masked>", "text": "x"}}
        assert mask_fields("id", placeholder=0)(value) == {"todo": {"id": 0, "text": "x"}}

    def test_mask_matching_uuids(self) -> None:
        value = {"location": "/todos/12345678-1234-5678-1234-567812345678", "count": 1}

        assert mask_matching(UUID_PATTERN, "<uuid>")(value) == {"location": "/todos/<uuid>", "count": 1}

    def test_mask_matching_timestamps(self) -> None:
        value = ["created 2026-01-02T03:04:05.123Z", "updated 2026-01-02 03:04:05+01:00"]

        assert mask_matching(ISO_TIMESTAMP_PATTERN, "<ts>")(value) == ["created <ts>", "updated <ts>"]

    def test_mask_matching_leaves_keys(self) -> None:
        key = "12345678-1234-5678-1234-567812345678"
        assert mask_matching(UUID_PATTERN)({key: 1}) == {key: 1}

    def test_compose_applies_in_order(self) -> None:
        normalize = compose(strip_fields("id"), mask_fields("text", placeholder="T"))

        assert normalize({"id": 1, "text": "a"}) == {"text": "T"}
        assert normalize.__name__.startswith("compose(")

    def test_scalars_pass_through(self) -> None:
        assert strip_fields("id")(None) is None
        assert strip_fields("id")(5) == 5

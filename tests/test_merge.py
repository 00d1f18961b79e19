"""
tests/test_merge.py – caller attributes vs. derived validation attributes
"""
import pytest

from quill.validation import merge_attrs, normalize_attrs


# ───────────────────────── merge ──────────────────────────────────────
def test_existing_wins_on_collision():
    existing = {"class": "input", "required": False, "maxlength": 100}
    derived = {"required": True, "minlength": 5, "maxlength": 200}
    assert merge_attrs(existing, derived) == {
        "class": "input",
        "required": False,
        "minlength": 5,
        "maxlength": 100,
    }


def test_merge_does_not_mutate_inputs():
    existing = {"required": False}
    derived = {"required": True, "pattern": "x"}
    merge_attrs(existing, derived)
    assert existing == {"required": False}
    assert derived == {"required": True, "pattern": "x"}


def test_list_existing_returns_ordered_pairs():
    existing = [("class", "input"), ("maxlength", 10), ("id", "t")]
    derived = {"required": True, "maxlength": 255, "minlength": 3}
    assert merge_attrs(existing, derived) == [
        ("class", "input"),
        ("maxlength", 10),
        ("id", "t"),
        ("required", True),
        ("minlength", 3),
    ]


def test_list_derived_with_map_existing():
    merged = merge_attrs({"rows": 3}, [("required", True), ("rows", 9)])
    assert merged == {"rows": 3, "required": True}


def test_both_lists():
    merged = merge_attrs([("a", 1)], [("b", 2), ("a", 3)])
    assert merged == [("a", 1), ("b", 2)]


def test_empty_inputs():
    assert merge_attrs({}, {}) == {}
    assert merge_attrs([], {"required": True}) == [("required", True)]


@pytest.mark.parametrize(
    "existing, derived, culprit",
    [
        ("required", {}, "existing"),
        (None, {}, "existing"),
        ({}, 42, "derived"),
        ([("a", 1, 2)], {}, "existing"),
        ({}, ["required"], "derived"),
    ],
)
def test_bad_shapes_fail_fast(existing, derived, culprit):
    with pytest.raises(TypeError, match=culprit):
        merge_attrs(existing, derived)


# ───────────────────────── normalize ──────────────────────────────────
def test_false_booleans_are_dropped():
    attrs = {
        "required": False,
        "disabled": False,
        "readonly": False,
        "multiple": False,
        "maxlength": 100,
    }
    assert normalize_attrs(attrs) == {"maxlength": 100}


def test_true_booleans_are_kept():
    attrs = {"required": True, "disabled": True, "class": "x"}
    assert normalize_attrs(attrs) == attrs


def test_non_boolean_keys_pass_through():
    attrs = {"autofocus": False, "min": 0, "pattern": ""}
    assert normalize_attrs(attrs) == attrs


def test_normalize_keeps_pair_shape():
    pairs = [("required", False), ("class", "input"), ("readonly", True)]
    assert normalize_attrs(pairs) == [("class", "input"), ("readonly", True)]


def test_merge_then_normalize_drops_overridden_required():
    merged = merge_attrs({"required": False}, {"required": True, "maxlength": 5})
    assert normalize_attrs(merged) == {"maxlength": 5}


def test_normalize_rejects_garbage():
    with pytest.raises(TypeError):
        normalize_attrs("required")

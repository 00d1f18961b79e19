"""
tests/test_hints.py
"""
import pytest

from quill.blog import SLUG_HINT, post_changeset
from quill.validation import field_attrs, validation_hint


@pytest.mark.parametrize(
    "attrs, custom, expected",
    [
        ({"minlength": 3, "maxlength": 255}, None, "3-255 characters"),
        ({"maxlength": 500}, "Custom", "Custom • Maximum 500 characters"),
        ({}, None, None),
        ({"minlength": 10}, None, "Minimum 10 characters"),
        ({"maxlength": 20}, None, "Maximum 20 characters"),
        ({"minlength": 8, "maxlength": 8}, None, "Exactly 8 characters"),
        ({}, "Only a custom hint", "Only a custom hint"),
        ({"required": True, "pattern": "x"}, None, None),
    ],
)
def test_validation_hint(attrs, custom, expected):
    assert validation_hint(attrs, custom) == expected


def test_empty_custom_hint_counts_as_none():
    assert validation_hint({}, "") is None
    assert validation_hint({"maxlength": 5}, "") == "Maximum 5 characters"


def test_hint_accepts_pairs():
    assert validation_hint([("minlength", 2), ("maxlength", 4)]) == "2-4 characters"


def test_slug_hint_combines_custom_and_length():
    attrs = field_attrs(post_changeset(), "slug")
    assert validation_hint(attrs, SLUG_HINT) == (
        "Lowercase letters, numbers, and hyphens only • 3-255 characters"
    )

"""
HTML5 validation attributes derived from changeset validations.

    >>> cs = (Changeset.cast({}, {}, ["slug"], types={"slug": FieldType.STRING})
    ...       .validate_required("slug")
    ...       .validate_length("slug", min=3, max=255)
    ...       .validate_format("slug", r"^[a-z0-9-]+$"))
    >>> field_attrs(cs, "slug")
    {'required': True, 'minlength': 3, 'maxlength': 255, 'pattern': '[a-z0-9\\\\-]+'}

Supported validations:

• ``Changeset.required``        → ``required``
• ``Format``                    → ``pattern`` (anchors stripped, edge dashes escaped)
• ``Length(min, max, exact)``   → ``minlength`` / ``maxlength``
• ``NumberRange``               → ``min`` / ``max`` (exclusive bounds shifted by one step)
• ``Acceptance``                → ``required`` + ``type="checkbox"``
• field type                    → ``type`` (number, date, time, datetime-local, checkbox)

Everything here is a pure function: no state, no I/O, nothing is mutated.
"""

import re
from collections.abc import Mapping
from typing import Any

from quill.changeset import (
    Acceptance,
    ChangesetView,
    FieldType,
    Format,
    Length,
    NumberRange,
)

HTML_INPUT_TYPES = {
    FieldType.INTEGER: "number",
    FieldType.FLOAT: "number",
    FieldType.DECIMAL: "number",
    FieldType.DATE: "date",
    FieldType.TIME: "time",
    FieldType.UTC_DATETIME: "datetime-local",
    FieldType.NAIVE_DATETIME: "datetime-local",
    FieldType.BOOLEAN: "checkbox",
}

# absent == false for these, so a False value must not be rendered at all
BOOLEAN_ATTRS = frozenset({"required", "disabled", "readonly", "multiple"})

HINT_SEPARATOR = " • "

_TRAILING_DASH = re.compile(r"(?<!\\)-\]")
_LEADING_DASH = re.compile(r"(?<!\\)\[-")


################################################################################
# Pattern escaping
################################################################################
def html5_pattern(source: str) -> str:
    """
    Turn a Python regex source into a value for the HTML ``pattern`` attribute.

    Browsers wrap the pattern as ``^(?:…)$`` themselves, so one leading ``^``
    and one trailing (unescaped) ``$`` are dropped.  A literal dash at the
    edge of a character class is escaped (``[-a]`` → ``[\\-a]``,
    ``[a-]`` → ``[a\\-]``) because the ``v`` flag browsers compile patterns
    with rejects it.  Ranges such as ``a-z`` are left alone.

    Known limitation: this is a textual heuristic, not a regex parser.  Other
    dashes, negated classes (``[^-…]``) and nested constructs pass through
    untouched.
    """
    if source.startswith("^"):
        source = source[1:]
    if source.endswith("$") and not source.endswith("\\$"):
        source = source[:-1]
    source = _TRAILING_DASH.sub(r"\\-]", source)
    return _LEADING_DASH.sub(r"[\\-", source)


################################################################################
# Extraction
################################################################################
def _step(attrs: dict) -> Any:
    if attrs.get("type") == "number":
        return attrs.get("step", 1)
    return 1


def field_attrs(changeset: ChangesetView, field: str) -> dict[str, Any]:
    """
    Return the HTML5 validation attributes for *field*.

    A field the changeset knows nothing about gets ``{}``.
    """
    attrs: dict[str, Any] = {}

    html_type = HTML_INPUT_TYPES.get(changeset.field_type(field))
    if html_type:
        attrs["type"] = html_type

    if field in changeset.required:
        attrs["required"] = True

    for rule in changeset.validations:
        if rule.field != field:
            continue

        if isinstance(rule, Format):
            source = getattr(rule.pattern, "pattern", rule.pattern)
            attrs["pattern"] = html5_pattern(source)

        elif isinstance(rule, Length):
            if rule.min is not None:
                attrs["minlength"] = rule.min
            if rule.max is not None:
                attrs["maxlength"] = rule.max
            if rule.exact is not None:
                attrs["minlength"] = rule.exact
                attrs["maxlength"] = rule.exact

        elif isinstance(rule, NumberRange):
            # *_or_equal_to run second so they win when both are declared
            if rule.greater_than is not None:
                attrs["min"] = rule.greater_than + _step(attrs)
            if rule.greater_than_or_equal_to is not None:
                attrs["min"] = rule.greater_than_or_equal_to
            if rule.less_than is not None:
                attrs["max"] = rule.less_than - _step(attrs)
            if rule.less_than_or_equal_to is not None:
                attrs["max"] = rule.less_than_or_equal_to

        elif isinstance(rule, Acceptance):
            attrs["required"] = True
            attrs["type"] = "checkbox"

    return attrs


def to_attrs(changeset: ChangesetView, field: str) -> list[tuple[str, Any]]:
    """:func:`field_attrs` as ``(name, value)`` pairs, ready to merge."""
    return list(field_attrs(changeset, field).items())


################################################################################
# Merging + normalisation
################################################################################
def _pairs(attrs, name: str) -> list[tuple[str, Any]]:
    if isinstance(attrs, Mapping):
        return list(attrs.items())
    if isinstance(attrs, (list, tuple)):
        pairs = []
        for item in attrs:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise TypeError(
                    f"{name}: expected (name, value) pairs, got item {item!r}"
                )
            pairs.append((item[0], item[1]))
        return pairs
    raise TypeError(
        f"{name}: expected a mapping or a list of (name, value) pairs, "
        f"not {type(attrs).__name__}"
    )


def merge_attrs(existing, derived):
    """
    Combine caller-supplied attributes with derived validation attributes.

    *existing* always wins on a clash.  The result has the shape of
    *existing*: a dict for a mapping, a list of pairs (existing order first,
    new derived keys after it) for a list.
    """
    merged = dict(_pairs(existing, "existing"))
    for key, value in _pairs(derived, "derived"):
        merged.setdefault(key, value)
    if isinstance(existing, Mapping):
        return merged
    return list(merged.items())


def normalize_attrs(attrs):
    """Drop boolean attributes set to ``False``; keep everything else."""
    kept = [
        (key, value)
        for key, value in _pairs(attrs, "attrs")
        if not (key in BOOLEAN_ATTRS and value is False)
    ]
    if isinstance(attrs, Mapping):
        return dict(kept)
    return kept


################################################################################
# Hints
################################################################################
def _length_hint(minlength, maxlength) -> str | None:
    if minlength is None and maxlength is None:
        return None
    if maxlength is None:
        return f"Minimum {minlength} characters"
    if minlength is None:
        return f"Maximum {maxlength} characters"
    if minlength == maxlength:
        return f"Exactly {minlength} characters"
    return f"{minlength}-{maxlength} characters"


def validation_hint(attrs, custom_hint: str | None = None) -> str | None:
    """
    Human-readable helper text for an input, or ``None`` if there is nothing
    to say (so the caller can skip the hint element).
    """
    lookup = dict(_pairs(attrs, "attrs"))
    segments = []
    if custom_hint:
        segments.append(custom_hint)
    length = _length_hint(lookup.get("minlength"), lookup.get("maxlength"))
    if length:
        segments.append(length)
    return HINT_SEPARATOR.join(segments) or None

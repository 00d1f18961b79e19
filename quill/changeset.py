"""
Changesets: cast form params against a typed schema and declare validations.

A changeset is immutable.  Every ``validate_*`` call returns a *new*
changeset that carries

• the rule it declared (read later by :mod:`quill.validation` to derive
  HTML5 input attributes), and
• any server-side error the current value produced.

Required-ness is tracked in ``Changeset.required``, **not** as a rule, so the
extractor never counts it twice.
"""

import enum
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Protocol, Union


################################################################################
# Field types
################################################################################
class FieldType(str, enum.Enum):
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    DATE = "date"
    TIME = "time"
    UTC_DATETIME = "utc_datetime"
    NAIVE_DATETIME = "naive_datetime"
    BOOLEAN = "boolean"
    STRING = "string"
    OTHER = "other"


TRUTHY = {"true", "on", "1", "yes"}
FALSY = {"false", "off", "0", "no"}


def cast_value(kind: FieldType, raw: Any) -> Any:
    """
    Coerce one submitted value to *kind*.

    Blank strings mean "no value" and come back as ``None``.  Anything that
    cannot be coerced raises ``ValueError`` (or ``decimal.InvalidOperation``,
    an ``ArithmeticError``); :meth:`Changeset.cast` turns that into an error.
    """
    if raw is None:
        return None
    if isinstance(raw, str) and not raw.strip():
        return None

    if kind is FieldType.STRING:
        return str(raw)
    if kind is FieldType.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        word = str(raw).strip().lower()
        if word in TRUTHY:
            return True
        if word in FALSY:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if kind is FieldType.INTEGER:
        if isinstance(raw, bool):
            raise ValueError("booleans are not integers")
        if isinstance(raw, float):
            if not raw.is_integer():
                raise ValueError(f"not an integer: {raw!r}")
            return int(raw)
        return int(raw)
    if kind is FieldType.FLOAT:
        if isinstance(raw, bool):
            raise ValueError("booleans are not floats")
        return float(raw)
    if kind is FieldType.DECIMAL:
        if isinstance(raw, bool):
            raise ValueError("booleans are not decimals")
        return raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    if kind is FieldType.DATE:
        if isinstance(raw, datetime):
            return raw.date()
        return raw if isinstance(raw, date) else date.fromisoformat(str(raw).strip())
    if kind is FieldType.TIME:
        return raw if isinstance(raw, time) else time.fromisoformat(str(raw).strip())
    if kind is FieldType.UTC_DATETIME:
        dt = raw if isinstance(raw, datetime) else datetime.fromisoformat(str(raw).strip())
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if kind is FieldType.NAIVE_DATETIME:
        dt = raw if isinstance(raw, datetime) else datetime.fromisoformat(str(raw).strip())
        return dt.replace(tzinfo=None)
    return raw


################################################################################
# Validation rules
################################################################################
@dataclass(frozen=True)
class Format:
    field: str
    pattern: re.Pattern
    message: str = "has invalid format"


@dataclass(frozen=True)
class Length:
    field: str
    min: int | None = None
    max: int | None = None
    exact: int | None = None


@dataclass(frozen=True)
class NumberRange:
    field: str
    greater_than: Any = None
    greater_than_or_equal_to: Any = None
    less_than: Any = None
    less_than_or_equal_to: Any = None


@dataclass(frozen=True)
class Acceptance:
    field: str


@dataclass(frozen=True)
class Inclusion:
    field: str
    choices: tuple


@dataclass(frozen=True)
class Exclusion:
    field: str
    choices: tuple


ValidationRule = Union[Format, Length, NumberRange, Acceptance, Inclusion, Exclusion]


class ChangesetView(Protocol):
    """The read-only slice of a changeset the attribute extractor relies on."""

    required: Iterable[str]
    validations: Iterable[ValidationRule]

    def field_type(self, field: str) -> FieldType | None: ...


################################################################################
# Changeset
################################################################################
@dataclass(frozen=True)
class Changeset:
    data: Mapping[str, Any] = field(default_factory=dict)
    changes: Mapping[str, Any] = field(default_factory=dict)
    types: Mapping[str, FieldType] = field(default_factory=dict)
    required: frozenset[str] = frozenset()
    validations: tuple[ValidationRule, ...] = ()
    errors: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    action: str | None = None

    # ── construction ──────────────────────────────────────────────
    @classmethod
    def cast(
        cls,
        data: Mapping[str, Any],
        params: Mapping[str, Any],
        permitted: Iterable[str],
        *,
        types: Mapping[str, FieldType],
    ) -> "Changeset":
        """
        Keep only *permitted* keys of *params*, coerce them to their declared
        type and record the ones that differ from *data* as changes.
        """
        permitted = list(permitted)
        unknown = [f for f in permitted if f not in types]
        if unknown:
            raise ValueError(f"no type declared for field(s): {', '.join(unknown)}")

        changes: dict[str, Any] = {}
        errors: dict[str, tuple[str, ...]] = {}
        for key in permitted:
            if key not in params:
                continue
            try:
                value = cast_value(types[key], params[key])
            except (ValueError, TypeError, ArithmeticError):
                errors[key] = ("is invalid",)
                continue
            if value != data.get(key):
                changes[key] = value

        return cls(data=dict(data), changes=changes, types=dict(types), errors=errors)

    # ── accessors ─────────────────────────────────────────────────
    @property
    def valid(self) -> bool:
        return not self.errors

    def field_type(self, field: str) -> FieldType | None:
        return self.types.get(field)

    def get_change(self, field: str, default=None):
        return self.changes.get(field, default)

    def get_field(self, field: str, default=None):
        """The pending change if there is one, else the original value."""
        if field in self.changes:
            return self.changes[field]
        return self.data.get(field, default)

    def apply_changes(self) -> dict[str, Any]:
        return {**self.data, **self.changes}

    def apply_action(self, action: str) -> "Changeset":
        """Mark the changeset as submitted so forms start showing its errors."""
        return replace(self, action=action)

    # ── internals ─────────────────────────────────────────────────
    def _declare(self, rule: ValidationRule) -> "Changeset":
        return replace(self, validations=self.validations + (rule,))

    def add_error(self, field: str, message: str) -> "Changeset":
        errors = dict(self.errors)
        errors[field] = errors.get(field, ()) + (message,)
        return replace(self, errors=errors)

    def _checked_change(self, field: str):
        # values that failed to cast never make it into `changes`
        return self.changes.get(field)

    # ── validators ────────────────────────────────────────────────
    def validate_required(self, fields: str | Iterable[str]) -> "Changeset":
        if isinstance(fields, str):
            fields = [fields]
        fields = list(fields)
        cs = replace(self, required=self.required | frozenset(fields))
        for name in fields:
            if name in self.errors:
                continue
            value = self.get_field(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                cs = cs.add_error(name, "can't be blank")
        return cs

    def validate_length(
        self,
        field: str,
        *,
        min: int | None = None,
        max: int | None = None,
        exact: int | None = None,
    ) -> "Changeset":
        if min is None and max is None and exact is None:
            raise ValueError("validate_length needs at least one of min, max, exact")
        cs = self._declare(Length(field, min=min, max=max, exact=exact))
        value = self._checked_change(field)
        if value is None:
            return cs

        size = len(value)
        if exact is not None and size != exact:
            return cs.add_error(field, f"should be {exact} character(s)")
        if min is not None and size < min:
            return cs.add_error(field, f"should be at least {min} character(s)")
        if max is not None and size > max:
            return cs.add_error(field, f"should be at most {max} character(s)")
        return cs

    def validate_format(
        self, field: str, pattern: str | re.Pattern, *, message: str | None = None
    ) -> "Changeset":
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        rule = Format(field, pattern) if message is None else Format(field, pattern, message)
        cs = self._declare(rule)
        value = self._checked_change(field)
        if value is not None and not pattern.search(str(value)):
            cs = cs.add_error(field, rule.message)
        return cs

    def validate_number(
        self,
        field: str,
        *,
        greater_than=None,
        greater_than_or_equal_to=None,
        less_than=None,
        less_than_or_equal_to=None,
    ) -> "Changeset":
        bounds = (greater_than, greater_than_or_equal_to, less_than, less_than_or_equal_to)
        if all(b is None for b in bounds):
            raise ValueError("validate_number needs at least one bound")
        cs = self._declare(
            NumberRange(
                field,
                greater_than=greater_than,
                greater_than_or_equal_to=greater_than_or_equal_to,
                less_than=less_than,
                less_than_or_equal_to=less_than_or_equal_to,
            )
        )
        value = self._checked_change(field)
        if value is None:
            return cs

        if greater_than is not None and not value > greater_than:
            return cs.add_error(field, f"must be greater than {greater_than}")
        if greater_than_or_equal_to is not None and not value >= greater_than_or_equal_to:
            return cs.add_error(
                field, f"must be greater than or equal to {greater_than_or_equal_to}"
            )
        if less_than is not None and not value < less_than:
            return cs.add_error(field, f"must be less than {less_than}")
        if less_than_or_equal_to is not None and not value <= less_than_or_equal_to:
            return cs.add_error(
                field, f"must be less than or equal to {less_than_or_equal_to}"
            )
        return cs

    def validate_acceptance(self, field: str) -> "Changeset":
        cs = self._declare(Acceptance(field))
        if field not in self.changes:
            return cs
        if self.changes[field] is not True:
            cs = cs.add_error(field, "must be accepted")
        return cs

    def validate_inclusion(self, field: str, choices: Iterable) -> "Changeset":
        choices = tuple(choices)
        cs = self._declare(Inclusion(field, choices))
        value = self._checked_change(field)
        if value is not None and value not in choices:
            cs = cs.add_error(field, "is invalid")
        return cs

    def validate_exclusion(self, field: str, choices: Iterable) -> "Changeset":
        choices = tuple(choices)
        cs = self._declare(Exclusion(field, choices))
        value = self._checked_change(field)
        if value is not None and value in choices:
            cs = cs.add_error(field, "is reserved")
        return cs

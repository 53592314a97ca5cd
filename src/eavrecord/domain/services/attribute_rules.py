"""Validation rules for dynamic attributes.

Each attribute definition carries rule specifications. This module turns
those specifications into rule objects and runs them against a record.
Rules read the value through the record (``get_attribute``) so a rule written
for a single value can be applied to every element of a multi-valued
attribute by substituting one element at a time.

Built-in kinds: required, numerical, length, in, match, email, url, date,
boolean, safe, unsafe. Additional kinds are added with ``register_rule``.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Protocol

from eavrecord.core.exceptions import UnknownRuleError
from eavrecord.domain.entities.attribute_set import RuleSpec

# Email validation pattern (simplified but effective)
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# URL validation pattern (simplified)
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)

INTEGER_PATTERN = re.compile(r"^\s*[+-]?\d+\s*$")
NUMBER_PATTERN = re.compile(r"^\s*[-+]?([0-9]*\.)?[0-9]+([eE][-+]?[0-9]+)?\s*$")


@dataclass(frozen=True)
class AttributeValidationError:
    """A single attribute validation error.

    Attributes:
        field: The attribute name.
        message: Human-readable error message.
        code: Machine-readable error code.
    """

    field: str
    message: str
    code: str


class ValidationSubject(Protocol):
    """What a rule needs from the record being validated."""

    def get_attribute(self, name: str) -> Any: ...

    def get_attribute_label(self, name: str) -> str: ...


def is_empty_value(value: Any, trim: bool = False) -> bool:
    """Check whether a value counts as empty for validation purposes."""
    if value is None:
        return True
    if isinstance(value, str):
        return (value.strip() if trim else value) == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


class AttributeRule:
    """Base class for attribute rules.

    Subclasses set ``kind``, list the parameters they accept in
    ``allowed_params`` and implement ``check``.
    """

    kind: ClassVar[str] = ""
    allowed_params: ClassVar[frozenset[str]] = frozenset()
    skip_empty: ClassVar[bool] = True

    def __init__(self, attribute: str, spec: RuleSpec) -> None:
        self.attribute = attribute
        self.spec = spec
        params = dict(spec.params)
        self.allow_empty = bool(params.pop("allow_empty", True))
        self.message: str | None = params.pop("message", None)
        unknown = set(params) - self.allowed_params
        if unknown:
            raise ValueError(
                f"Rule '{self.kind}' on '{attribute}' got unknown parameters: {', '.join(sorted(unknown))}"
            )
        self.params = params

    @property
    def safe(self) -> bool:
        return self.spec.safe

    def applies_to(self, scenario: str) -> bool:
        return self.spec.applies_to(scenario)

    def validate(self, subject: ValidationSubject) -> AttributeValidationError | None:
        """Validate the attribute's current value on the subject."""
        value = subject.get_attribute(self.attribute)
        if self.skip_empty and self.allow_empty and is_empty_value(value):
            return None
        return self.check(value, subject.get_attribute_label(self.attribute))

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        raise NotImplementedError

    def error(self, default_message: str, code: str, **placeholders: Any) -> AttributeValidationError:
        message = self.message or default_message
        return AttributeValidationError(
            field=self.attribute,
            message=message.format(**placeholders),
            code=code,
        )


RULE_TYPES: dict[str, type[AttributeRule]] = {}


def register_rule(cls: type[AttributeRule]) -> type[AttributeRule]:
    """Register a rule class under its ``kind``. Usable as a class decorator."""
    if not cls.kind:
        raise ValueError(f"{cls.__name__} must define a rule kind")
    RULE_TYPES[cls.kind] = cls
    return cls


@register_rule
class RequiredRule(AttributeRule):
    """The value must not be empty, or must equal ``required_value`` when given."""

    kind = "required"
    allowed_params = frozenset({"required_value", "strict", "trim"})
    skip_empty = False

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        required_value = self.params.get("required_value")
        if required_value is not None:
            if self.params.get("strict", False):
                matches = value == required_value and type(value) is type(required_value)
            else:
                matches = str(value) == str(required_value)
            if not matches:
                return self.error(
                    "{label} must be {required}.", "required_value", label=label, required=required_value
                )
            return None
        if is_empty_value(value, trim=self.params.get("trim", True)):
            return self.error("{label} cannot be blank.", "required", label=label)
        return None


@register_rule
class NumericalRule(AttributeRule):
    """The value must be a number, optionally an integer within bounds."""

    kind = "numerical"
    allowed_params = frozenset({"integer_only", "min", "max"})

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        integer_only = self.params.get("integer_only", False)
        if isinstance(value, bool):
            return self.error("{label} must be a number.", "invalid_type", label=label)
        if isinstance(value, (int, float, Decimal)):
            number = value
            if integer_only and not float(number).is_integer():
                return self.error("{label} must be an integer.", "not_integer", label=label)
        elif isinstance(value, str):
            pattern = INTEGER_PATTERN if integer_only else NUMBER_PATTERN
            if not pattern.match(value):
                if integer_only:
                    return self.error("{label} must be an integer.", "not_integer", label=label)
                return self.error("{label} must be a number.", "invalid_type", label=label)
            number = float(value)
        else:
            return self.error("{label} must be a number.", "invalid_type", label=label)

        minimum = self.params.get("min")
        maximum = self.params.get("max")
        if minimum is not None and number < minimum:
            return self.error("{label} is too small (minimum is {min}).", "too_small", label=label, min=minimum)
        if maximum is not None and number > maximum:
            return self.error("{label} is too big (maximum is {max}).", "too_big", label=label, max=maximum)
        return None


@register_rule
class LengthRule(AttributeRule):
    """String length bounds. ``is`` requires an exact length."""

    kind = "length"
    allowed_params = frozenset({"min", "max", "is"})

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        if not isinstance(value, str):
            return self.error("{label} is invalid.", "invalid_type", label=label)
        length = len(value)
        exact = self.params.get("is")
        minimum = self.params.get("min")
        maximum = self.params.get("max")
        if exact is not None and length != exact:
            return self.error(
                "{label} is of the wrong length (should be {length} characters).",
                "wrong_length",
                label=label,
                length=exact,
            )
        if minimum is not None and length < minimum:
            return self.error(
                "{label} is too short (minimum is {min} characters).", "too_short", label=label, min=minimum
            )
        if maximum is not None and length > maximum:
            return self.error(
                "{label} is too long (maximum is {max} characters).", "too_long", label=label, max=maximum
            )
        return None


@register_rule
class InRule(AttributeRule):
    """The value must (or with ``not`` must not) be one of ``range``."""

    kind = "in"
    allowed_params = frozenset({"range", "strict", "not"})

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        allowed = list(self.params.get("range", []))
        if self.params.get("strict", False):
            found = any(value == item and type(value) is type(item) for item in allowed)
        else:
            found = str(value) in {str(item) for item in allowed}
        if self.params.get("not", False):
            if found:
                return self.error("{label} is in the list.", "in_range", label=label)
        elif not found:
            return self.error("{label} is not in the list.", "not_in_range", label=label)
        return None


@register_rule
class MatchRule(AttributeRule):
    """The value must (or with ``not`` must not) match ``pattern``."""

    kind = "match"
    allowed_params = frozenset({"pattern", "not"})

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        pattern = self.params.get("pattern")
        if not pattern:
            raise ValueError(f"Rule 'match' on '{self.attribute}' requires a pattern")
        if not isinstance(value, str):
            return self.error("{label} is invalid.", "invalid_type", label=label)
        matched = re.search(pattern, value) is not None
        if matched == bool(self.params.get("not", False)):
            return self.error("{label} is invalid.", "invalid_format", label=label)
        return None


@register_rule
class EmailRule(AttributeRule):
    kind = "email"

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
            return self.error("{label} is not a valid email address.", "invalid_email_format", label=label)
        return None


@register_rule
class UrlRule(AttributeRule):
    kind = "url"

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        if not isinstance(value, str) or not URL_PATTERN.match(value):
            return self.error("{label} is not a valid URL.", "invalid_url_format", label=label)
        return None


@register_rule
class DateRule(AttributeRule):
    """Date or datetime objects, or strings in ``format`` (ISO 8601 by default)."""

    kind = "date"
    allowed_params = frozenset({"format"})

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        if isinstance(value, (date, datetime)):
            return None
        if not isinstance(value, str):
            return self.error("{label} must be a date.", "invalid_type", label=label)
        fmt = self.params.get("format")
        try:
            if fmt:
                datetime.strptime(value, fmt)
            else:
                datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return self.error("The format of {label} is invalid.", "invalid_date_format", label=label)
        return None


@register_rule
class BooleanRule(AttributeRule):
    kind = "boolean"
    allowed_params = frozenset({"true_value", "false_value", "strict"})

    def check(self, value: Any, label: str) -> AttributeValidationError | None:
        true_value = self.params.get("true_value", 1)
        false_value = self.params.get("false_value", 0)
        if self.params.get("strict", False):
            valid = value in (true_value, false_value) and type(value) in (type(true_value), type(false_value))
        else:
            valid = str(int(value) if isinstance(value, bool) else value) in (str(true_value), str(false_value))
        if not valid:
            return self.error(
                "{label} must be either {true} or {false}.", "invalid_boolean",
                label=label, true=true_value, false=false_value,
            )
        return None


@register_rule
class SafeRule(AttributeRule):
    """Marks an attribute safe for mass assignment without checking it."""

    kind = "safe"

    def validate(self, subject: ValidationSubject) -> AttributeValidationError | None:
        return None


@register_rule
class UnsafeRule(AttributeRule):
    """Marks an attribute unsafe for mass assignment without checking it."""

    kind = "unsafe"

    @property
    def safe(self) -> bool:
        return False

    def validate(self, subject: ValidationSubject) -> AttributeValidationError | None:
        return None


def create_rule(attribute: str, spec: RuleSpec) -> AttributeRule:
    """Instantiate the rule class registered for ``spec.kind``.

    Raises:
        UnknownRuleError: If no rule is registered under that kind.
    """
    rule_class = RULE_TYPES.get(spec.kind)
    if rule_class is None:
        raise UnknownRuleError(spec.kind)
    return rule_class(attribute, spec)

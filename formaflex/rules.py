"""Declarative validation rules.

A rule is one of five frozen dataclasses (RequiredRule, EmailRule,
MinLengthRule, CustomRule, ConfirmRule) forming a closed tagged variant.
Rules can be written directly or declared as plain dicts::

    {"type": "required", "message": "Email is required"}
    {"type": "minLength", "length": 8}
    {"type": "confirm", "field": "password", "message": "Passwords must match"}

Dict declarations are checked against RULE_SCHEMA (JSON Schema Draft 7) and
converted by parse_rule. The order of a field's rules is significant: the
first failing rule determines the error message.
"""

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Sequence, Tuple, Union

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match
from typing_extensions import TypeAlias

from formaflex.errors import ConfigurationError, UnknownRuleTypeError
from formaflex.types import RuleType


DEFAULT_REQUIRED_MESSAGE = "Required"
DEFAULT_EMAIL_MESSAGE = "Invalid email"
DEFAULT_MIN_LENGTH_MESSAGE = "Min length {length}"
DEFAULT_CUSTOM_MESSAGE = "Invalid value"
DEFAULT_CONFIRM_MESSAGE = "Fields must match"


@dataclass(frozen=True)
class RequiredRule:
    """Fails when the value is absent or blank."""
    type: ClassVar[RuleType] = RuleType.REQUIRED
    message: Optional[str] = None

    def message_for(self) -> str:
        return self.message or DEFAULT_REQUIRED_MESSAGE


@dataclass(frozen=True)
class EmailRule:
    """Fails when a non-empty value is not shaped like local@domain.tld."""
    type: ClassVar[RuleType] = RuleType.EMAIL
    message: Optional[str] = None

    def message_for(self) -> str:
        return self.message or DEFAULT_EMAIL_MESSAGE


@dataclass(frozen=True)
class MinLengthRule:
    """Fails when a non-empty value is shorter than length."""
    type: ClassVar[RuleType] = RuleType.MIN_LENGTH
    length: int = 0
    message: Optional[str] = None

    def message_for(self) -> str:
        return self.message or DEFAULT_MIN_LENGTH_MESSAGE.format(length=self.length)


@dataclass(frozen=True)
class CustomRule:
    """Fails when the predicate returns a falsy result, raises or rejects.

    The predicate is called as validate(value, values) when it accepts two
    positional arguments and as validate(value) otherwise. It may return an
    awaitable, in which case the field is validated asynchronously.
    """
    type: ClassVar[RuleType] = RuleType.CUSTOM
    validate: Callable[..., Any] = None  # type: ignore[assignment]
    message: Optional[str] = None

    def message_for(self) -> str:
        return self.message or DEFAULT_CUSTOM_MESSAGE


@dataclass(frozen=True)
class ConfirmRule:
    """Fails when the value differs from the value of a sibling field."""
    type: ClassVar[RuleType] = RuleType.CONFIRM
    field: str = ""
    message: Optional[str] = None

    def message_for(self) -> str:
        return self.message or DEFAULT_CONFIRM_MESSAGE


Rule: TypeAlias = Union[RequiredRule, EmailRule, MinLengthRule, CustomRule, ConfirmRule]

RULE_CLASSES: Dict[RuleType, type] = {
    RuleType.REQUIRED: RequiredRule,
    RuleType.EMAIL: EmailRule,
    RuleType.MIN_LENGTH: MinLengthRule,
    RuleType.CUSTOM: CustomRule,
    RuleType.CONFIRM: ConfirmRule,
}


RULE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"enum": [rule_type.value for rule_type in RuleType]},
        "message": {"type": ["string", "null"]},
    },
    "allOf": [
        {
            "if": {"properties": {"type": {"const": RuleType.MIN_LENGTH.value}}},
            "then": {
                "required": ["length"],
                "properties": {"length": {"type": "integer", "minimum": 0}},
            },
        },
        {
            "if": {"properties": {"type": {"const": RuleType.CONFIRM.value}}},
            "then": {
                "required": ["field"],
                "properties": {"field": {"type": "string", "minLength": 1}},
            },
        },
        {
            "if": {"properties": {"type": {"const": RuleType.CUSTOM.value}}},
            "then": {"required": ["validate"]},
        },
    ],
}

_rule_validator = Draft7Validator(RULE_SCHEMA)


def parse_rule(declaration: Union[Rule, Mapping[str, Any]], field: Optional[str] = None) -> Rule:
    """Convert a rule declaration into a rule instance.

    Args:
        declaration: A rule instance (returned unchanged) or a dict declaration
        field: Optional - the field key, used in error messages

    Returns:
        The corresponding rule dataclass

    Raises:
        UnknownRuleTypeError: If the type tag is not one of the known kinds
        ConfigurationError: If the declaration is malformed

    Examples:
        >>> parse_rule({"type": "minLength", "length": 6})
        MinLengthRule(length=6, message=None)
        >>> parse_rule({"type": "phone"})
        Traceback (most recent call last):
        ...
        formaflex.errors.UnknownRuleTypeError: unknown rule type 'phone'
    """
    if isinstance(declaration, tuple(RULE_CLASSES.values())):
        return declaration  # type: ignore[return-value]
    if not isinstance(declaration, Mapping):
        raise UnknownRuleTypeError(type(declaration).__name__, field=field)

    data = dict(declaration)
    tag = data.get("type")
    if isinstance(tag, RuleType):
        tag = data["type"] = tag.value
    if isinstance(tag, str) and tag not in RuleType._value2member_map_:
        raise UnknownRuleTypeError(tag, field=field)

    error = best_match(_rule_validator.iter_errors(data))
    if error is not None:
        raise ConfigurationError(f"malformed rule {data!r}: {error.message}", field=field)

    rule_type = RuleType(tag)
    message = data.get("message")
    if rule_type is RuleType.MIN_LENGTH:
        return MinLengthRule(length=data["length"], message=message)
    if rule_type is RuleType.CONFIRM:
        return ConfirmRule(field=data["field"], message=message)
    if rule_type is RuleType.CUSTOM:
        if not callable(data["validate"]):
            raise ConfigurationError("custom rule 'validate' must be callable", field=field)
        return CustomRule(validate=data["validate"], message=message)
    return RULE_CLASSES[rule_type](message=message)


def parse_rules(rules: Optional[Mapping[str, Sequence[Any]]]) -> Dict[str, Tuple[Rule, ...]]:
    """Parse a rule map (field key -> ordered rule declarations).

    Raises:
        ConfigurationError: If a field's rules are not a list or tuple, or
            any declaration is malformed
    """
    if rules is None:
        return {}
    if not isinstance(rules, Mapping):
        raise ConfigurationError(f"rules must be a mapping, got {type(rules).__name__}")

    parsed: Dict[str, Tuple[Rule, ...]] = {}
    for key, declarations in rules.items():
        if not isinstance(declarations, (list, tuple)):
            raise ConfigurationError(
                f"rules must be a list, got {type(declarations).__name__}", field=key
            )
        parsed[key] = tuple(parse_rule(declaration, field=key) for declaration in declarations)
    return parsed


__all__ = [
    "Rule",
    "RequiredRule",
    "EmailRule",
    "MinLengthRule",
    "CustomRule",
    "ConfirmRule",
    "RULE_CLASSES",
    "RULE_SCHEMA",
    "parse_rule",
    "parse_rules",
    "DEFAULT_REQUIRED_MESSAGE",
    "DEFAULT_EMAIL_MESSAGE",
    "DEFAULT_MIN_LENGTH_MESSAGE",
    "DEFAULT_CUSTOM_MESSAGE",
    "DEFAULT_CONFIRM_MESSAGE",
]

"""Core type definitions for the FormaFlex validation store.

This module defines the fundamental types used throughout FormaFlex:
- RuleType: Tags of the closed set of validation rule kinds
- FieldState: Per-field validation lifecycle states
- ValidationOptions: Validation timing configuration for one form
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Union

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from formaflex.errors import ConfigurationError


class RuleType(str, Enum):
    """Validation rule kinds.

    The set is closed: the engine rejects any other tag as a configuration
    error instead of silently ignoring it.
    """
    REQUIRED = "required"
    EMAIL = "email"
    MIN_LENGTH = "minLength"
    CUSTOM = "custom"
    CONFIRM = "confirm"


class FieldState(str, Enum):
    """Validation lifecycle of a single field.

    Fields start UNTOUCHED, enter VALIDATING when an evaluation starts and
    settle in VALID or INVALID (see formaflex.state_machine).
    """
    UNTOUCHED = "untouched"
    VALIDATING = "validating"
    VALID = "valid"
    INVALID = "invalid"


OPTIONS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "validateOnChange": {"type": "boolean"},
        "debounce": {"type": "number", "minimum": 0},
        "validateOnBlur": {"type": "boolean"},
    },
    "additionalProperties": False,
}

_options_validator = Draft7Validator(OPTIONS_SCHEMA)


@dataclass(frozen=True)
class ValidationOptions:
    """Validation timing configuration for one form.

    Attributes:
        validate_on_change: Re-run a field's rules after every set_field
        debounce: Milliseconds to wait before validating, coalescing rapid
            edits of the same field; 0 validates immediately
        validate_on_blur: Re-validate when the consumer reports a blur

    Examples:
        >>> options = ValidationOptions.from_dict({"validateOnChange": True, "debounce": 300})
        >>> options.validate_on_change
        True
        >>> options.debounce_seconds
        0.3
    """
    validate_on_change: bool = False
    debounce: float = 0
    validate_on_blur: bool = False

    @property
    def debounce_seconds(self) -> float:
        return self.debounce / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict using the camelCase option names."""
        return {
            "validateOnChange": self.validate_on_change,
            "debounce": self.debounce,
            "validateOnBlur": self.validate_on_blur,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValidationOptions":
        """Create ValidationOptions from a dict of camelCase options.

        Raises:
            ConfigurationError: If an option is unknown or has the wrong type
        """
        error = best_match(_options_validator.iter_errors(dict(data)))
        if error is not None:
            raise ConfigurationError(f"invalid validation options: {error.message}")
        return cls(
            validate_on_change=data.get("validateOnChange", False),
            debounce=data.get("debounce", 0),
            validate_on_blur=data.get("validateOnBlur", False),
        )

    @classmethod
    def coerce(
        cls, options: Union["ValidationOptions", Mapping[str, Any], None]
    ) -> "ValidationOptions":
        """Accept an instance, a camelCase dict or None (all defaults)."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            return cls.from_dict(options)
        raise ConfigurationError(
            f"validation options must be a mapping, got {type(options).__name__}"
        )


__all__ = [
    "RuleType",
    "FieldState",
    "ValidationOptions",
    "OPTIONS_SCHEMA",
]

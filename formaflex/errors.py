"""Exception types for the FormaFlex validation store.

Validation failures are not exceptions: they are reported as per-field
messages (see formaflex.validation.Invalid). The exceptions defined here are
reserved for configuration mistakes that the caller has to fix, such as a
malformed rule declaration or an unrecognized timing option.
"""

from typing import Optional


class FormaflexError(Exception):
    """Base class for all FormaFlex errors."""


class ConfigurationError(FormaflexError):
    """Raised when a form, its rules or its options are misconfigured.

    Attributes:
        field: Optional - the field key the bad declaration belongs to
        message: Human-readable error message

    Examples:
        >>> err = ConfigurationError("rules must be a list", field="email")
        >>> err.field
        'email'
        >>> str(err)
        "Invalid configuration for field 'email': rules must be a list"
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.message = message
        if field is not None:
            message = f"Invalid configuration for field '{field}': {message}"
        super().__init__(message)


class UnknownRuleTypeError(ConfigurationError):
    """Raised when a rule declares a type tag the engine does not implement.

    Attributes:
        rule_type: The offending type tag (or the foreign object's type name)
    """

    def __init__(self, rule_type: str, field: Optional[str] = None):
        self.rule_type = rule_type
        super().__init__(f"unknown rule type '{rule_type}'", field=field)


__all__ = [
    "FormaflexError",
    "ConfigurationError",
    "UnknownRuleTypeError",
]

"""FormaFlex reactive validation store.

FormaFlex provides:
- A Form Registry holding any number of named forms behind one
  subscribe/notify channel
- A Standalone Validator for forms owned by a single consumer
- A Validation Engine with ordered, short-circuiting declarative rules
  (required, email, minLength, custom, confirm)
- Debounced and asynchronous validation guarded by per-field generation
  counters, so stale results never overwrite newer ones

Basic usage:
    >>> from formaflex import FormRegistry
    >>> registry = FormRegistry()
    >>> registry.initialize_form(
    ...     "signup",
    ...     {"email": ""},
    ...     {"email": [{"type": "required"}, {"type": "email"}]},
    ...     {"validateOnChange": True},
    ... )
    >>> registry.set_field("signup", "email", "")
    >>> registry.get_errors("signup")
    {'email': 'Required'}
"""

__version__ = "0.1.0"
__author__ = "FormaFlex Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formaflex.errors import ConfigurationError, FormaflexError, UnknownRuleTypeError
from formaflex.events import Subscription
from formaflex.registry import FormRegistry
from formaflex.rules import (
    ConfirmRule,
    CustomRule,
    EmailRule,
    MinLengthRule,
    RequiredRule,
    Rule,
)
from formaflex.types import FieldState, RuleType, ValidationOptions
from formaflex.validation import (
    Invalid,
    Pending,
    Valid,
    ValidationEngine,
    ValidationFailure,
    ValidationSuccess,
)
from formaflex.validator import StandaloneValidator

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormRegistry",
    "StandaloneValidator",
    "ValidationEngine",
    "ValidationOptions",
    "ValidationSuccess",
    "ValidationFailure",
    "Valid",
    "Invalid",
    "Pending",
    "Rule",
    "RequiredRule",
    "EmailRule",
    "MinLengthRule",
    "CustomRule",
    "ConfirmRule",
    "RuleType",
    "FieldState",
    "Subscription",
    "FormaflexError",
    "ConfigurationError",
    "UnknownRuleTypeError",
]

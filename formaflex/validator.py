"""StandaloneValidator: a single-owner form with no registry.

Use it when a form lives and dies with one consumer and nothing else needs
to observe it. It validates exactly like a registry form, but its state is
private and changes are reported only to the owner's on_change callback.

Usage:
    >>> form = StandaloneValidator(
    ...     {"email": "", "password": ""},
    ...     {
    ...         "email": [
    ...             {"type": "required", "message": "Email is required"},
    ...             {"type": "email", "message": "Invalid email format"},
    ...         ],
    ...         "password": [
    ...             {"type": "required", "message": "Password is required"},
    ...             {"type": "minLength", "length": 8, "message": "Min 8 characters"},
    ...         ],
    ...     },
    ... )
    >>> result = form.validate_form()
    >>> result.success
    False
    >>> result.errors["password"]
    'Password is required'
"""

from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from formaflex.form import FormRecord
from formaflex.types import FieldState, ValidationOptions
from formaflex.validation import Outcome, ValidationEngine, ValidationResult


class StandaloneValidator:
    """Form state owned by a single consumer.

    Attributes:
        options: The validation timing options of the form
    """

    def __init__(
        self,
        initial_values: Optional[Mapping[str, Any]],
        rules: Optional[Mapping[str, Sequence[Any]]],
        options: Union[ValidationOptions, Mapping[str, Any], None] = None,
        engine: Optional[ValidationEngine] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        """Initialize the validator.

        Args:
            initial_values: Initial field values
            rules: Field key -> ordered rule declarations
            options: ValidationOptions or a camelCase options dict
            engine: Optional - engine to evaluate rules with
            on_change: Optional - called with no arguments after every change

        Raises:
            ConfigurationError: If rules or options are malformed
        """
        self._record = FormRecord(
            "standalone",
            initial_values,
            rules,
            options,
            engine=engine,
            on_change=on_change,
        )

    @property
    def options(self) -> ValidationOptions:
        return self._record.options

    @property
    def values(self) -> Dict[str, Any]:
        """Snapshot of the current values."""
        return self._record.values

    @property
    def errors(self) -> Dict[str, Optional[str]]:
        """Snapshot of the current errors."""
        return self._record.errors

    @property
    def is_valid(self) -> bool:
        return self._record.is_valid

    def field_state(self, key: str) -> FieldState:
        return self._record.field_state(key)

    def set_field(self, key: str, value: Any) -> None:
        """Update a value; validates it (after any debounce) when validate_on_change."""
        self._record.set_field(key, value)

    def validate_field(self, key: str) -> Outcome:
        return self._record.validate_field(key)

    def blur_field(self, key: str) -> Optional[Outcome]:
        return self._record.blur_field(key)

    def validate_form(self) -> ValidationResult:
        """Validate every field with rules, ignoring debounce.

        Errors are rebuilt from scratch, including fields never touched.

        Returns:
            ValidationSuccess with a values snapshot, or ValidationFailure
            with an errors snapshot
        """
        return self._record.validate_form()

    async def validate_form_async(self) -> ValidationResult:
        return await self._record.validate_form_async()

    async def wait_settled(self) -> None:
        await self._record.wait_settled()


__all__ = [
    "StandaloneValidator",
]

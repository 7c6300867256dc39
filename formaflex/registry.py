"""FormRegistry: shared table of named forms with change notification.

The registry maps form identifiers to FormRecords and fans every change out
to its subscribers. It is an ordinary object: create one per application (or
per test) and inject it where it is needed.

Unknown form identifiers are never an error. Writes to an unknown form are
silent no-ops, reads return empty results, so components may mount and
unmount in any order.

Usage:
    >>> registry = FormRegistry()
    >>> registry.initialize_form(
    ...     "demo",
    ...     {"email": "", "password": ""},
    ...     {
    ...         "email": [{"type": "required"}, {"type": "email"}],
    ...         "password": [{"type": "required"}, {"type": "minLength", "length": 6}],
    ...     },
    ...     {"validateOnChange": True},
    ... )
    >>> registry.set_field("demo", "password", "ab")
    >>> registry.get_errors("demo")
    {'password': 'Min length 6'}
    >>> registry.is_valid("demo")
    False
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from formaflex.events import Listener, Notifier, Subscription
from formaflex.form import FormRecord
from formaflex.types import FieldState, ValidationOptions
from formaflex.validation import Outcome, ValidationEngine, ValidationResult, ValidationSuccess

logger = logging.getLogger(__name__)


class FormRegistry:
    """Process-wide table of form records sharing one notification channel.

    Subscribers are called with no arguments after every change to any form;
    they re-read the forms they care about.

    Attributes:
        engine: The ValidationEngine shared by every form of this registry

    Examples:
        >>> registry = FormRegistry()
        >>> changes = []
        >>> unsubscribe = registry.subscribe(lambda: changes.append(1))
        >>> registry.initialize_form("profile", {"name": ""}, {"name": [{"type": "required"}]})
        >>> registry.set_field("missing", "name", "Ada")  # unknown form: no-op
        >>> len(changes)
        1
    """

    def __init__(self, engine: Optional[ValidationEngine] = None):
        self.engine = engine or ValidationEngine()
        self._forms: Dict[str, FormRecord] = {}
        self._notifier = Notifier()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize_form(
        self,
        form_id: str,
        initial_values: Optional[Mapping[str, Any]],
        rules: Optional[Mapping[str, Sequence[Any]]],
        options: Union[ValidationOptions, Mapping[str, Any], None] = None,
    ) -> None:
        """Create a form, or replace an existing one with the same id.

        The new record is built completely before it replaces the old one,
        and subscribers are notified exactly once.

        Args:
            form_id: Identifier of the form
            initial_values: Initial field values (nested records allowed)
            rules: Field key -> ordered rule declarations
            options: ValidationOptions or a camelCase options dict

        Raises:
            ConfigurationError: If rules or options are malformed; the
                registry is left unchanged
        """
        record = FormRecord(
            form_id,
            initial_values,
            rules,
            options,
            engine=self.engine,
            on_change=self._notifier.notify,
        )
        previous = self._forms.get(form_id)
        if previous is not None:
            previous.dispose()
            logger.debug("Re-initializing form '%s'", form_id)
        else:
            logger.debug("Initializing form '%s'", form_id)
        self._forms[form_id] = record
        self._notifier.notify()

    def remove_form(self, form_id: str) -> bool:
        """Remove a form and notify subscribers once.

        Returns:
            True if the form existed, False (and no notification) otherwise
        """
        record = self._forms.pop(form_id, None)
        if record is None:
            return False
        record.dispose()
        logger.debug("Removed form '%s'", form_id)
        self._notifier.notify()
        return True

    def has_form(self, form_id: str) -> bool:
        return form_id in self._forms

    def form_ids(self) -> List[str]:
        return list(self._forms)

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._forms

    def __len__(self) -> int:
        return len(self._forms)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_field(self, form_id: str, key: str, value: Any) -> None:
        """Set a field value and validate it according to the form's options.

        Subscribers are notified once for the call, and again when a
        debounced or asynchronous validation result lands. Unknown form ids
        are ignored without notification.
        """
        record = self._record(form_id)
        if record is not None:
            record.set_field(key, value)

    def validate_field(self, form_id: str, key: str) -> Optional[Outcome]:
        """Validate one field immediately; None for an unknown form."""
        record = self._record(form_id)
        if record is None:
            return None
        return record.validate_field(key)

    def blur_field(self, form_id: str, key: str) -> Optional[Outcome]:
        """Report a blur; validates only when the form has validate_on_blur."""
        record = self._record(form_id)
        if record is None:
            return None
        return record.blur_field(key)

    def validate_form(self, form_id: str) -> ValidationResult:
        """Run the submit-time sweep over every field with rules.

        An unknown form validates vacuously with empty data.
        """
        record = self._record(form_id)
        if record is None:
            return ValidationSuccess(data={})
        return record.validate_form()

    async def validate_form_async(self, form_id: str) -> ValidationResult:
        """Run the sweep and wait for asynchronous rules to settle."""
        record = self._record(form_id)
        if record is None:
            return ValidationSuccess(data={})
        return await record.validate_form_async()

    async def wait_settled(self, form_id: str) -> None:
        """Wait for the form's debounce timers and asynchronous validations."""
        record = self._record(form_id)
        if record is not None:
            await record.wait_settled()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_values(self, form_id: str) -> Dict[str, Any]:
        record = self._forms.get(form_id)
        return record.values if record is not None else {}

    def get_errors(self, form_id: str) -> Dict[str, Optional[str]]:
        record = self._forms.get(form_id)
        return record.errors if record is not None else {}

    def is_valid(self, form_id: str) -> bool:
        record = self._forms.get(form_id)
        return record.is_valid if record is not None else True

    def get_field_state(self, form_id: str, key: str) -> Optional[FieldState]:
        record = self._forms.get(form_id)
        return record.field_state(key) if record is not None else None

    def get_state(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every form: form id -> values, errors and isValid."""
        return {form_id: record.snapshot() for form_id, record in self._forms.items()}

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Listener) -> Subscription:
        """Register a change callback.

        Returns:
            A callable, idempotent unsubscribe handle
        """
        return self._notifier.subscribe(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._notifier)

    def _record(self, form_id: str) -> Optional[FormRecord]:
        record = self._forms.get(form_id)
        if record is None:
            logger.debug("Ignoring operation on unknown form '%s'", form_id)
        return record


__all__ = [
    "FormRegistry",
]

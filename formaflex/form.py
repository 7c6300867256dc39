"""Form record: values, errors, rules and validation scheduling for one form.

A FormRecord owns the state of a single form instance and implements the
mutation and validation protocol shared by the Form Registry and the
Standalone Validator:

1. set_field merges the value (dotted keys address nested records) and bumps
   the field's generation counter.
2. With validate_on_change, the field's rules are evaluated, immediately or
   after the debounce delay. A newer edit cancels and replaces the timer.
3. Synchronous outcomes update errors at once. Pending outcomes are awaited
   on the running event loop and applied only if their generation is still
   current.
4. The owner is told about every change through the on_change callback:
   once per call, and again whenever a deferred result lands.

Debounce timers and asynchronous rules need a running asyncio event loop.
Without one, validation runs immediately and pending outcomes are driven to
completion with asyncio.run.
"""

import asyncio
import copy
import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Set, Tuple, Union

from formaflex.errors import ConfigurationError
from formaflex.paths import get_path, has_path, set_path
from formaflex.rules import ConfirmRule, Rule, parse_rules
from formaflex.state_machine import FieldStateMachine
from formaflex.types import FieldState, ValidationOptions
from formaflex.validation import (
    Invalid,
    Outcome,
    Pending,
    Valid,
    ValidationEngine,
    ValidationFailure,
    ValidationResult,
    ValidationSuccess,
)

logger = logging.getLogger(__name__)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _noop() -> None:
    pass


class FormRecord:
    """State and validation protocol of one form instance.

    Attributes:
        form_id: Identifier of the form (informational for standalone forms)
        rules: Field key -> ordered tuple of parsed rules
        options: Validation timing options

    Examples:
        >>> record = FormRecord(
        ...     "login",
        ...     {"email": ""},
        ...     {"email": [{"type": "required"}, {"type": "email"}]},
        ...     {"validateOnChange": True},
        ... )
        >>> record.set_field("email", "ada@")
        >>> record.errors
        {'email': 'Invalid email'}
        >>> record.is_valid
        False
    """

    def __init__(
        self,
        form_id: str,
        initial_values: Optional[Mapping[str, Any]],
        rules: Optional[Mapping[str, Sequence[Any]]],
        options: Union[ValidationOptions, Mapping[str, Any], None] = None,
        engine: Optional[ValidationEngine] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        """Initialize the record.

        Raises:
            ConfigurationError: If the rules or options are malformed, or a
                confirm rule names a field absent from initial_values
        """
        self.form_id = form_id
        self.rules: Dict[str, Tuple[Rule, ...]] = parse_rules(rules)
        self.options = ValidationOptions.coerce(options)
        self._values: Dict[str, Any] = copy.deepcopy(dict(initial_values or {}))
        self._errors: Dict[str, Optional[str]] = {}
        self._fields: Dict[str, FieldStateMachine] = {
            key: FieldStateMachine(key=key) for key in self.rules
        }
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._engine = engine or ValidationEngine()
        self._on_change = on_change or _noop
        self._lock = threading.RLock()

        for key, field_rules in self.rules.items():
            for rule in field_rules:
                if isinstance(rule, ConfirmRule) and not has_path(self._values, rule.field):
                    raise ConfigurationError(
                        f"confirm rule references unknown field '{rule.field}'", field=key
                    )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def values(self) -> Dict[str, Any]:
        """Deep copy of the current values."""
        return copy.deepcopy(self._values)

    @property
    def errors(self) -> Dict[str, Optional[str]]:
        """Copy of the current error map (field key -> message or None)."""
        return dict(self._errors)

    @property
    def is_valid(self) -> bool:
        """True when no field has an error and no rule-bearing field is validating."""
        if any(self._errors.values()):
            return False
        return not any(
            self._fields[key].state is FieldState.VALIDATING for key in self.rules
        )

    @property
    def pending(self) -> bool:
        """Whether a debounce timer or an asynchronous validation is outstanding."""
        return bool(self._timers or self._tasks)

    def field_state(self, key: str) -> FieldState:
        machine = self._fields.get(key)
        return machine.state if machine is not None else FieldState.UNTOUCHED

    def snapshot(self) -> Dict[str, Any]:
        """Values, errors and validity in one read."""
        return {
            "values": self.values,
            "errors": self.errors,
            "isValid": self.is_valid,
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_field(self, key: str, value: Any) -> None:
        """Store a field value and, with validate_on_change, schedule its validation."""
        with self._lock:
            self._values = set_path(self._values, key, value)
            machine = self._field(key)
            if self.options.validate_on_change:
                self._schedule(key, machine.begin())
            else:
                self._cancel_timer(key)
                machine.bump()
                machine.reset()
        self._on_change()

    def validate_field(self, key: str) -> Outcome:
        """Validate one field now, ignoring debounce.

        Returns:
            The outcome; Pending when an asynchronous rule is still running
        """
        with self._lock:
            self._cancel_timer(key)
            outcome = self._evaluate(key, self._field(key).begin())
        self._on_change()
        return outcome

    def blur_field(self, key: str) -> Optional[Outcome]:
        """Validate a field the consumer reports as blurred, if validate_on_blur is set."""
        if not self.options.validate_on_blur:
            return None
        return self.validate_field(key)

    def validate_form(self) -> ValidationResult:
        """Validate every field that has rules, rebuilding errors from scratch.

        Debounce is ignored and outstanding timers are cancelled. With a
        running event loop, fields whose asynchronous rules have not settled
        are listed in ValidationFailure.pending and stay VALIDATING.
        """
        with self._lock:
            errors: Dict[str, Optional[str]] = {}
            for key, field_rules in self.rules.items():
                self._cancel_timer(key)
                machine = self._field(key)
                generation = machine.begin()
                outcome = self._engine.evaluate_field(
                    field_rules, get_path(self._values, key), self._values
                )
                if isinstance(outcome, Pending):
                    if _running_loop() is not None:
                        self._spawn(key, generation, outcome)
                        continue
                    outcome = asyncio.run(outcome.resolve())
                machine.settle(generation, isinstance(outcome, Valid))
                if isinstance(outcome, Invalid):
                    errors[key] = outcome.message
            self._errors = errors
            result = self._result()
        self._on_change()
        return result

    async def validate_form_async(self) -> ValidationResult:
        """Sweep the form and wait for asynchronous rules to settle."""
        result = self.validate_form()
        if isinstance(result, ValidationFailure) and result.pending:
            await self.wait_settled()
            with self._lock:
                result = self._result()
        return result

    async def wait_settled(self) -> None:
        """Wait until no debounce timer or asynchronous validation is outstanding."""
        loop = asyncio.get_running_loop()
        while self._timers or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                deadline = max(handle.when() for handle in self._timers.values())
                await asyncio.sleep(max(0.0, deadline - loop.time()))

    def dispose(self) -> None:
        """Detach the record: cancel timers and silence late notifications."""
        with self._lock:
            self._on_change = _noop
            for key in list(self._timers):
                self._cancel_timer(key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _field(self, key: str) -> FieldStateMachine:
        machine = self._fields.get(key)
        if machine is None:
            machine = self._fields[key] = FieldStateMachine(key=key)
        return machine

    def _cancel_timer(self, key: str) -> None:
        handle = self._timers.pop(key, None)
        if handle is not None:
            handle.cancel()

    def _schedule(self, key: str, generation: int) -> None:
        self._cancel_timer(key)
        delay = self.options.debounce_seconds
        if delay > 0:
            loop = _running_loop()
            if loop is not None:
                self._timers[key] = loop.call_later(delay, self._run_debounced, key, generation)
                return
            logger.debug(
                "No running event loop, validating '%s' of form '%s' without debounce",
                key,
                self.form_id,
            )
        self._evaluate(key, generation)

    def _run_debounced(self, key: str, generation: int) -> None:
        with self._lock:
            self._timers.pop(key, None)
            outcome = self._evaluate(key, generation)
        if not isinstance(outcome, Pending):
            self._on_change()

    def _evaluate(self, key: str, generation: int) -> Outcome:
        outcome = self._engine.evaluate_field(
            self.rules.get(key, ()), get_path(self._values, key), self._values
        )
        if isinstance(outcome, Pending):
            if _running_loop() is not None:
                self._spawn(key, generation, outcome)
                return outcome
            outcome = asyncio.run(outcome.resolve())
        self._apply(key, generation, outcome)
        return outcome

    def _spawn(self, key: str, generation: int, outcome: Pending) -> None:
        task = asyncio.ensure_future(self._settle_pending(key, generation, outcome))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _settle_pending(self, key: str, generation: int, outcome: Pending) -> None:
        settled = await outcome.resolve()
        with self._lock:
            applied = self._apply(key, generation, settled)
        if applied:
            self._on_change()

    def _apply(self, key: str, generation: int, outcome: Union[Valid, Invalid]) -> bool:
        if not self._field(key).settle(generation, isinstance(outcome, Valid)):
            logger.debug(
                "Discarding stale validation of '%s' in form '%s' (generation %d)",
                key,
                self.form_id,
                generation,
            )
            return False
        if key in self.rules:
            self._errors[key] = outcome.message
        return True

    def _result(self) -> ValidationResult:
        errors = {key: message for key, message in self._errors.items() if message}
        pending = [key for key in self.rules if self._fields[key].state is FieldState.VALIDATING]
        if errors or pending:
            return ValidationFailure(errors=errors, pending=tuple(pending))
        return ValidationSuccess(data=copy.deepcopy(self._values))


__all__ = [
    "FormRecord",
]

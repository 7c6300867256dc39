"""Rule evaluation engine for FormaFlex.

This module provides a ValidationEngine that evaluates the ordered rules of a
single field against a candidate value and produces an Outcome:

- Valid: every rule passed
- Invalid(message): the first failing rule, in declaration order
- Pending(handle): a custom rule returned an awaitable; awaiting
  handle.resolve() finishes the remaining rules and yields Valid or Invalid

Evaluation short-circuits on the first failing rule. Declared order is
respected exactly: a rule placed before "required" is evaluated first and
may mask the required check.

It also defines the tagged results of a full-form sweep, ValidationSuccess
and ValidationFailure.
"""

import inspect
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Iterable, Mapping, Optional, Tuple, Union

from formaflex.errors import UnknownRuleTypeError
from formaflex.paths import get_path
from formaflex.rules import (
    ConfirmRule,
    CustomRule,
    EmailRule,
    MinLengthRule,
    RequiredRule,
    Rule,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class Valid:
    """Every rule of the field passed."""

    @property
    def message(self) -> None:
        return None


@dataclass(frozen=True)
class Invalid:
    """The first failing rule's message."""
    message: str


@dataclass(frozen=True)
class Pending:
    """An asynchronous custom rule is still running.

    The handle is single-use: await resolve() exactly once, or call close()
    to abandon it. A Pending that is dropped without either leaks the
    underlying coroutines.
    """
    handle: Awaitable[Union[Valid, Invalid]] = field(repr=False)
    source: Optional[Awaitable[Any]] = field(default=None, repr=False, compare=False)

    async def resolve(self) -> Union[Valid, Invalid]:
        return await self.handle

    def close(self) -> None:
        """Abandon the evaluation without awaiting it."""
        for awaitable in (self.handle, self.source):
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()


Outcome = Union[Valid, Invalid, Pending]

VALID = Valid()


@dataclass(frozen=True)
class ValidationSuccess:
    """Result of a full-form sweep in which no field has an error.

    Attributes:
        data: Snapshot of the form values at sweep time
    """
    data: Dict[str, Any]

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"success": True, "data": self.data}


@dataclass(frozen=True)
class ValidationFailure:
    """Result of a full-form sweep in which at least one field failed.

    Attributes:
        errors: Field key -> message for every failing field
        pending: Field keys whose asynchronous rules had not settled yet
    """
    errors: Dict[str, str]
    pending: Tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {"success": False, "errors": self.errors}
        if self.pending:
            result["pending"] = list(self.pending)
        return result


ValidationResult = Union[ValidationSuccess, ValidationFailure]


def is_blank(value: Any) -> bool:
    """Whether a value counts as absent for the required rule.

    None, False, empty collections and whitespace-only strings are blank.
    Numbers, including 0, are not.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def _call_predicate(rule: CustomRule, value: Any, values: Mapping[str, Any]) -> Any:
    try:
        signature = inspect.signature(rule.validate)
    except (TypeError, ValueError):
        return rule.validate(value)
    try:
        signature.bind(value, values)
    except TypeError:
        return rule.validate(value)
    return rule.validate(value, values)


class ValidationEngine:
    """Evaluates one field's ordered rules against a candidate value.

    The engine keeps no state between calls; the Form Registry and the
    Standalone Validator share the same evaluation semantics through it.

    Examples:
        >>> engine = ValidationEngine()
        >>> rules = [RequiredRule(), EmailRule()]
        >>> engine.evaluate_field(rules, "", {})
        Invalid(message='Required')
        >>> engine.evaluate_field(rules, "not-an-email", {})
        Invalid(message='Invalid email')
        >>> engine.evaluate_field(rules, "ada@example.com", {})
        Valid()
    """

    def evaluate_field(
        self,
        rules: Iterable[Rule],
        value: Any,
        values: Optional[Mapping[str, Any]] = None,
    ) -> Outcome:
        """Evaluate rules in declaration order, stopping at the first failure.

        Args:
            rules: The field's ordered rules
            value: The candidate value
            values: Snapshot of the whole form, read by confirm and custom rules

        Returns:
            Valid, Invalid with the failing rule's message, or Pending when a
            custom rule returned an awaitable

        Raises:
            UnknownRuleTypeError: If a rule is not one of the known rule types
        """
        values = values if values is not None else {}
        rules = list(rules)
        for index, rule in enumerate(rules):
            verdict = self._check(rule, value, values)
            if inspect.isawaitable(verdict):
                remaining = rules[index + 1:]
                return Pending(self._resume(verdict, rule, remaining, value, values), source=verdict)
            if not verdict:
                return Invalid(rule.message_for())
        return VALID

    async def evaluate_field_async(
        self,
        rules: Iterable[Rule],
        value: Any,
        values: Optional[Mapping[str, Any]] = None,
    ) -> Union[Valid, Invalid]:
        """Like evaluate_field, but awaits asynchronous rules to a settled outcome."""
        outcome = self.evaluate_field(rules, value, values)
        if isinstance(outcome, Pending):
            return await outcome.resolve()
        return outcome

    async def _resume(self, verdict, rule, remaining, value, values) -> Union[Valid, Invalid]:
        if not await self._await_predicate(verdict, value):
            return Invalid(rule.message_for())
        for next_rule in remaining:
            verdict = self._check(next_rule, value, values)
            if inspect.isawaitable(verdict):
                verdict = await self._await_predicate(verdict, value)
            if not verdict:
                return Invalid(next_rule.message_for())
        return VALID

    def _check(self, rule: Rule, value: Any, values: Mapping[str, Any]) -> Any:
        """Return True if the rule passes, False if it fails, or an awaitable bool."""
        if isinstance(rule, RequiredRule):
            return not is_blank(value)

        if isinstance(rule, EmailRule):
            return not value or EMAIL_PATTERN.fullmatch(str(value)) is not None

        if isinstance(rule, MinLengthRule):
            if not value or not hasattr(value, "__len__"):
                return True
            return len(value) >= rule.length

        if isinstance(rule, ConfirmRule):
            return value == get_path(values, rule.field)

        if isinstance(rule, CustomRule):
            return self._check_custom(rule, value, values)

        raise UnknownRuleTypeError(type(rule).__name__)

    def _check_custom(self, rule: CustomRule, value: Any, values: Mapping[str, Any]) -> Any:
        try:
            result = _call_predicate(rule, value, values)
            if inspect.isawaitable(result):
                return result
            return bool(result)
        except Exception:
            logger.warning("Custom validator raised for value %r", value, exc_info=True)
            return False

    async def _await_predicate(self, result: Awaitable[Any], value: Any) -> bool:
        try:
            return bool(await result)
        except Exception:
            logger.warning("Async custom validator failed for value %r", value, exc_info=True)
            return False


__all__ = [
    "ValidationEngine",
    "Valid",
    "Invalid",
    "Pending",
    "Outcome",
    "VALID",
    "ValidationSuccess",
    "ValidationFailure",
    "ValidationResult",
    "EMAIL_PATTERN",
    "is_blank",
]

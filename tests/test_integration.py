"""Integration tests for debounced and asynchronous validation.

Tests cover end-to-end scenarios on a running event loop:
- Debounce coalescing rapid edits into one evaluation
- Stale asynchronous results never overwriting newer ones
- Notification of deferred results through the registry
- Sweeps over forms with asynchronous rules
- Re-initialization and removal with work in flight
"""

import asyncio

import pytest

from formaflex.registry import FormRegistry
from formaflex.types import FieldState
from formaflex.validation import ValidationFailure, ValidationSuccess
from formaflex.validator import StandaloneValidator


def recording_rule(seen, message="Rejected"):
    """Custom rule declaration that records every value it checks."""
    def check(value):
        seen.append(value)
        return value != "bad"

    return {"type": "custom", "validate": check, "message": message}


def slow_availability_rule(delays, message="Username not available"):
    """Async custom rule; 'taken' is unavailable, delay per value in seconds."""
    async def available(value):
        await asyncio.sleep(delays.get(value, 0))
        return value != "taken"

    return {"type": "custom", "validate": available, "message": message}


class TestDebounce:
    """Test debounce timers."""

    @pytest.mark.asyncio
    async def test_rapid_edits_run_one_evaluation(self):
        """Should evaluate once, with the latest value."""
        seen = []
        form = StandaloneValidator(
            {"x": ""},
            {"x": [recording_rule(seen)]},
            {"validateOnChange": True, "debounce": 30},
        )

        form.set_field("x", "a")
        form.set_field("x", "ab")
        assert seen == []
        assert form.field_state("x") == FieldState.VALIDATING

        await form.wait_settled()

        assert seen == ["ab"]
        assert form.field_state("x") == FieldState.VALID
        assert form.errors == {"x": None}

    @pytest.mark.asyncio
    async def test_not_valid_while_debouncing(self):
        """Should not report the form valid before the debounced check runs."""
        form = StandaloneValidator(
            {"x": ""},
            {"x": [recording_rule([])]},
            {"validateOnChange": True, "debounce": 30},
        )
        form.set_field("x", "bad")
        assert form.is_valid is False

        await form.wait_settled()

        assert form.errors == {"x": "Rejected"}
        assert form.is_valid is False

    @pytest.mark.asyncio
    async def test_fields_debounce_independently(self):
        seen = []
        form = StandaloneValidator(
            {"a": "", "b": ""},
            {"a": [recording_rule(seen)], "b": [recording_rule(seen)]},
            {"validateOnChange": True, "debounce": 20},
        )
        form.set_field("a", "1")
        form.set_field("b", "2")
        form.set_field("a", "11")

        await form.wait_settled()

        assert sorted(seen) == ["11", "2"]

    @pytest.mark.asyncio
    async def test_registry_notifies_when_debounced_result_lands(self):
        registry = FormRegistry()
        registry.initialize_form(
            "demo",
            {"email": ""},
            {"email": [{"type": "required"}, {"type": "email"}]},
            {"validateOnChange": True, "debounce": 20},
        )
        calls = []
        registry.subscribe(lambda: calls.append(registry.get_errors("demo").get("email")))

        registry.set_field("demo", "email", "a")
        registry.set_field("demo", "email", "ada@")
        assert calls == [None, None]

        await registry.wait_settled("demo")

        assert calls == [None, None, "Invalid email"]

    @pytest.mark.asyncio
    async def test_sweep_cancels_pending_timer(self):
        """Should run the sweep immediately and drop the debounced evaluation."""
        seen = []
        form = StandaloneValidator(
            {"x": ""},
            {"x": [recording_rule(seen)]},
            {"validateOnChange": True, "debounce": 30},
        )
        form.set_field("x", "ok")

        result = form.validate_form()
        await asyncio.sleep(0.05)

        assert isinstance(result, ValidationSuccess)
        assert seen == ["ok"]


class TestStaleAsyncResults:
    """Test that slow results for old values are discarded."""

    @pytest.mark.asyncio
    async def test_slow_old_result_does_not_overwrite_new(self):
        """Should keep the verdict for the newer value."""
        form = StandaloneValidator(
            {"username": ""},
            {"username": [slow_availability_rule({"taken": 0.05})]},
            {"validateOnChange": True},
        )

        form.set_field("username", "taken")
        form.set_field("username", "free")
        await form.wait_settled()

        assert form.errors == {"username": None}
        assert form.field_state("username") == FieldState.VALID
        assert form.is_valid is True

    @pytest.mark.asyncio
    async def test_newer_invalid_result_wins(self):
        form = StandaloneValidator(
            {"username": ""},
            {"username": [slow_availability_rule({"free": 0.05})]},
            {"validateOnChange": True},
        )

        form.set_field("username", "free")
        form.set_field("username", "taken")
        await form.wait_settled()

        assert form.errors == {"username": "Username not available"}

    @pytest.mark.asyncio
    async def test_field_is_validating_until_resolved(self):
        form = StandaloneValidator(
            {"username": ""},
            {"username": [slow_availability_rule({"ada": 0.02})]},
            {"validateOnChange": True},
        )

        form.set_field("username", "ada")
        assert form.field_state("username") == FieldState.VALIDATING
        assert form.is_valid is False

        await form.wait_settled()
        assert form.field_state("username") == FieldState.VALID

    @pytest.mark.asyncio
    async def test_stale_result_does_not_notify(self):
        registry = FormRegistry()
        registry.initialize_form(
            "signup",
            {"username": ""},
            {"username": [slow_availability_rule({"taken": 0.05})]},
            {"validateOnChange": True},
        )
        calls = []
        registry.subscribe(lambda: calls.append(1))

        registry.set_field("signup", "username", "taken")
        registry.set_field("signup", "username", "free")
        await registry.wait_settled("signup")

        # two set_field calls plus the result for "free"
        assert len(calls) == 3
        assert registry.get_errors("signup") == {"username": None}

    @pytest.mark.asyncio
    async def test_edit_without_validation_abandons_in_flight_result(self):
        """Should not leave the field stuck in VALIDATING."""
        form = StandaloneValidator(
            {"username": "taken"},
            {"username": [slow_availability_rule({"taken": 0.02})]},
        )
        result = form.validate_form()
        assert result.pending == ("username",)

        form.set_field("username", "free")
        await form.wait_settled()

        assert form.field_state("username") == FieldState.UNTOUCHED
        assert form.errors == {}

    @pytest.mark.asyncio
    async def test_rejected_async_rule_settles_invalid(self):
        async def flaky(value):
            raise ConnectionError("network down")

        form = StandaloneValidator(
            {"email": ""},
            {"email": [{"type": "custom", "validate": flaky, "message": "Could not verify"}]},
            {"validateOnChange": True},
        )
        form.set_field("email", "ada@example.com")
        await form.wait_settled()

        assert form.errors == {"email": "Could not verify"}
        assert form.field_state("email") == FieldState.INVALID


class TestAsyncSweep:
    """Test sweeps over forms with asynchronous rules."""

    @pytest.mark.asyncio
    async def test_sync_sweep_reports_pending_fields(self):
        form = StandaloneValidator(
            {"username": "ada", "email": ""},
            {
                "username": [slow_availability_rule({})],
                "email": [{"type": "required"}],
            },
        )

        result = form.validate_form()

        assert isinstance(result, ValidationFailure)
        assert result.errors == {"email": "Required"}
        assert result.pending == ("username",)
        assert form.is_valid is False
        await form.wait_settled()

    @pytest.mark.asyncio
    async def test_async_sweep_settles(self):
        form = StandaloneValidator(
            {"username": "ada"},
            {"username": [{"type": "required"}, slow_availability_rule({"ada": 0.01})]},
        )

        result = await form.validate_form_async()

        assert isinstance(result, ValidationSuccess)
        assert result.data == {"username": "ada"}
        assert form.is_valid is True

    @pytest.mark.asyncio
    async def test_async_sweep_failure(self):
        form = StandaloneValidator(
            {"username": "taken"},
            {"username": [slow_availability_rule({})]},
        )

        result = await form.validate_form_async()

        assert isinstance(result, ValidationFailure)
        assert result.errors == {"username": "Username not available"}
        assert result.pending == ()

    @pytest.mark.asyncio
    async def test_registry_async_sweep(self):
        registry = FormRegistry()
        registry.initialize_form(
            "signup",
            {"username": "free"},
            {"username": [slow_availability_rule({})]},
        )
        result = await registry.validate_form_async("signup")
        assert isinstance(result, ValidationSuccess)
        assert await registry.validate_form_async("missing") == ValidationSuccess(data={})


class TestLifecycleWithWorkInFlight:
    """Test re-initialization and removal while validation is pending."""

    @pytest.mark.asyncio
    async def test_reinitialize_cancels_debounce(self):
        seen = []
        registry = FormRegistry()
        options = {"validateOnChange": True, "debounce": 20}
        registry.initialize_form("demo", {"x": ""}, {"x": [recording_rule(seen)]}, options)
        registry.set_field("demo", "x", "old")

        registry.initialize_form("demo", {"x": ""}, {"x": [recording_rule(seen)]}, options)
        await asyncio.sleep(0.05)

        assert seen == []

    @pytest.mark.asyncio
    async def test_removed_form_result_does_not_notify(self):
        registry = FormRegistry()
        registry.initialize_form(
            "signup",
            {"username": ""},
            {"username": [slow_availability_rule({"ada": 0.02})]},
            {"validateOnChange": True},
        )
        registry.set_field("signup", "username", "ada")
        calls = []
        registry.subscribe(lambda: calls.append(1))

        registry.remove_form("signup")
        await asyncio.sleep(0.05)

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_unsubscribe_does_not_cancel_validation(self):
        registry = FormRegistry()
        registry.initialize_form(
            "signup",
            {"username": ""},
            {"username": [slow_availability_rule({"taken": 0.01})]},
            {"validateOnChange": True},
        )
        unsubscribe = registry.subscribe(lambda: None)
        registry.set_field("signup", "username", "taken")
        unsubscribe()

        await registry.wait_settled("signup")

        assert registry.get_errors("signup") == {"username": "Username not available"}

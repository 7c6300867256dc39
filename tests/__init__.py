"""Test suite for the FormaFlex validation store.

This package contains tests for:
- Rule declarations and configuration errors
- Validation engine (ordering, short-circuiting, default messages, async rules)
- Field state machine and generation counters
- Notification channel (subscribe, idempotent unsubscribe, isolation)
- Form Registry and Standalone Validator, including debounce and stale
  asynchronous result handling
"""

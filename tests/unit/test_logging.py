"""Tests for log sanitization."""

from __future__ import annotations

from smartarchive.core.logging import REDACTED_VALUE, sanitize_for_logging


def test_redacts_credential_like_keys():
    event = {"event": "ai_call", "api_key": "sk-1", "credential": "credential-1"}
    sanitized = sanitize_for_logging(event)
    assert sanitized["api_key"] == REDACTED_VALUE
    assert sanitized["credential"] == "credential-1"


def test_redacts_nested_dicts():
    sanitized = sanitize_for_logging({"request": {"auth_token": "abc", "model": "m"}})
    assert sanitized["request"] == {"auth_token": REDACTED_VALUE, "model": "m"}

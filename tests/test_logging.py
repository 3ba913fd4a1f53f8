"""Tests for secret redaction in log records."""

from __future__ import annotations

import logging

from mcp_conduit.logging_config import SecretRedactionFilter


def _record(msg, args=()) -> logging.LogRecord:
    return logging.LogRecord("mcp_conduit.test", logging.INFO, __file__, 1, msg, args, None)


class TestSecretRedactionFilter:
    def test_no_secrets_is_passthrough(self) -> None:
        record = _record("token %s", ("abcd1234",))
        assert SecretRedactionFilter().filter(record)
        assert record.getMessage() == "token abcd1234"

    def test_message_and_args_are_scrubbed(self) -> None:
        redactor = SecretRedactionFilter()
        redactor.register_all(["key-1234", "secret-5678", None, "abc"])
        record = _record("Authorization: token key-1234:%s (%d)", ("secret-5678", 3))
        assert redactor.filter(record)
        assert record.getMessage() == "Authorization: token ***REDACTED***:***REDACTED*** (3)"

    def test_short_values_are_ignored(self) -> None:
        redactor = SecretRedactionFilter()
        redactor.register("abc")
        assert redactor.scrub("abc abcd") == "abc abcd"

    def test_longest_secret_wins(self) -> None:
        redactor = SecretRedactionFilter()
        redactor.register("pass")
        redactor.register("password-1")
        assert redactor.scrub("password-1") == "***REDACTED***"

from __future__ import annotations

from pystatetree._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "user": "ann",
        "password": "pw",
        "credentials": {"api_key": "KEY", "Refresh-Token": "RT", "scope": "read"},
        "sessions": [{"token": "abc", "id": 1}],
    }

    redacted = redact_for_log(payload)
    assert redacted["user"] == "ann"
    assert redacted["password"] == "<redacted>"
    assert redacted["credentials"] == {"api_key": "<redacted>", "Refresh-Token": "<redacted>", "scope": "read"}
    assert redacted["sessions"] == [{"token": "<redacted>", "id": 1}]


def test_redact_for_log_custom_keys() -> None:
    redacted = redact_for_log({"ssn": "123", "password": "pw"}, sensitive_keys={"SSN"})
    assert redacted == {"ssn": "<redacted>", "password": "pw"}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_opaque_values() -> None:
    assert redact_for_log(b"\x00\x01") == "<bytes:2b>"
    assert redact_for_log({1, 2}) == repr({1, 2})

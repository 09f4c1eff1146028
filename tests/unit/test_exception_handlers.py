"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from lms_enhancer.core.exceptions import _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  errors = [{"type": "value_error", "loc": ("body", "moduleNumber"), "msg": "Value error, bad module number.", "input": {"moduleNumber": 0}, "ctx": {"error": ValueError("bad module number."), "input": 0}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: bad module number."
  assert "input" not in sanitized[0]["ctx"]
  assert sanitized[0]["loc"] == ["body", "moduleNumber"]


def test_error_payload_includes_request_id_only_when_known() -> None:
  assert _error_payload("Nope") == {"detail": "Nope"}
  assert _error_payload("Nope", request_id="abc") == {"detail": "Nope", "requestId": "abc"}

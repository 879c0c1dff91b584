"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

import json
import uuid
from types import SimpleNamespace

import pytest

from app.ai.errors import MalformedOutputError
from app.core.exceptions import _sanitize_validation_errors, provider_exception_handler, quota_exceeded_exception_handler
from app.services.quotas import QuotaExceededError


def _request(request_id: str = "req-1"):
  return SimpleNamespace(state=SimpleNamespace(request_id=request_id), url=SimpleNamespace(path="/api/lessons/L1/generate"))


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body",), "msg": "Value error, score must not exceed totalQuestions.", "input": {"score": 11, "totalQuestions": 10}, "ctx": {"error": ValueError("score must not exceed totalQuestions."), "input": {"score": 11}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: score must not exceed totalQuestions."
  assert "input" not in sanitized[0]["ctx"]
  assert sanitized[0]["loc"] == ["body"]


@pytest.mark.anyio
async def test_quota_handler_returns_402_with_fixed_message() -> None:
  exc = QuotaExceededError(user_id=uuid.uuid4(), cost=10, used=995, limit=1000)

  response = await quota_exceeded_exception_handler(_request(), exc)

  assert response.status_code == 402
  assert json.loads(response.body) == {"detail": "Insufficient quota. Please upgrade your plan.", "requestId": "req-1"}


@pytest.mark.anyio
async def test_provider_handler_hides_raw_output() -> None:
  exc = MalformedOutputError("Lesson output failed validation", raw="secret prompt echo")

  response = await provider_exception_handler(_request(), exc)

  assert response.status_code == 500
  assert b"secret prompt echo" not in response.body
  assert json.loads(response.body)["detail"] == "Failed to generate content."

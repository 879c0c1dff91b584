"""Utility helpers for msgspec response encoding."""

from __future__ import annotations

import msgspec
from starlette.responses import Response


def encode_msgspec_response(payload: msgspec.Struct, *, status_code: int = 200) -> Response:
  """Encode a msgspec.Struct value as a JSON HTTP response."""
  encoded = msgspec.json.encode(payload)
  return Response(content=encoded, status_code=status_code, media_type="application/json")

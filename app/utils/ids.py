"""Identifier utilities."""

from __future__ import annotations

import uuid


def generate_job_id() -> str:
  """Return a new homework job identifier."""
  return str(uuid.uuid4())


def generate_curriculum_id() -> str:
  """Return a new curriculum identifier."""
  return str(uuid.uuid4())

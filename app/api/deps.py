"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from app.services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
  """Return the service container built during application startup."""
  services = getattr(request.app.state, "services", None)
  if services is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up.")
  return services

"""Firebase Admin SDK bootstrap and ID token verification."""

import logging
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials

from app.config import get_settings

logger = logging.getLogger(__name__)

_TOKEN_ERRORS = (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, auth.CertificateFetchError)


def _app_ready() -> bool:
  return bool(firebase_admin._apps)


def initialize_firebase() -> bool:
  """Initialize the default Firebase app once. Returns whether an app is available."""
  if _app_ready():
    return True

  settings = get_settings()
  project_id = settings.firebase_project_id
  if not project_id:
    logger.warning("FIREBASE_PROJECT_ID is not set; every authenticated request will be rejected.")
    return False

  options = {"projectId": project_id}
  try:
    if settings.firebase_service_account_json_path:
      firebase_admin.initialize_app(credentials.Certificate(settings.firebase_service_account_json_path), options)
    else:
      # Application Default Credentials.
      firebase_admin.initialize_app(options=options)
  except (ValueError, OSError) as exc:
    logger.error("Firebase initialization failed for project %s: %s", project_id, exc)
    return False

  logger.info("Firebase initialized for project %s.", project_id)
  return True


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Return the decoded claims of a valid token, or None when it cannot be trusted."""
  if not initialize_firebase():
    return None

  try:
    return auth.verify_id_token(id_token)
  except _TOKEN_ERRORS as exc:
    logger.info("Rejected Firebase ID token: %s", type(exc).__name__)
    return None

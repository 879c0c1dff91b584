from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.config import get_settings
from app.core.database import get_db
from app.core.firebase import verify_id_token
from app.schema.sql import User
from app.services.users import get_or_create_user

security_scheme = HTTPBearer()


async def get_current_user(token: Annotated[HTTPAuthorizationCredentials, Depends(security_scheme)], db: AsyncSession = Depends(get_db)) -> User:  # noqa: B008
  """Verify the Firebase ID token and return the user, provisioning it on first use."""
  # Token verification may fetch signing certificates, so keep it off the event loop.
  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})

  firebase_uid = decoded_claims.get("uid")
  if not firebase_uid:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token claims")

  email = decoded_claims.get("email")
  if not email:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token missing email")

  return await get_or_create_user(db, firebase_uid=str(firebase_uid), email=str(email), quota_limit=get_settings().default_quota_limit)

"""FastAPI dependency resolving the bearer token to a User row."""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from petsup.auth.security import verify_token
from petsup.database import get_db
from petsup.errors import AuthenticationError
from petsup.models.domain import User


def get_current_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db)
) -> User:
    """Parse `Authorization: Bearer <jwt>`, verify it and load the user, or raise 401."""
    raw = (authorization or "").strip()
    if not raw.lower().startswith("bearer ") or not raw[7:].strip():
        raise AuthenticationError("Missing or invalid Authorization header")
    try:
        payload = verify_token(raw[7:].strip())
        user_id = int(payload["sub"])
    except ValueError as e:
        raise AuthenticationError(str(e)) from e

    user = db.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user

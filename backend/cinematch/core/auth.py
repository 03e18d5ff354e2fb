"""
Identity for user-scoped routes.

The OpenID Connect handshake and session cookies live in the reverse proxy in
front of this service. It forwards the authenticated identity as
X-Auth-Request-* headers; this module turns them into a local User row.
"""
from typing import Optional
import logging

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from cinematch import crud
from cinematch.core.database import get_db
from cinematch.models import User

logger = logging.getLogger(__name__)


def get_current_user(
    user_id: Optional[str] = Header(None, alias="X-Auth-Request-User"),
    email: Optional[str] = Header(None, alias="X-Auth-Request-Email"),
    first_name: Optional[str] = Header(None, alias="X-Auth-Request-Given-Name"),
    last_name: Optional[str] = Header(None, alias="X-Auth-Request-Family-Name"),
    picture: Optional[str] = Header(None, alias="X-Auth-Request-Picture"),
    db: Session = Depends(get_db),
) -> User:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    claims = {
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "profile_image_url": picture,
    }
    try:
        # Only overwrite profile fields the proxy actually sent
        return crud.upsert_user(db, user_id, **{k: v for k, v in claims.items() if v is not None})
    except Exception as e:
        db.rollback()
        logger.error(f"Error upserting user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load user")

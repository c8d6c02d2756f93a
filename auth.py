"""
Admin sign-in gate.

The identity provider flow runs in the browser and hands us a verified
email. Admin status is re-checked against the ``admins`` collection on every
protected request, so removing an admin ends their session.
"""
import logging
import re
import secrets
from typing import Dict, Optional

from fastapi import Header, HTTPException

import database
from database import COLL_ADMINS

logger = logging.getLogger("uvicorn.error")

# in-memory sessions, token -> email
SESSIONS: Dict[str, str] = {}


def find_admin(email: str) -> Optional[dict]:
    if not email:
        return None
    pattern = f"^{re.escape(email.strip())}$"
    return database.db[COLL_ADMINS].find_one({"email": {"$regex": pattern, "$options": "i"}})


def is_admin(email: str) -> bool:
    """Lookup errors count as "not admin"."""
    if not database.db_ready():
        logger.warning("Database not configured; refusing admin check")
        return False
    try:
        return find_admin(email) is not None
    except Exception as e:
        logger.error(f"Error checking admin status: {e}")
        return False


def sign_in(email: str) -> Optional[str]:
    if not is_admin(email):
        logger.warning(f"Rejected sign-in for {email}")
        return None
    token = secrets.token_hex(16)
    SESSIONS[token] = email.strip().lower()
    logger.info(f"Admin signed in: {email}")
    return token


def sign_out(token: Optional[str]):
    if token:
        SESSIONS.pop(token, None)


def read_token(token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if token:
        return token
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1]
    return None


def require_admin(token: Optional[str] = None, authorization: Optional[str] = Header(default=None)) -> str:
    token = read_token(token, authorization)
    email = SESSIONS.get(token) if token else None
    if not email:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not is_admin(email):
        sign_out(token)
        raise HTTPException(status_code=401, detail="Unauthorized")
    return email

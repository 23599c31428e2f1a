#!/usr/bin/env python3
# auth.py
"""
Session context for the signed-in admin.

Only the bearer token is kept (in Flask's signed session cookie). Who the user
is gets re-read from the API (`me`) when a page needs it; the token's own
claims are used just to decide whether it has expired.
"""
import logging
import time
from typing import Any, Dict, Optional

import jwt
from flask import session

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


def token_claims(token: Optional[str]) -> Dict[str, Any]:
    """Read the claims without verifying the signature; the API does that."""
    if not token:
        return {}
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return {}


def token_expired(token: Optional[str], now: Optional[float] = None) -> bool:
    claims = token_claims(token)
    exp = claims.get("exp")
    if not exp:
        return True
    return float(exp) < (now if now is not None else time.time())


class SessionContext:
    def __init__(self, store=None):
        self.store = store if store is not None else session

    @property
    def token(self) -> Optional[str]:
        return self.store.get(TOKEN_KEY)

    @property
    def claims(self) -> Dict[str, Any]:
        return token_claims(self.token)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and not token_expired(self.token)

    def login(self, user, token: str) -> None:
        self.store.clear()
        self.store[TOKEN_KEY] = token
        logger.info("admin %s signed in", getattr(user, "email", "?"))

    def logout(self) -> None:
        if self.token:
            logger.info("admin %s signed out", self.claims.get("email", "?"))
        self.store.clear()

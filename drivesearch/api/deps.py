"""
Auth dependencies: optional bearer-token verification for the search endpoints.

When AUTH_JWT_SECRET is empty verification is disabled and requests pass with no
principal. Verified claims are handed to handlers untouched.
"""

import logging
from typing import Any, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from drivesearch.core import config

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def verify_token(token: str) -> dict[str, Any]:
    """Verify an HS256 token against AUTH_JWT_SECRET (and AUTH_JWT_AUDIENCE when set)."""
    options = {"verify_aud": bool(config.AUTH_JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            config.AUTH_JWT_SECRET,
            algorithms=["HS256"],
            audience=config.AUTH_JWT_AUDIENCE or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def require_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Optional[dict[str, Any]]:
    """
    Required auth when a secret is configured: raises 401 without a valid token.
    Returns the claims, or None when auth is disabled.
    """
    if not config.AUTH_JWT_SECRET:
        return None
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    claims = verify_token(creds.credentials)
    logger.info("[auth] verified sub=%s", claims.get("sub"))
    return claims

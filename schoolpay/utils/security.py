"""Access token encoding and verification.

The identity provider mints the tokens callers present; this service only
verifies them. ``create_access_token`` exists for seeding and tests.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from schoolpay.config import settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
DEFAULT_TOKEN_LIFETIME = timedelta(hours=24)


def create_access_token(
    user_id: uuid.UUID,
    tenant_id: uuid.UUID,
    role: str,
    expires_delta: timedelta = DEFAULT_TOKEN_LIFETIME,
) -> str:
    """Sign an access token carrying the claims the auth middleware reads."""
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(claims, settings.effective_jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verify a token and return its claims.

    Returns None for expired, tampered or non-access tokens.
    """
    try:
        claims = jwt.decode(
            token,
            settings.effective_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected access token: {e}")
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        logger.debug(f"Rejected token of type {claims.get('type')!r}")
        return None
    return claims

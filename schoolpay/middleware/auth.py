"""Bearer token middleware."""

import logging
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from schoolpay.utils.security import decode_access_token
from schoolpay.utils.tenant_context import bind_identity, clear_identity

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Bind the caller's identity from the ``Authorization: Bearer`` header.

    Tokens come from the identity provider and their ``sub``, ``tenant_id``
    and ``role`` claims are trusted as-is. A request without a usable token
    continues anonymously; protected endpoints then refuse it through their
    role dependency.
    """

    EXEMPT_PATHS = frozenset({
        "/health",
        "/api/docs",
        "/api/redoc",
        "/api/openapi.json",
    })

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        clear_identity()

        if request.url.path not in self.EXEMPT_PATHS:
            payload = self._read_token(request)
            if payload:
                self._bind(payload)

        try:
            return await call_next(request)
        finally:
            clear_identity()

    def _read_token(self, request: Request) -> dict | None:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme != "Bearer" or not token.strip():
            return None
        return decode_access_token(token.strip())

    def _bind(self, payload: dict) -> None:
        try:
            user_id = uuid.UUID(payload["sub"])
            tenant_id = uuid.UUID(payload["tenant_id"]) if payload.get("tenant_id") else None
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring access token with malformed claims: {e}")
            return

        bind_identity(user_id, tenant_id, payload.get("role"))

"""Middleware exports."""

from schoolpay.middleware.auth import AuthMiddleware

__all__ = ["AuthMiddleware"]

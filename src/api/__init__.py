"""Caller-facing request handlers."""

from .handlers import NotificationAPI, error_response

__all__ = ["NotificationAPI", "error_response"]

"""Typed failures raised by the object store and the services built on it."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every failure surfaced by the wardrobe core."""


class NotFound(StoreError):
    """A key, id or email lookup found nothing."""


class Conflict(StoreError):
    """A primary key or unique index value already exists."""


class InvalidToken(StoreError):
    """No user holds the supplied password-reset token."""


class ExpiredToken(StoreError):
    """The password-reset token exists but its expiry has passed."""


class InvalidCredentials(StoreError):
    """Email and password do not identify an account."""


class ValidationFailure(StoreError, ValueError):
    """A record or request is malformed (bad category, empty field, ...)."""


class StorageUnavailable(StoreError):
    """The engine could not be opened, or was used before opening."""


__all__ = [
    "StoreError",
    "NotFound",
    "Conflict",
    "InvalidToken",
    "ExpiredToken",
    "InvalidCredentials",
    "ValidationFailure",
    "StorageUnavailable",
]

"""
Exception hierarchy shared by the moderation core.

Classifier adapters raise only :class:`ClassifierError` subclasses or
:class:`InvalidInput`; the pipeline converts those into publish/reject
decisions. Administrative operations let the remaining types propagate to
their caller so it can render them.
"""

from __future__ import annotations

from datetime import datetime


class AssetGuardError(Exception):
    """Base class for every error raised by assetguard."""


class InvalidInput(AssetGuardError):
    """A precondition on caller-supplied data failed (bad URL, empty field, short reason)."""


class ClassifierError(AssetGuardError):
    """A classifier could not produce a verdict."""


class ClassifierUnavailable(ClassifierError):
    """Network, credential, timeout or HTTP-status failure talking to a classifier."""


class MalformedResponse(ClassifierError):
    """The classifier answered but its payload does not match the expected schema."""


class AuthorizationDenied(AssetGuardError):
    """The calling principal lacks the role required for an administrative operation."""


class NotFound(AssetGuardError):
    """A referenced asset or user does not exist."""


class InvalidState(AssetGuardError):
    """The entity exists but its current state does not allow the operation."""


class AccountSuspended(AssetGuardError):
    """Login refused because the principal is banned or disabled."""

    def __init__(self, reason: str | None, until: datetime | None = None) -> None:
        self.reason = reason or "Policy violation"
        self.until = until
        message = f"Your account has been suspended. Reason: {self.reason}."
        if until is not None:
            message += f" Suspension ends {until:%Y-%m-%d %H:%M} UTC."
        super().__init__(message)

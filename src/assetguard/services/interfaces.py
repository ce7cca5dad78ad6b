"""
Collaborator interfaces consumed by the moderation core.

Everything the core talks to is passed in through these protocols so tests
can substitute stubs for the classifiers and the account/notification stores.
"""

from __future__ import annotations

from typing import Protocol

from assetguard.datatypes.moderation_datatypes import ModerationVerdict


class ImageCheck(Protocol):
    """Classifies the image behind a URL.

    Implementations raise :class:`~assetguard.errors.InvalidInput` for a bad
    URL and :class:`~assetguard.errors.ClassifierError` for any failure to
    produce a verdict.
    """

    async def check(self, image_url: str) -> ModerationVerdict: ...


class TextCheck(Protocol):
    """Classifies one text field. Failures degrade to an unflagged verdict."""

    async def check(self, text: str, field_label: str | None = None) -> ModerationVerdict: ...


class AuthPrincipalStore(Protocol):
    """Toggles whether a principal may authenticate."""

    async def disable(self, user_id: str) -> None: ...

    async def enable(self, user_id: str) -> None: ...


class NotificationSink(Protocol):
    """Fire-and-forget user notifications."""

    async def append(self, user_id: str, notification_type: str, title: str, message: str) -> None: ...

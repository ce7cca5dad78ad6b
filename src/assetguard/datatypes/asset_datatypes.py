"""
Asset entity and its lifecycle status.

An asset is created by the upload intake in ``uploading`` and reaches exactly
one terminal status, ``published`` or ``rejected``, through the moderation
pipeline. Other statuses exist for author-side drafts and are ignored by the
pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List


class AssetStatus(Enum):
    """Status field of an asset."""

    DRAFT = "draft"
    UPLOADING = "uploading"
    PUBLISHED = "published"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (AssetStatus.PUBLISHED, AssetStatus.REJECTED)


@dataclass(slots=True)
class Asset:
    """A unit of user-generated content pending or having completed moderation.

    Moderation metadata (``moderation_*``, ``rejection_reason`` and the decision
    timestamps) is written once by the terminal transition and is never exposed
    to author edits.
    """

    asset_id: str
    author_id: str
    name: str
    description: str
    image_url: str
    status: AssetStatus
    tags: List[str] = field(default_factory=list)
    downloads: int = 0
    moderation_confidence: float | None = None
    moderation_category: str | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
    published_date: datetime | None = None
    rejection_date: datetime | None = None

    @property
    def tags_text(self) -> str:
        """Tags joined into the single text field checked by the text stage."""
        return ", ".join(tag.strip() for tag in self.tags if tag and tag.strip())

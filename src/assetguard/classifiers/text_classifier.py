"""
Text safety classifier backed by an emotion-detection HTTP API.

The remote service labels a piece of text with an emotion; the adapter flags
the text when that label matches the configured deny-list or when the text
itself contains explicit language. A failed call never blocks an upload on
its own: the adapter fails open and returns a degraded, unflagged verdict.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Iterable, List

import requests

from assetguard.configuration.classifier_settings import DEFAULT_DENY_LIST, ClassifierSettings
from assetguard.datatypes.moderation_datatypes import ModerationVerdict, VerdictSource
from assetguard.errors import ClassifierError, ClassifierUnavailable, MalformedResponse
from assetguard.util.logger import get_logger

logger = get_logger("text_classifier")

EXPLICIT_LANGUAGE = re.compile(
    r"\b(fuck\w*|shit\w*|bitch\w*|cunt\w*|porn\w*|nsfw|nude\w*|naked|xxx|dicks?|pussy|cocks?)\b",
    re.IGNORECASE,
)


def _argmax_label(scores: Iterable[tuple[str, float]]) -> str | None:
    best_label, best_score = None, float("-inf")
    for label, score in scores:
        if score > best_score:
            best_label, best_score = label, score
    return best_label


def extract_emotion(payload: Any) -> str:
    """Normalize the emotion service's response to a single label.

    Accepted shapes: ``{"emotion": "..."}``, ``{"label": "..."}``, a list (or
    nested list) of ``{"label", "score"}`` items, or a mapping of label to score.

    Raises:
        MalformedResponse: The payload matches none of the shapes.
    """
    if isinstance(payload, list):
        items = payload[0] if payload and isinstance(payload[0], list) else payload
        pairs: List[tuple[str, float]] = []
        for item in items:
            if isinstance(item, dict) and "label" in item and isinstance(item.get("score"), (int, float)):
                pairs.append((str(item["label"]), float(item["score"])))
        label = _argmax_label(pairs)
        if label:
            return label
        raise MalformedResponse("emotion list carries no scored labels")

    if isinstance(payload, dict):
        for key in ("emotion", "label"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        pairs = [(str(k), float(v)) for k, v in payload.items() if isinstance(v, (int, float)) and not isinstance(v, bool)]
        label = _argmax_label(pairs)
        if label:
            return label

    raise MalformedResponse(f"unrecognised emotion payload: {type(payload).__name__}")


class TextClassifier:
    """Emotion-API adapter returning a :class:`ModerationVerdict` for a piece of text.

    The blocking ``requests`` call runs in a worker thread and is bounded by
    ``settings.timeout_seconds``.
    """

    def __init__(
        self,
        settings: ClassifierSettings,
        deny_list: List[str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._deny_list = [item.lower() for item in (deny_list or DEFAULT_DENY_LIST)]
        self._session = session or requests.Session()

    def _matches_deny_list(self, emotion: str) -> str | None:
        lowered = emotion.lower()
        for term in self._deny_list:
            if term in lowered:
                return term
        return None

    def _post(self, text: str) -> Any:
        api_key = self._settings.api_key
        if not api_key:
            raise ClassifierUnavailable(
                f"text classifier API key missing (set {self._settings.api_key_env})"
            )
        response = self._session.post(
            self._settings.base_url,
            json={"text": text},
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            timeout=self._settings.timeout_seconds,
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse("emotion service returned non-JSON body") from exc

    async def check(self, text: str, field_label: str | None = None) -> ModerationVerdict:
        """Classify `text`. Never raises for remote failures.

        Empty or whitespace-only text is not sent and yields an unflagged verdict.
        """
        if not text or not text.strip():
            return ModerationVerdict(source=VerdictSource.TEXT, is_flagged=False, field_label=field_label)

        timeout = self._settings.timeout_seconds
        try:
            payload = await asyncio.wait_for(asyncio.to_thread(self._post, text), timeout=timeout)
            emotion = extract_emotion(payload)
        except asyncio.TimeoutError:
            return self._degraded(field_label, f"text classifier timed out after {timeout}s")
        except requests.RequestException as exc:
            return self._degraded(field_label, f"text classifier request failed: {exc}")
        except ClassifierError as exc:
            return self._degraded(field_label, str(exc))

        denied = self._matches_deny_list(emotion)
        explicit = EXPLICIT_LANGUAGE.search(text)
        if denied:
            reason = f"Text classified as '{emotion}'"
        elif explicit:
            reason = "Text contains explicit language"
        else:
            reason = ""

        return ModerationVerdict(
            source=VerdictSource.TEXT,
            is_flagged=bool(denied or explicit),
            category=emotion,
            reason=reason,
            field_label=field_label,
        )

    def _degraded(self, field_label: str | None, diagnostic: str) -> ModerationVerdict:
        logger.warning("[TEXT CLASSIFIER] Failing open for field %s: %s", field_label or "-", diagnostic)
        return ModerationVerdict(
            source=VerdictSource.TEXT,
            is_flagged=False,
            reason=diagnostic,
            field_label=field_label,
            degraded=True,
        )

    async def close(self) -> None:
        self._session.close()

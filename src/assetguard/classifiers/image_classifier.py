"""
Image safety classifier backed by an OpenAI-compatible vision model.

The model is asked for a bare JSON object ``{is_nsfw, confidence, category,
reason}``. The adapter is strict in the flagging direction: an image is
flagged when the model says so *or* when its confidence exceeds the
configured threshold. It never flags on a failed call; failures surface as
:class:`ClassifierError` so the pipeline can reject fail-safe.
"""

from __future__ import annotations

import asyncio
import math

import openai
from openai import AsyncOpenAI

from assetguard.classifiers.response_parsing import (
    IMAGE_VERDICT_SCHEMA,
    extract_json_object,
    validate_payload,
)
from assetguard.configuration.classifier_settings import ClassifierSettings
from assetguard.datatypes.moderation_datatypes import ModerationVerdict, VerdictSource
from assetguard.errors import ClassifierUnavailable, InvalidInput, MalformedResponse
from assetguard.util.logger import get_logger
from assetguard.util.url_utils import is_valid_image_url

logger = get_logger("image_classifier")

DEFAULT_MODEL = "openai/gpt-4o-mini"
UNKNOWN_REASON = "Unable to determine"

IMAGE_PROMPT = """You are a strict content moderator for a creative asset marketplace.
Analyze this image and determine whether it contains NSFW content.

NSFW includes:
- Nudity or partial nudity
- Sexual or suggestive content
- Graphic violence or gore
- Hate symbols
- Drug use

Respond ONLY with a JSON object in this exact format:
{"is_nsfw": true or false, "confidence": 0.0 to 1.0, "category": "short label", "reason": "brief explanation"}

Be STRICT: when in doubt, flag as NSFW."""


class ImageClassifier:
    """Vision-model adapter returning a :class:`ModerationVerdict` for an image URL.

    Args:
        settings: Connection settings for the vision endpoint.
        threshold: Confidence above which an image is flagged regardless of
            the model's own ``is_nsfw`` answer.
        client: Optional pre-built client, mainly for tests.
    """

    def __init__(
        self,
        settings: ClassifierSettings,
        threshold: float = 0.65,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._settings = settings
        self._threshold = threshold
        self._client = client
        self._model_name = settings.model_name or DEFAULT_MODEL

    @property
    def threshold(self) -> float:
        return self._threshold

    async def close(self) -> None:
        """Close the underlying HTTP client, if one was built."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            api_key = self._settings.api_key
            if not api_key:
                raise ClassifierUnavailable(
                    f"image classifier API key missing (set {self._settings.api_key_env})"
                )
            self._client = AsyncOpenAI(api_key=api_key, base_url=self._settings.base_url)
            logger.info(
                "[IMAGE CLASSIFIER] Initialized with base_url=%s, model=%s",
                self._settings.base_url,
                self._model_name,
            )
        return self._client

    async def check(self, image_url: str) -> ModerationVerdict:
        """Classify the image at `image_url`.

        Raises:
            InvalidInput: `image_url` is not an absolute http(s) URL.
            ClassifierUnavailable: Missing credentials, network, HTTP or timeout failure.
            MalformedResponse: The model's output has no valid verdict object.
        """
        if not is_valid_image_url(image_url):
            raise InvalidInput(f"invalid image URL: {image_url!r}")

        client = self._get_client()
        timeout = self._settings.timeout_seconds
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self._model_name,
                    messages=[
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": IMAGE_PROMPT},
                                {"type": "image_url", "image_url": {"url": image_url}},
                            ],
                        }
                    ],
                    max_tokens=150,
                    temperature=0.1,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("[IMAGE CLASSIFIER] Request timed out after %.1fs", timeout)
            raise ClassifierUnavailable(f"image classifier timed out after {timeout}s") from exc
        except openai.OpenAIError as exc:
            logger.warning("[IMAGE CLASSIFIER] Request failed: %s", exc)
            raise ClassifierUnavailable(f"image classifier request failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        payload = validate_payload(extract_json_object(content or ""), IMAGE_VERDICT_SCHEMA)

        confidence = float(payload["confidence"])
        if not math.isfinite(confidence):
            raise MalformedResponse(f"image classifier returned non-finite confidence {confidence!r}")
        is_flagged = bool(payload["is_nsfw"]) or confidence > self._threshold
        reason = str(payload.get("reason") or "").strip() or UNKNOWN_REASON
        category = str(payload.get("category") or "").strip()

        logger.debug(
            "[IMAGE CLASSIFIER] flagged=%s confidence=%.2f category=%s",
            is_flagged,
            confidence,
            category or "-",
        )
        return ModerationVerdict(
            source=VerdictSource.IMAGE,
            is_flagged=is_flagged,
            confidence=confidence,
            category=category,
            reason=reason,
        )

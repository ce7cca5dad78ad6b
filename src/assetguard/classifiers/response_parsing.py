"""Utilities for pulling a JSON verdict out of free-form classifier output."""

from __future__ import annotations

import json
from typing import Any, Dict

import jsonschema
from jsonschema import ValidationError

from assetguard.errors import MalformedResponse
from assetguard.util.logger import get_logger

logger = get_logger("response_parsing")

IMAGE_VERDICT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "is_nsfw": {"type": "boolean"},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        "category": {"type": "string"},
        "reason": {"type": "string"},
    },
    "required": ["is_nsfw", "confidence"],
}


def extract_json_object(raw: str) -> Dict[str, Any]:
    """Return the first well-formed JSON object embedded in `raw`.

    Vision models often wrap the object in prose or a Markdown fence, so each
    ``{`` is tried as a start position until one decodes to a dict.

    Raises:
        MalformedResponse: No JSON object could be decoded.
    """
    if not raw or not raw.strip():
        raise MalformedResponse("empty classifier response")

    text = raw.strip()
    try:
        payload = json.loads(text)
        if isinstance(payload, dict):
            return payload
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            payload, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(payload, dict):
            return payload
        start = text.find("{", start + 1)

    logger.warning("[EXTRACT] No JSON object found in %d chars of output", len(text))
    raise MalformedResponse("classifier response contains no JSON object")


def validate_payload(payload: Dict[str, Any], schema: Dict[str, Any]) -> Dict[str, Any]:
    """Validate `payload` against `schema`, converting failures to :class:`MalformedResponse`."""
    try:
        jsonschema.validate(instance=payload, schema=schema)
    except ValidationError as exc:
        logger.warning("[PARSE] Schema validation failed: %s", exc.message)
        raise MalformedResponse(f"classifier payload failed validation: {exc.message}") from exc
    return payload

import pytest

from assetguard.classifiers.response_parsing import (
    IMAGE_VERDICT_SCHEMA,
    extract_json_object,
    validate_payload,
)
from assetguard.errors import MalformedResponse


def test_extract_plain_json() -> None:
    payload = extract_json_object('{"is_nsfw": false, "confidence": 0.2}')
    assert payload == {"is_nsfw": False, "confidence": 0.2}


def test_extract_json_wrapped_in_markdown_and_prose() -> None:
    raw = (
        "Sure! Here is my analysis:\n"
        "```json\n"
        '{"is_nsfw": true, "confidence": 0.91, "category": "nudity", "reason": "Explicit nudity"}\n'
        "```\n"
        "Let me know if you need anything else."
    )
    payload = extract_json_object(raw)
    assert payload["is_nsfw"] is True
    assert payload["category"] == "nudity"


def test_extract_skips_brace_that_is_not_json() -> None:
    raw = 'Note {this is not json} then {"is_nsfw": false, "confidence": 0.4}'
    payload = extract_json_object(raw)
    assert payload == {"is_nsfw": False, "confidence": 0.4}


@pytest.mark.parametrize("raw", ["", "   ", "no json here", "[1, 2, 3]", '{"unterminated": '])
def test_extract_raises_when_no_object(raw: str) -> None:
    with pytest.raises(MalformedResponse):
        extract_json_object(raw)


def test_validate_accepts_minimal_payload() -> None:
    payload = {"is_nsfw": False, "confidence": 0}
    assert validate_payload(payload, IMAGE_VERDICT_SCHEMA) is payload


@pytest.mark.parametrize(
    "payload",
    [
        {"confidence": 0.5},
        {"is_nsfw": "no", "confidence": 0.5},
        {"is_nsfw": False, "confidence": 1.5},
        {"is_nsfw": False, "confidence": "high"},
        {"is_nsfw": False, "confidence": 0.5, "reason": 12},
    ],
)
def test_validate_rejects_bad_payloads(payload: dict) -> None:
    with pytest.raises(MalformedResponse):
        validate_payload(payload, IMAGE_VERDICT_SCHEMA)

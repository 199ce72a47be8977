"""Helpers for JSON-only completions."""

import json

from ..models import ErrorKind, StageError


def clean_json_response(response: str) -> str:
    """Strip markdown code fences around a JSON completion."""
    response = response.strip()

    if response.startswith("```json"):
        response = response[7:]
    elif response.startswith("```"):
        response = response[3:]

    if response.endswith("```"):
        response = response[:-3]

    return response.strip()


def parse_json_object(response: str) -> dict:
    """Parse a completion that must be a single JSON object."""
    cleaned = clean_json_response(response or "")
    if not cleaned:
        raise StageError(ErrorKind.EMPTY, "empty JSON completion")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise StageError(ErrorKind.MALFORMED, f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise StageError(
            ErrorKind.MALFORMED, f"expected JSON object, got {type(data).__name__}"
        )
    return data

"""
Parsing helpers for JSON payloads embedded in model output.
"""

import json
import math
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from helpdesk_ai.core import ValidationException

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def _first_index(content: str, char: str) -> int:
    index = content.find(char)
    return index if index != -1 else len(content)


def extract_json_payload(text: str) -> Any:
    """
    Parse the JSON object or array in a model reply.

    Handles fenced code blocks and prose around the JSON. Raises
    ValidationException when nothing parseable is found.
    """
    if not text or not text.strip():
        raise ValidationException("Model returned an empty response")

    content = text.strip()
    if "```json" in content:
        content = content.split("```json", 1)[1].split("```", 1)[0].strip()
    elif "```" in content:
        content = content.split("```", 1)[1].split("```", 1)[0].strip()

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    # Prose around the payload: take the outermost object or array, whichever opens first
    pairs = sorted((("{", "}"), ("[", "]")), key=lambda p: _first_index(content, p[0]))
    for opener, closer in pairs:
        start, end = content.find(opener), content.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(content[start:end + 1])
            except json.JSONDecodeError:
                continue

    raise ValidationException("Model response is not valid JSON", {"response": text[:200]})


def normalize_confidence(value: Any) -> int:
    """
    Bring a model-reported confidence onto the 0-100 scale.

    Fractions strictly between 0 and 1 (``0.85``) are read as a 0-1 scale;
    everything else is already a percentage. Result is clamped to [0, 100].
    """
    if isinstance(value, bool):
        raise ValueError("confidence must be a number")
    try:
        number = float(value)
    except (TypeError, OverflowError) as e:
        raise ValueError("confidence must be a number") from e
    if math.isnan(number):
        raise ValueError("confidence must be a number")
    if 0 < number < 1:
        number *= 100
    return int(round(max(0.0, min(100.0, number))))


def parse_model_payload(text: str, schema: Type[PayloadT]) -> PayloadT:
    """Extract the JSON in ``text`` and validate it against ``schema``."""
    payload = extract_json_payload(text)
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationException(
            f"Model payload failed {schema.__name__} validation",
            {"errors": e.errors(include_url=False, include_context=False)}
        ) from e


def parse_model_list(text: str, schema: Type[PayloadT]) -> List[PayloadT]:
    """
    Validate each entry of a JSON array reply; invalid entries are dropped.

    A reply that is not an array at all is a ValidationException.
    """
    payload = extract_json_payload(text)
    if isinstance(payload, dict):
        # Some models wrap the array in an object
        payload = next((v for v in payload.values() if isinstance(v, list)), None)
    if not isinstance(payload, list):
        raise ValidationException("Model response is not a JSON array", {"response": text[:200]})

    items: List[PayloadT] = []
    for entry in payload:
        try:
            items.append(schema.model_validate(entry))
        except PydanticValidationError:
            continue
    return items

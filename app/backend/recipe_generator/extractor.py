from __future__ import annotations

import json
from typing import Any, Union

from pydantic import BaseModel

from recipe_generator.errors import EmptyContent, MalformedEnvelope


class ModelResponseEnvelope(BaseModel):
    """Raw transport response of a model invocation."""

    status_code: int = 200
    body: str


def _parse_body(raw: Union[str, bytes]) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedEnvelope(f"Response body is not valid JSON: {exc}") from exc


def extract_recipe_text(envelope: Union[ModelResponseEnvelope, str, bytes]) -> str:
    """Return the text of the first content block of a model response.

    Only the first block is read; later blocks are ignored.

    Raises:
        MalformedEnvelope: the body is not JSON or lacks a `content` sequence,
            or the first block carries no text.
        EmptyContent: the `content` sequence is empty.
    """

    raw = envelope.body if isinstance(envelope, ModelResponseEnvelope) else envelope
    parsed = _parse_body(raw)

    if not isinstance(parsed, dict) or not isinstance(parsed.get("content"), list):
        raise MalformedEnvelope("Response body has no 'content' list")

    content = parsed["content"]
    if not content:
        raise EmptyContent("Response contains no content blocks")

    first = content[0]
    text = first.get("text") if isinstance(first, dict) else None
    if not isinstance(text, str):
        raise MalformedEnvelope("First content block has no text")
    return text

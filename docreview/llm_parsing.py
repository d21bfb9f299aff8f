"""LLM response parsing — recover review items from whatever the model sent back."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from docreview.models import ReviewItem

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?[ \t]*\n?([\s\S]*?)```", re.IGNORECASE)

_decoder = json.JSONDecoder()

# Marker distinguishing "no JSON object here" from a parsed object
_NOT_FOUND = object()


def _load_object(text: str) -> Any:
    """Return the JSON object encoded by ``text``, or _NOT_FOUND."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return _NOT_FOUND
    return data if isinstance(data, dict) else _NOT_FOUND


def _from_whole_text(text: str) -> Any:
    return _load_object(text.strip())


def _from_fenced_block(text: str) -> Any:
    for match in _FENCED_BLOCK.finditer(text):
        data = _load_object(match.group(1).strip())
        if data is not _NOT_FOUND:
            return data
    return _NOT_FOUND


def _from_brace_span(text: str) -> Any:
    """Decode the first ``{...}`` span that forms a JSON object.

    Decoding starts at each opening brace in turn and stops at the brace
    that closes it, so trailing prose never leaks into the candidate.
    """
    start = text.find("{")
    while start != -1:
        try:
            data, _end = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return data
        start = text.find("{", start + 1)
    return _NOT_FOUND


# Tried in order; the first tier that finds a JSON object decides the result
EXTRACTION_TIERS = (
    ("whole_text", _from_whole_text),
    ("fenced_block", _from_fenced_block),
    ("brace_span", _from_brace_span),
)


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _item_from_dict(raw: dict) -> ReviewItem:
    """Convert a raw ``reviews`` entry to a ReviewItem with safe defaults."""
    return ReviewItem(
        line_number=_field_text(raw.get("lineNumber")).strip(),
        comment=_field_text(raw.get("reviewComment")),
        suggestion=_field_text(raw.get("suggestion")),
    )


def _items_from_object(data: dict) -> Optional[list[ReviewItem]]:
    if "reviews" not in data:
        return []
    reviews = data["reviews"]
    if reviews is None:
        return []
    if not isinstance(reviews, list):
        logger.warning(
            "Provider JSON has a non-list 'reviews' field (%s)", type(reviews).__name__
        )
        return None

    items: list[ReviewItem] = []
    for raw in reviews:
        if not isinstance(raw, dict):
            logger.warning("Skipping non-object review entry: %r", raw)
            continue
        items.append(_item_from_dict(raw))
    return items


def parse_review_items(response_text: Any) -> Optional[list[ReviewItem]]:
    """Parse provider output into review items.

    Returns a list (possibly empty) when the text could be interpreted, and
    ``None`` as a hard failure when it cannot be: the input is not text, or
    the JSON found carries a ``reviews`` value that is not a list. Text with
    no JSON object at all is not a failure; it yields ``[]``.
    """
    if not isinstance(response_text, str):
        logger.error(
            "Provider response is %s, not text", type(response_text).__name__
        )
        return None

    for tier_name, tier in EXTRACTION_TIERS:
        data = tier(response_text)
        if data is _NOT_FOUND:
            continue
        logger.debug("Provider response parsed via %s", tier_name)
        return _items_from_object(data)

    if response_text.strip():
        logger.warning(
            "Could not extract review JSON from provider response:\n%s", response_text
        )
    return []


def serialize_items(items: list[ReviewItem]) -> str:
    """Render items back into the ``{"reviews": [...]}`` wire shape."""
    return json.dumps(
        {"reviews": [item.to_dict() for item in items]}, ensure_ascii=False
    )

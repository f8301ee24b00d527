"""Helpers for pulling JSON out of free-form generation output."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_LIST_ITEM_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.*\S)\s*$")

LIST_KEYS = ("suggestions", "items", "ideas", "titles", "themes")


def extract_json(text: str) -> dict | list:
    """Extract JSON from a generation reply.

    Tries in order:
    1. Direct json.loads on the full text
    2. The body of a fenced code block
    3. First '{' to last '}'
    4. First '[' to last ']'
    5. A truncated object with its missing closing braces/brackets added
    """
    text = (text or "").strip()

    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        pass

    match = _FENCE_RE.search(text)
    body = match.group(1) if match else text
    if match:
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            pass

    for opener, closer in (("{", "}"), ("[", "]")):
        result = _extract_between(body, opener, closer)
        if result is not None:
            return result

    result = _repair_truncated(body)
    if result is not None:
        return result

    raise ValueError(f"Could not extract JSON from text: {text[:200]}...")


def _extract_between(text: str, opener: str, closer: str) -> dict | list | None:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None


def _repair_truncated(text: str) -> dict | None:
    """Close the open braces/brackets of an object cut off mid-stream."""
    start = text.find("{")
    if start == -1:
        return None

    candidate = text[start:]
    for cut in (candidate, candidate[: candidate.rfind('"') + 1]):
        open_braces = cut.count("{") - cut.count("}")
        open_brackets = cut.count("[") - cut.count("]")
        if open_braces <= 0 and open_brackets <= 0:
            continue
        repaired = cut.rstrip().rstrip(",")
        repaired += "]" * max(0, open_brackets) + "}" * max(0, open_braces)
        try:
            return json.loads(repaired)
        except json.JSONDecodeError:
            continue
    return None


def parse_string_list(text: str, default: list[str]) -> list[str]:
    """Best-effort parse of a list of strings, falling back to ``default``.

    Accepts a JSON array, a JSON object wrapping an array under one of
    ``LIST_KEYS``, or a plain bulleted/numbered list.
    """
    try:
        data = extract_json(text)
    except ValueError:
        data = None

    if isinstance(data, dict):
        data = next(
            (data[k] for k in LIST_KEYS if isinstance(data.get(k), list)), None
        )

    if isinstance(data, list):
        items = [str(item).strip() for item in data if isinstance(item, (str, int, float))]
        items = [item for item in items if item]
        if items:
            return items

    bullets = [m.group(1) for m in map(_LIST_ITEM_RE.match, (text or "").splitlines()) if m]
    if bullets:
        return bullets

    logger.warning("Could not parse a list from generation output; using defaults")
    return list(default)

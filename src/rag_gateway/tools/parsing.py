"""
Parsers for free-text model output.

The compare and analyze prompts ask for bulleted or numbered lists under
headed sections. These helpers pull the list items back out; anything
the model formats differently is simply not captured.
"""

from __future__ import annotations

import re

_BULLET_RE = re.compile(r"^[•\-*]\s*")
_ITEM_RE = re.compile(r"^[\d•\-*]")
_ITEM_PREFIX_RE = re.compile(r"^[\d•\-*.)\s]+")
_SCORE_RE = re.compile(r"score[:\s]+(-?\d+\.?\d*)", re.IGNORECASE)


def bullet_points(text: str) -> list[str]:
    """Every line that starts with a bullet, marker removed."""
    points = []
    for line in text.splitlines():
        stripped = line.strip()
        if _BULLET_RE.match(stripped):
            point = _BULLET_RE.sub("", stripped).strip()
            if point:
                points.append(point)
    return points


def extract_section(text: str, keyword: str, numbered: bool = False) -> list[str]:
    """
    List items following the first line that mentions ``keyword``.

    Capture stops at the first blank or non-item line after at least one
    item has been captured. With ``numbered``, ``1.``-style items count
    as list items too.
    """
    keyword = keyword.lower()
    item_re = _ITEM_RE if numbered else _BULLET_RE
    prefix_re = _ITEM_PREFIX_RE if numbered else _BULLET_RE

    items: list[str] = []
    capturing = False
    for line in text.splitlines():
        stripped = line.strip()
        if not capturing:
            if keyword in stripped.lower():
                capturing = True
            continue
        if stripped and item_re.match(stripped):
            item = prefix_re.sub("", stripped).strip()
            if item:
                items.append(item)
        elif items:
            break
    return items


def list_items(text: str) -> list[str]:
    """Every numbered or bulleted line, marker removed."""
    items = []
    for line in text.splitlines():
        stripped = line.strip()
        if _ITEM_RE.match(stripped):
            item = _ITEM_PREFIX_RE.sub("", stripped).strip()
            if item:
                items.append(item)
    return items


def parse_sentiment_score(text: str) -> float:
    """First ``score: <number>`` in the text, clamped to [-1, 1]; 0.0 if absent."""
    match = _SCORE_RE.search(text)
    if not match:
        return 0.0
    return min(max(float(match.group(1)), -1.0), 1.0)


def sentiment_label(score: float) -> str:
    if score > 0.3:
        return "positive"
    if score < -0.3:
        return "negative"
    return "neutral"

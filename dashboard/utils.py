"""
Content Dashboard - Shared Utilities

Common helpers used across multiple modules to avoid duplication.
"""

import json
import re
from typing import Any, Dict

# Runs of Unicode letters and digits; punctuation, whitespace and "_" separate.
_RUN_RE = re.compile(r"[^\W_]+")


def _split_run(run: str) -> list[str]:
    """Split a letter/digit run on camelCase and letter/digit boundaries."""
    words = []
    start = 0
    for i in range(1, len(run)):
        prev, cur = run[i - 1], run[i]
        nxt = run[i + 1] if i + 1 < len(run) else ""
        if prev.isdigit() != cur.isdigit():
            boundary = True
        elif cur.isupper() and not prev.isupper():
            boundary = True
        else:
            # "HTMLParser": the last capital of an acronym starts the next word
            boundary = cur.isupper() and nxt.islower()
        if boundary:
            words.append(run[start:i])
            start = i
    words.append(run[start:])
    return words


def snake_case(name: str) -> str:
    """
    Normalize a string to lowercase words joined by underscores.

    ``"Pic"`` -> ``"pic"``, ``"My Holiday Photo"`` -> ``"my_holiday_photo"``,
    ``"heroImage2"`` -> ``"hero_image_2"``, ``"Über Foto"`` -> ``"über_foto"``.
    Non-Latin letters are kept.  Returns an empty string when the input has
    no letters or digits.
    """
    words = [word for run in _RUN_RE.findall(name) for word in _split_run(run)]
    return "_".join(word.lower() for word in words)


def parse_content_json(raw: Any) -> Dict[str, Any]:
    """
    Safely parse record content that may be a JSON string or already a dict.

    Returns a dict in all cases (empty dict on parse failure or when the
    decoded value is not an object).
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return value if isinstance(value, dict) else {}
    return {}

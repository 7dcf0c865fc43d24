"""
Content Dashboard - Validation Error Mapping

Turns the low-level ``ValidationIssue`` list reported by the record store
into a field-keyed dict the UI can render next to each input.

Issue messages are sometimes JSON (a list of messages, or a mapping of
field -> messages when the whole ``content`` column is flagged) and
sometimes plain text.  Only issues in the ``content`` namespace are kept;
everything else belongs to concerns outside the content form.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Literal

CONTENT_NAMESPACE = "content"


@dataclass(frozen=True)
class ValidationIssue:
    """A single field-path scoped validation failure."""

    path: str
    message: str


@dataclass(frozen=True)
class ParsedMessage:
    """Result of ``parse_with_fallback``: either decoded JSON or the raw text."""

    kind: Literal["structured", "text"]
    value: Any

    @property
    def is_structured(self) -> bool:
        return self.kind == "structured"


def parse_with_fallback(message: Any) -> ParsedMessage:
    """Decode *message* as JSON, falling back to the original text."""
    if isinstance(message, (dict, list)):
        return ParsedMessage("structured", message)
    text = message if isinstance(message, str) else str(message)
    try:
        return ParsedMessage("structured", json.loads(text))
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError):
        # Deeply nested text exhausts the decoder's recursion limit
        return ParsedMessage("text", text)


def _content_key(path: str) -> str | None:
    """
    Return the field name for a content-scoped path.

    ``"content"`` -> ``""`` (the whole content map),
    ``"content.title"`` / ``"content[title]"`` -> ``"title"``,
    anything else -> ``None``.
    """
    if path == CONTENT_NAMESPACE:
        return ""
    if path.startswith(CONTENT_NAMESPACE + "."):
        return path[len(CONTENT_NAMESPACE) + 1 :]
    if path.startswith(CONTENT_NAMESPACE + "[") and path.endswith("]"):
        return path[len(CONTENT_NAMESPACE) + 1 : -1]
    return None


def map_errors(issues: Iterable[Any]) -> Dict[str, Any]:
    """
    Build ``{field: message}`` from content-scoped validation issues.

    Accepts ``ValidationIssue`` objects or anything with ``path``/``message``
    attributes; malformed entries are skipped.  Later issues for the same
    field overwrite earlier ones.
    """
    errors: Dict[str, Any] = {}
    for issue in issues or []:
        path = getattr(issue, "path", None)
        if not isinstance(path, str):
            continue
        key = _content_key(path)
        if key is None:
            continue

        parsed = parse_with_fallback(getattr(issue, "message", ""))
        if key == "":
            # The whole content map was flagged; a mapping message carries
            # per-field messages, anything else has no field to attach to.
            if parsed.is_structured and isinstance(parsed.value, dict):
                errors.update({str(k): v for k, v in parsed.value.items()})
            continue
        errors[key] = parsed.value
    return errors

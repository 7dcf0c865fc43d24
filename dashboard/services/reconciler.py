"""
Content Dashboard - Content Reconciliation

Derives the content map to persist from a form submission in three phases,
always in this order:

1. submitted values, filtered to the section's fields
2. uploaded files, stored by content hash, overwriting their field's value
3. destroy directives, removing fields whatever the earlier phases set

Nothing outside the allowed field set ever reaches the result, and unknown
or malformed input is dropped rather than reported.
"""

import re
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Iterable, Mapping, Optional, Union

from loguru import logger

from dashboard.services.file_store import FileStore

# Submission keys look like ``content[<field name>]``
CONTENT_KEY_RE = re.compile(r"^content\[(.+)\]$")


@dataclass
class FileUpload:
    """One uploaded file as received from the multipart body."""

    field_key: str
    filename: str
    source: Union[str, BinaryIO]


def field_name_from_key(field_key: str) -> Optional[str]:
    """``"content[photo]"`` -> ``"photo"``; anything else -> ``None``."""
    if not isinstance(field_key, str):
        return None
    match = CONTENT_KEY_RE.match(field_key)
    return match.group(1) if match else None


def reconcile(
    submitted_content: Optional[Mapping[str, Any]],
    uploaded_files: Optional[Iterable[FileUpload]],
    destroy_directives: Optional[Iterable[str]],
    allowed_fields: Iterable[str],
    *,
    file_store: FileStore,
) -> Dict[str, Any]:
    """
    Build the final content map for a record.

    Files are written through *file_store* before their field is set, so a
    stored name is only ever inserted for a completed write.  I/O errors
    from the store propagate.
    """
    allowed = set(allowed_fields)

    # Phase 1: submitted values
    content: Dict[str, Any] = {}
    if isinstance(submitted_content, Mapping):
        content = {k: v for k, v in submitted_content.items() if k in allowed}
        dropped = set(submitted_content) - allowed
        if dropped:
            logger.debug("🧹 Ignoring unknown content fields: {}", sorted(map(str, dropped)))

    # Phase 2: uploaded files
    for upload in uploaded_files or []:
        field_name = field_name_from_key(getattr(upload, "field_key", None))
        if field_name is None or field_name not in allowed:
            logger.debug("🧹 Ignoring upload for field key {!r}", getattr(upload, "field_key", None))
            continue
        content[field_name] = file_store.store(upload.source, upload.filename)

    # Phase 3: destroys win over everything above
    if isinstance(destroy_directives, str):
        destroy_directives = [destroy_directives]
    for field_name in destroy_directives or []:
        if isinstance(field_name, str):
            content.pop(field_name, None)

    return content

"""
Content Dashboard - Section Schema

Sections are runtime-defined content categories.  Their field definitions
live in a JSON document (``SECTIONS_FILE``) maintained by the site's
template/configuration layer; the dashboard only ever reads it.

Example document::

    [
      {
        "id": 1,
        "name": "general",
        "label": "General",
        "label_singular": "General",
        "fields": {
          "title": {"type": "text", "required": true, "max_length": 120},
          "photo": {"type": "image"}
        }
      }
    ]

The registry re-reads the document for every request, so edits to the
file are picked up without a restart and nothing is cached across requests.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class SchemaError(ValueError):
    """Raised when the section definitions cannot be loaded."""


class FieldKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    RICHTEXT = "richtext"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    EMAIL = "email"
    URL = "url"
    SELECT = "select"
    IMAGE = "image"
    FILE = "file"


FILE_KINDS = {FieldKind.IMAGE, FieldKind.FILE}


class FieldSpec(BaseModel):
    """A single field definition.  Never mutated once loaded."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldKind = FieldKind.TEXT
    label: Optional[str] = None
    required: bool = False
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    pattern: Optional[str] = None
    choices: Optional[Tuple[str, ...]] = None

    @property
    def is_file(self) -> bool:
        return self.type in FILE_KINDS

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()


class SectionOptions(BaseModel):
    """Options only consulted for form-mode sections."""

    model_config = ConfigDict(frozen=True)

    recipient: Optional[str] = None
    subject: Optional[str] = None
    next: Optional[str] = None


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    label: str
    label_singular: str = ""
    fields: Dict[str, FieldSpec] = Field(default_factory=dict)
    options: SectionOptions = Field(default_factory=SectionOptions)
    multiple: bool = False
    repeating: bool = False
    form: bool = False

    @field_validator("fields", mode="before")
    @classmethod
    def _name_fields(cls, value: Any) -> Any:
        """Allow field specs to omit ``name``; the mapping key is authoritative."""
        if not isinstance(value, dict):
            return value
        named = {}
        for key, spec in value.items():
            if isinstance(spec, dict):
                spec = {**spec, "name": key}
            named[key] = spec
        return named

    @property
    def allowed_fields(self) -> frozenset:
        return frozenset(self.fields)

    @property
    def singular(self) -> str:
        return self.label_singular or self.label


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------
def _reject_duplicates(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    """json object hook that refuses repeated keys (field names must be unique)."""
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise SchemaError(f"Duplicate key in section definitions: {key!r}")
        result[key] = value
    return result


def parse_sections(raw: str) -> List[Section]:
    """Parse a sections JSON document into ``Section`` objects."""
    try:
        data = json.loads(raw, object_pairs_hook=_reject_duplicates)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid sections JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("sections", [])
    if not isinstance(data, list):
        raise SchemaError("Section definitions must be a list")

    try:
        sections = [Section.model_validate(item) for item in data]
    except ValidationError as e:
        raise SchemaError(f"Invalid section definition: {e}") from e

    ids = [s.id for s in sections]
    if len(ids) != len(set(ids)):
        raise SchemaError("Section ids must be unique")
    return sections


class SectionRegistry:
    """Read-only access to the section definitions stored in a JSON file."""

    def __init__(self, sections_file: Path):
        self.sections_file = Path(sections_file)

    def load(self) -> List[Section]:
        if not self.sections_file.exists():
            logger.warning("⚠️ Sections file not found: {}", self.sections_file)
            return []
        return parse_sections(self.sections_file.read_text(encoding="utf-8"))

    def get(self, section_id: int) -> Optional[Section]:
        for section in self.load():
            if section.id == section_id:
                return section
        return None

    def content_sections(self) -> List[Section]:
        return [s for s in self.load() if not s.form]

    def form_sections(self) -> List[Section]:
        return [s for s in self.load() if s.form]

    def general(self) -> Optional[Section]:
        """The landing section: one named ``general``, else the first content section."""
        content = self.content_sections()
        for section in content:
            if section.name == "general":
                return section
        return content[0] if content else None

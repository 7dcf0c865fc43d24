"""
Content Dashboard - Records

A record is one piece of content belonging to a section.  This module holds
the record data type and the persistence collaborator that validates content
against the section's field definitions before writing it to SQLite.

Validation failures are raised as ``RecordValidationError`` carrying a list
of ``ValidationIssue`` objects, one per failing field path.
"""

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import AnyUrl, BaseModel, Field, ValidationError, create_model

from dashboard.database import (
    count_records,
    delete_record,
    get_record,
    get_records_for_section,
    insert_record,
    update_record_content,
)
from dashboard.schema import FieldKind, FieldSpec, Section
from dashboard.services.validation_errors import ValidationIssue

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

STRING_KINDS = {
    FieldKind.TEXT,
    FieldKind.TEXTAREA,
    FieldKind.RICHTEXT,
    FieldKind.EMAIL,
    FieldKind.IMAGE,
    FieldKind.FILE,
}


class Record(BaseModel):
    id: Optional[int] = None
    section_id: int
    content: Dict[str, Any] = Field(default_factory=dict)


class RecordValidationError(Exception):
    """Content was rejected by the field definitions of its section."""

    def __init__(self, issues: List[ValidationIssue]):
        self.issues = list(issues)
        summary = ", ".join(f"{i.path}: {i.message}" for i in self.issues)
        super().__init__(f"Validation failed ({summary})")


# ---------------------------------------------------------------------------
# Dynamic content models
# ---------------------------------------------------------------------------
def _field_definition(spec: FieldSpec) -> Tuple[Any, Any]:
    """Map a FieldSpec to a ``(type, FieldInfo)`` pair for ``create_model``."""
    constraints: Dict[str, Any] = {}

    if spec.type in STRING_KINDS:
        python_type: Any = str
        if spec.max_length is not None:
            constraints["max_length"] = spec.max_length
        pattern = spec.pattern or (EMAIL_PATTERN if spec.type == FieldKind.EMAIL else None)
        if pattern:
            constraints["pattern"] = pattern
    elif spec.type == FieldKind.NUMBER:
        python_type = float
        if spec.min_value is not None:
            constraints["ge"] = spec.min_value
        if spec.max_value is not None:
            constraints["le"] = spec.max_value
    elif spec.type == FieldKind.BOOLEAN:
        python_type = bool
    elif spec.type == FieldKind.DATE:
        python_type = date
    elif spec.type == FieldKind.URL:
        python_type = AnyUrl
    elif spec.type == FieldKind.SELECT and spec.choices:
        python_type = Literal[tuple(spec.choices)]
    else:
        python_type = str

    if spec.required:
        return python_type, Field(..., alias=spec.name, **constraints)
    return Optional[python_type], Field(None, alias=spec.name, **constraints)


def _content_model(section: Section) -> type[BaseModel]:
    # Positional attribute names keep arbitrary field names from clashing
    # with BaseModel attributes; the alias carries the real name.
    definitions = {
        f"field_{i}": _field_definition(spec) for i, spec in enumerate(section.fields.values())
    }
    return create_model(f"Section{section.id}Content", **definitions)


def validate_content(section: Optional[Section], content: Dict[str, Any]) -> List[ValidationIssue]:
    """Return the validation issues for *content*; an empty list means valid."""
    if section is None:
        return [ValidationIssue("section_id", "Section not found")]

    issues: List[ValidationIssue] = []
    for key in content:
        if key not in section.fields:
            issues.append(ValidationIssue(f"content.{key}", "Unknown field"))

    # Blank form inputs count as missing
    data = {
        k: v for k, v in content.items() if k in section.fields and v is not None and v != ""
    }

    try:
        _content_model(section).model_validate(data)
    except ValidationError as e:
        internal = {f"field_{i}": n for i, n in enumerate(section.fields)}
        grouped: Dict[str, List[str]] = {}
        for error in e.errors():
            loc = error.get("loc") or ("",)
            name = str(loc[0])
            if name not in section.fields and name in internal:
                name = internal[name]
            grouped.setdefault(name, []).append(error["msg"])
        for name, messages in grouped.items():
            message = messages[0] if len(messages) == 1 else json.dumps(messages)
            issues.append(ValidationIssue(f"content.{name}", message))

    return issues


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------
class RecordRepository:
    """Validating persistence for records, backed by the SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def build(self, content: Dict[str, Any], section_id: int) -> Record:
        return Record(section_id=section_id, content=dict(content))

    async def save(self, record: Record, section: Optional[Section]) -> Record:
        issues = validate_content(section, record.content)
        if issues:
            raise RecordValidationError(issues)
        record_id = await insert_record(self.db_path, record.section_id, record.content)
        return record.model_copy(update={"id": record_id})

    async def update(self, record: Record, content: Dict[str, Any], section: Optional[Section]) -> Record:
        issues = validate_content(section, content)
        if issues:
            raise RecordValidationError(issues)
        if record.id is None:
            raise ValueError("Cannot update a record that has not been saved")
        await update_record_content(self.db_path, record.id, content)
        return record.model_copy(update={"content": dict(content)})

    async def destroy(self, record: Record) -> bool:
        if record.id is None:
            return False
        return await delete_record(self.db_path, record.id)

    async def get(self, record_id: int) -> Optional[Record]:
        row = await get_record(self.db_path, record_id)
        if not row:
            return None
        return Record(id=row["id"], section_id=row["section_id"], content=row["content"])

    async def list_for_section(self, section_id: int) -> List[Record]:
        rows = await get_records_for_section(self.db_path, section_id)
        return [Record(id=r["id"], section_id=r["section_id"], content=r["content"]) for r in rows]

    async def count_for_section(self, section_id: int) -> int:
        return await count_records(self.db_path, section_id)


"""
Content Dashboard - Section & Record Routes

JSON endpoints behind the admin UI:
- section navigation and the new / index / edit redirect logic
- record create, update (skipped when nothing changed) and delete
- multipart form parsing into a ``Submission``

Successful writes answer with a 303 redirect to the next screen.  Rejected
content answers 422 with a field-keyed ``errors`` map and the submitted
content so the form can be shown again.
"""

import re
from typing import Any, Dict, Iterable, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger
from starlette.datastructures import UploadFile

from dashboard.auth import get_current_user
from dashboard.config import DashboardContext
from dashboard.records import Record, RecordRepository
from dashboard.schema import Section, SectionRegistry
from dashboard.services.file_store import FileStore
from dashboard.services.lifecycle import (
    RecordOutcome,
    Submission,
    create_record,
    destroy_record,
    update_record,
)
from dashboard.services.reconciler import CONTENT_KEY_RE, FileUpload

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

DESTROY_KEY_RE = re.compile(r"^_destroy\[(.+)\]$")

FIX_ERRORS_MESSAGE = "Please fix the following errors, then resubmit."


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_context(request: Request) -> DashboardContext:
    return request.app.state.context


def get_registry(context: DashboardContext = Depends(get_context)) -> SectionRegistry:
    return SectionRegistry(context.sections_file)


def get_repository(context: DashboardContext = Depends(get_context)) -> RecordRepository:
    return RecordRepository(context.db_path)


def get_file_store(context: DashboardContext = Depends(get_context)) -> FileStore:
    return FileStore(context.uploads_dir)


def check_content_length(
    request: Request, context: DashboardContext = Depends(get_context)
) -> None:
    """Reject request bodies larger than the configured upload limit."""
    content_length = request.headers.get("content-length")
    if content_length is None:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    if size > context.max_upload_size:
        raise HTTPException(
            status_code=413,
            detail=f"Request body too large. Maximum upload size is "
            f"{context.max_upload_size // (1024 * 1024)}MB.",
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def parse_submission(items: Iterable[Tuple[str, Any]]) -> Submission:
    """
    Split multipart/urlencoded form items into a ``Submission``.

    ``content[<field>]`` values become content, files under any key are kept
    with their raw key for the reconciler, and ``_destroy[<field>]`` marks a
    field for removal.  File inputs left empty by the browser are ignored.
    """
    submission = Submission()
    for key, value in items:
        if isinstance(value, UploadFile):
            if value.filename:
                submission.files.append(
                    FileUpload(field_key=key, filename=value.filename, source=value.file)
                )
            continue

        content_match = CONTENT_KEY_RE.match(key)
        if content_match:
            submission.content[content_match.group(1)] = value
            continue

        destroy_match = DESTROY_KEY_RE.match(key)
        if destroy_match:
            submission.destroy.add(destroy_match.group(1))
    return submission


def parse_json_submission(body: Any) -> Submission:
    """Build a ``Submission`` from a JSON body ``{"content": {...}, "_destroy": [...]}``."""
    if not isinstance(body, dict):
        return Submission()
    content = body.get("content")
    destroy = body.get("_destroy") or []
    if isinstance(destroy, dict):
        destroy = list(destroy)
    return Submission(
        content=dict(content) if isinstance(content, dict) else {},
        destroy={d for d in destroy if isinstance(d, str)} if isinstance(destroy, list) else set(),
    )


async def _read_submission(request: Request) -> Submission:
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Malformed JSON body")
        return parse_json_submission(body)
    form = await request.form()
    return parse_submission(form.multi_items())


def _find_section(registry: SectionRegistry, section_id: int) -> Section:
    section = registry.get(section_id)
    if section is None:
        raise HTTPException(status_code=404, detail=f"Section #{section_id} not found")
    return section


async def _find_record(
    repository: RecordRepository, registry: SectionRegistry, record_id: int
) -> Tuple[Record, Section]:
    record = await repository.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Record #{record_id} not found")
    section = registry.get(record.section_id)
    if section is None:
        raise HTTPException(
            status_code=404,
            detail=f"Section #{record.section_id} of record #{record_id} not found",
        )
    return record, section


def _section_summary(section: Section) -> Dict[str, Any]:
    return {"id": section.id, "name": section.name, "label": section.label}


def _section_payload(section: Section) -> Dict[str, Any]:
    """Section definition plus the fields that need a file input (multipart form)."""
    payload = section.model_dump(mode="json")
    payload["file_fields"] = [name for name, spec in section.fields.items() if spec.is_file]
    return payload


def _url(request: Request, name: str, **params: Any) -> str:
    return str(request.app.url_path_for(name, **params))


def _after_save_url(request: Request, section: Section, record: Record) -> str:
    if section.multiple:
        return _url(request, "records_index", section_id=section.id)
    return _url(request, "records_edit", record_id=record.id)


def _rejected(outcome: RecordOutcome, title: str, action: str) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "message": FIX_ERRORS_MESSAGE,
            "title": title,
            "action": action,
            "errors": outcome.errors,
            "record": {"content": outcome.content},
        },
    )


def _new_title(section: Section) -> str:
    return f"New {section.singular}" if section.repeating else section.label


# ---------------------------------------------------------------------------
# Root & sections
# ---------------------------------------------------------------------------
@router.get("/", name="root")
async def root(request: Request, registry: SectionRegistry = Depends(get_registry)):
    """Redirect to the general section."""
    section = registry.general()
    if section is None:
        raise HTTPException(status_code=404, detail="No content sections are defined")
    return RedirectResponse(_url(request, "sections_show", section_id=section.id), status_code=302)


@router.get("/sections", name="sections_nav")
async def sections_nav(
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
):
    """Navigation menu: content sections with their record counts, and form sections."""
    content_sections = []
    for section in registry.content_sections():
        summary = _section_summary(section)
        summary["count"] = await repository.count_for_section(section.id)
        content_sections.append(summary)
    return {
        "content_sections": content_sections,
        "form_sections": [_section_summary(s) for s in registry.form_sections()],
    }


@router.get("/sections/{section_id}", name="sections_show")
async def sections_show(
    request: Request,
    section_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
):
    """Redirect to the right screen for a section, based on its records."""
    section = _find_section(registry, section_id)
    records = await repository.list_for_section(section.id)

    if not records:
        url = _url(request, "records_new", section_id=section.id)
    elif section.multiple:
        url = _url(request, "records_index", section_id=section.id)
    else:
        url = _url(request, "records_edit", record_id=records[0].id)
    return RedirectResponse(url, status_code=302)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
@router.get("/sections/{section_id}/records", name="records_index")
async def records_index(
    section_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
):
    section = _find_section(registry, section_id)
    records = await repository.list_for_section(section.id)
    return {
        "title": section.label,
        "section": _section_payload(section),
        "records": [r.model_dump(mode="json") for r in records],
    }


@router.get("/sections/{section_id}/records/new", name="records_new")
async def records_new(
    request: Request,
    section_id: int,
    registry: SectionRegistry = Depends(get_registry),
):
    section = _find_section(registry, section_id)

    if section.form:
        return {
            "title": f"{section.label} Form",
            "form": "email",
            "fields": {
                name: {**spec.model_dump(mode="json"), "label": spec.display_label}
                for name, spec in section.fields.items()
            },
            "recipient": section.options.recipient or get_current_user(request),
            "subject": section.options.subject,
            "next": section.options.next,
        }

    return {
        "title": _new_title(section),
        "form": "content",
        "action": _url(request, "records_create", section_id=section.id),
        "section": _section_payload(section),
        "errors": {},
        "record": {"content": {}},
    }


@router.post(
    "/sections/{section_id}/records",
    name="records_create",
    dependencies=[Depends(check_content_length)],
)
async def records_create(
    request: Request,
    section_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
):
    section = _find_section(registry, section_id)
    submission = await _read_submission(request)

    outcome = await create_record(section, submission, repository, file_store)
    if not outcome.ok:
        return _rejected(
            outcome,
            _new_title(section),
            _url(request, "records_create", section_id=section.id),
        )

    return RedirectResponse(_after_save_url(request, section, outcome.record), status_code=303)


@router.get("/records/{record_id}", name="records_show")
async def records_show(
    request: Request,
    record_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
):
    record, _ = await _find_record(repository, registry, record_id)
    return RedirectResponse(_url(request, "records_edit", record_id=record.id), status_code=302)


@router.get("/records/{record_id}/edit", name="records_edit")
async def records_edit(
    request: Request,
    record_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
):
    record, section = await _find_record(repository, registry, record_id)
    return {
        "title": f"Edit {section.singular}",
        "action": _url(request, "records_update", record_id=record.id),
        "section": _section_payload(section),
        "errors": {},
        "record": record.model_dump(mode="json"),
    }


@router.post(
    "/records/{record_id}",
    name="records_update",
    dependencies=[Depends(check_content_length)],
)
async def records_update(
    request: Request,
    record_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
):
    record, section = await _find_record(repository, registry, record_id)
    submission = await _read_submission(request)

    outcome = await update_record(record, section, submission, repository, file_store)
    if not outcome.ok:
        return _rejected(
            outcome,
            f"Edit {section.singular}",
            _url(request, "records_update", record_id=record.id),
        )

    return RedirectResponse(_after_save_url(request, section, record), status_code=303)


@router.get("/records/{record_id}/delete", name="records_delete")
async def records_delete(
    request: Request,
    record_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
):
    """Confirmation screen for deleting a record."""
    record, section = await _find_record(repository, registry, record_id)
    return {
        "title": f"Delete {section.singular}",
        "action": _url(request, "records_destroy", record_id=record.id),
        "record": record.model_dump(mode="json"),
    }


@router.post("/records/{record_id}/delete", name="records_destroy")
async def records_destroy(
    request: Request,
    record_id: int,
    registry: SectionRegistry = Depends(get_registry),
    repository: RecordRepository = Depends(get_repository),
):
    record, section = await _find_record(repository, registry, record_id)
    await destroy_record(record, repository)
    logger.info("🗑️ Deleted {} (id={})", section.singular, record.id)
    return RedirectResponse(_url(request, "records_index", section_id=section.id), status_code=303)

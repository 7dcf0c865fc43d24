"""
Content Dashboard - Record Content Lifecycle

Create / update / destroy flows for records.  Each flow reconciles the
submission into a content map and hands it to the record repository.
Validation failures never escape: they come back on the outcome as a
field-keyed error map ready to be shown next to the form inputs.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from loguru import logger

from dashboard.records import Record, RecordRepository, RecordValidationError
from dashboard.schema import Section
from dashboard.services.file_store import FileStore
from dashboard.services.reconciler import FileUpload, reconcile
from dashboard.services.validation_errors import map_errors


@dataclass
class Submission:
    """A parsed form post: field values, uploaded files and destroy flags."""

    content: Dict[str, Any] = field(default_factory=dict)
    files: List[FileUpload] = field(default_factory=list)
    destroy: Set[str] = field(default_factory=set)


@dataclass
class RecordOutcome:
    record: Optional[Record]
    content: Dict[str, Any]
    errors: Dict[str, Any] = field(default_factory=dict)
    changed: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


async def _reconcile(section: Section, submission: Submission, file_store: FileStore) -> Dict[str, Any]:
    # File hashing and copying block, so keep them off the event loop
    return await asyncio.to_thread(
        reconcile,
        submission.content,
        submission.files,
        submission.destroy,
        section.allowed_fields,
        file_store=file_store,
    )


async def create_record(
    section: Section,
    submission: Submission,
    repository: RecordRepository,
    file_store: FileStore,
) -> RecordOutcome:
    content = await _reconcile(section, submission, file_store)
    record = repository.build(content, section.id)
    try:
        saved = await repository.save(record, section)
    except RecordValidationError as e:
        logger.warning("⚠️ New {} rejected: {}", section.singular, [i.path for i in e.issues])
        return RecordOutcome(record=None, content=content, errors=map_errors(e.issues))

    logger.info("📝 Created {} (id={})", section.singular, saved.id)
    return RecordOutcome(record=saved, content=content, changed=True)


async def update_record(
    record: Record,
    section: Section,
    submission: Submission,
    repository: RecordRepository,
    file_store: FileStore,
) -> RecordOutcome:
    content = await _reconcile(section, submission, file_store)

    if content == record.content:
        logger.debug("⏭️ {} id={} unchanged, skipping update", section.singular, record.id)
        return RecordOutcome(record=record, content=content, changed=False)

    try:
        updated = await repository.update(record, content, section)
    except RecordValidationError as e:
        logger.warning(
            "⚠️ Update of {} id={} rejected: {}",
            section.singular,
            record.id,
            [i.path for i in e.issues],
        )
        return RecordOutcome(record=record, content=content, errors=map_errors(e.issues))

    logger.info("📝 Updated {} (id={})", section.singular, record.id)
    return RecordOutcome(record=updated, content=content, changed=True)


async def destroy_record(record: Record, repository: RecordRepository) -> bool:
    deleted = await repository.destroy(record)
    if not deleted:
        logger.warning("⚠️ Record id={} was already gone", record.id)
    return deleted

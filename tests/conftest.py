"""
Content Dashboard - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- A sections document with a single-record section, a repeating section
  and a form-mode section
- A DashboardContext pointing at per-test temp paths
- An initialized record repository and file store
- A TestClient running the full app (auth disabled unless requested)
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from dashboard.config import DashboardContext
from dashboard.database import init_db
from dashboard.main import create_app
from dashboard.records import RecordRepository
from dashboard.schema import Section, parse_sections
from dashboard.services.file_store import FileStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "s3cret-pass"

# ---------------------------------------------------------------------------
# Sample sections
# ---------------------------------------------------------------------------

SAMPLE_SECTIONS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "general",
        "label": "General",
        "label_singular": "General",
        "fields": {
            "title": {"type": "text", "required": True, "max_length": 50},
            "photo": {"type": "image"},
            "published": {"type": "boolean"},
        },
    },
    {
        "id": 2,
        "name": "posts",
        "label": "Posts",
        "label_singular": "Post",
        "multiple": True,
        "repeating": True,
        "fields": {
            "title": {"type": "text", "required": True},
            "body": {"type": "textarea"},
            "rating": {"type": "number", "min_value": 0, "max_value": 5},
            "category": {"type": "select", "choices": ["news", "events"]},
            "attachment": {"type": "file"},
        },
    },
    {
        "id": 3,
        "name": "contact",
        "label": "Contact",
        "label_singular": "Contact",
        "form": True,
        "options": {"subject": "New message", "next": "/thanks"},
        "fields": {
            "email": {"type": "email", "required": True},
            "message": {"type": "textarea"},
        },
    },
]


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Schema fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sections() -> List[Section]:
    return parse_sections(json.dumps(SAMPLE_SECTIONS))


@pytest.fixture
def general_section(sections) -> Section:
    return sections[0]


@pytest.fixture
def posts_section(sections) -> Section:
    return sections[1]


@pytest.fixture
def sections_file(tmp_path: Path) -> Path:
    path = tmp_path / "sections.json"
    path.write_text(json.dumps(SAMPLE_SECTIONS), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Context / storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def context(tmp_path: Path, sections_file: Path, uploads_dir: Path) -> DashboardContext:
    return DashboardContext(
        db_path=tmp_path / "data" / "dashboard.db",
        uploads_dir=uploads_dir,
        sections_file=sections_file,
        auth_password="",
    )


@pytest.fixture
def auth_context(context: DashboardContext) -> DashboardContext:
    return DashboardContext(
        db_path=context.db_path,
        uploads_dir=context.uploads_dir,
        sections_file=context.sections_file,
        auth_email=ADMIN_EMAIL,
        auth_password=ADMIN_PASSWORD,
        secret_key="test-secret",
    )


@pytest.fixture
def file_store(uploads_dir: Path) -> FileStore:
    return FileStore(uploads_dir)


@pytest.fixture
def repository(context: DashboardContext) -> RecordRepository:
    init_db(context.db_path)
    return RecordRepository(context.db_path)


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client(context: DashboardContext):
    with TestClient(create_app(context)) as test_client:
        yield test_client


@pytest.fixture
def auth_client(auth_context: DashboardContext):
    with TestClient(create_app(auth_context)) as test_client:
        yield test_client

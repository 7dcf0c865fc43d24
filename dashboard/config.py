"""
Content Dashboard - Configuration
All settings loaded from environment variables with sensible defaults.

Module-level constants mirror the environment.  The values a running app
actually needs are bundled into a ``DashboardContext`` which is built once
by the app factory and handed to routes via ``app.state``.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
APP_ENV = os.getenv("APP_ENV", "development")
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
DEBUG = os.getenv("DEBUG", "true").lower() == "true"
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")

if APP_ENV == "production" and SECRET_KEY == "change-me-in-production":
    raise RuntimeError(
        "SECRET_KEY must be changed from the default value in production. "
        "Set the SECRET_KEY environment variable to a random secret."
    )

# ---------------------------------------------------------------------------
# Authentication (single admin account)
# ---------------------------------------------------------------------------
AUTH_EMAIL = os.getenv("AUTH_EMAIL", "admin@example.com")
AUTH_PASSWORD = os.getenv("AUTH_PASSWORD", "")  # empty disables auth
SESSION_COOKIE_NAME = "dashboard_session"
# Default 14 days
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(60 * 60 * 24 * 14)))

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent

DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))
DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "dashboard.db")))
# Flat, content-addressed file storage shared by all requests
UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", str(DATA_DIR / "uploads")))
# JSON document describing the sections and their fields
SECTIONS_FILE = Path(os.getenv("SECTIONS_FILE", str(DATA_DIR / "sections.json")))

# ---------------------------------------------------------------------------
# Logging - stdout only
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Upload limits
# ---------------------------------------------------------------------------
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024


@dataclass(frozen=True)
class DashboardContext:
    """Per-application settings passed explicitly to every component."""

    db_path: Path
    uploads_dir: Path
    sections_file: Path
    auth_email: str = AUTH_EMAIL
    auth_password: str = AUTH_PASSWORD
    secret_key: str = SECRET_KEY
    session_max_age: int = SESSION_MAX_AGE
    max_upload_size: int = MAX_UPLOAD_SIZE_BYTES
    env: str = APP_ENV

    @classmethod
    def from_env(cls) -> "DashboardContext":
        return cls(
            db_path=DB_PATH,
            uploads_dir=UPLOADS_DIR,
            sections_file=SECTIONS_FILE,
        )

    @property
    def auth_enabled(self) -> bool:
        return bool(self.auth_password)


def ensure_directories(context: DashboardContext) -> None:
    """Create the data directories the app writes to.

    The uploads directory is also created lazily by the file store, so a
    missing directory here is never fatal for a request.
    """
    context.db_path.parent.mkdir(parents=True, exist_ok=True)
    context.uploads_dir.mkdir(parents=True, exist_ok=True)

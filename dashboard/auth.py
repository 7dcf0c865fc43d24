"""
Content Dashboard - Simple Session Auth

Single-admin authentication using signed cookies.  The email and password
come from the ``DashboardContext`` (AUTH_EMAIL / AUTH_PASSWORD).

Usage:
    - ``auth_required(request, context)`` is checked by the app middleware
      for every request; protected paths redirect to the sign-in route.
    - ``get_current_user(request)`` returns the signed-in email.
"""

import hashlib
import hmac
import json
import time
from typing import Any

from fastapi import Request, Response

from dashboard.config import SESSION_COOKIE_NAME, DashboardContext

SIGN_IN_PATH = "/dashboard/sign_in"

# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def _sign(payload: str, secret: str) -> str:
    """Create an HMAC-SHA256 signature for a payload string."""
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _create_session_cookie(email: str, secret: str) -> str:
    """Create a signed session cookie value."""
    data = json.dumps({"user": email, "ts": int(time.time())})
    return f"{data}|{_sign(data, secret)}"


def _parse_session_cookie(cookie_value: str, secret: str, max_age: int) -> dict[str, Any] | None:
    """Parse and verify a session cookie.  Returns the session dict or None."""
    if not cookie_value or "|" not in cookie_value:
        return None

    data_part, sig_part = cookie_value.rsplit("|", 1)
    expected = _sign(data_part, secret)
    if not hmac.compare_digest(sig_part.encode("utf-8"), expected.encode("utf-8")):
        return None

    try:
        session = json.loads(data_part)
    except json.JSONDecodeError:
        return None
    if not isinstance(session, dict):
        return None

    created = session.get("ts")
    if not isinstance(created, (int, float)) or time.time() - created > max_age:
        return None
    return session


def _context(request: Request) -> DashboardContext:
    return request.app.state.context


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_current_user(request: Request) -> str | None:
    """Return the signed-in email, or None if not authenticated."""
    context = _context(request)
    cookie = request.cookies.get(SESSION_COOKIE_NAME, "")
    session = _parse_session_cookie(cookie, context.secret_key, context.session_max_age)
    if session:
        return session.get("user")
    return None


def set_session_cookie(response: Response, email: str, context: DashboardContext) -> None:
    """Set the signed session cookie on a response."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=_create_session_cookie(email, context.secret_key),
        max_age=context.session_max_age,
        httponly=True,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Remove the session cookie."""
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")


# Paths that don't require authentication
PUBLIC_PATHS = {
    SIGN_IN_PATH,
    "/health",
    "/uploads",
}


def _is_public(path: str) -> bool:
    """Return True if the path does not require authentication."""
    for pub in PUBLIC_PATHS:
        if path == pub or path.startswith(pub + "/"):
            return True
    return path in ("/favicon.ico", "/robots.txt")


def auth_required(request: Request, context: DashboardContext) -> bool:
    """
    Return True if this request requires auth and the user is NOT signed in
    (i.e. the request should be redirected to the sign-in route).

    If no password is configured, auth is disabled entirely.
    """
    if not context.auth_enabled:
        return False
    if _is_public(request.url.path):
        return False
    return get_current_user(request) is None


def verify_credentials(email: str, password: str, context: DashboardContext) -> bool:
    """Verify sign-in credentials against the configured admin account."""
    if not context.auth_enabled:
        return False

    user_ok = hmac.compare_digest(
        email.strip().lower().encode("utf-8"), context.auth_email.lower().encode("utf-8")
    )
    pass_ok = hmac.compare_digest(password.encode("utf-8"), context.auth_password.encode("utf-8"))
    return user_ok and pass_ok

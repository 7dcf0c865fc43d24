"""
Content Dashboard - Authentication Tests

Tests for the dashboard/auth.py module. Validates:
- Session cookie creation and parsing (signed HMAC cookies)
- Cookie signature verification (tamper detection)
- Cookie expiry enforcement
- Credential verification (email/password matching)
- get_current_user helper
- auth_required middleware logic (public paths, protected paths)
- Session cookie set/clear on Response objects
"""

import hashlib
import hmac
import json
import time
from unittest.mock import MagicMock

import pytest

from dashboard.auth import (
    SIGN_IN_PATH,
    _create_session_cookie,
    _parse_session_cookie,
    _sign,
    auth_required,
    clear_session_cookie,
    get_current_user,
    set_session_cookie,
    verify_credentials,
)
from dashboard.config import SESSION_COOKIE_NAME
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD

SECRET = "test-secret"
MAX_AGE = 3600

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_request(context, cookies: dict | None = None, path: str = "/dashboard/") -> MagicMock:
    """Create a mock FastAPI Request with cookies, URL path and app context."""
    request = MagicMock()
    request.cookies = cookies or {}
    request.url.path = path
    request.app.state.context = context
    return request


def _make_response() -> MagicMock:
    """Create a mock Response that records set_cookie / delete_cookie calls."""
    response = MagicMock()
    response._cookies = {}

    def fake_set_cookie(**kwargs):
        response._cookies[kwargs.get("key", "")] = kwargs

    def fake_delete_cookie(**kwargs):
        response._cookies.pop(kwargs.get("key", ""), None)

    response.set_cookie = MagicMock(side_effect=fake_set_cookie)
    response.delete_cookie = MagicMock(side_effect=fake_delete_cookie)
    return response


def _cookie_with_ts(user: str, ts, secret: str = SECRET) -> str:
    data = json.dumps({"user": user, "ts": ts})
    return f"{data}|{_sign(data, secret)}"


# ===========================================================================
# _sign
# ===========================================================================


class TestSign:
    def test_returns_hex_string(self):
        sig = _sign("hello", SECRET)
        assert len(sig) == 64

    def test_deterministic(self):
        assert _sign("payload", SECRET) == _sign("payload", SECRET)

    def test_secret_matters(self):
        assert _sign("payload", SECRET) != _sign("payload", "other-secret")

    def test_matches_manual_hmac(self):
        expected = hmac.new(SECRET.encode("utf-8"), b"test data", hashlib.sha256).hexdigest()
        assert _sign("test data", SECRET) == expected


# ===========================================================================
# _create_session_cookie / _parse_session_cookie
# ===========================================================================


class TestSessionCookie:
    def test_round_trip(self):
        cookie = _create_session_cookie("admin@example.com", SECRET)
        session = _parse_session_cookie(cookie, SECRET, MAX_AGE)
        assert session["user"] == "admin@example.com"

    def test_contains_timestamp(self):
        before = int(time.time())
        cookie = _create_session_cookie("a@b.c", SECRET)
        payload = json.loads(cookie.rsplit("|", 1)[0])
        assert before <= payload["ts"] <= int(time.time())

    @pytest.mark.parametrize("value", ["", "no_pipe_separator", "not_json|abcdef"])
    def test_malformed(self, value):
        assert _parse_session_cookie(value, SECRET, MAX_AGE) is None

    def test_wrong_secret(self):
        cookie = _create_session_cookie("a@b.c", SECRET)
        assert _parse_session_cookie(cookie, "other-secret", MAX_AGE) is None

    def test_tampered_data(self):
        cookie = _create_session_cookie("original@example.com", SECRET)
        tampered = cookie.replace("original", "attacker")
        assert _parse_session_cookie(tampered, SECRET, MAX_AGE) is None

    def test_tampered_signature(self):
        data_part, sig_part = _create_session_cookie("a@b.c", SECRET).rsplit("|", 1)
        bad_sig = ("0" if sig_part[0] != "0" else "1") + sig_part[1:]
        assert _parse_session_cookie(f"{data_part}|{bad_sig}", SECRET, MAX_AGE) is None

    def test_non_ascii_signature(self):
        data_part = _create_session_cookie("a@b.c", SECRET).rsplit("|", 1)[0]
        assert _parse_session_cookie(f"{data_part}|ñ", SECRET, MAX_AGE) is None

    def test_expired(self):
        cookie = _cookie_with_ts("old@example.com", int(time.time()) - MAX_AGE - 1)
        assert _parse_session_cookie(cookie, SECRET, MAX_AGE) is None

    def test_missing_or_bad_timestamp(self):
        assert _parse_session_cookie(_cookie_with_ts("a@b.c", "yesterday"), SECRET, MAX_AGE) is None
        assert _parse_session_cookie(_cookie_with_ts("a@b.c", None), SECRET, MAX_AGE) is None

    def test_signed_non_object(self):
        data = json.dumps(["a@b.c"])
        assert _parse_session_cookie(f"{data}|{_sign(data, SECRET)}", SECRET, MAX_AGE) is None


# ===========================================================================
# verify_credentials
# ===========================================================================


class TestVerifyCredentials:
    def test_correct_credentials(self, auth_context):
        assert verify_credentials(ADMIN_EMAIL, ADMIN_PASSWORD, auth_context) is True

    def test_email_case_and_whitespace_ignored(self, auth_context):
        assert verify_credentials("  Admin@Example.COM ", ADMIN_PASSWORD, auth_context) is True

    def test_wrong_password(self, auth_context):
        assert verify_credentials(ADMIN_EMAIL, "wrong", auth_context) is False

    def test_password_case_sensitive(self, auth_context):
        assert verify_credentials(ADMIN_EMAIL, ADMIN_PASSWORD.upper(), auth_context) is False

    def test_wrong_email(self, auth_context):
        assert verify_credentials("someone@example.com", ADMIN_PASSWORD, auth_context) is False

    def test_non_ascii_input(self, auth_context):
        assert verify_credentials("ádmin@example.com", "pässword", auth_context) is False

    def test_disabled_when_no_password(self, context):
        assert verify_credentials(context.auth_email, "", context) is False


# ===========================================================================
# get_current_user
# ===========================================================================


class TestGetCurrentUser:
    def test_valid_session(self, auth_context):
        cookie = _create_session_cookie(ADMIN_EMAIL, auth_context.secret_key)
        request = _make_request(auth_context, cookies={SESSION_COOKIE_NAME: cookie})
        assert get_current_user(request) == ADMIN_EMAIL

    def test_no_cookie(self, auth_context):
        assert get_current_user(_make_request(auth_context)) is None

    def test_garbage_cookie(self, auth_context):
        request = _make_request(auth_context, cookies={SESSION_COOKIE_NAME: "garbage"})
        assert get_current_user(request) is None


# ===========================================================================
# auth_required
# ===========================================================================


class TestAuthRequired:
    def test_disabled_when_no_password(self, context):
        assert auth_required(_make_request(context), context) is False

    def test_protected_path_without_session(self, auth_context):
        assert auth_required(_make_request(auth_context), auth_context) is True

    def test_protected_path_with_session(self, auth_context):
        cookie = _create_session_cookie(ADMIN_EMAIL, auth_context.secret_key)
        request = _make_request(auth_context, cookies={SESSION_COOKIE_NAME: cookie})
        assert auth_required(request, auth_context) is False

    @pytest.mark.parametrize(
        "path", [SIGN_IN_PATH, "/health", "/uploads/pic-abc.png", "/favicon.ico"]
    )
    def test_public_paths(self, auth_context, path):
        assert auth_required(_make_request(auth_context, path=path), auth_context) is False

    def test_prefix_lookalike_is_protected(self, auth_context):
        request = _make_request(auth_context, path="/uploadsx/secret")
        assert auth_required(request, auth_context) is True


# ===========================================================================
# set_session_cookie / clear_session_cookie
# ===========================================================================


class TestCookieResponse:
    def test_set_cookie(self, auth_context):
        response = _make_response()
        set_session_cookie(response, ADMIN_EMAIL, auth_context)

        cookie = response._cookies[SESSION_COOKIE_NAME]
        assert cookie["httponly"] is True
        assert cookie["max_age"] == auth_context.session_max_age
        session = _parse_session_cookie(cookie["value"], auth_context.secret_key, MAX_AGE)
        assert session["user"] == ADMIN_EMAIL

    def test_clear_cookie(self, auth_context):
        response = _make_response()
        set_session_cookie(response, ADMIN_EMAIL, auth_context)
        clear_session_cookie(response)
        assert SESSION_COOKIE_NAME not in response._cookies

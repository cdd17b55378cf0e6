import asyncio
import json

import httpx
import pytest

from auth import AuthService
from client import ApiClient
from session import SessionContext

USER = {"_id": "u1", "firstName": "Jane", "lastName": "Doe", "email": "jane@example.com", "isEmailVerified": True}


@pytest.fixture
def backend():
    """Scripted backend: path -> (status, body); every request is recorded."""
    class Backend:
        def __init__(self):
            self.routes = {}
            self.requests = []

        def __call__(self, request):
            self.requests.append(request)
            status, body = self.routes[request.url.path]
            return httpx.Response(status, json=body)

        def sent(self, index=-1):
            return json.loads(self.requests[index].content)

    return Backend()


@pytest.fixture
def auth(tmp_path, backend):
    session = SessionContext(str(tmp_path / "session.json"))
    client = ApiClient("http://api.local/api", session, transport=httpx.MockTransport(backend))
    return AuthService(client, session)


def test_invalid_form_never_reaches_the_backend(auth, backend):
    ok = asyncio.run(auth.login({"email": "not-an-email", "password": "secret1"}))
    assert ok is False
    assert backend.requests == []
    assert auth.state.field_errors == {"email": "Invalid email format"}
    assert auth.state.alert == "Invalid email format"
    assert auth.state.is_loading is False


def test_login_stores_token_and_user(auth, backend):
    backend.routes["/api/auth/login"] = (200, {"token": "tok-1", "data": {"user": USER}})

    assert asyncio.run(auth.login({"email": "jane@example.com", "password": "secret1"}))

    assert backend.sent() == {"email": "jane@example.com", "password": "secret1"}
    assert auth.session.token == "tok-1"
    assert auth.session.user.full_name == "Jane Doe"
    assert auth.session.verification_email is None
    assert auth.state.redirect == "/"


def test_login_of_unverified_user_remembers_email(auth, backend):
    backend.routes["/api/auth/login"] = (200, {"token": "tok-1", "data": {"user": dict(USER, isEmailVerified=False)}})
    assert asyncio.run(auth.login({"email": "jane@example.com", "password": "secret1"}))
    assert auth.session.verification_email == "jane@example.com"


def test_login_without_token_is_invalid_structure(auth, backend):
    backend.routes["/api/auth/login"] = (200, {"data": {"user": USER}})
    assert not asyncio.run(auth.login({"email": "jane@example.com", "password": "secret1"}))
    assert auth.state.alert == "Invalid response structure"
    assert not auth.session.is_authenticated


def test_login_rejection_shows_backend_message(auth, backend):
    backend.routes["/api/auth/login"] = (401, {"message": "Invalid credentials"})
    assert not asyncio.run(auth.login({"email": "jane@example.com", "password": "wrong1"}))
    assert auth.state.alert == "Invalid credentials"
    assert auth.state.alert_type == "error"


def test_register_then_verify_uses_pending_email(auth, backend):
    backend.routes["/api/auth/register"] = (201, {"success": True})
    backend.routes["/api/auth/verify-email"] = (200, {"success": True})

    assert asyncio.run(auth.register(
        {"firstName": "Jane", "lastName": "Doe", "email": "jane@example.com", "password": "Passw0rd"}
    ))
    assert auth.state.redirect == "/auth/verify-email"
    assert auth.session.verification_email == "jane@example.com"

    assert asyncio.run(auth.verify_email("123456"))
    assert backend.sent() == {"otp": "123456", "email": "jane@example.com"}
    assert auth.session.verification_email is None
    assert auth.state.redirect == "/auth/login"


def test_register_surfaces_backend_field_errors(auth, backend):
    backend.routes["/api/auth/register"] = (
        400, {"message": "Validation failed", "errors": [{"path": "email", "msg": "Email already registered"}]},
    )
    assert not asyncio.run(auth.register(
        {"firstName": "Jane", "lastName": "Doe", "email": "jane@example.com", "password": "Passw0rd"}
    ))
    assert auth.state.field_errors == {"email": "Email already registered"}
    assert auth.session.verification_email is None


def test_resend_otp_reports_success(auth, backend):
    backend.routes["/api/auth/resend-otp"] = (200, {"success": True})
    auth.session.verification_email = "jane@example.com"

    assert asyncio.run(auth.resend_otp())
    assert auth.state.alert == "OTP has been sent to your email"
    assert auth.state.alert_type == "success"


def test_reset_password_sends_token(auth, backend):
    backend.routes["/api/auth/reset-password"] = (200, {"success": True})
    assert asyncio.run(auth.reset_password("reset-tok", {"password": "Passw0rd", "confirmPassword": "Passw0rd"}))
    assert backend.sent() == {"token": "reset-tok", "password": "Passw0rd"}


def test_logout_clears_session(auth):
    auth.session.set("tok-1", None)
    auth.logout()
    assert not auth.session.is_authenticated
    assert auth.state.redirect == "/auth/login"

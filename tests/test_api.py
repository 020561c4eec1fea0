from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from fakes import FakeClock, FakeIdentity, FakeRecords

from quiz_app.api import deps
from quiz_app.api.deps import Services, new_signup_form, rate_limit, reset_rate_limits
from quiz_app.core.config import settings
from quiz_app.guard.errors import ErrorKind, IdentityServiceError
from quiz_app.guard.ratelimit import SignupRateLimiter
from quiz_app.guard.signup import SignupGuard
from quiz_app.main import create_app

SIGNUP = {
    "fullName": "Marie Curie",
    "email": "marie@example.com",
    "password": "Radium#1898",
    "confirmPassword": "Radium#1898",
    "role": "teacher",
}


def _client(identity=None, records=None):
    identity = identity or FakeIdentity()
    records = records or FakeRecords()
    guard = SignupGuard(identity, records, SignupRateLimiter(time_fn=FakeClock()))
    app = create_app(Services(identity, records, guard))
    return TestClient(app), identity, records


@pytest.fixture(autouse=True)
def _fresh_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


def test_landing_page():
    client, _, _ = _client()
    body = client.get("/").json()
    assert body["brand"] == "QuizAI"
    assert [f["title"] for f in body["features"]] == [
        "AI-Powered Learning",
        "Teacher & Student Roles",
        "Instant Feedback",
    ]


def test_client_ip_uses_forwarded_header_from_trusted_proxy(monkeypatch):
    monkeypatch.setattr(settings, "trusted_proxies", {"testclient"})
    client, _, _ = _client()
    resp = client.get("/api/client-ip", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert resp.json() == {"ip": "203.0.113.7"}


def test_client_ip_ignores_forwarded_header_from_untrusted_peer():
    client, _, _ = _client()
    resp = client.get("/api/client-ip", headers={"X-Forwarded-For": "203.0.113.7"})
    assert resp.json() == {"ip": "testclient"}


class RecordingLookup:
    def __init__(self):
        self.calls = 0

    async def lookup(self):
        self.calls += 1
        return "198.51.100.1"

    async def aclose(self):
        return None


def test_client_ip_prefers_socket_peer_over_remote_lookup():
    identity, records = FakeIdentity(), FakeRecords()
    lookup = RecordingLookup()
    services = Services(identity, records, SignupGuard(identity, records), ip_lookup=lookup)
    client = TestClient(create_app(services))
    assert client.get("/api/client-ip").json() == {"ip": "testclient"}
    assert lookup.calls == 0


def test_signup_created():
    client, identity, records = _client()
    resp = client.post("/auth/signup", json=SIGNUP)
    assert resp.status_code == 201
    assert resp.json() == {
        "message": "Account created successfully! Please check your email for verification.",
        "user_id": "id-1",
    }
    assert records.rows[0].role == "teacher"


def test_signup_validation_error_lists_violations():
    client, identity, _ = _client()
    resp = client.post("/auth/signup", json={"name": "J", "email": "bad-email", "password": "short", "confirm_password": "short"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "validation"
    assert body["detail"] == "Name must be at least 2 characters"
    assert "Invalid email format" in body["violations"]
    assert identity.attempts == 0


def test_signup_existing_email_conflict():
    client, identity, _ = _client(records=FakeRecords(existing={"marie@example.com"}))
    resp = client.post("/auth/signup", json=SIGNUP)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Email already exists. Please use a different email or login."
    assert identity.attempts == 0


def test_signup_upstream_outage():
    client, _, _ = _client(identity=FakeIdentity(error=IdentityServiceError(ErrorKind.SERVER)))
    resp = client.post("/auth/signup", json=SIGNUP)
    assert resp.status_code == 503
    assert resp.json()["kind"] == "server"


def test_signup_rate_limited_per_email():
    records = FakeRecords()
    client, _, _ = _client(records=records)
    for _ in range(3):
        records.existing.clear()
        assert client.post("/auth/signup", json=SIGNUP).status_code == 201
    records.existing.clear()
    resp = client.post("/auth/signup", json=SIGNUP)
    assert resp.status_code == 429
    assert resp.json()["detail"] == "Too many signup attempts for this email. Please try again in 15 minutes."


def test_signup_rejects_unknown_role():
    client, _, _ = _client()
    resp = client.post("/auth/signup", json={**SIGNUP, "role": "admin"})
    assert resp.status_code == 422


def test_login_after_signup():
    client, _, _ = _client()
    client.post("/auth/signup", json=SIGNUP)
    resp = client.post("/auth/login", json={"email": "Marie@Example.com", "password": "Radium#1898"})
    assert resp.status_code == 200
    assert resp.json() == {"access_token": "token-for-marie@example.com", "token_type": "bearer"}


def test_login_bad_credentials():
    client, _, _ = _client()
    resp = client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


def test_login_is_throttled():
    client, _, _ = _client()
    for _ in range(5):
        client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    resp = client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    assert resp.status_code == 429


def test_password_strength_endpoint():
    client, _, _ = _client()
    resp = client.post("/auth/password-strength", json={"password": "Abcdefg1"})
    assert resp.json() == {"score": 75, "label": "Strong"}


def test_stats_require_admin_key(monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", "test-admin")
    client, _, _ = _client()
    assert client.get("/stats/signups").status_code == 401

    client.post("/auth/signup", json=SIGNUP)
    resp = client.get("/stats/signups", headers={"X-Admin-Key": "test-admin"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["signup_requests"] == 1
    assert body["successful_signups"] == 1
    assert "users" not in body


def test_lifespan_keeps_injected_services():
    identity, records = FakeIdentity(), FakeRecords()
    services = Services(identity, records, SignupGuard(identity, records))
    app = create_app(services)
    with TestClient(app) as client:
        assert client.get("/").status_code == 200
        assert app.state.services is services
    assert app.state.services is services


def test_spoofed_forwarded_header_does_not_dodge_ip_limit():
    client, _, _ = _client()
    for n in range(6):
        resp = client.post(
            "/auth/signup",
            json={**SIGNUP, "email": f"user{n}@example.com"},
            headers={"X-Forwarded-For": f"198.51.100.{n}"},
        )
        assert resp.status_code == 201
    resp = client.post(
        "/auth/signup",
        json={**SIGNUP, "email": "user6@example.com"},
        headers={"X-Forwarded-For": "198.51.100.99"},
    )
    assert resp.status_code == 429
    assert resp.json()["detail"] == "Too many signup attempts from your network. Please try again in 15 minutes."


def test_signup_form_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "password_match_debounce_ms", 40)
    monkeypatch.setattr(settings, "password_max_length", 64)
    form = new_signup_form()
    assert form.debounce_ms == 40
    assert form.caps["password"] == 64
    assert new_signup_form() is not form


def test_signup_trims_submitted_fields():
    client, identity, records = _client()
    resp = client.post(
        "/auth/signup",
        json={**SIGNUP, "fullName": "  Marie Curie ", "password": " Radium#1898 ", "email": " marie@example.com "},
    )
    assert resp.status_code == 201
    assert identity.passwords == {"marie@example.com": "Radium#1898"}
    assert records.rows[0].name == "Marie Curie"


@pytest.mark.parametrize(
    "kind, status_code, detail",
    [
        (ErrorKind.GENERIC, 502, "Unable to sign in at this time. Please try again later."),
        (ErrorKind.RATE_LIMITED, 429, "Too many sign-in attempts. Please wait a few minutes and try again."),
        (ErrorKind.WEAK_PASSWORD, 401, "Invalid credentials"),
        (ErrorKind.SERVER, 503, "Authentication service is temporarily down. Please try again in a few minutes."),
    ],
)
def test_login_failures_use_sign_in_wording(kind, status_code, detail):
    client, _, _ = _client(identity=FakeIdentity(sign_in_error=IdentityServiceError(kind)))
    resp = client.post("/auth/login", json={"email": "marie@example.com", "password": "Radium#1898"})
    assert resp.status_code == status_code
    assert resp.json()["detail"] == detail


def _request(host, path="/auth/login", app=None):
    return Request({
        "app": app,
        "type": "http",
        "method": "POST",
        "scheme": "http",
        "path": path,
        "root_path": "",
        "query_string": b"",
        "headers": [],
        "client": (host, 50000) if host else None,
        "server": ("testserver", 80),
    })


@pytest.mark.asyncio
async def test_endpoint_limiter_drops_idle_callers(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(deps, "time", SimpleNamespace(time=clock))
    guard = rate_limit(5, 60)
    await guard(_request("10.0.0.1"))
    await guard(_request("10.0.0.2"))
    assert len(guard.state["buckets"]) == 2

    clock.advance(61)
    await guard(_request("10.0.0.3"))
    assert list(guard.state["buckets"]) == [("/auth/login", "10.0.0.3")]


@pytest.mark.asyncio
async def test_client_ip_falls_back_to_remote_lookup_without_peer():
    lookup = RecordingLookup()
    app = SimpleNamespace(state=SimpleNamespace(services=SimpleNamespace(ip_lookup=lookup)))
    assert await deps.client_ip(_request(None, "/api/client-ip", app=app)) == "198.51.100.1"
    assert lookup.calls == 1

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from conftest import PASSWORD, FrozenClock, register_payload

from accounts.app import create_app
from accounts.core.tokens import TokenService

AUTH = "/api/v1/auth"


def _register(client, email="a@x.com", **overrides):
    response = client.post(f"{AUTH}/register", json=register_payload(email, **overrides))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_login_and_profile(client):
    data = _register(client, "a@x.com")
    assert set(data["tokens"]) == {"accessToken", "refreshToken"}
    assert data["user"]["email"] == "a@x.com"
    assert data["emailSent"] is True

    login = client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": PASSWORD})
    assert login.status_code == 200
    body = login.json()
    assert body["message"] == "Login successful"
    assert "accessToken" in login.cookies and "refreshToken" in login.cookies

    client.cookies.clear()
    profile = client.get(f"{AUTH}/profile", headers=_bearer(body["data"]["tokens"]["accessToken"]))
    assert profile.status_code == 200
    user = profile.json()["data"]["user"]
    assert user["email"] == "a@x.com"
    assert user["lastLogin"] is not None
    assert "password" not in user and "passwordHash" not in user


def test_register_response_never_carries_secrets(client):
    data = _register(client, "s@x.com")

    for key in ("password", "passwordHash", "emailVerificationToken", "passwordResetToken"):
        assert key not in data["user"]


def test_wrong_password_and_unknown_email_look_identical(client):
    _register(client, "b@x.com")

    wrong = client.post(f"{AUTH}/login", json={"email": "b@x.com", "password": "Wrong123!@#"})
    unknown = client.post(f"{AUTH}/login", json={"email": "ghost@x.com", "password": PASSWORD})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()
    assert wrong.json()["error"] == "InvalidCredentials"
    assert wrong.json()["message"] == "Invalid email or password"


def test_duplicate_registration_is_conflict(client):
    _register(client, "dup@x.com")

    response = client.post(f"{AUTH}/register", json=register_payload("DUP@x.com"))

    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateEmail"


def test_register_validation_errors_list_fields(client):
    response = client.post(
        f"{AUTH}/register",
        json=register_payload("bad-email", password="weak", firstName="A"),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert body["error"] == "ValidationError"
    fields = {detail["field"] for detail in body["details"]}
    assert {"email", "password", "firstName"} <= fields


def test_refresh_via_body_and_via_cookie(client):
    tokens = _register(client, "r@x.com")["tokens"]

    client.cookies.clear()
    by_body = client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert by_body.status_code == 200
    assert set(by_body.json()["data"]["tokens"]) == {"accessToken", "refreshToken"}

    # refresh sets cookies, so the next call needs no body
    by_cookie = client.post(f"{AUTH}/refresh-token")
    assert by_cookie.status_code == 200


def test_refresh_rejects_missing_and_bad_tokens(client):
    tokens = _register(client, "rr@x.com")["tokens"]
    client.cookies.clear()

    missing = client.post(f"{AUTH}/refresh-token")
    assert missing.status_code == 401
    assert missing.json()["error"] == "MissingToken"

    for token in ("garbage", tokens["accessToken"]):
        response = client.post(f"{AUTH}/refresh-token", json={"refreshToken": token})
        assert response.status_code == 401
        assert response.json()["error"] == "InvalidRefreshToken"


def test_verify_email_link_works_once(client, notifier):
    _register(client, "v@x.com")
    token = notifier.verifications[-1][1]

    first = client.get(f"{AUTH}/verify-email/{token}")
    assert first.status_code == 200
    assert first.json()["message"] == "Email verified successfully"

    second = client.get(f"{AUTH}/verify-email/{token}")
    assert second.status_code == 400
    assert second.json()["error"] == "InvalidVerificationToken"


def test_forgot_password_is_silent_about_unknown_emails(client, notifier):
    _register(client, "f@x.com")

    known = client.post(f"{AUTH}/forgot-password", json={"email": "f@x.com"})
    unknown = client.post(f"{AUTH}/forgot-password", json={"email": "nobody@x.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [email for email, _ in notifier.resets] == ["f@x.com"]


def test_reset_password_flow(client, notifier):
    _register(client, "p@x.com")
    client.post(f"{AUTH}/forgot-password", json={"email": "p@x.com"})
    token = notifier.resets[-1][1]

    reset = client.post(f"{AUTH}/reset-password", json={"token": token, "password": "Fresh!Pass9"})
    assert reset.status_code == 200

    reused = client.post(f"{AUTH}/reset-password", json={"token": token, "password": "Fresh!Pass9"})
    assert reused.status_code == 400
    assert reused.json()["error"] == "InvalidOrExpiredToken"

    login = client.post(f"{AUTH}/login", json={"email": "p@x.com", "password": "Fresh!Pass9"})
    assert login.status_code == 200


def test_reset_password_with_unknown_token(client):
    response = client.post(f"{AUTH}/reset-password", json={"token": "0" * 64, "password": "Fresh!Pass9"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired reset token"


def test_profile_requires_a_token(client):
    client.cookies.clear()

    missing = client.get(f"{AUTH}/profile")
    assert missing.status_code == 401
    assert missing.json()["error"] == "MissingToken"

    invalid = client.get(f"{AUTH}/profile", headers=_bearer("not.a.jwt"))
    assert invalid.status_code == 401
    assert invalid.json()["error"] == "InvalidToken"


def test_deactivation_blocks_login_and_existing_tokens(client, repo):
    tokens = _register(client, "d@x.com")["tokens"]
    client.cookies.clear()
    account = repo.find_by_email("d@x.com")
    repo.update(account.id, {"is_active": False})

    profile = client.get(f"{AUTH}/profile", headers=_bearer(tokens["accessToken"]))
    assert profile.status_code == 401
    assert profile.json()["error"] == "AccountDeactivated"

    login = client.post(f"{AUTH}/login", json={"email": "d@x.com", "password": PASSWORD})
    assert login.status_code == 401
    assert login.json()["error"] == "AccountDeactivated"


def test_deleted_account_token_reports_user_gone(client, repo):
    tokens = _register(client, "gone@x.com")["tokens"]
    client.cookies.clear()
    repo.soft_delete(repo.find_by_email("gone@x.com").id)

    response = client.get(f"{AUTH}/profile", headers=_bearer(tokens["accessToken"]))

    assert response.status_code == 401
    assert response.json()["error"] == "UserGone"


def test_logout_clears_auth_cookies(client):
    _register(client, "o@x.com")
    client.post(f"{AUTH}/login", json={"email": "o@x.com", "password": PASSWORD})

    response = client.post(f"{AUTH}/logout")

    assert response.status_code == 200
    assert response.json()["message"] == "Logout successful"
    cleared = [value.lower() for value in response.headers.get_list("set-cookie")]
    assert any(value.startswith("accesstoken=") and "max-age=0" in value for value in cleared)
    assert any(value.startswith("refreshtoken=") and "max-age=0" in value for value in cleared)


def test_health_headers_and_unknown_route(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json() == {"status": "ok"}
    assert health.headers["X-Frame-Options"] == "DENY"
    assert health.headers["X-Content-Type-Options"] == "nosniff"

    missing = client.get("/api/v1/nope")
    assert missing.status_code == 404
    assert missing.json() == {"status": "fail", "error": "NotFound", "message": "Route /api/v1/nope not found"}


def test_auth_endpoints_are_rate_limited(settings, notifier):
    limited = dataclasses.replace(settings, auth_rate_limit=2)
    app = create_app(limited, notifier=notifier)
    payload = {"email": "nobody@x.com", "password": PASSWORD}

    with TestClient(app) as client:
        statuses = [client.post(f"{AUTH}/login", json=payload).status_code for _ in range(3)]
        blocked = client.post(f"{AUTH}/login", json=payload)

    assert statuses == [401, 401, 429]
    assert blocked.json()["error"] == "TooManyRequests"


def test_expired_access_token_is_rejected_by_the_gate(client, repo, settings):
    _register(client, "late@x.com")
    client.cookies.clear()
    account_id = repo.find_by_email("late@x.com").id
    long_ago = datetime.now(timezone.utc) - timedelta(days=30)
    stale = TokenService(settings, clock=lambda: long_ago).issue(account_id)

    response = client.get(f"{AUTH}/profile", headers=_bearer(stale.access_token))

    assert response.status_code == 401
    assert response.json()["error"] == "TokenExpired"


def test_injected_clock_governs_issue_and_verification(settings, notifier):
    clock = FrozenClock(datetime.now(timezone.utc) - timedelta(days=8))
    app = create_app(settings, notifier=notifier, clock=clock)

    with TestClient(app) as client:
        tokens = _register(client, "shifted@x.com")["tokens"]
        client.cookies.clear()
        fresh = client.get(f"{AUTH}/profile", headers=_bearer(tokens["accessToken"]))

        clock.advance(days=7, seconds=1)
        later = client.get(f"{AUTH}/profile", headers=_bearer(tokens["accessToken"]))

    assert fresh.status_code == 200
    assert later.status_code == 401
    assert later.json()["error"] == "TokenExpired"


def test_unexpected_errors_hide_details_unless_enabled(settings, notifier):
    def boom():
        raise RuntimeError("database password is hunter2")

    bodies = {}
    for expose in (False, True):
        app = create_app(dataclasses.replace(settings, expose_error_details=expose), notifier=notifier)
        app.add_api_route("/boom", boom)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")
        assert response.status_code == 500
        bodies[expose] = response.json()

    assert bodies[False] == {"status": "error", "error": "InternalError", "message": "Internal server error"}
    assert bodies[True]["message"] == "database password is hunter2"

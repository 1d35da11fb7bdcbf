from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Make the accounts package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from accounts.app import create_app  # noqa: E402
from accounts.core import config as core_config  # noqa: E402
from accounts.core import rate_limiter  # noqa: E402
from accounts.core import security  # noqa: E402
from accounts.core.tokens import TokenService  # noqa: E402
from accounts.db import models  # noqa: E402
from accounts.db import session as db_session  # noqa: E402
from accounts.repositories.account_repository import AccountRepository  # noqa: E402
from accounts.services.auth_service import AuthService  # noqa: E402
from accounts.services.user_service import UserService  # noqa: E402

PASSWORD = "Test123!@#"

TEST_ENV = {
    "APP_ENV": "test",
    "JWT_SECRET": "test-access-secret-4f1c9a7e2b8d4c6a9e1f3b5d7c9a1e3f",
    "JWT_REFRESH_SECRET": "test-refresh-secret-8b2d6f0a4c8e2a6c0e4a8c2e6a0c4e8a",
    "PASSWORD_HASH_TIME_COST": "1",
    "PASSWORD_HASH_MEMORY_COST": "1024",
    "AUTH_RATE_LIMIT": "0",
    "SMTP_HOST": "",
    "LOG_LEVEL": "WARNING",
}


def _clear_caches() -> None:
    core_config.get_settings.cache_clear()
    security.get_hasher.cache_clear()
    security._dummy_hash.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    rate_limiter.reset_limits()


class FakeNotifier:
    """Records outgoing emails instead of talking to SMTP."""

    def __init__(self) -> None:
        self.verifications: list[tuple[str, str]] = []
        self.resets: list[tuple[str, str]] = []
        self.fail = False

    def send_verification(self, to_email: str, token: str) -> bool:
        self.verifications.append((to_email, token))
        if self.fail:
            raise ConnectionError("smtp unavailable")
        return True

    def send_password_reset(self, to_email: str, token: str) -> bool:
        self.resets.append((to_email, token))
        if self.fail:
            raise ConnectionError("smtp unavailable")
        return True


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point the app at a temporary SQLite file and reset cached settings/engine."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    _clear_caches()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    _clear_caches()


@pytest.fixture()
def settings(db_env):
    return core_config.get_settings()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def clock():
    return FrozenClock(datetime.now(timezone.utc))


@pytest.fixture()
def repo(db_env):
    return AccountRepository()


@pytest.fixture()
def tokens(settings, clock):
    return TokenService(settings, clock)


@pytest.fixture()
def auth_service(repo, tokens, notifier, settings, clock):
    return AuthService(repository=repo, tokens=tokens, notifier=notifier, settings=settings, clock=clock)


@pytest.fixture()
def user_service(repo):
    return UserService(repository=repo)


@pytest.fixture()
def client(settings, notifier):
    app = create_app(settings, notifier=notifier)
    with TestClient(app) as test_client:
        yield test_client


def make_draft(email: str = "a@x.com", **overrides) -> dict:
    draft = {"email": email, "password": PASSWORD, "first_name": "Ada", "last_name": "Byron"}
    draft.update(overrides)
    return draft


def register_payload(email: str = "a@x.com", **overrides) -> dict:
    payload = {"email": email, "password": PASSWORD, "firstName": "Ada", "lastName": "Byron"}
    payload.update(overrides)
    return payload

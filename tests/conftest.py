import os
import sys
from pathlib import Path

# Configure the environment before anything reads it
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
BACKEND = ROOT / "backend"
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

from fastapi.testclient import TestClient  # noqa: E402

from authflow.config import Settings  # noqa: E402
from authflow.database import build_engine, build_session_factory, create_tables  # noqa: E402
from authflow.errors import DeliveryError  # noqa: E402
from authflow.main import create_app  # noqa: E402
from authflow.security import BcryptHasher  # noqa: E402
from authflow.service import build_auth_service  # noqa: E402
from authflow.store import CredentialStore  # noqa: E402
from authflow.tokens import TokenService  # noqa: E402

SECRET = "test-secret-key-for-testing-only-do-not-use-in-production"


class RecordingMailer:
    """Mailer double that keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def _deliver(self, kind, **fields):
        if self.fail:
            raise DeliveryError(f"Failed to send {kind} email")
        self.sent.append({"kind": kind, **fields})

    def send_otp(self, email, name, code):
        self._deliver("otp", email=email, name=name, code=code)

    def send_welcome(self, email, name):
        self._deliver("welcome", email=email, name=name)

    def send_password_reset(self, email, url):
        self._deliver("password_reset", email=email, url=url)

    def of_kind(self, kind):
        return [m for m in self.sent if m["kind"] == kind]

    def last_code(self):
        return self.of_kind("otp")[-1]["code"]


@pytest.fixture
def settings():
    return Settings(
        secret_key=SECRET,
        environment="development",
        bcrypt_rounds=4,
        database_url="sqlite://",
        client_base_url="http://client.test/",
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.database_url)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return CredentialStore(db)


@pytest.fixture
def open_store(tmp_path):
    """Open independent stores on one file-backed database, one session each."""
    engine = build_engine(f"sqlite:///{tmp_path / 'authflow.db'}")
    create_tables(engine)
    factory = build_session_factory(engine)
    sessions = []

    def _open():
        session = factory()
        sessions.append(session)
        return CredentialStore(session)

    yield _open
    for session in sessions:
        session.close()
    engine.dispose()


@pytest.fixture
def hasher():
    return BcryptHasher(rounds=4)


@pytest.fixture
def tokens(settings):
    return TokenService(settings.secret_key, settings.access_token_ttl, settings.refresh_token_ttl)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def service(db, settings, tokens, hasher, mailer):
    return build_auth_service(db, settings, tokens, hasher, mailer)


@pytest.fixture
def verified_user(service, mailer):
    """Sign up alice and verify the account with the mailed code."""
    service.signup("alice", "a@x.com", "password1")
    return service.verify_otp(mailer.last_code())


@pytest.fixture
def app(settings, engine, mailer):
    return create_app(settings=settings, engine=engine, mailer=mailer)


@pytest.fixture
def client(app):
    return TestClient(app)

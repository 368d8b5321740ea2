"""Pytest configuration and fixtures."""

import os
import secrets
import sys

import pytest

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

# For unit tests, set mock values ONLY if not running integration tests
if not os.environ.get("RUN_INTEGRATION"):
    os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
    os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
    os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")
    os.environ.setdefault("JWT_SECRET_KEY", _TEST_JWT_SECRET)
    os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
else:
    # For integration tests, load from .env
    from pathlib import Path

    from dotenv import load_dotenv

    env_path = Path(__file__).parent.parent / ".env"

    # Safety check: require explicit confirmation for integration tests
    if not os.environ.get("CONFIRM_INTEGRATION_CREDENTIALS"):
        print("\n" + "=" * 70, file=sys.stderr)
        print("WARNING: Integration tests will use REAL credentials from .env", file=sys.stderr)
        print("   Set CONFIRM_INTEGRATION_CREDENTIALS=yes to proceed.", file=sys.stderr)
        print("=" * 70 + "\n", file=sys.stderr)
        pytest.exit(
            "Integration tests require CONFIRM_INTEGRATION_CREDENTIALS=yes",
            returncode=1,
        )

    load_dotenv(env_path, override=True)

from ethiolearn.auth import AuthContext, create_access_token  # noqa: E402
from ethiolearn.config import get_settings  # noqa: E402
from ethiolearn.main import app  # noqa: E402
from ethiolearn.models import Role  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from tests.fakes import FakeSupabase  # noqa: E402

# Clearly fake IDs that cannot collide with real auth users
LEARNER_ID = "usr_TEST_LEARNER_0001"
OTHER_LEARNER_ID = "usr_TEST_LEARNER_0002"
INSTRUCTOR_ID = "usr_TEST_INSTRUCTOR_01"
EMPLOYER_ID = "usr_TEST_EMPLOYER_0001"
OTHER_EMPLOYER_ID = "usr_TEST_EMPLOYER_0002"
ADMIN_ID = "usr_TEST_ADMIN_000001"


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def fake_db(monkeypatch):
    """Route every Supabase call in the app to an in-memory fake."""
    db = FakeSupabase()
    monkeypatch.setattr("ethiolearn.database._supabase_client", db)
    return db


@pytest.fixture
def client(fake_db):
    """Create a test client."""
    return TestClient(app)


def make_headers(user_id: str, role: Role | str | None) -> dict:
    """Auth headers with a token for the given user and role."""
    token = create_access_token(get_settings(), user_id=user_id, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def learner_headers():
    return make_headers(LEARNER_ID, Role.learner)


@pytest.fixture
def other_learner_headers():
    return make_headers(OTHER_LEARNER_ID, Role.learner)


@pytest.fixture
def instructor_headers():
    return make_headers(INSTRUCTOR_ID, Role.instructor)


@pytest.fixture
def employer_headers():
    return make_headers(EMPLOYER_ID, Role.employer)


@pytest.fixture
def other_employer_headers():
    return make_headers(OTHER_EMPLOYER_ID, Role.employer)


@pytest.fixture
def admin_headers():
    return make_headers(ADMIN_ID, Role.admin)


@pytest.fixture
def learner():
    return AuthContext(user_id=LEARNER_ID, role=Role.learner)


@pytest.fixture
def other_learner():
    return AuthContext(user_id=OTHER_LEARNER_ID, role=Role.learner)


@pytest.fixture
def instructor():
    return AuthContext(user_id=INSTRUCTOR_ID, role=Role.instructor)


@pytest.fixture
def employer():
    return AuthContext(user_id=EMPLOYER_ID, role=Role.employer)


@pytest.fixture
def other_employer():
    return AuthContext(user_id=OTHER_EMPLOYER_ID, role=Role.employer)


@pytest.fixture
def admin():
    return AuthContext(user_id=ADMIN_ID, role=Role.admin)


@pytest.fixture
def course(fake_db):
    """A 500 ETB course with a stored PDF."""
    fake_db.storage.objects.setdefault("course-pdfs", {})["material.pdf"] = b"%PDF-1.4 course"
    return fake_db.seed(
        "courses",
        title="Intro to Python",
        description="Learn the basics",
        price=500,
        instructor_id=INSTRUCTOR_ID,
        phone_number="+251912345678",
        pdf_storage_path="material.pdf",
    )


@pytest.fixture
def job(fake_db):
    """A job posted by EMPLOYER_ID."""
    return fake_db.seed(
        "jobs",
        title="Software Developer",
        company="Addis Tech",
        location="Addis Ababa",
        requirements="Python, SQL",
        description=None,
        salary="30000 ETB",
        employer_id=EMPLOYER_ID,
    )


@pytest.fixture
def profiles(fake_db):
    """Profile rows (with emails) for the test users."""
    users = [
        (LEARNER_ID, "learner@example.com", "learner"),
        (OTHER_LEARNER_ID, "other.learner@example.com", "learner"),
        (INSTRUCTOR_ID, "instructor@example.com", "instructor"),
        (EMPLOYER_ID, "employer@example.com", "employer"),
        (ADMIN_ID, "admin@example.com", "admin"),
    ]
    return [fake_db.seed("profiles", id=uid, email=email, role=role) for uid, email, role in users]

"""
Shared pytest fixtures for the placement access engine test suite.
Every test gets its own in-memory SQLite database; no external services
are needed. Factory helpers live in tests/factories.py.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)


import pytest
from fastapi.testclient import TestClient

from factories import (
    TEST_ADMIN_TOKEN,
    TEST_BCRYPT_ROUNDS,
    make_org_admin,
    make_platform_admin,
)

from app import create_app
from config import load_settings
from core.database import Database
from schemas.status import OrganizationType
from utils.contract_manager import ContractManager
from utils.invitation_manager import InvitationManager
from utils.notification_manager import NotificationManager
from utils.user_manager import UserManager
from utils.verification_manager import VerificationManager


# ─── infrastructure ───────────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return load_settings(
        database_url="sqlite://",
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        admin_token=TEST_ADMIN_TOKEN,
        log_level="WARNING",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(settings, database):
    with TestClient(create_app(settings, database)) as test_client:
        yield test_client


# ─── managers ─────────────────────────────────────────────────────────────────

@pytest.fixture
def notifications(db):
    return NotificationManager(db)


@pytest.fixture
def users(db):
    return UserManager(db, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def verifications(db, notifications):
    return VerificationManager(db, notifications=notifications)


@pytest.fixture
def invitations(db, users, notifications):
    return InvitationManager(db, users=users, notifications=notifications)


@pytest.fixture
def contracts(db, notifications):
    return ContractManager(db, notifications=notifications)


# ─── seeded records ───────────────────────────────────────────────────────────

@pytest.fixture
def platform_admin(db):
    return make_platform_admin(db)


@pytest.fixture
def verified_rto(db):
    """(organization, admin) of a verified RTO."""
    return make_org_admin(db, OrganizationType.RTO)


@pytest.fixture
def verified_provider(db):
    """(organization, admin) of a verified provider."""
    return make_org_admin(db, OrganizationType.PROVIDER)

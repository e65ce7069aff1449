"""Pytest configuration and shared fixtures"""

import os

# Settings are read at import time; tests never talk to the configured database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from datetime import date
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from fastapi.testclient import TestClient
from jose import jwt

from poolbook.config import settings
from poolbook.database import Base, get_db
from poolbook.main import app
from poolbook.models import (
    Organization,
    User,
    UserRole,
    PoolResource,
    ResourceStatus,
    EphemeralResource,
    MeetingRoom,
)


@pytest.fixture(scope="function")
def test_engine(tmp_path):
    """File-backed SQLite engine, shared by all sessions of one test"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'poolbook_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Session factory for tests that need several independent sessions"""
    return sessionmaker(
        bind=test_engine,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a database session for testing"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(autouse=True)
def service_today(monkeypatch) -> date:
    """Pin the catalog's current day so the 2025-06-10 extra resources are still offered"""
    today = date(2025, 6, 10)
    monkeypatch.setattr("poolbook.services.resource_catalog.utc_today", lambda: today)
    return today


def _add(db_session: Session, obj):
    db_session.add(obj)
    db_session.commit()
    db_session.refresh(obj)
    return obj


@pytest.fixture
def sample_organization(db_session: Session) -> Organization:
    """Create a sample organization with both sections enabled"""
    return _add(
        db_session,
        Organization(name="Voorbeeldbedrijf BV", code="DEMO", enabled_sections=["cars", "meetings"]),
    )


@pytest.fixture
def other_organization(db_session: Session) -> Organization:
    """Create a second, unrelated organization"""
    return _add(
        db_session,
        Organization(name="Ander Bedrijf", code="OTHER", enabled_sections=["cars", "meetings"]),
    )


@pytest.fixture
def sample_member(db_session: Session, sample_organization: Organization) -> User:
    """Create a member of the sample organization"""
    return _add(
        db_session,
        User(
            email="lisa@example.com",
            name="Lisa van den Berg",
            role=UserRole.MEMBER.value,
            organization_id=sample_organization.id,
        ),
    )


@pytest.fixture
def second_member(db_session: Session, sample_organization: Organization) -> User:
    """Create another member of the sample organization"""
    return _add(
        db_session,
        User(
            email="mark@example.com",
            name="Mark Janssen",
            role=UserRole.MEMBER.value,
            organization_id=sample_organization.id,
        ),
    )


@pytest.fixture
def sample_admin(db_session: Session, sample_organization: Organization) -> User:
    """Create an admin of the sample organization"""
    return _add(
        db_session,
        User(
            email="admin@example.com",
            name="Demo Gebruiker",
            role=UserRole.ADMIN.value,
            organization_id=sample_organization.id,
        ),
    )


@pytest.fixture
def sample_pool_resource(db_session: Session) -> PoolResource:
    """Create a shared pool vehicle"""
    return _add(
        db_session,
        PoolResource(name="Toyota Aygo", license_plate="S-551-FT", status=ResourceStatus.AVAILABLE.value),
    )


@pytest.fixture
def second_pool_resource(db_session: Session) -> PoolResource:
    """Create another shared pool vehicle"""
    return _add(
        db_session,
        PoolResource(name="Peugeot 107", license_plate="Z-365-HK", status=ResourceStatus.AVAILABLE.value),
    )


@pytest.fixture
def sample_room(db_session: Session, sample_organization: Organization) -> MeetingRoom:
    """Create a meeting room owned by the sample organization"""
    return _add(
        db_session,
        MeetingRoom(organization_id=sample_organization.id, name="Vergaderruimte A", capacity=8),
    )


@pytest.fixture
def sample_ephemeral_resource(
    db_session: Session, sample_organization: Organization
) -> EphemeralResource:
    """Create an extra vehicle offered on 2025-06-10"""
    return _add(
        db_session,
        EphemeralResource(
            organization_id=sample_organization.id,
            label="Huurauto",
            day=date(2025, 6, 10),
        ),
    )


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create test client with database override"""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def create_token(user: User) -> str:
    """Sign an identity token the way the login service does"""
    return jwt.encode(
        {
            "sub": str(user.id),
            "organization_id": str(user.organization_id),
            "role": user.role,
        },
        settings.jwt_signing_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def member_headers(sample_member: User) -> dict:
    """Authentication headers for the sample member"""
    return {"Authorization": f"Bearer {create_token(sample_member)}"}


@pytest.fixture
def second_member_headers(second_member: User) -> dict:
    """Authentication headers for another member"""
    return {"Authorization": f"Bearer {create_token(second_member)}"}


@pytest.fixture
def admin_headers(sample_admin: User) -> dict:
    """Authentication headers for the sample admin"""
    return {"Authorization": f"Bearer {create_token(sample_admin)}"}

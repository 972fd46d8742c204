"""
Shared fixtures: in-memory SQLite, users per role with tokens, and a
TestClient wired to the same session.

Environment is set before the app is imported so settings pick it up.
"""
import os
from datetime import date, timedelta
from decimal import Decimal

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REORDER_SWEEP_ENABLED", "false")
os.environ["GROQ_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401 - register tables
from app.api.deps import get_db, get_completion_client
from app.core.permissions import UserRole
from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.session import enable_sqlite_foreign_keys
from app.main import app
from app.models.medicine import Medicine
from app.models.user import User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
event.listen(engine, "connect", enable_sqlite_foreign_keys)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

TEST_PASSWORD = "secret123"


class FakeCompletionClient:
    """Stands in for the Groq client; records what it was sent."""

    def __init__(self, reply="Paracetamol is in stock."):
        self.reply = reply
        self.calls = []

    def complete(self, messages):
        self.calls.append(messages)
        return self.reply


@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_completion_client] = lambda: None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    hashed = get_password_hash(TEST_PASSWORD)

    def _make(role=UserRole.STAFF, email=None, is_active=True):
        user = User(
            name=f"{role.value.title()} User",
            email=email or f"{role.value}@pharmacy.example.com",
            hashed_password=hashed,
            role=role.value,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def auth_header(user):
    token = create_access_token(subject=str(user.id), email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_header


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def pharmacist(make_user):
    return make_user(UserRole.PHARMACIST)


@pytest.fixture
def staff(make_user):
    return make_user(UserRole.STAFF)


@pytest.fixture
def make_medicine(db):
    def _make(**overrides):
        fields = dict(
            name="Paracetamol 500mg",
            generic_name="Paracetamol",
            brand_name="Dolo",
            category="analgesic",
            description="Pain and fever relief",
            manufacturer="Micro Labs",
            batch_number="B-001",
            expiry_date=date.today() + timedelta(days=365),
            quantity=100,
            unit="tablets",
            price_per_unit=Decimal("2.50"),
            reorder_threshold=10,
            priority="medium",
            is_active=True,
        )
        fields.update(overrides)
        medicine = Medicine(**fields)
        db.add(medicine)
        db.commit()
        db.refresh(medicine)
        return medicine

    return _make

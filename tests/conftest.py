import os
import sys
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_KEY"] = "test-secret"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="agency-logs-"))
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import crud
from app.db.session import get_db, init_db
from app.main import app
from app.services.auth_service import create_access_token, hash_password

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def fresh_db():
    from app.models.base import Base
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(first="Dana", last="Levi", is_agent=False, is_admin=False, email=None, phone=None):
        counter["n"] += 1
        n = counter["n"]
        user = crud.create_user(db, {
            "name": {"first": first, "last": last},
            "phone": phone or f"05000000{n:02d}",
            "email": email or f"user{n}@example.com",
            "password": hash_password("secret123"),
            "is_agent": is_agent,
            "is_admin": is_admin,
        })
        return user

    return _make_user


def auth_headers(user) -> dict:
    return {"x-auth-token": create_access_token(user.id, user.is_agent, user.is_admin)}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def session_factory():
    return TestingSessionLocal

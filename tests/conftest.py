"""
Pytest configuration and fixtures for FoodDiscover API tests.
"""
import os
import shutil
import tempfile

# Settings are read once per process, so the environment is fixed before
# anything from the package is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="fooddiscover-uploads-")

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fooddiscover.auth import create_access_token
from fooddiscover.config import get_settings
from fooddiscover.database import Base, get_db
from fooddiscover.main import app
from fooddiscover.models.user import User

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 64
WEBP_BYTES = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 64


def get_test_db():
    """Get the shared test database session."""
    try:
        yield _test_session
    finally:
        pass


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    Base.metadata.create_all(bind=engine)
    _test_session = TestingSessionLocal()
    app.dependency_overrides[get_db] = get_test_db

    yield _test_session

    app.dependency_overrides.pop(get_db, None)
    _test_session.close()
    _test_session = None
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def upload_dir():
    """The upload directory, emptied after each test."""
    path = Path(get_settings().upload_dir)
    yield path
    for child in path.iterdir():
        if child.is_dir():
            shutil.rmtree(child)
        else:
            child.unlink()


@pytest.fixture(scope="function")
def client(db, upload_dir):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


def make_user(db, username="testuser", email="test@example.com", password="testpassword123", **fields):
    user = User(
        first_name=fields.pop("first_name", "Test"),
        last_name=fields.pop("last_name", "User"),
        email=email,
        username=username,
        **fields,
    )
    user.set_password(password, get_settings())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, get_settings())}"}


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test user."""
    return make_user(db)


@pytest.fixture(scope="function")
def other_user(db):
    """A second, unrelated account."""
    return make_user(db, username="otheruser", email="other@example.com", first_name="Olivia")


@pytest.fixture(scope="function")
def auth_token(test_user):
    """Get an auth token for the test user."""
    return create_access_token(test_user.id, get_settings())


@pytest.fixture(scope="function")
def auth_headers(auth_token):
    """Get auth headers for the test user."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture(scope="function")
def food_form():
    """A complete, valid listing form."""
    return {
        "title": "Masala Dosa",
        "description": "Crispy rice crepe with potato filling",
        "cuisineType": "South Indian",
        "vendorName": "Dosa Corner",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "price": "120",
        "priceRange": "₹₹",
        "tags": "breakfast, crispy, ,vegetarian",
        "vegetarian": "true",
        "calories": "350",
    }


def image_files(count=1, content=PNG_BYTES, name="dish.png", mime="image/png"):
    return [("images", (f"{i}_{name}", content, mime)) for i in range(count)]

"""
Tests for applications built around explicitly passed settings.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect

from fooddiscover.config import Settings, get_settings
from fooddiscover.limiter import configure_limiter
from fooddiscover.main import create_app
from fooddiscover.models.user import User


@pytest.fixture
def app_settings(tmp_path):
    def build(**overrides):
        values = {
            "database_url": f"sqlite:///{tmp_path / 'injected.db'}",
            "upload_dir": str(tmp_path / "uploads"),
            "bcrypt_rounds": 5,
        }
        values.update(overrides)
        return Settings(**values)

    yield build
    # The limiter is shared by every app in the process
    configure_limiter(get_settings())


class TestCreateApp:
    """Test that create_app wires its own settings into every component."""

    def test_tables_created_in_configured_database(self, app_settings, tmp_path):
        settings = app_settings()
        with TestClient(create_app(settings)):
            pass

        assert (tmp_path / "injected.db").is_file()
        tables = inspect(create_engine(settings.database_url)).get_table_names()
        assert {"users", "foods"} <= set(tables)

    def test_requests_use_configured_database_and_rounds(self, app_settings):
        settings = app_settings()
        app = create_app(settings)
        with TestClient(app) as client:
            response = client.post(
                "/api/auth/register",
                json={
                    "firstName": "Injected",
                    "lastName": "User",
                    "email": "injected@example.com",
                    "username": "injected",
                    "password": "securepassword123",
                },
            )
            assert response.status_code == 201

        db = app.state.session_factory()
        try:
            user = db.query(User).filter(User.username == "injected").one()
            assert user.hashed_password.startswith("$2b$05$")
        finally:
            db.close()

    def test_settings_dependency_resolves_to_passed_object(self, app_settings):
        settings = app_settings(app_name="Injected API")
        app = create_app(settings)
        assert app.state.settings is settings
        assert app.title == "Injected API"

    def test_rate_limits_follow_settings(self, app_settings):
        settings = app_settings(rate_limit_enabled=True, login_rate_limit="2/minute")
        credentials = {"email": "nobody@example.com", "password": "whatever123"}

        with TestClient(create_app(settings)) as client:
            for _ in range(2):
                assert client.post("/api/auth/login", json=credentials).status_code == 401
            response = client.post("/api/auth/login", json=credentials)

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "message": "Too many requests. Please try again later.",
        }

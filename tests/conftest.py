"""
Shared fixtures: every test gets its own app, backed by a temporary
SQLite database and a temporary uploads folder.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from filevault.core.config import Settings
from filevault.main import create_app
from filevault.models.user import User


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        uploads_dir=str(tmp_path / "uploads"),
        secret_key="test-secret-key",
        storage_backend="local",
        log_file=None,
        log_level="DEBUG",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def users(app):
    """Callable returning every stored User, straight from the database."""

    def _users():
        db = app.state.session_factory()
        try:
            return db.query(User).all()
        finally:
            db.close()

    return _users


def signup(client, username, password="s3cret", confirm=None, **kwargs):
    return client.post(
        "/signup",
        data={
            "username": username,
            "password": password,
            "confirmPassword": password if confirm is None else confirm,
        },
        **kwargs,
    )


def login(client, username, password="s3cret", **kwargs):
    return client.post("/login", data={"username": username, "password": password}, **kwargs)


def upload(client, filename, content=b"%PDF-1.4 test", content_type="application/pdf", **kwargs):
    return client.post("/upload", files={"file": (filename, content, content_type)}, **kwargs)


@pytest.fixture
def logged_in(client):
    """Client with user ``alice`` signed up and logged in."""
    signup(client, "alice")
    login(client, "alice")
    return client

from unittest.mock import Mock

import pytest

from conftest import login, signup, upload

from filevault.core.errors import StoreError
from filevault.services.storage import LocalStorage, get_storage


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/home"),
        ("get", "/search?keyword=x"),
        ("get", "/search"),
        ("get", "/view/Report.pdf"),
        ("get", "/uploads/alice/Report.pdf"),
    ],
)
def test_protected_routes_redirect_anonymous_users(client, method, path):
    response = getattr(client, method)(path, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_upload_requires_login(client, settings, tmp_path):
    response = upload(client, "Report.pdf", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert not any((tmp_path / "uploads").iterdir())


def test_upload_lands_in_own_folder_only(logged_in, tmp_path):
    response = upload(logged_in, "Report.pdf", b"%PDF-1.4 alice", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/home"
    assert (tmp_path / "uploads" / "alice" / "Report.pdf").read_bytes() == b"%PDF-1.4 alice"

    home = logged_in.get("/home").text
    assert "File uploaded successfully!" in home
    assert "Report.pdf" in home

    logged_in.post("/logout")
    signup(logged_in, "bob")
    login(logged_in, "bob")
    home = logged_in.get("/home").text
    assert "Welcome, bob" in home
    assert "Report.pdf" not in home
    assert "No files found." in home


def test_upload_same_name_twice_keeps_first(logged_in, tmp_path):
    upload(logged_in, "notes.txt", b"first", "text/plain")
    response = upload(logged_in, "notes.txt", b"second", "text/plain")

    assert "already exists" in response.text
    assert (tmp_path / "uploads" / "alice" / "notes.txt").read_bytes() == b"first"


def test_search_is_case_insensitive(logged_in):
    upload(logged_in, "Report.pdf")
    upload(logged_in, "notes.txt", b"notes", "text/plain")

    response = logged_in.get("/search", params={"keyword": "report"})

    assert response.status_code == 200
    assert "Report.pdf" in response.text
    assert "notes.txt" not in response.text


def test_search_without_keyword_flashes_and_redirects(logged_in):
    response = logged_in.get("/search", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/home"
    assert "Search keyword is required." in logged_in.get("/home").text


def test_view_existing_file_embeds_pdf(logged_in):
    upload(logged_in, "Report.pdf", b"%PDF-1.4 body")

    response = logged_in.get("/view/Report.pdf")

    assert response.status_code == 200
    assert "<embed" in response.text
    assert 'type="application/pdf"' in response.text
    assert "/uploads/alice/Report.pdf" in response.text

    raw = logged_in.get("/uploads/alice/Report.pdf")
    assert raw.status_code == 200
    assert raw.headers["content-type"] == "application/pdf"
    assert raw.headers["content-disposition"].startswith("inline")
    assert raw.content == b"%PDF-1.4 body"


def test_view_missing_file_is_404(logged_in):
    response = logged_in.get("/view/missing.pdf")

    assert response.status_code == 404
    assert response.json() == {"detail": "File not found"}


def test_cannot_read_another_users_file(logged_in):
    upload(logged_in, "Report.pdf", b"alice only")
    logged_in.post("/logout")
    signup(logged_in, "bob")
    login(logged_in, "bob")

    assert logged_in.get("/uploads/alice/Report.pdf").status_code == 404
    assert logged_in.get("/view/Report.pdf").status_code == 404


def test_upload_without_file_part_requires_login(client):
    response = client.post("/upload", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_upload_without_file_part_flashes_and_redirects(logged_in):
    response = logged_in.post("/upload", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/home"
    assert "Please choose a file to upload." in logged_in.get("/home").text


def test_view_always_declares_pdf(logged_in):
    upload(logged_in, "notes.txt", b"plain words", "text/plain")

    response = logged_in.get("/view/notes.txt")

    assert response.status_code == 200
    assert 'type="application/pdf"' in response.text
    assert "text/plain" not in response.text


@pytest.fixture
def broken_storage(app, settings):
    """Local storage whose writes and reads fail like an unreachable backend."""
    storage = Mock(wraps=LocalStorage(settings.uploads_dir))
    storage.save.side_effect = StoreError("disk full")
    storage.read.side_effect = StoreError("disk unreadable")
    app.dependency_overrides[get_storage] = lambda: storage
    yield storage
    app.dependency_overrides.clear()


def test_upload_store_error_flashes_generic_message(logged_in, broken_storage, tmp_path):
    response = upload(logged_in, "Report.pdf", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/home"
    assert "Error during file upload" in logged_in.get("/home").text
    assert not (tmp_path / "uploads" / "alice" / "Report.pdf").exists()


def test_raw_file_store_error_redirects_home(logged_in, broken_storage):
    response = logged_in.get("/uploads/alice/Report.pdf", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/home"
    assert "Error opening file" in logged_in.get("/home").text

import io
import logging
import mimetypes
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from filevault.core.errors import NotFound, StoreError, ValidationError
from filevault.core.flash import flash, get_flashed_messages
from filevault.core.session import get_current_username
from filevault.services.storage import StorageService, get_storage

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

logger = logging.getLogger("filevault.files")


def _render_home(request: Request, username: str, files, keyword: str = ""):
    return templates.TemplateResponse(
        request,
        "home.html",
        {
            "username": username,
            "files": files,
            "keyword": keyword,
            "messages": get_flashed_messages(request, "success"),
            "errors": get_flashed_messages(request, "error"),
        },
    )


# the embed always declares a PDF; content is not inspected
EMBED_TYPE = "application/pdf"


# --- show user's files ---
@router.get("/home", response_class=HTMLResponse)
def home(request: Request, storage: StorageService = Depends(get_storage)):
    username = get_current_username(request)
    if not username:
        return RedirectResponse(url="/", status_code=303)

    try:
        files = storage.list_files(username)
    except StoreError as exc:
        logger.error("Error listing files: %s", exc, extra={"username": username})
        flash(request, "Could not load your files", "error")
        files = []
    return _render_home(request, username, files)


# --- upload a new file ---
@router.post("/upload")
def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    storage: StorageService = Depends(get_storage),
):
    username = get_current_username(request)
    if not username:
        return RedirectResponse(url="/", status_code=303)

    if file is None:
        flash(request, "Please choose a file to upload.", "error")
        return RedirectResponse(url="/home", status_code=303)

    try:
        name = storage.save(username, file.filename, file.file, file.content_type)
    except ValidationError as exc:
        flash(request, str(exc), "error")
        logger.info(
            "Upload rejected for user %s: %s", username, exc,
            extra={"username": username, "file_name": file.filename},
        )
        return RedirectResponse(url="/home", status_code=303)
    except StoreError as exc:
        flash(request, "Error during file upload", "error")
        logger.error(
            "Error during file upload: %s", exc,
            extra={"username": username, "file_name": file.filename},
        )
        return RedirectResponse(url="/home", status_code=303)

    flash(request, "File uploaded successfully!", "success")
    logger.info("File uploaded by user: %s (%s)", username, name, extra={"username": username, "file_name": name})
    return RedirectResponse(url="/home", status_code=303)


# --- search user's files by name ---
@router.get("/search", response_class=HTMLResponse)
def search(
    request: Request,
    keyword: Optional[str] = None,
    storage: StorageService = Depends(get_storage),
):
    username = get_current_username(request)
    if not username:
        return RedirectResponse(url="/", status_code=303)

    try:
        files = storage.search_files(username, keyword)
    except ValidationError as exc:
        flash(request, str(exc), "error")
        logger.info("Search rejected for user %s: %s", username, exc, extra={"username": username})
        return RedirectResponse(url="/home", status_code=303)
    except StoreError as exc:
        logger.error("Error during search: %s", exc, extra={"username": username})
        flash(request, "Error during search", "error")
        return RedirectResponse(url="/home", status_code=303)
    return _render_home(request, username, files, keyword)


# --- page embedding a file ---
@router.get("/view/{filename}", response_class=HTMLResponse)
def view_file(request: Request, filename: str, storage: StorageService = Depends(get_storage)):
    username = get_current_username(request)
    if not username:
        return RedirectResponse(url="/", status_code=303)

    try:
        location = storage.resolve_path(username, filename)
    except StoreError as exc:
        logger.error("Error during view: %s", exc, extra={"username": username, "file_name": filename})
        flash(request, "Error opening file", "error")
        return RedirectResponse(url="/home", status_code=303)
    if location is None:
        raise NotFound("File not found")

    return templates.TemplateResponse(
        request,
        "view.html",
        {"username": username, "filename": filename, "embed_type": EMBED_TYPE},
    )


# --- raw file bytes, owner only ---
@router.get("/uploads/{owner}/{filename}", name="raw_file")
def raw_file(
    request: Request,
    owner: str,
    filename: str,
    storage: StorageService = Depends(get_storage),
):
    username = get_current_username(request)
    if not username:
        return RedirectResponse(url="/", status_code=303)
    # other users' files are indistinguishable from missing ones
    if owner != username:
        raise NotFound("File not found")

    try:
        data = storage.read(username, filename)
    except StoreError as exc:
        logger.error("Error reading file: %s", exc, extra={"username": username, "file_name": filename})
        flash(request, "Error opening file", "error")
        return RedirectResponse(url="/home", status_code=303)
    if data is None:
        raise NotFound("File not found")

    return StreamingResponse(
        io.BytesIO(data),
        media_type=mimetypes.guess_type(filename)[0] or "application/octet-stream",
        headers={"Content-Disposition": f"inline; filename*=UTF-8''{quote(filename)}"},
    )

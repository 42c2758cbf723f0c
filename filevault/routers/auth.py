import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from filevault.core.errors import AuthError, StoreError, ValidationError
from filevault.core.flash import flash, get_flashed_messages
from filevault.core.session import USERNAME_KEY, establish, invalidate
from filevault.services.users import UserStore, authenticate, get_user_store, register

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

logger = logging.getLogger("filevault.auth")


@router.get("/", response_class=HTMLResponse)
def login_page(request: Request):
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "messages": get_flashed_messages(request, "success"),
            "errors": get_flashed_messages(request, "error"),
        },
    )


@router.get("/signup", response_class=HTMLResponse)
def signup_page(request: Request):
    return templates.TemplateResponse(
        request, "signup.html", {"errors": get_flashed_messages(request, "error")}
    )


@router.post("/signup")
def signup(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    store: UserStore = Depends(get_user_store),
):
    try:
        register(store, username, password, confirm_password)
    except ValidationError as exc:
        flash(request, str(exc), "error")
        logger.info("Signup rejected for user %s: %s", username, exc, extra={"username": username})
        return RedirectResponse(url="/signup", status_code=303)
    except StoreError as exc:
        logger.error("Error during signup: %s", exc, extra={"username": username})
        flash(request, "Error during signup", "error")
        return RedirectResponse(url="/signup", status_code=303)

    flash(request, "Successfully signed up! Login after signup.", "success")
    logger.info("User signed up: %s", username, extra={"username": username})
    return RedirectResponse(url="/", status_code=303)


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    store: UserStore = Depends(get_user_store),
):
    try:
        user = authenticate(store, username, password)
    except AuthError as exc:
        flash(request, str(exc), "error")
        logger.info("Failed login for user %s: %s", username, exc, extra={"username": username})
        return RedirectResponse(url="/", status_code=303)
    except StoreError as exc:
        logger.error("Error during login: %s", exc, extra={"username": username})
        flash(request, "Error during login", "error")
        return RedirectResponse(url="/", status_code=303)

    # login success → mark the session
    establish(request.session, user.name)
    logger.info("User logged in: %s", user.name, extra={"username": user.name})
    return RedirectResponse(url="/home", status_code=303)


@router.api_route("/logout", methods=["GET", "POST"])
def logout(request: Request):
    username = request.session.get(USERNAME_KEY)
    invalidate(request.session)
    flash(request, "You have been logged out.", "success")
    if username:
        logger.info("User logged out: %s", username, extra={"username": username})
    return RedirectResponse(url="/", status_code=303)

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from filevault.core.config import Settings, get_settings
from filevault.core.errors import NotFound
from filevault.core.logging import setup_logging
from filevault.models.database import Base, create_db_engine, create_session_factory
from filevault.models import user  # noqa: F401  registers the users table
from filevault.routers import auth, files
from filevault.services.storage import build_storage

BASE_DIR = Path(__file__).resolve().parent

logger = logging.getLogger("filevault")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    engine = create_db_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            Base.metadata.create_all(bind=engine)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connected successfully")
        except SQLAlchemyError:
            logger.exception("Error connecting to the database")
        logger.info("%s ready on port %s", settings.app_name, settings.port)
        yield
        engine.dispose()
        logger.info("Shutting down %s", settings.app_name)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    # explicit handles, no module-level connection state
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.storage = build_storage(settings)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_lifetime_seconds,
        same_site="lax",
        https_only=settings.session_https_only,
    )

    app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    # include our routers
    app.include_router(auth.router)
    app.include_router(files.router)

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "filevault.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()

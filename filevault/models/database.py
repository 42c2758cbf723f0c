# filevault/models/database.py
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from filevault.core.config import Settings

# Base class for models
Base = declarative_base()


def create_db_engine(settings: Settings) -> Engine:
    if settings.is_sqlite:
        # Sync endpoints run in a threadpool
        return create_engine(
            settings.database_url,
            echo=settings.database_echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# DB session dependency
def get_db(request: Request):
    """
    Provides a database session bound to the app's engine.

    The session factory lives on ``app.state`` so every app instance
    (including test apps) talks to its own database.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

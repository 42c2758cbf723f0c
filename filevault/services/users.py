# filevault/services/users.py
from typing import Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from filevault.core.errors import AuthError, StoreError, ValidationError
from filevault.core.security import hash_password, verify_password
from filevault.models.database import get_db
from filevault.models.user import USERNAME_MAX_LENGTH, User

DUPLICATE_USER_MESSAGE = "User already exists. Please choose a different username."
PASSWORD_MISMATCH_MESSAGE = "Passwords do not match. Please re-enter."
UNKNOWN_USER_MESSAGE = "User name cannot be found. Please sign up."
WRONG_PASSWORD_MESSAGE = "Wrong Password"


class UserStore:
    """Credential store over the ``users`` table. Users are never updated or deleted."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_name(self, name: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.name == name).first()
        except SQLAlchemyError as exc:
            raise StoreError(f"user lookup failed: {exc}") from exc

    def create(self, name: str, hashed_password: str) -> User:
        user = User(name=name, password=hashed_password)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ValidationError(DUPLICATE_USER_MESSAGE) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"user insert failed: {exc}") from exc
        self.db.refresh(user)
        return user


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def validate_username(name: str) -> None:
    # the name doubles as the user's folder / key prefix
    if not name or not name.strip():
        raise ValidationError("Username cannot be empty.")
    if len(name) > USERNAME_MAX_LENGTH:
        raise ValidationError(f"Username cannot be longer than {USERNAME_MAX_LENGTH} characters.")
    if name in (".", "..") or any(c in name for c in ("/", "\\", "\x00")):
        raise ValidationError("Username contains invalid characters.")


def register(store: UserStore, name: str, password: str, confirm_password: str) -> User:
    """Create a user, checking name, uniqueness and confirmation in that order."""
    validate_username(name)
    if store.find_by_name(name) is not None:
        raise ValidationError(DUPLICATE_USER_MESSAGE)
    if password != confirm_password:
        raise ValidationError(PASSWORD_MISMATCH_MESSAGE)
    if not password:
        raise ValidationError("Password cannot be empty.")
    return store.create(name, hash_password(password))


def authenticate(store: UserStore, name: str, password: str) -> User:
    user = store.find_by_name(name)
    if user is None:
        raise AuthError(UNKNOWN_USER_MESSAGE)
    if not verify_password(password, user.password):
        raise AuthError(WRONG_PASSWORD_MESSAGE)
    return user

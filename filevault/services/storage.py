# filevault/services/storage.py
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, List, Optional

import boto3
from botocore.exceptions import ClientError
from fastapi import Request

from filevault.core.config import Settings
from filevault.core.errors import StoreError, ValidationError

MISSING_KEYWORD_MESSAGE = "Search keyword is required."


def clean_filename(filename: Optional[str]) -> str:
    """Basename of a client-supplied filename; rejects names that cannot be stored."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    if not name or name in (".", "..") or "\x00" in name:
        raise ValidationError("Invalid file name.")
    return name


def duplicate_file_message(filename: str) -> str:
    return f'A file named "{filename}" already exists.'


class StorageService(ABC):
    """
    Per-user file storage.

    Files are identified by their original name inside the owner's
    folder (or key prefix). Nothing is ever renamed or deleted.
    """

    @abstractmethod
    def ensure_user_dir(self, username: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_files(self, username: str) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def resolve_path(self, username: str, filename: str):
        """Location of an existing file, or None."""
        raise NotImplementedError

    @abstractmethod
    def save(
        self,
        username: str,
        filename: Optional[str],
        fileobj: BinaryIO,
        content_type: Optional[str] = None,
    ) -> str:
        """Store a new file and return its name. Refuses to overwrite."""
        raise NotImplementedError

    @abstractmethod
    def read(self, username: str, filename: str) -> Optional[bytes]:
        raise NotImplementedError

    def search_files(self, username: str, keyword: Optional[str]) -> List[str]:
        if keyword is None:
            raise ValidationError(MISSING_KEYWORD_MESSAGE)
        keyword = keyword.lower()
        return [name for name in self.list_files(username) if keyword in name.lower()]


class LocalStorage(StorageService):
    """One directory per user under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def user_dir(self, username: str) -> Path:
        return self.root / username

    def ensure_user_dir(self, username: str) -> Path:
        user_dir = self.user_dir(username)
        user_dir.mkdir(parents=True, exist_ok=True)
        return user_dir

    def list_files(self, username: str) -> List[str]:
        user_dir = self.user_dir(username)
        if not user_dir.is_dir():
            return []
        return sorted(p.name for p in user_dir.iterdir() if p.is_file())

    def resolve_path(self, username: str, filename: str) -> Optional[Path]:
        user_dir = self.user_dir(username).resolve()
        path = (user_dir / filename).resolve()
        if path.parent != user_dir or not path.is_file():
            return None
        return path

    def save(self, username, filename, fileobj, content_type=None) -> str:
        name = clean_filename(filename)
        try:
            dest = self.ensure_user_dir(username) / name
            # "x" fails if the name is taken, even under concurrent uploads
            with open(dest, "xb") as out:
                shutil.copyfileobj(fileobj, out)
        except FileExistsError as exc:
            raise ValidationError(duplicate_file_message(name)) from exc
        except OSError as exc:
            raise StoreError(f"could not write {name}: {exc}") from exc
        return name

    def read(self, username: str, filename: str) -> Optional[bytes]:
        path = self.resolve_path(username, filename)
        if path is None:
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StoreError(f"could not read {filename}: {exc}") from exc


class S3Storage(StorageService):
    """One ``<username>/`` key prefix per user in a single bucket."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    @staticmethod
    def _prefix(username: str) -> str:
        return f"{username}/"

    def _key(self, username: str, filename: str) -> str:
        return f"{self._prefix(username)}{filename}"

    def ensure_user_dir(self, username: str) -> None:
        # prefixes exist as soon as a key is written under them
        return None

    def list_files(self, username: str) -> List[str]:
        prefix = self._prefix(username)
        names = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(prefix):]
                    if name and "/" not in name:
                        names.append(name)
        except ClientError as exc:
            raise StoreError(f"could not list files: {exc}") from exc
        return sorted(names)

    def resolve_path(self, username: str, filename: str) -> Optional[str]:
        if "/" in filename:
            return None
        key = self._key(username, filename)
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in ("404", "NoSuchKey", "NotFound"):
                return None
            raise StoreError(f"could not stat {filename}: {exc}") from exc
        return key

    def save(self, username, filename, fileobj, content_type=None) -> str:
        name = clean_filename(filename)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=self._key(username, name),
                Body=fileobj.read(),
                ContentType=content_type or "application/octet-stream",
                IfNoneMatch="*",
            )
        except ClientError as exc:
            if _error_code(exc) in ("PreconditionFailed", "412"):
                raise ValidationError(duplicate_file_message(name)) from exc
            raise StoreError(f"could not upload {name}: {exc}") from exc
        return name

    def read(self, username: str, filename: str) -> Optional[bytes]:
        key = self.resolve_path(username, filename)
        if key is None:
            return None
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            raise StoreError(f"could not fetch {filename}: {exc}") from exc
        return obj["Body"].read()


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def build_storage(settings: Settings) -> StorageService:
    if settings.storage_backend == "s3":
        s3 = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
        )
        return S3Storage(s3, settings.aws_s3_bucket_name)
    return LocalStorage(Path(settings.uploads_dir))


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage

"""Storage backends for backup artifacts (local directory or S3/MinIO)."""

import logging
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from typing import Optional

from minio import Minio
from minio.error import S3Error

from ponto_api.settings import get_settings

logger = logging.getLogger(__name__)


class BackupStorageError(Exception):
    """Artifact could not be written or read."""


class BackupStorage(ABC):
    """Opaque key -> bytes store."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        pass

    @abstractmethod
    def get(self, key: str) -> bytes:
        pass


class LocalBackupStorage(BackupStorage):
    """Artifacts under a local directory (development and tests)."""

    def __init__(self, base_dir: Optional[str] = None):
        """Initialize local storage."""
        self.base_dir = Path(base_dir or get_settings().backup_dir)

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise BackupStorageError(f"Invalid backup key: {key}")
        return path

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def get(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except OSError as e:
            raise BackupStorageError(f"Backup artifact {key} unreadable: {e}") from e


class S3BackupStorage(BackupStorage):
    """S3-compatible storage client."""

    def __init__(self):
        """Initialize storage client."""
        settings = get_settings()
        self.client = Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_use_ssl,
        )
        self.bucket = settings.minio_bucket
        self._ensure_bucket()

    def _ensure_bucket(self):
        """Ensure bucket exists."""
        try:
            if not self.client.bucket_exists(self.bucket):
                self.client.make_bucket(self.bucket)
        except S3Error as e:
            logger.error(f"Error ensuring bucket exists: {e}")

    def put(self, key: str, data: bytes) -> None:
        try:
            self.client.put_object(
                self.bucket,
                key,
                BytesIO(data),
                len(data),
                content_type="application/gzip",
            )
        except S3Error as e:
            raise BackupStorageError(f"Upload of {key} failed: {e}") from e

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(self.bucket, key)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()
        except S3Error as e:
            raise BackupStorageError(f"Download of {key} failed: {e}") from e


def get_backup_storage() -> BackupStorage:
    """Get storage backend based on settings."""
    provider = get_settings().backup_storage_provider.lower()
    if provider == "local":
        return LocalBackupStorage()
    elif provider == "s3":
        return S3BackupStorage()
    else:
        raise ValueError(f"Unknown backup storage provider: {provider}")

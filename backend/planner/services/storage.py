"""Object storage for attachments: local disk plus time-limited signed URLs."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import quote

from jose import JWTError, jwt

from planner.config import settings
from planner.errors import StorageError

logger = logging.getLogger(__name__)

SIGNED_URL_PURPOSE = "storage"


class LocalStorage:
    """A bucket rooted at ``root``; object paths look like ``<homework_id>/<file>``."""

    def __init__(self, root: str, bucket: str):
        self.bucket = bucket
        self.root = Path(root) / bucket

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        root = self.root.resolve()
        if target == root or root not in target.parents:
            raise StorageError(f"Invalid storage path: {path}")
        return target

    def upload(self, path: str, data: bytes, upsert: bool = False) -> str:
        target = self._resolve(path)
        if target.exists() and not upsert:
            raise StorageError("The resource already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored %s/%s (%d bytes)", self.bucket, path, len(data))
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError("Object not found")
        return target.read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def remove(self, paths: list[str]) -> list[str]:
        removed = []
        for path in paths:
            target = self._resolve(path)
            if target.is_file():
                target.unlink()
                removed.append(path)
        return removed

    def create_signed_url(self, path: str, expires_in: int) -> str:
        self._resolve(path)
        expire = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        token = jwt.encode(
            {"bucket": self.bucket, "path": path, "purpose": SIGNED_URL_PURPOSE, "exp": expire},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        return f"{settings.PUBLIC_BASE_URL}/api/storage/{self.bucket}/{quote(path)}?token={token}"

    def verify_signed_token(self, path: str, token: str) -> bool:
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            return False
        return (
            payload.get("purpose") == SIGNED_URL_PURPOSE
            and payload.get("bucket") == self.bucket
            and payload.get("path") == path
        )


storage = LocalStorage(settings.STORAGE_DIR, settings.STORAGE_BUCKET)

"""
Blob host abstraction for external copies of uploaded images.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.config import Settings


FOLDERS = {"original": "original", "edited": "edited"}


@dataclass
class StorageResult:
    storage_path: str
    public_url: Optional[str]

    @property
    def reference(self) -> str:
        return self.public_url or self.storage_path


def _extension(filename_hint: Optional[str]) -> str:
    ext = ".jpg"
    if filename_hint and "." in filename_hint:
        ext = "." + filename_hint.split(".")[-1].lower()
        if len(ext) > 6:
            ext = ".jpg"
    return ext


class StorageProvider:
    def save_bytes(
        self,
        *,
        data: bytes,
        content_type: Optional[str],
        filename_hint: Optional[str],
        folder: str,
    ) -> StorageResult:
        raise NotImplementedError


class LocalStorageProvider(StorageProvider):
    def __init__(self, root: Path, base_url: Optional[str] = None) -> None:
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url

    def save_bytes(
        self,
        *,
        data: bytes,
        content_type: Optional[str],
        filename_hint: Optional[str],
        folder: str,
    ) -> StorageResult:
        out_dir = self.root / FOLDERS.get(folder, "misc")
        out_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4().hex}{_extension(filename_hint)}"
        out_path = out_dir / filename
        out_path.write_bytes(data)
        public_url = None
        if self.base_url:
            public_url = f"{self.base_url.rstrip('/')}/{out_dir.name}/{filename}"
        return StorageResult(storage_path=str(out_path), public_url=public_url)


class S3StorageProvider(StorageProvider):
    def __init__(self, settings: Settings) -> None:
        import boto3

        self.bucket = settings.blob_s3_bucket or ""
        self.public_url = settings.blob_s3_public_url
        if not self.bucket:
            raise RuntimeError("BLOB_S3_BUCKET is required for s3 storage")
        self.client = boto3.client(
            "s3",
            endpoint_url=settings.blob_s3_endpoint,
            region_name=settings.blob_s3_region,
            aws_access_key_id=settings.blob_s3_access_key,
            aws_secret_access_key=settings.blob_s3_secret_key,
        )

    def save_bytes(
        self,
        *,
        data: bytes,
        content_type: Optional[str],
        filename_hint: Optional[str],
        folder: str,
    ) -> StorageResult:
        key = f"bg-remover/{FOLDERS.get(folder, 'misc')}/{uuid.uuid4().hex}{_extension(filename_hint)}"
        extra = {}
        if content_type:
            extra["ContentType"] = content_type
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        public_url = None
        if self.public_url:
            public_url = self.public_url.rstrip("/") + "/" + key
        return StorageResult(storage_path=key, public_url=public_url)


def get_storage_provider(settings: Settings) -> Optional[StorageProvider]:
    """Return the configured blob host, or None when uploads stay inline only."""
    backend = (settings.blob_storage_backend or "none").strip().lower()
    if backend == "s3":
        try:
            return S3StorageProvider(settings)
        except RuntimeError as exc:
            logging.getLogger("storage").error("S3 storage disabled: %s", exc)
            return None
    if backend == "local":
        return LocalStorageProvider(settings.blob_root, settings.blob_public_base_url)
    return None

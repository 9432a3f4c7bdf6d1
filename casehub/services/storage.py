# casehub/services/storage.py
import uuid
from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
import structlog

from casehub.config import settings
from casehub.errors import DependencyError

logger = structlog.get_logger()


class ObjectStorage:
    """Thin wrapper over any S3-compatible bucket. Only keys are persisted."""

    def __init__(self):
        self._s3 = None
        self.bucket = settings.S3_BUCKET_NAME

    @property
    def s3(self):
        if self._s3 is None:
            self._s3 = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL or None,
                aws_access_key_id=settings.S3_ACCESS_KEY_ID,
                aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
                region_name=settings.S3_REGION,
                config=Config(
                    signature_version="s3v4",
                    connect_timeout=settings.S3_CONNECT_TIMEOUT,
                    read_timeout=settings.S3_READ_TIMEOUT,
                    retries={"max_attempts": 2},
                ),
            )
        return self._s3

    @staticmethod
    def build_key(folder: str, filename: Optional[str]) -> str:
        ext = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else "bin"
        return f"{folder}/{uuid.uuid4()}.{ext}"

    def upload(
        self, file_bytes: bytes, key: str, content_type: str = "application/pdf"
    ) -> str:
        try:
            self.s3.put_object(
                Bucket=self.bucket, Key=key, Body=file_bytes, ContentType=content_type
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("storage_upload_failed", key=key, error=str(e))
            raise DependencyError("File storage is unavailable") from e
        logger.info("storage_uploaded", key=key, size=len(file_bytes))
        return key

    def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        try:
            return self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("storage_presign_failed", key=key, error=str(e))
            raise DependencyError("File storage is unavailable") from e

    def delete(self, key: str):
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error("storage_delete_failed", key=key, error=str(e))
            raise DependencyError("File storage is unavailable") from e
        logger.info("storage_deleted", key=key)

    def extract_key(self, reference: str) -> Optional[str]:
        """Accept a bare key or a URL pointing into the bucket; return the key."""
        reference = (reference or "").strip()
        if not reference:
            return None
        if "://" not in reference:
            return reference.lstrip("/") or None
        path = urlparse(reference).path.lstrip("/")
        if path.startswith(f"{self.bucket}/"):
            path = path[len(self.bucket) + 1:]
        return path or None


storage = ObjectStorage()

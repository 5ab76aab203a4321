"""
Object storage for rendered reports.

The engine only depends on the StorageGateway contract. S3 backs hosted
deployments; the in-memory gateway lets a local service round-trip reports
without any cloud credentials.

All gateway methods are blocking; async callers run them in a worker thread.
"""

import hashlib
import threading
from typing import Dict, Mapping, Optional, Protocol, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from fsr_report.common.config import ReportSettings
from fsr_report.common.error_handling import ObjectNotFoundError, StorageError
from fsr_report.common.logger import get_logger

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class StorageGateway(Protocol):
    def put(self, key: str, data: bytes, metadata: Optional[Mapping[str, str]] = None) -> str:
        """Store an object and return its storage reference (ETag)."""
        ...

    def get(self, key: str) -> bytes:
        """Fetch an object. Raises ObjectNotFoundError when absent."""
        ...

    def sign(self, key: str, ttl_seconds: int) -> str:
        """Time-limited retrieval URL for an object."""
        ...


def upload_metadata(call_no: str, generated_at: str, is_checklist: bool = False) -> Dict[str, str]:
    """User metadata attached to every uploaded report."""
    return {
        "call-no": call_no,
        "generated-at": generated_at,
        "is-checklist": "true" if is_checklist else "false",
    }


class S3StorageGateway:
    """StorageGateway backed by an S3 bucket."""

    def __init__(self, bucket: str, client=None):
        self.bucket = bucket
        self.client = client

    @classmethod
    def from_settings(cls, settings: ReportSettings) -> "S3StorageGateway":
        boto_config = BotoConfig(
            region_name=settings.aws_region,
            s3={"addressing_style": "path"} if settings.s3_force_path_style else {},
        )
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
            config=boto_config,
        )
        return cls(bucket=settings.s3_bucket, client=client)

    def put(self, key: str, data: bytes, metadata: Optional[Mapping[str, str]] = None) -> str:
        try:
            response = self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=PDF_CONTENT_TYPE,
                Metadata=dict(metadata or {}),
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e
        return (response.get("ETag") or "").strip('"')

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object {key} not found") from e
            raise StorageError(f"Read of {key} failed: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Read of {key} failed: {e}") from e

    def sign(self, key: str, ttl_seconds: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Signing {key} failed: {e}") from e


class InMemoryStorageGateway:
    """Process-local StorageGateway for development and tests."""

    def __init__(self):
        self._objects: Dict[str, Tuple[bytes, Dict[str, str]]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes, metadata: Optional[Mapping[str, str]] = None) -> str:
        with self._lock:
            self._objects[key] = (bytes(data), dict(metadata or {}))
        return hashlib.md5(data).hexdigest()

    def get(self, key: str) -> bytes:
        with self._lock:
            stored = self._objects.get(key)
        if stored is None:
            raise ObjectNotFoundError(f"Object {key} not found")
        return stored[0]

    def metadata(self, key: str) -> Dict[str, str]:
        with self._lock:
            stored = self._objects.get(key)
        if stored is None:
            raise ObjectNotFoundError(f"Object {key} not found")
        return dict(stored[1])

    def sign(self, key: str, ttl_seconds: int) -> str:
        if key not in self._objects:
            raise ObjectNotFoundError(f"Object {key} not found")
        return f"memory://{key}?expires={ttl_seconds}"


def build_storage_gateway(settings: ReportSettings) -> Optional[StorageGateway]:
    """
    Pick the gateway for the current configuration.

    Returns None when nothing is configured outside local mode; reports are
    then generated but not stored.
    """
    if settings.is_s3_configured:
        logger.info(f"Using S3 storage: bucket={settings.s3_bucket} region={settings.aws_region}")
        return S3StorageGateway.from_settings(settings)
    if settings.is_local:
        logger.warning("S3 not configured - using in-memory storage for local development")
        return InMemoryStorageGateway()
    return None

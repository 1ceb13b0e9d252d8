# byggbot/integrations/blob_storage.py
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from byggbot.infrastructure.config import SETTINGS, require_env
from byggbot.integrations.key_vault import get_secret


logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


class BlobStorageError(RuntimeError):
    """Raised when a blob could not be stored or signed."""


@dataclass(frozen=True)
class StoredBlob:
    container: str
    blob_name: str
    url: str


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS.sub("", filename or "")


def build_blob_name(original_filename: str) -> str:
    """Tilfeldig blobnavn: `<uuid4>-<filnavn uten spesialtegn>`."""
    return f"{uuid.uuid4()}-{sanitize_filename(original_filename)}"


def _build_client() -> Any:
    access_key = require_env("GARANTI_STORAGE_ACCESS_KEY_ID", context="dokumentlagring")
    # Lagringsnøkkelen ligger i nøkkelhvelvet, ikke i miljøet.
    secret_key = get_secret(SETTINGS.STORAGE_SECRET_NAME)
    try:
        return boto3.client(
            "s3",
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=SETTINGS.STORAGE_REGION,
            endpoint_url=SETTINGS.STORAGE_ENDPOINT_URL,
        )
    except (BotoCoreError, ClientError) as exc:
        raise BlobStorageError(f"Kunne ikke opprette klient for dokumentlagring: {exc}") from exc


class BlobStorage:
    """Tynn adapter rundt S3-kompatibel lagring for garantidokumenter."""

    def __init__(self, *, container: Optional[str] = None, client: Any = None) -> None:
        self.container = container or SETTINGS.STORAGE_BUCKET
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = _build_client()
        return self._client

    def _object_url(self, blob_name: str) -> str:
        if SETTINGS.STORAGE_ENDPOINT_URL:
            return f"{SETTINGS.STORAGE_ENDPOINT_URL.rstrip('/')}/{self.container}/{blob_name}"
        return f"https://{self.container}.s3.amazonaws.com/{blob_name}"

    def upload(self, content: bytes, original_filename: str, *, content_type: Optional[str] = None) -> StoredBlob:
        blob_name = build_blob_name(original_filename)
        extra: dict[str, Any] = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self.client.put_object(Bucket=self.container, Key=blob_name, Body=content, **extra)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStorageError(
                f"Kunne ikke laste opp dokument til {self.container}/{blob_name}: {exc}"
            ) from exc

        logger.info("Lastet opp blob %s/%s (%d bytes)", self.container, blob_name, len(content))
        return StoredBlob(container=self.container, blob_name=blob_name, url=self._object_url(blob_name))

    def signed_read_url(self, blob_name: str, *, container: Optional[str] = None, expires_in: Optional[int] = None) -> str:
        """Tidsbegrenset lese-URL (standard 15 minutter)."""
        bucket = container or self.container
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": blob_name},
                ExpiresIn=expires_in or SETTINGS.SAS_URL_EXPIRY_SECONDS,
            )
        except (BotoCoreError, ClientError) as exc:
            raise BlobStorageError(
                f"Kunne ikke generere lese-URL for {bucket}/{blob_name}: {exc}"
            ) from exc


__all__ = ["BlobStorage", "BlobStorageError", "StoredBlob", "build_blob_name", "sanitize_filename"]

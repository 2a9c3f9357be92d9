"""
Remote document sources: Google Drive, S3-compatible buckets (Tencent COS),
and an in-memory implementation for testing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol
import json
import logging
import os

import boto3
import requests
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from backend.exceptions import ParseError, SourceUnavailableError, TransportError

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"


class DocumentSource(Protocol):
    """Defines the operations the sync stores need from document storage."""

    def is_available(self) -> bool:
        ...

    def read(self, document_id: str) -> Any:
        ...

    def write(self, document_id: str, content: Any) -> None:
        ...


def _decode_json(raw: bytes | str, document_id: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ParseError(
            f"Document {document_id} is not valid JSON",
            details={"document_id": document_id, "error": str(exc)},
        ) from exc


def _encode_json(content: Any) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


@dataclass
class InMemoryDocumentSource:
    """Test double for document storage."""

    documents: dict = None
    available: bool = True

    def __post_init__(self):
        if self.documents is None:
            self.documents = {}

    def is_available(self) -> bool:
        return self.available

    def read(self, document_id: str) -> Any:
        if not self.available:
            raise SourceUnavailableError("In-memory document source is disabled")
        stored = self.documents.get(document_id)
        if stored is None:
            raise TransportError(
                f"Document not found: {document_id}",
                details={"document_id": document_id},
            )
        if isinstance(stored, (bytes, str)):
            return _decode_json(stored, document_id)
        # Round-trip through JSON so callers never share the stored object.
        return json.loads(json.dumps(stored))

    def write(self, document_id: str, content: Any) -> None:
        if not self.available:
            raise SourceUnavailableError("In-memory document source is disabled")
        if isinstance(content, (bytes, str)):
            self.documents[document_id] = content
        else:
            self.documents[document_id] = json.loads(json.dumps(content))


class GoogleDriveDocumentSource:
    """
    Google Drive files accessed with a service-account key.

    When the key file is missing the source stays unavailable instead of
    failing, so the service can still start without Drive credentials.
    """

    def __init__(self, key_file: Optional[str], timeout: float = 30.0):
        self.key_file = key_file
        self.timeout = timeout
        self._session: Optional[AuthorizedSession] = None
        self._initialize()

    def _initialize(self) -> None:
        if not self.key_file or not os.path.exists(self.key_file):
            logger.warning(
                "Google Drive key file not found, document operations are disabled"
            )
            return
        try:
            credentials = service_account.Credentials.from_service_account_file(
                self.key_file, scopes=DRIVE_SCOPES
            )
        except (OSError, ValueError):
            logger.exception("Failed to initialize Google Drive credentials")
            return
        self._session = AuthorizedSession(credentials)
        logger.info("Google Drive API initialized")

    def is_available(self) -> bool:
        return self._session is not None

    def _require_session(self) -> AuthorizedSession:
        if self._session is None:
            raise SourceUnavailableError("Google Drive API not initialized")
        return self._session

    def read(self, document_id: str) -> Any:
        session = self._require_session()
        try:
            response = session.get(
                f"{DRIVE_FILES_URL}/{document_id}",
                params={"alt": "media", "supportsAllDrives": "true"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(
                f"Failed to get file content from Google Drive: {document_id}",
                details={"document_id": document_id, "error": str(exc)},
            ) from exc
        return _decode_json(response.content, document_id)

    def write(self, document_id: str, content: Any) -> None:
        session = self._require_session()
        try:
            response = session.patch(
                f"{DRIVE_UPLOAD_URL}/{document_id}",
                params={"uploadType": "media", "supportsAllDrives": "true"},
                data=_encode_json(content),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(
                f"Failed to update file in Google Drive: {document_id}",
                details={"document_id": document_id, "error": str(exc)},
            ) from exc
        logger.info("File updated in Google Drive: %s", document_id)


@dataclass
class CosDocumentSource:
    """
    S3-compatible document storage for Tencent COS. Document ids are object keys.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def is_available(self) -> bool:
        return bool(self.bucket)

    def read(self, document_id: str) -> Any:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=document_id)
            body = response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise TransportError(
                f"Failed to read object {document_id} from bucket {self.bucket}",
                details={"document_id": document_id, "error": str(exc)},
            ) from exc
        return _decode_json(body, document_id)

    def write(self, document_id: str, content: Any) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=document_id,
                Body=_encode_json(content),
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as exc:
            raise TransportError(
                f"Failed to write object {document_id} to bucket {self.bucket}",
                details={"document_id": document_id, "error": str(exc)},
            ) from exc

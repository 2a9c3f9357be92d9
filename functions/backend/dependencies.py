"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from backend.config import Settings, get_settings
from backend.content_store import ContentRegistry, ContentSyncStore
from backend.domains import DOMAINS
from backend.sources import (
    CosDocumentSource,
    DocumentSource,
    GoogleDriveDocumentSource,
    InMemoryDocumentSource,
)
from backend.sync_metadata import (
    InMemorySyncMetadataSink,
    SqlSyncMetadataSink,
    SyncMetadataSink,
)

_document_source: DocumentSource | None = None
_sync_metadata_sink: SyncMetadataSink | None = None
_content_registry: ContentRegistry | None = None


def get_document_source() -> DocumentSource:
    global _document_source
    if _document_source:
        return _document_source

    settings = get_settings()
    if settings.use_in_memory_backends or settings.document_source == "memory":
        _document_source = InMemoryDocumentSource()
    elif settings.document_source == "cos":
        _document_source = CosDocumentSource(
            bucket=settings.cos_bucket or "",
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    else:
        _document_source = GoogleDriveDocumentSource(settings.google_drive_key_file)
    return _document_source


def get_sync_metadata_sink() -> SyncMetadataSink:
    """
    Return a singleton sink so last-sync timestamps persist across requests.
    """
    global _sync_metadata_sink
    if _sync_metadata_sink:
        return _sync_metadata_sink

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _sync_metadata_sink = InMemorySyncMetadataSink()
    else:
        _sync_metadata_sink = SqlSyncMetadataSink(settings.database_url)
    return _sync_metadata_sink


def build_content_registry(
    settings: Settings,
    source: DocumentSource | None,
    sync_metadata: SyncMetadataSink | None = None,
) -> ContentRegistry:
    return ContentRegistry(
        {
            name: ContentSyncStore(
                domain,
                source,
                settings.document_id_for(domain.file_id_setting),
                sync_metadata=sync_metadata,
                default_language=settings.default_language,
            )
            for name, domain in DOMAINS.items()
        }
    )


def get_content_registry() -> ContentRegistry:
    """
    Return the singleton registry holding one sync store per content domain.
    """
    global _content_registry
    if _content_registry:
        return _content_registry

    _content_registry = build_content_registry(
        get_settings(), get_document_source(), get_sync_metadata_sink()
    )
    return _content_registry

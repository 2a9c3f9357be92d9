"""
HTTP routes for the content service API.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from backend.content_store import ContentRegistry, ContentSyncStore
from backend.dependencies import get_content_registry, get_sync_metadata_sink
from backend.domains import (
    determine_activity_type,
    high_rated,
    low_rated,
    optional_steps,
    required_steps,
)
from backend.exceptions import UnknownDomainError
from backend.schemas import (
    CategoriesResponse,
    ContentItemResponse,
    ContentListResponse,
    ContentStatsResponse,
    DetermineActivityTypeRequest,
    DetermineActivityTypeResponse,
    DomainSyncStatus,
    OperationResponse,
    SyncStatusResponse,
)
from backend.sync_metadata import SyncMetadataSink

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_store(registry: ContentRegistry, domain: str) -> ContentSyncStore:
    try:
        return registry.get(domain)
    except UnknownDomainError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


def _list_response(store: ContentSyncStore, items: list) -> ContentListResponse:
    return ContentListResponse(
        domain=store.domain.name,
        items=items,
        totalCount=len(items),
        lastSyncDate=store.last_sync_at(),
    )


@router.get("/admin/settings/sync-status", response_model=SyncStatusResponse)
def sync_status(
    registry: ContentRegistry = Depends(get_content_registry),
    sink: SyncMetadataSink = Depends(get_sync_metadata_sink),
):
    domains = []
    for store in registry.stores():
        state = store.sync_state()
        domains.append(
            DomainSyncStatus(
                domain=store.domain.name,
                configured=bool(store.document_id),
                sourceAvailable=state.source_available,
                lastSyncDate=state.last_sync_at,
                recordedSyncDate=sink.last_sync(store.domain.name),
            )
        )
    return SyncStatusResponse(domains=domains)


@router.post("/admin/{domain}/sync-with-drive", response_model=OperationResponse)
def sync_with_drive(
    domain: str, registry: ContentRegistry = Depends(get_content_registry)
):
    """
    Re-download a domain's document into the in-memory cache.
    """
    store = _get_store(registry, domain)
    logger.info("Starting %s sync with document source...", store.domain.label)
    store.reload()
    if not store.is_source_available():
        return OperationResponse(
            success=False,
            message=f"Sync error: {store.domain.label} could not be loaded, serving empty content",
        )
    return OperationResponse(
        success=True,
        message=f"{store.domain.label.capitalize()} successfully synced with document source",
    )


@router.put("/admin/{domain}", response_model=OperationResponse)
def update_content(
    domain: str,
    payload: dict[str, Any] = Body(...),
    registry: ContentRegistry = Depends(get_content_registry),
):
    """
    Overwrite a domain's remote document and reload it.
    """
    store = _get_store(registry, domain)
    result = store.update(payload)
    return OperationResponse(success=result.success, message=result.message)


@router.get("/mood_types/high-rated", response_model=ContentListResponse)
def high_rated_mood_types(
    threshold: float = Query(7),
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = registry.get("mood_types")
    items = high_rated(store.snapshot().items, threshold)
    return _list_response(store, [store.localize(i, language) for i in items])


@router.get("/mood_types/low-rated", response_model=ContentListResponse)
def low_rated_mood_types(
    threshold: float = Query(4),
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = registry.get("mood_types")
    items = low_rated(store.snapshot().items, threshold)
    return _list_response(store, [store.localize(i, language) for i in items])


@router.get(
    "/onboarding_questions/steps/{kind}", response_model=ContentListResponse
)
def onboarding_steps_by_kind(
    kind: str,
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    select = {"required": required_steps, "optional": optional_steps}.get(kind)
    if select is None:
        raise HTTPException(status_code=404, detail="Unknown onboarding step filter")
    store = registry.get("onboarding_questions")
    items = select(store.snapshot().items)
    return _list_response(store, [store.localize(i, language) for i in items])


@router.post(
    "/activity_types/determine", response_model=DetermineActivityTypeResponse
)
def determine_activity(
    payload: DetermineActivityTypeRequest,
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = registry.get("activity_types")
    activity_type = determine_activity_type(
        store.snapshot().items, payload.activity_name, payload.content
    )
    return DetermineActivityTypeResponse(activity_type=activity_type)


@router.get("/{domain}", response_model=ContentListResponse)
def list_content(
    domain: str,
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = _get_store(registry, domain)
    return _list_response(store, store.get_all(language))


@router.get("/{domain}/stats", response_model=ContentStatsResponse)
def content_stats(
    domain: str, registry: ContentRegistry = Depends(get_content_registry)
):
    store = _get_store(registry, domain)
    stats = store.get_stats()
    return ContentStatsResponse(
        domain=store.domain.name,
        totalCount=stats.total_count,
        perCategoryCount=stats.per_category_count,
        average=stats.average,
        extra=stats.extra,
    )


@router.get("/{domain}/categories", response_model=CategoriesResponse)
def content_categories(
    domain: str, registry: ContentRegistry = Depends(get_content_registry)
):
    store = _get_store(registry, domain)
    return CategoriesResponse(domain=store.domain.name, categories=store.categories())


@router.get("/{domain}/search", response_model=ContentListResponse)
def search_content(
    domain: str,
    query: str = Query(..., min_length=1),
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = _get_store(registry, domain)
    return _list_response(store, store.search(query, language))


@router.get("/{domain}/recommended", response_model=ContentListResponse)
def recommended_content(
    domain: str,
    text: str = Query(..., min_length=1),
    limit: int = Query(3, ge=1, le=50),
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = _get_store(registry, domain)
    if not store.domain.recommend:
        raise HTTPException(
            status_code=400, detail=f"{store.domain.label} have no recommendations"
        )
    return _list_response(store, store.recommend(text, limit, language))


@router.get("/{domain}/default", response_model=ContentItemResponse)
def default_content(
    domain: str,
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = _get_store(registry, domain)
    item = store.default_item(language)
    if item is None:
        raise HTTPException(status_code=404, detail="Default item not found")
    return ContentItemResponse(domain=store.domain.name, item=item)


@router.get("/{domain}/category/{category}", response_model=ContentListResponse)
def content_by_category(
    domain: str,
    category: str,
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = _get_store(registry, domain)
    return _list_response(store, store.get_by_category(category, language))


@router.get("/{domain}/items/{item_id}", response_model=ContentItemResponse)
def content_item(
    domain: str,
    item_id: str,
    language: str | None = Query(None),
    registry: ContentRegistry = Depends(get_content_registry),
):
    store = _get_store(registry, domain)
    # Ids compare by string key, so the path value "2" matches a numeric id 2.
    item = store.get_by_id(item_id, language)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return ContentItemResponse(domain=store.domain.name, item=item)

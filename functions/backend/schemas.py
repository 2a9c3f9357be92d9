"""
Pydantic schemas for the content service API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ContentListResponse(BaseModel):
    domain: str
    items: list[dict]
    totalCount: int
    lastSyncDate: Optional[datetime] = None


class ContentItemResponse(BaseModel):
    domain: str
    item: dict


class ContentStatsResponse(BaseModel):
    domain: str
    totalCount: int
    perCategoryCount: dict[str, int]
    average: Optional[float] = None
    extra: dict[str, Any] = Field(default_factory=dict)


class CategoriesResponse(BaseModel):
    domain: str
    categories: dict[str, Any]


class OperationResponse(BaseModel):
    success: bool
    message: str


class DetermineActivityTypeRequest(BaseModel):
    activity_name: str = Field(..., min_length=1, max_length=512)
    content: Optional[Any] = None


class DetermineActivityTypeResponse(BaseModel):
    activity_type: str


class DomainSyncStatus(BaseModel):
    domain: str
    configured: bool
    sourceAvailable: bool
    lastSyncDate: Optional[datetime] = None
    recordedSyncDate: Optional[datetime] = None


class SyncStatusResponse(BaseModel):
    domains: list[DomainSyncStatus]

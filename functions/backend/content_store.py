"""
In-memory content stores synced from a remote document source.

Each content domain gets one ``ContentSyncStore``. It loads the domain's JSON
document, repairs item ids, keeps the result as an immutable snapshot and
serves read-only queries over it. Writes go to the remote source first; the
snapshot only changes on the next ``load()``.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from backend.domains import ContentDomain, Item, id_key
from backend.exceptions import (
    ConfigurationError,
    ContentSyncError,
    SourceUnavailableError,
    UnknownDomainError,
)
from backend.localization import (
    FALLBACK_LANGUAGE,
    localized_variants,
    resolve_localized_text,
)
from backend.sources import DocumentSource
from backend.sync_metadata import SyncMetadataSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentSnapshot:
    items: tuple = ()
    extras: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SyncState:
    last_sync_at: Optional[datetime] = None
    source_available: bool = False


@dataclass(frozen=True)
class ContentStats:
    total_count: int
    per_category_count: dict
    average: Optional[float] = None
    extra: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "totalCount": self.total_count,
            "perCategoryCount": self.per_category_count,
            "average": self.average,
            **self.extra,
        }


@dataclass
class UpdateResult:
    success: bool
    message: str

    def as_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


class ContentStore:
    """Holds the current snapshot and sync state of one content domain."""

    def __init__(self, empty: ContentSnapshot):
        # Snapshot and state are swapped together as one reference.
        self._entry = (empty, SyncState())

    def replace(self, snapshot: ContentSnapshot, *, synced: bool) -> None:
        _, state = self._entry
        last_sync_at = datetime.now(timezone.utc) if synced else state.last_sync_at
        self._entry = (
            snapshot,
            SyncState(last_sync_at=last_sync_at, source_available=synced),
        )

    def current(self) -> ContentSnapshot:
        return self._entry[0]

    def state(self) -> SyncState:
        return self._entry[1]


def repair_ids(items: list, id_field: str) -> list:
    """
    Make item ids unique, walking items in source order.

    The first occurrence of a usable id keeps it. Duplicate, missing or
    non-scalar ids are replaced with the smallest positive integer not used so
    far. Repaired items are copies; the input list is not modified.
    """
    seen: set[str] = set()
    repaired = []
    for position, item in enumerate(items):
        key = id_key(item.get(id_field))
        if key is not None and key not in seen:
            seen.add(key)
            repaired.append(item)
            continue
        candidate = 1
        while str(candidate) in seen:
            candidate += 1
        seen.add(str(candidate))
        logger.info(
            "Assigned id %s to item at position %d (was %r)",
            candidate,
            position,
            item.get(id_field),
        )
        repaired.append({**item, id_field: candidate})
    return repaired


class ContentSyncStore:
    """
    Load, cache, query and push the content of one domain.

    ``document_id`` may be empty: the store then serves empty content and
    rejects pushes with ``ConfigurationError``. ``sync_metadata`` is optional.
    """

    def __init__(
        self,
        domain: ContentDomain,
        source: Optional[DocumentSource],
        document_id: Optional[str],
        *,
        sync_metadata: Optional[SyncMetadataSink] = None,
        default_language: str = FALLBACK_LANGUAGE,
    ):
        self.domain = domain
        self.source = source
        self.document_id = document_id or ""
        self.sync_metadata = sync_metadata
        self.default_language = default_language
        self._store = ContentStore(self.empty_snapshot())

    def empty_snapshot(self) -> ContentSnapshot:
        return ContentSnapshot(items=(), extras=self.domain.empty_extras())

    def _source_ready(self) -> bool:
        return self.source is not None and self.source.is_available()

    def _build_snapshot(self, document: Any) -> ContentSnapshot:
        items = self.domain.parse_items(document)
        items = repair_ids(items, self.domain.id_field)
        return ContentSnapshot(
            items=tuple(items), extras=self.domain.parse_extras(document)
        )

    def _degrade(self) -> None:
        self._store.replace(self.empty_snapshot(), synced=False)

    def load(self) -> None:
        """
        Replace the snapshot with the remote document's content.

        Never raises: an unconfigured or unavailable source, a transport error
        or malformed content all leave the store empty and marked unavailable.
        """
        label = self.domain.label
        if not self.document_id:
            logger.warning(
                "%s not set, using empty %s", self.domain.file_id_setting, label
            )
            self._degrade()
            return
        if not self._source_ready():
            logger.warning("Document source not available, using empty %s", label)
            self._degrade()
            return

        logger.info("Loading %s from document source", label)
        try:
            document = self.source.read(self.document_id)
            snapshot = self._build_snapshot(document)
        except ContentSyncError as exc:
            logger.error("Error loading %s: %s", label, exc.message)
            self._degrade()
            return
        except Exception:
            logger.exception("Unexpected error loading %s", label)
            self._degrade()
            return

        self._store.replace(snapshot, synced=True)
        logger.info("Loaded %d %s", len(snapshot.items), label)
        if self.sync_metadata is not None:
            try:
                self.sync_metadata.record_sync(self.domain.name)
            except Exception:
                logger.exception("Failed to record last sync for %s", label)

    def reload(self) -> None:
        self.load()

    def push(self, content: Any) -> None:
        """
        Write ``content`` verbatim to the remote document.

        The in-memory snapshot is left as is; call ``load()`` to observe it.
        """
        if not self.document_id:
            logger.warning(
                "%s not set, cannot push %s", self.domain.file_id_setting, self.domain.label
            )
            raise ConfigurationError(
                f"{self.domain.file_id_setting} is not configured",
                details={"domain": self.domain.name},
            )
        if not self._source_ready():
            raise SourceUnavailableError(
                "Document source is not available",
                details={"domain": self.domain.name},
            )
        self.source.write(self.document_id, content)
        logger.info("%s content pushed to document source", self.domain.label.capitalize())

    def update(self, content: Any) -> UpdateResult:
        """Validate, push and reload; errors are reported, not raised."""
        label = self.domain.label
        logger.info("Updating %s on document source...", label)
        try:
            self.domain.validate(content)
            self.push(content)
        except ContentSyncError as exc:
            logger.error("Failed to update %s: %s", label, exc.message)
            return UpdateResult(success=False, message=exc.message)
        except Exception as exc:
            logger.exception("Failed to update %s", label)
            return UpdateResult(success=False, message=str(exc) or "Unknown error")

        self.load()
        return UpdateResult(
            success=True,
            message=f"{label.capitalize()} successfully updated on document source",
        )

    # Query surface

    def snapshot(self) -> ContentSnapshot:
        return self._store.current()

    def sync_state(self) -> SyncState:
        return self._store.state()

    def last_sync_at(self) -> Optional[datetime]:
        return self._store.state().last_sync_at

    def is_source_available(self) -> bool:
        return self._store.state().source_available

    def localize(self, item: Item, language: Optional[str]) -> Item:
        """
        Deep copy of ``item``; with a ``language``, its localized fields are
        resolved to plain strings. Snapshot items are never handed out.
        """
        localized = copy.deepcopy(item)
        if language is None:
            return localized
        for name in self.domain.localized_fields:
            if name in localized:
                localized[name] = resolve_localized_text(
                    localized[name], language, self.default_language
                )
        for name, fields in self.domain.nested_localized.items():
            children = localized.get(name)
            if not isinstance(children, list):
                continue
            for child in children:
                if not isinstance(child, dict):
                    continue
                for child_field in fields:
                    if child_field in child:
                        child[child_field] = resolve_localized_text(
                            child[child_field], language, self.default_language
                        )
        return localized

    def get_all(self, language: Optional[str] = None) -> list:
        return [self.localize(item, language) for item in self.snapshot().items]

    def get_by_id(self, item_id: Any, language: Optional[str] = None) -> Optional[Item]:
        wanted = id_key(item_id)
        if wanted is None:
            return None
        for item in self.snapshot().items:
            if id_key(item.get(self.domain.id_field)) == wanted:
                return self.localize(item, language)
        return None

    def get_by_category(self, category: str, language: Optional[str] = None) -> list:
        category_field = self.domain.category_field
        if not category_field:
            return []
        return [
            self.localize(item, language)
            for item in self.snapshot().items
            if item.get(category_field) == category
        ]

    def categories(self) -> dict:
        return copy.deepcopy(dict(self.snapshot().extras.get("categories") or {}))

    def default_item(self, language: Optional[str] = None) -> Optional[Item]:
        if not self.domain.select_default:
            return None
        snapshot = self.snapshot()
        item = self.domain.select_default(snapshot.items, snapshot.extras)
        if item is None:
            return None
        return self.localize(item, language)

    def get_stats(self) -> ContentStats:
        snapshot = self.snapshot()
        items = snapshot.items
        per_category: dict = {}
        if self.domain.category_field:
            for item in items:
                category = item.get(self.domain.category_field)
                if isinstance(category, str):
                    per_category[category] = per_category.get(category, 0) + 1

        average = None
        if self.domain.average_field:
            values = [
                item[self.domain.average_field]
                for item in items
                if isinstance(item.get(self.domain.average_field), (int, float))
                and not isinstance(item.get(self.domain.average_field), bool)
            ]
            if values:
                average = round(sum(values) / len(values), 2)

        extra = (
            self.domain.extra_stats(items, snapshot.extras)
            if self.domain.extra_stats
            else {}
        )
        return ContentStats(
            total_count=len(items),
            per_category_count=per_category,
            average=average,
            extra=extra,
        )

    def _search_text(self, item: Item) -> list[str]:
        texts: list[str] = []
        for name in self.domain.search_fields:
            value = item.get(name)
            if isinstance(value, list):
                for entry in value:
                    texts.extend(localized_variants(entry))
            else:
                texts.extend(localized_variants(value))
        return texts

    def search(self, query: str, language: Optional[str] = None) -> list:
        """Case-insensitive substring match over the domain's search fields."""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [
            self.localize(item, language)
            for item in self.snapshot().items
            if any(needle in text.lower() for text in self._search_text(item))
        ]

    def recommend(
        self, text: str, limit: int = 3, language: Optional[str] = None
    ) -> list:
        if not self.domain.recommend:
            return []
        items = self.domain.recommend(self.snapshot().items, text, limit)
        return [self.localize(item, language) for item in items]


class ContentRegistry:
    """All content sync stores of the service, keyed by domain name."""

    def __init__(self, stores: Mapping[str, ContentSyncStore]):
        self._stores = dict(stores)

    def get(self, name: str) -> ContentSyncStore:
        store = self._stores.get(name)
        if store is None:
            raise UnknownDomainError(
                f"Unknown content domain: {name}", details={"domain": name}
            )
        return store

    def names(self) -> list[str]:
        return list(self._stores)

    def stores(self) -> list[ContentSyncStore]:
        return list(self._stores.values())

    def load_all(self) -> dict:
        """Load every domain; returns domain name -> source availability."""
        results = {}
        for name, store in self._stores.items():
            store.load()
            results[name] = store.is_source_available()
        return results

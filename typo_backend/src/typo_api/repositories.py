from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from threading import RLock
from typing import Dict, List, Optional, Tuple

from .lifecycle import TypoStatus
from .models import TypoEntity, WorkspaceSettingsEntity
from .schemas import TypoReport
from .settings import get_settings

SORT_FIELDS = {"created_at", "updated_at", "status"}
DEFAULT_SORT = "created_at"


def normalize_sort(sort: Optional[str]) -> Tuple[str, bool]:
    """
    Split a sort key such as '-created_at' into (field, descending).
    Unknown fields fall back to created_at, keeping the requested direction.
    """
    key = (sort or DEFAULT_SORT).strip().lower()
    descending = key.startswith("-")
    field = key.lstrip("-")
    if field not in SORT_FIELDS:
        field = DEFAULT_SORT
    return field, descending


@dataclass(frozen=True)
class PageRequest:
    """
    Zero-based page request for listing a workspace's typos.
    """
    page: int = 0
    size: int = 20
    sort: str = DEFAULT_SORT  # allowed: created_at, updated_at, status; '-' prefix for descending

    @property
    def offset(self) -> int:
        return max(self.page, 0) * max(self.size, 0)


# PUBLIC_INTERFACE
class TypoRepository(ABC):
    """Abstract repository contract for typo storage backends."""

    @abstractmethod
    def create(self, data: TypoReport, workspace_id: int, status: TypoStatus) -> TypoEntity:
        """Create and return a new TypoEntity."""

    @abstractmethod
    def get(self, typo_id: int) -> Optional[TypoEntity]:
        """Return a TypoEntity by id, or None if not found."""

    @abstractmethod
    def exists(self, typo_id: int) -> bool:
        """Return True if a typo with this id is stored."""

    @abstractmethod
    def update_status(self, typo_id: int, expected: TypoStatus, status: TypoStatus) -> Optional[TypoEntity]:
        """
        Set the status only if the stored status still equals `expected`.
        Return the updated entity, or None if the typo is gone or its status moved on.
        """

    @abstractmethod
    def delete(self, typo_id: int) -> int:
        """Delete a TypoEntity by id. Return the number of deleted rows (0 or 1)."""

    @abstractmethod
    def find_by_workspace(self, workspace_id: int, request: Optional[PageRequest] = None) -> Tuple[List[TypoEntity], int]:
        """
        Return one page of the workspace's typos and the workspace total.
        Ties on the sort field are broken by id in the same direction.
        """

    @abstractmethod
    def count_by_status(self, workspace_id: int) -> List[Tuple[TypoStatus, int]]:
        """Return (status, count) for every status present in the workspace."""


# PUBLIC_INTERFACE
class WorkspaceSettingsRepository(ABC):
    """Abstract repository contract for per-workspace settings."""

    @abstractmethod
    def create(self, workspace_id: int, api_access_token: str) -> WorkspaceSettingsEntity:
        """Create the settings row for a workspace."""

    @abstractmethod
    def get(self, settings_id: int) -> Optional[WorkspaceSettingsEntity]:
        """Return settings by their own id, or None."""

    @abstractmethod
    def get_by_workspace_id(self, workspace_id: int) -> Optional[WorkspaceSettingsEntity]:
        """Return the settings of a workspace, or None."""

    @abstractmethod
    def update_token(self, workspace_id: int, api_access_token: str) -> Optional[WorkspaceSettingsEntity]:
        """Replace the workspace token in one write. Return the updated row or None if absent."""


class InMemoryTypoRepository(TypoRepository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, TypoEntity] = {}
        self._next_id = 1

    def _now(self) -> datetime:
        return datetime.now()

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def create(self, data: TypoReport, workspace_id: int, status: TypoStatus) -> TypoEntity:
        now = self._now()
        entity: TypoEntity = {
            "id": self._allocate_id(),
            "workspace_id": workspace_id,
            "status": status,
            "page_url": data.page_url,
            "report_text": data.report_text,
            "suggested_fix": data.suggested_fix,
            "context_before": data.context_before,
            "context_after": data.context_after,
            "reporter_name": data.reporter_name,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def get(self, typo_id: int) -> Optional[TypoEntity]:
        with self._lock:
            item = self._items.get(typo_id)
            return None if item is None else item.copy()

    def exists(self, typo_id: int) -> bool:
        with self._lock:
            return typo_id in self._items

    def update_status(self, typo_id: int, expected: TypoStatus, status: TypoStatus) -> Optional[TypoEntity]:
        with self._lock:
            existing = self._items.get(typo_id)
            if existing is None or existing["status"] != expected:
                return None
            updated = existing.copy()
            updated["status"] = status
            updated["updated_at"] = self._now()
            self._items[typo_id] = updated
            return updated.copy()

    def delete(self, typo_id: int) -> int:
        with self._lock:
            return 0 if self._items.pop(typo_id, None) is None else 1

    def find_by_workspace(self, workspace_id: int, request: Optional[PageRequest] = None) -> Tuple[List[TypoEntity], int]:
        r = request or PageRequest()
        field, descending = normalize_sort(r.sort)
        with self._lock:
            items = [t for t in self._items.values() if t["workspace_id"] == workspace_id]
            total = len(items)

            def sort_key(t: TypoEntity):
                value = t[field]
                return (value.value if isinstance(value, TypoStatus) else value, t["id"])

            items_sorted = sorted(items, key=sort_key, reverse=descending)

            start = r.offset
            end = start + max(r.size, 0)
            return [t.copy() for t in items_sorted[start:end]], total

    def count_by_status(self, workspace_id: int) -> List[Tuple[TypoStatus, int]]:
        counts: Dict[TypoStatus, int] = {}
        with self._lock:
            for t in self._items.values():
                if t["workspace_id"] == workspace_id:
                    counts[t["status"]] = counts.get(t["status"], 0) + 1
        return list(counts.items())


class InMemoryWorkspaceSettingsRepository(WorkspaceSettingsRepository):
    """
    Thread-safe in-memory settings store.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, WorkspaceSettingsEntity] = {}
        self._next_id = 1

    def create(self, workspace_id: int, api_access_token: str) -> WorkspaceSettingsEntity:
        with self._lock:
            if self._find(workspace_id) is not None:
                raise ValueError(f"workspace {workspace_id} already has settings")
            entity: WorkspaceSettingsEntity = {
                "id": self._next_id,
                "workspace_id": workspace_id,
                "api_access_token": api_access_token,
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            return entity.copy()

    def _find(self, workspace_id: int) -> Optional[WorkspaceSettingsEntity]:
        for item in self._items.values():
            if item["workspace_id"] == workspace_id:
                return item
        return None

    def get(self, settings_id: int) -> Optional[WorkspaceSettingsEntity]:
        with self._lock:
            item = self._items.get(settings_id)
            return None if item is None else item.copy()

    def get_by_workspace_id(self, workspace_id: int) -> Optional[WorkspaceSettingsEntity]:
        with self._lock:
            item = self._find(workspace_id)
            return None if item is None else item.copy()

    def update_token(self, workspace_id: int, api_access_token: str) -> Optional[WorkspaceSettingsEntity]:
        with self._lock:
            item = self._find(workspace_id)
            if item is None:
                return None
            updated = item.copy()
            updated["api_access_token"] = api_access_token
            self._items[updated["id"]] = updated
            return updated.copy()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_typo_repository() -> TypoRepository:
    """
    Return the process-wide typo repository selected by settings.
    - memory: InMemoryTypoRepository
    - sqlite: SQLiteTypoRepository
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTypoRepository

        return SQLiteTypoRepository(settings.sqlite_db_path, settings.sqlite_timeout_seconds)
    return InMemoryTypoRepository()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_settings_repository() -> WorkspaceSettingsRepository:
    """Return the process-wide workspace settings repository selected by settings."""
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteWorkspaceSettingsRepository

        return SQLiteWorkspaceSettingsRepository(settings.sqlite_db_path, settings.sqlite_timeout_seconds)
    return InMemoryWorkspaceSettingsRepository()

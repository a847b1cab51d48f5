from __future__ import annotations

import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, List, Optional, Tuple

from .lifecycle import TypoStatus
from .models import TypoEntity, WorkspaceSettingsEntity
from .repositories import (
    PageRequest,
    TypoRepository,
    WorkspaceSettingsRepository,
    normalize_sort,
)
from .schemas import TypoReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TypoCols:
    table: str = "typos"
    id: str = "id"
    workspace_id: str = "workspace_id"
    status: str = "status"
    page_url: str = "page_url"
    report_text: str = "report_text"
    suggested_fix: str = "suggested_fix"
    context_before: str = "context_before"
    context_after: str = "context_after"
    reporter_name: str = "reporter_name"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _SettingsCols:
    table: str = "workspace_settings"
    id: str = "id"
    workspace_id: str = "workspace_id"
    api_access_token: str = "api_access_token"


_T = _TypoCols()
_S = _SettingsCols()

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in TypoStatus)

# SQLite INTEGER is a signed 64-bit value; ids outside it can never be stored.
_SQLITE_INT_MIN = -(2**63)
_SQLITE_INT_MAX = 2**63 - 1


def _timestamp() -> str:
    return datetime.now().isoformat(timespec="microseconds")


def _fits(*values: int) -> bool:
    return all(_SQLITE_INT_MIN <= v <= _SQLITE_INT_MAX for v in values)


class _SQLiteStore(ABC):
    """
    Shared connection handling: one connection per unit of work, committed on
    clean exit and rolled back when the block raises.
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._timeout = timeout
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @abstractmethod
    def _init_db(self) -> None:
        """Create the backing table and indexes if they do not exist."""


class SQLiteTypoRepository(_SQLiteStore, TypoRepository):
    """
    Lightweight SQLite repository implementing the TypoRepository interface.
    """

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.table} (
                    {_T.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_T.workspace_id} INTEGER NOT NULL,
                    {_T.status} TEXT NOT NULL CHECK ({_T.status} IN ({_STATUS_VALUES})),
                    {_T.page_url} TEXT NOT NULL,
                    {_T.report_text} TEXT NOT NULL,
                    {_T.suggested_fix} TEXT NULL,
                    {_T.context_before} TEXT NULL,
                    {_T.context_after} TEXT NULL,
                    {_T.reporter_name} TEXT NULL,
                    {_T.created_at} TEXT NOT NULL,
                    {_T.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_workspace_created "
                f"ON {_T.table}({_T.workspace_id}, {_T.created_at})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_workspace_status "
                f"ON {_T.table}({_T.workspace_id}, {_T.status})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TypoEntity:
        return {
            "id": int(row[_T.id]),
            "workspace_id": int(row[_T.workspace_id]),
            "status": TypoStatus(row[_T.status]),
            "page_url": str(row[_T.page_url]),
            "report_text": str(row[_T.report_text]),
            "suggested_fix": row[_T.suggested_fix],
            "context_before": row[_T.context_before],
            "context_after": row[_T.context_after],
            "reporter_name": row[_T.reporter_name],
            "created_at": datetime.fromisoformat(row[_T.created_at]),
            "updated_at": datetime.fromisoformat(row[_T.updated_at]),
        }

    def _select_one(self, conn: sqlite3.Connection, typo_id: int) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_T.table} WHERE {_T.id} = ?", (typo_id,)).fetchone()

    def create(self, data: TypoReport, workspace_id: int, status: TypoStatus) -> TypoEntity:
        if not _fits(workspace_id):
            raise ValueError(f"workspace id {workspace_id} is out of range")
        now = _timestamp()
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_T.table} ({_T.workspace_id}, {_T.status}, {_T.page_url}, {_T.report_text},
                    {_T.suggested_fix}, {_T.context_before}, {_T.context_after}, {_T.reporter_name},
                    {_T.created_at}, {_T.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    workspace_id,
                    status.value,
                    data.page_url,
                    data.report_text,
                    data.suggested_fix,
                    data.context_before,
                    data.context_after,
                    data.reporter_name,
                    now,
                    now,
                ),
            )
            row = self._select_one(conn, cur.lastrowid)
            assert row is not None
            return self._row_to_entity(row)

    def get(self, typo_id: int) -> Optional[TypoEntity]:
        if not _fits(typo_id):
            return None
        with self._conn() as conn:
            row = self._select_one(conn, typo_id)
            return self._row_to_entity(row) if row else None

    def exists(self, typo_id: int) -> bool:
        if not _fits(typo_id):
            return False
        with self._conn() as conn:
            row = conn.execute(f"SELECT 1 FROM {_T.table} WHERE {_T.id} = ?", (typo_id,)).fetchone()
            return row is not None

    def update_status(self, typo_id: int, expected: TypoStatus, status: TypoStatus) -> Optional[TypoEntity]:
        if not _fits(typo_id):
            return None
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_T.table}
                SET {_T.status} = ?, {_T.updated_at} = ?
                WHERE {_T.id} = ? AND {_T.status} = ?
                """,
                (status.value, _timestamp(), typo_id, expected.value),
            )
            if cur.rowcount == 0:
                return None
            row = self._select_one(conn, typo_id)
            assert row is not None
            return self._row_to_entity(row)

    def delete(self, typo_id: int) -> int:
        if not _fits(typo_id):
            return 0
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_T.table} WHERE {_T.id} = ?", (typo_id,))
            return cur.rowcount

    def find_by_workspace(self, workspace_id: int, request: Optional[PageRequest] = None) -> Tuple[List[TypoEntity], int]:
        r = request or PageRequest()
        field, descending = normalize_sort(r.sort)
        direction = "DESC" if descending else "ASC"
        if not _fits(workspace_id):
            return [], 0

        with self._conn() as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM {_T.table} WHERE {_T.workspace_id} = ?", (workspace_id,)
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0
            if not _fits(r.offset):
                return [], total

            rows = conn.execute(
                f"""
                SELECT * FROM {_T.table}
                WHERE {_T.workspace_id} = ?
                ORDER BY {field} {direction}, {_T.id} {direction}
                LIMIT ? OFFSET ?
                """,
                (workspace_id, min(max(r.size, 0), _SQLITE_INT_MAX), r.offset),
            ).fetchall()
            return [self._row_to_entity(row) for row in rows], total

    def count_by_status(self, workspace_id: int) -> List[Tuple[TypoStatus, int]]:
        if not _fits(workspace_id):
            return []
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT {_T.status} AS status, COUNT(*) AS cnt FROM {_T.table}
                WHERE {_T.workspace_id} = ?
                GROUP BY {_T.status}
                """,
                (workspace_id,),
            ).fetchall()
            return [(TypoStatus(row["status"]), int(row["cnt"])) for row in rows]


class SQLiteWorkspaceSettingsRepository(_SQLiteStore, WorkspaceSettingsRepository):
    """
    SQLite store for per-workspace settings and API tokens.
    """

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_S.table} (
                    {_S.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_S.workspace_id} INTEGER NOT NULL UNIQUE,
                    {_S.api_access_token} TEXT NOT NULL UNIQUE
                )
                """
            )

    def _row_to_entity(self, row: sqlite3.Row) -> WorkspaceSettingsEntity:
        return {
            "id": int(row[_S.id]),
            "workspace_id": int(row[_S.workspace_id]),
            "api_access_token": str(row[_S.api_access_token]),
        }

    def create(self, workspace_id: int, api_access_token: str) -> WorkspaceSettingsEntity:
        if not _fits(workspace_id):
            raise ValueError(f"workspace id {workspace_id} is out of range")
        with self._conn() as conn:
            try:
                cur = conn.execute(
                    f"INSERT INTO {_S.table} ({_S.workspace_id}, {_S.api_access_token}) VALUES (?, ?)",
                    (workspace_id, api_access_token),
                )
            except sqlite3.IntegrityError as e:
                raise ValueError(f"workspace {workspace_id} already has settings") from e
            row = conn.execute(f"SELECT * FROM {_S.table} WHERE {_S.id} = ?", (cur.lastrowid,)).fetchone()
            assert row is not None
            return self._row_to_entity(row)

    def get(self, settings_id: int) -> Optional[WorkspaceSettingsEntity]:
        if not _fits(settings_id):
            return None
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {_S.table} WHERE {_S.id} = ?", (settings_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def get_by_workspace_id(self, workspace_id: int) -> Optional[WorkspaceSettingsEntity]:
        if not _fits(workspace_id):
            return None
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT * FROM {_S.table} WHERE {_S.workspace_id} = ?", (workspace_id,)
            ).fetchone()
            return self._row_to_entity(row) if row else None

    def update_token(self, workspace_id: int, api_access_token: str) -> Optional[WorkspaceSettingsEntity]:
        if not _fits(workspace_id):
            return None
        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE {_S.table} SET {_S.api_access_token} = ? WHERE {_S.workspace_id} = ?",
                (api_access_token, workspace_id),
            )
            if cur.rowcount == 0:
                return None
            row = conn.execute(
                f"SELECT * FROM {_S.table} WHERE {_S.workspace_id} = ?", (workspace_id,)
            ).fetchone()
            logger.debug("Stored new API token for workspace %s", workspace_id)
            return self._row_to_entity(row) if row else None

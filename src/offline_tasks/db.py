from __future__ import annotations

import asyncio
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Generator, List, Optional, TypeVar

from .errors import StoreError
from .models import TaskRecord
from .repositories import TaskRepository

T = TypeVar("T")


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    status: str = "status"
    last_updated: str = "last_updated"
    is_synced: str = "is_synced"
    pending_delete: str = "pending_delete"


_COLS = _Cols()


class SQLiteRepository(TaskRepository):
    """
    SQLite record store implementing the TaskRepository interface.

    Blocking sqlite3 calls run in a worker thread via asyncio.to_thread. A
    ':memory:' path keeps one shared connection for the store's lifetime.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._is_memory = db_path == ":memory:"
        self._shared_conn: Optional[sqlite3.Connection] = None
        self._lock = Lock()
        if not self._is_memory:
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._is_memory:
            if self._shared_conn is None:
                self._shared_conn = sqlite3.connect(":memory:", check_same_thread=False)
                self._shared_conn.row_factory = sqlite3.Row
            return self._shared_conn
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        with self._lock:
            try:
                conn = self._connect()
            except sqlite3.Error as e:
                raise StoreError(f"Cannot open database {self._db_path}: {e}") from e
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(str(e)) from e
            finally:
                if not self._is_memory:
                    conn.close()

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(fn, *args)

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NULL,
                    {_COLS.status} TEXT NOT NULL,
                    {_COLS.last_updated} INTEGER NOT NULL,
                    {_COLS.is_synced} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.pending_delete} INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_is_synced ON {_COLS.table}({_COLS.is_synced})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_pending_delete ON {_COLS.table}({_COLS.pending_delete})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_last_updated ON {_COLS.table}({_COLS.last_updated})"
            )

    def _row_to_record(self, row: sqlite3.Row) -> TaskRecord:
        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "status": str(row[_COLS.status]),
            "last_updated": int(row[_COLS.last_updated]),
            "is_synced": bool(row[_COLS.is_synced]),
            "pending_delete": bool(row[_COLS.pending_delete]),
        }

    def _select(self, where_sql: str = "", params: tuple = (), order_sql: str = "") -> List[TaskRecord]:
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_COLS.table} {where_sql} {order_sql}", params
            ).fetchall()
            return [self._row_to_record(r) for r in rows]

    def _execute(self, sql: str, params: tuple = ()) -> int:
        with self._conn() as conn:
            return conn.execute(sql, params).rowcount

    async def get_all(self) -> List[TaskRecord]:
        return await self._run(
            self._select,
            f"WHERE {_COLS.pending_delete} = 0",
            (),
            f"ORDER BY {_COLS.last_updated} DESC",
        )

    async def get_by_id(self, task_id: str) -> Optional[TaskRecord]:
        rows = await self._run(
            self._select,
            f"WHERE {_COLS.id} = ? AND {_COLS.pending_delete} = 0",
            (task_id,),
        )
        return rows[0] if rows else None

    async def get_unsynced(self) -> List[TaskRecord]:
        return await self._run(self._select, f"WHERE {_COLS.is_synced} = 0")

    async def get_pending_deletes(self) -> List[TaskRecord]:
        return await self._run(self._select, f"WHERE {_COLS.pending_delete} = 1")

    async def insert(self, task: TaskRecord) -> None:
        await self._run(
            self._execute,
            f"""
            INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.description}, {_COLS.status},
                {_COLS.last_updated}, {_COLS.is_synced}, {_COLS.pending_delete})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task["id"],
                task["title"],
                task["description"],
                task["status"],
                int(task["last_updated"]),
                1 if task["is_synced"] else 0,
                1 if task.get("pending_delete") else 0,
            ),
        )

    async def update(self, task: TaskRecord, if_last_updated: Optional[int] = None) -> bool:
        sql = f"""
            UPDATE {_COLS.table}
            SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.status} = ?,
                {_COLS.last_updated} = ?, {_COLS.is_synced} = ?
            WHERE {_COLS.id} = ?
            """
        params: tuple = (
            task["title"],
            task["description"],
            task["status"],
            int(task["last_updated"]),
            1 if task["is_synced"] else 0,
            task["id"],
        )
        if if_last_updated is not None:
            sql += f" AND {_COLS.last_updated} = ?"
            params += (int(if_last_updated),)
        return await self._run(self._execute, sql, params) > 0

    async def mark_synced(self, task_id: str, if_last_updated: Optional[int] = None) -> None:
        if if_last_updated is None:
            await self._run(
                self._execute,
                f"UPDATE {_COLS.table} SET {_COLS.is_synced} = 1 WHERE {_COLS.id} = ?",
                (task_id,),
            )
            return
        await self._run(
            self._execute,
            f"UPDATE {_COLS.table} SET {_COLS.is_synced} = 1 WHERE {_COLS.id} = ? AND {_COLS.last_updated} = ?",
            (task_id, int(if_last_updated)),
        )

    async def mark_pending_delete(self, task_id: str, last_updated: Optional[int] = None) -> None:
        if last_updated is None:
            await self._run(
                self._execute,
                f"UPDATE {_COLS.table} SET {_COLS.pending_delete} = 1, {_COLS.is_synced} = 0 WHERE {_COLS.id} = ?",
                (task_id,),
            )
            return
        await self._run(
            self._execute,
            f"""
            UPDATE {_COLS.table}
            SET {_COLS.pending_delete} = 1, {_COLS.is_synced} = 0, {_COLS.last_updated} = ?
            WHERE {_COLS.id} = ?
            """,
            (int(last_updated), task_id),
        )

    async def delete_permanently(self, task_id: str) -> None:
        await self._run(self._execute, f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,))

    async def clear_all(self) -> None:
        await self._run(self._execute, f"DELETE FROM {_COLS.table}")

    async def close(self) -> None:
        with self._lock:
            if self._shared_conn is not None:
                self._shared_conn.close()
                self._shared_conn = None

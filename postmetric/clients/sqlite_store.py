"""SQLite-backed document store keyed by (pk, sk)."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

Item = Dict[str, Any]


class SQLiteStore:
    """JSON documents in a single table keyed by (pk, sk).

    Conditional and read-modify-write operations run inside ``BEGIN
    IMMEDIATE`` so they are atomic per key even across processes sharing the
    database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path, check_same_thread=False, timeout=30, isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    @staticmethod
    def _read(conn: sqlite3.Connection, pk: str, sk: str) -> Optional[Item]:
        row = conn.execute(
            "SELECT data FROM kv_records WHERE pk = ? AND sk = ?", (pk, sk)
        ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    @staticmethod
    def _write(conn: sqlite3.Connection, item: Item) -> None:
        conn.execute(
            """
            INSERT INTO kv_records (pk, sk, data)
            VALUES (?, ?, ?)
            ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
            """,
            (item["pk"], item["sk"], json.dumps(item)),
        )

    def put_item(self, item: Item) -> None:
        """Insert or fully replace a document."""
        if not item.get("pk") or not item.get("sk"):
            raise ValueError("Item must include 'pk' and 'sk' keys")
        with self._transaction() as conn:
            self._write(conn, item)

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Item]:
        conn = self._connect()
        try:
            return self._read(conn, partition_key, sort_key)
        finally:
            conn.close()

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )

    def pop_item_if(
        self,
        *,
        partition_key: str,
        sort_key: str,
        predicate: Callable[[Item], bool],
    ) -> Tuple[Optional[Item], bool]:
        """
        Atomically delete a document when ``predicate`` accepts it.

        Returns ``(item, removed)``; ``item`` is ``None`` when nothing is
        stored under the key.
        """
        with self._transaction() as conn:
            item = self._read(conn, partition_key, sort_key)
            if item is None or not predicate(item):
                return item, False
            conn.execute(
                "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )
            return item, True

    def update_item(
        self,
        *,
        partition_key: str,
        sort_key: str,
        mutate: Callable[[Optional[Item]], Optional[Item]],
    ) -> Optional[Item]:
        """
        Read-modify-write a document in one transaction.

        ``mutate`` receives the current document (or ``None``) and returns the
        document to store, or ``None`` to leave storage unchanged. Exceptions
        raised by ``mutate`` roll the transaction back.
        """
        with self._transaction() as conn:
            current = self._read(conn, partition_key, sort_key)
            updated = mutate(current)
            if updated is None:
                return current
            updated["pk"] = partition_key
            updated["sk"] = sort_key
            self._write(conn, updated)
            return updated

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Item]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND substr(sk, 1, ?) = ?",
                (partition_key, len(sort_key_prefix), sort_key_prefix),
            ).fetchall()
        finally:
            conn.close()
        return [json.loads(row["data"]) for row in rows]


__all__ = ["Item", "SQLiteStore"]

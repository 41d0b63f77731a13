"""
SQLiteStateStore - SQLite-based view state store.

Single table keyed by content id. Each call opens its own connection and
runs in a worker thread so the event loop is never blocked on disk I/O.
"""

import asyncio
import sqlite3
import time
from pathlib import Path

from liveviews.common.logging import get_logger
from ..errors import StateNotFoundError, StoreUnavailableError
from ..interfaces import PersistedRecord

logger = get_logger(__name__)


class SQLiteStateStore:
    """
    SQLite-based state store.

    Implements StateStoreProtocol.
    """

    def __init__(self, db_path: str = "data/views.db"):
        """
        Args:
            db_path: Path to SQLite database (parent directory is created)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        logger.info("SQLite state store initialized", data={"db_path": str(self.db_path)})

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS view_state (
                    content_id TEXT PRIMARY KEY,
                    view_type_id TEXT NOT NULL,
                    serialized_state TEXT NOT NULL,
                    message_descriptor TEXT NOT NULL,
                    updated_at REAL
                )
            ''')
            conn.commit()
        finally:
            conn.close()

    def _write(self, content_id: str, record: PersistedRecord) -> None:
        conn = self._connect()
        try:
            conn.execute(
                '''
                INSERT OR REPLACE INTO view_state
                    (content_id, view_type_id, serialized_state, message_descriptor, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ''',
                (
                    content_id,
                    record.view_type_id,
                    record.serialized_state,
                    record.message_descriptor,
                    time.time(),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def _read(self, content_id: str):
        conn = self._connect()
        try:
            cursor = conn.execute(
                'SELECT view_type_id, serialized_state, message_descriptor '
                'FROM view_state WHERE content_id = ?',
                (content_id,),
            )
            return cursor.fetchone()
        finally:
            conn.close()

    def _remove(self, content_id: str) -> None:
        conn = self._connect()
        try:
            conn.execute('DELETE FROM view_state WHERE content_id = ?', (content_id,))
            conn.commit()
        finally:
            conn.close()

    async def store_state(
        self,
        content_id: str,
        view_type_id: str,
        serialized_state: str,
        message_descriptor: str,
    ) -> None:
        record = PersistedRecord(view_type_id, serialized_state, message_descriptor)
        try:
            await asyncio.to_thread(self._write, content_id, record)
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                "SQLite write failed",
                data={"content_id": content_id, "db_path": str(self.db_path)},
                cause=e,
            ) from e

    async def get_state(self, content_id: str) -> PersistedRecord:
        try:
            row = await asyncio.to_thread(self._read, content_id)
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                "SQLite read failed",
                data={"content_id": content_id, "db_path": str(self.db_path)},
                cause=e,
            ) from e

        if row is None:
            raise StateNotFoundError(
                "No stored state for content",
                data={"content_id": content_id},
            )
        return PersistedRecord(
            view_type_id=row[0],
            serialized_state=row[1],
            message_descriptor=row[2],
        )

    async def delete_state(self, content_id: str) -> None:
        try:
            await asyncio.to_thread(self._remove, content_id)
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                "SQLite delete failed",
                data={"content_id": content_id},
                cause=e,
            ) from e

"""Durable key/value storage for engine state blobs.

Every failure here is absorbed: reads degrade to "nothing stored" and writes
degrade to "not saved this time". Callers keep their in-memory state.
"""
import json
import logging
import sqlite3
from datetime import datetime
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from abundance_flow.db import DEFAULT_DB_PATH, get_connection, init_db

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class KeyValueStore:
    """String values keyed by string, kept in the ``kv_store`` table."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH, create: bool = True):
        self.db_path = db_path
        if create:
            try:
                init_db(db_path)
            except (sqlite3.Error, OSError):
                logger.exception("Could not initialize store at %s", db_path)

    def get(self, key: str) -> str | None:
        try:
            conn = get_connection(self.db_path)
            try:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Failed to read %r from store", key)
            return None
        return row["value"] if row else None

    def set(self, key: str, value: str) -> bool:
        now = datetime.now().isoformat()
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(
                    "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=?, updated_at=?",
                    (key, value, now, value, now),
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Failed to write %r to store", key)
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Failed to delete %r from store", key)
            return False
        return True


def save_blob(store: KeyValueStore, key: str, blob: BaseModel) -> bool:
    """Serialize a schema instance to JSON and write it under ``key``."""
    return store.set(key, blob.model_dump_json())


def load_blob(
    store: KeyValueStore, key: str, schema: Type[SchemaT], context: Optional[dict] = None
) -> Optional[SchemaT]:
    """Read and validate the blob under ``key``.

    Returns None when nothing is stored, when the store can't be read, or when
    the stored value is malformed. ``context`` is handed to the schema's
    validators. Malformed values are logged and left in place; the next
    successful save overwrites them.
    """
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return schema.model_validate(json.loads(raw), context=context)
    except (json.JSONDecodeError, ValidationError, TypeError, RecursionError) as e:
        logger.warning("Discarding corrupted %r: %s", key, e)
        return None

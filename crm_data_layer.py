"""
CRM Data Layer - Local JSON persistence
Provides the string-keyed blob store used when the database is unreachable, and a
table-shaped store on top of it with the same interface as the database layer.
"""
import os
import re
import json
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Any
import logging
import threading

logger = logging.getLogger(__name__)

# File lock for thread-safe operations
_file_locks = {}
_locks_guard = threading.Lock()

KEY_PATTERN = re.compile(r'^[A-Za-z0-9_\-]+$')


class StoreError(Exception):
    """Raised when a store read or write fails"""
    pass


def get_file_lock(filepath: str) -> threading.Lock:
    """Get or create a lock for a specific file"""
    with _locks_guard:
        if filepath not in _file_locks:
            _file_locks[filepath] = threading.Lock()
        return _file_locks[filepath]


class LocalBlobStore:
    """
    String-keyed read/write blob store, one JSON file per key.

    Values are opaque strings; callers serialize and deserialize JSON themselves.
    """

    def __init__(self, folder: str):
        self.folder = folder
        os.makedirs(folder, exist_ok=True)

    def _path(self, key: str) -> str:
        if not key or not KEY_PATTERN.match(key):
            raise StoreError(f"Invalid storage key: {key!r}")
        return os.path.join(self.folder, f"{key}.json")

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string for key, or None if it was never written"""
        filepath = self._path(key)
        lock = get_file_lock(filepath)
        with lock:
            if not os.path.exists(filepath):
                return None
            try:
                with open(filepath, 'r', encoding='utf-8') as f:
                    content = f.read()
            except OSError as e:
                logger.error(f"Error loading {filepath}: {e}")
                raise StoreError(f"Failed to read {key}: {e}") from e
        return content if content.strip() else None

    def set_item(self, key: str, value: str) -> None:
        """Atomic write: temp file first, then rename"""
        filepath = self._path(key)
        temp_path = f"{filepath}.tmp"
        lock = get_file_lock(filepath)
        with lock:
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    f.write(value)
                os.replace(temp_path, filepath)
            except OSError as e:
                logger.error(f"Error saving {filepath}: {e}")
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise StoreError(f"Failed to write {key}: {e}") from e

    def remove_item(self, key: str) -> None:
        filepath = self._path(key)
        lock = get_file_lock(filepath)
        with lock:
            if os.path.exists(filepath):
                os.remove(filepath)

    def backup_item(self, key: str) -> Optional[str]:
        """Move a corrupted entry aside so it can be inspected later"""
        filepath = self._path(key)
        lock = get_file_lock(filepath)
        with lock:
            if not os.path.exists(filepath):
                return None
            backup_path = f"{filepath}.backup.{datetime.now().strftime('%Y%m%d_%H%M%S')}"
            os.rename(filepath, backup_path)
        logger.warning(f"Corrupted file backed up to {backup_path}")
        return backup_path


class LocalDataStore:
    """
    Table store over a LocalBlobStore.

    Each table is a JSON array stored under the table name. Same interface as
    DatabaseStore: select / insert / update / delete / clear.
    """

    def __init__(self, blob_store: LocalBlobStore):
        self.blob_store = blob_store

    # ==================== FILE OPERATIONS ====================

    def _load_rows(self, table: str) -> List[Dict]:
        content = self.blob_store.get_item(table)
        if content is None:
            return []
        try:
            rows = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error in table {table}: {e}")
            self.blob_store.backup_item(table)
            return []
        if not isinstance(rows, list):
            logger.error(f"Table {table} does not contain a list, ignoring it")
            return []
        return rows

    def _save_rows(self, table: str, rows: List[Dict]) -> None:
        self.blob_store.set_item(table, json.dumps(rows, indent=2, default=str))

    # ==================== STORE INTERFACE ====================

    def select(self, table: str, filters: Optional[Dict[str, Any]] = None,
               order_by: Optional[str] = None, descending: bool = False,
               limit: Optional[int] = None) -> List[Dict]:
        """Rows matching every equality filter, optionally ordered and limited"""
        rows = self._load_rows(table)

        if filters:
            rows = [r for r in rows if all(r.get(k) == v for k, v in filters.items())]

        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            # Nulls sort last either way
            rows = present + missing

        if limit is not None:
            rows = rows[:limit]
        return rows

    def get(self, table: str, row_id: str) -> Optional[Dict]:
        return next((r for r in self._load_rows(table) if r.get('id') == row_id), None)

    def insert(self, table: str, row: Dict) -> Dict:
        rows = self._load_rows(table)
        record = dict(row)
        record.setdefault('id', str(uuid.uuid4()))
        record.setdefault('created_at', datetime.utcnow().isoformat())
        if any(r.get('id') == record['id'] for r in rows):
            raise StoreError(f"Duplicate id {record['id']} in {table}")
        rows.append(record)
        self._save_rows(table, rows)
        return record

    def update(self, table: str, row_id: str, changes: Dict) -> Optional[Dict]:
        rows = self._load_rows(table)
        idx = next((i for i, r in enumerate(rows) if r.get('id') == row_id), None)
        if idx is None:
            return None
        record = dict(rows[idx])
        record.update({k: v for k, v in changes.items() if k != 'id'})
        rows[idx] = record
        self._save_rows(table, rows)
        return record

    def upsert(self, table: str, row: Dict) -> Dict:
        """Insert the row, or replace the existing row with the same id"""
        if row.get('id') and self.get(table, row['id']) is not None:
            return self.update(table, row['id'], row)
        return self.insert(table, row)

    def delete(self, table: str, row_id: str) -> bool:
        rows = self._load_rows(table)
        remaining = [r for r in rows if r.get('id') != row_id]
        if len(remaining) == len(rows):
            return False
        self._save_rows(table, remaining)
        return True

    def clear(self, table: str) -> int:
        count = len(self._load_rows(table))
        self._save_rows(table, [])
        return count

    def ping(self) -> bool:
        """Local storage is reachable when the folder is writable"""
        return os.access(self.blob_store.folder, os.W_OK)

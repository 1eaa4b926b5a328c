"""
Local-first table with a remote mirror.
Every write lands in the local store; when online, the same write is repeated
against the remote store. A failed mirror never rolls back the local write.
"""
import logging
from typing import Callable, Dict, List, Optional, Any

from crm_data_layer import StoreError

logger = logging.getLogger(__name__)


class MirrorError(StoreError):
    """The local write succeeded but the remote mirror failed"""

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result


class MirroredTable:
    """
    One table kept in a local store and mirrored to a remote store.

    Args:
        table: Table name in both stores
        local_store: Always written, e.g. LocalDataStore
        remote_store: Written when online, e.g. DatabaseStore; may be None
        is_online: Callable returning whether the remote store should be used
    """

    table = None

    def __init__(self, local_store, remote_store=None, is_online: Optional[Callable[[], bool]] = None,
                 table: Optional[str] = None):
        self.local = local_store
        self.remote = remote_store
        self._is_online = is_online or (lambda: remote_store is not None)
        if table is not None:
            self.table = table

    @property
    def is_online(self) -> bool:
        return self.remote is not None and bool(self._is_online())

    def _mirror(self, operation: str, result: Any, *args) -> Any:
        if not self.is_online:
            return result
        try:
            getattr(self.remote, operation)(self.table, *args)
        except StoreError as e:
            logger.warning(f"Remote {operation} on {self.table} failed: {e}")
            raise MirrorError(f"Saved locally, but syncing {self.table} failed: {e}", result) from e
        return result

    # ==================== READS ====================

    def get(self, row_id: str) -> Optional[Dict]:
        return self.local.get(self.table, row_id)

    def rows(self, filters: Optional[Dict[str, Any]] = None, order_by: Optional[str] = None,
             descending: bool = False, limit: Optional[int] = None) -> List[Dict]:
        return self.local.select(self.table, filters, order_by, descending, limit)

    def load(self) -> List[Dict]:
        """
        Refresh the local copy from the remote store when online.

        Falls back to the local rows when the remote read fails.
        """
        if not self.is_online:
            return self.rows(order_by='created_at')
        try:
            remote_rows = self.remote.select(self.table, order_by='created_at')
        except StoreError as e:
            logger.warning(f"Loading {self.table} from remote failed, using local copy: {e}")
            return self.rows(order_by='created_at')
        for row in remote_rows:
            self.local.upsert(self.table, row)
        return self.rows(order_by='created_at')

    # ==================== WRITES ====================

    def _insert(self, row: Dict) -> Dict:
        record = self.local.insert(self.table, row)
        # Remote gets the locally assigned id so both copies stay addressable
        return self._mirror('insert', record, record)

    def _update(self, row_id: str, changes: Dict) -> Optional[Dict]:
        record = self.local.update(self.table, row_id, changes)
        if record is None:
            return None
        return self._mirror('upsert', record, record)

    def _delete(self, row_id: str) -> bool:
        removed = self.local.delete(self.table, row_id)
        if not removed:
            return False
        return self._mirror('delete', removed, row_id)

    def _clear(self) -> int:
        count = self.local.clear(self.table)
        return self._mirror('clear', count)

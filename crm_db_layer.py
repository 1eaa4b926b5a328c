"""
CRM Database Layer - PostgreSQL-backed table store
Drop-in replacement for LocalDataStore that uses SQLAlchemy instead of JSON files.
Maintains the same select / insert / update / delete / clear interface.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
from functools import wraps

from sqlalchemy.exc import SQLAlchemyError

from crm_data_layer import StoreError
from database.connection import get_db_session, check_db_connection
from database.models import Client, Job, Invoice, Employee, Deal, Note, Pin, Measurement

logger = logging.getLogger(__name__)

TABLE_MODELS = {
    'clients': Client,
    'jobs': Job,
    'invoices': Invoice,
    'employees': Employee,
    'deals': Deal,
    'notes': Note,
    'pins': Pin,
    'measurements': Measurement,
}


def db_operation(func):
    """Decorator to handle database session and error handling."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            with get_db_session(self.session_factory) as session:
                self._session = session
                return func(self, *args, **kwargs)
        except StoreError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database operation error in {func.__name__}: {e}")
            raise StoreError(str(e)) from e
        finally:
            self._session = None
    return wrapper


class DatabaseStore:
    """
    Database-backed table store.
    Rows go in and come out as plain dicts, keyed by table name.
    """

    def __init__(self, session_factory=None):
        # None means the process-wide factory from database.connection
        self.session_factory = session_factory
        self._session = None

    def _model(self, table: str):
        model = TABLE_MODELS.get(table)
        if model is None:
            raise StoreError(f"Unknown table: {table}")
        return model

    def _columns(self, model) -> set:
        return {c.name for c in model.__table__.columns}

    # ==================== STORE INTERFACE ====================

    @db_operation
    def select(self, table: str, filters: Optional[Dict[str, Any]] = None,
               order_by: Optional[str] = None, descending: bool = False,
               limit: Optional[int] = None) -> List[Dict]:
        model = self._model(table)
        query = self._session.query(model)
        for key, value in (filters or {}).items():
            if key not in self._columns(model):
                raise StoreError(f"Unknown column {key} on {table}")
            query = query.filter(getattr(model, key) == value)
        if order_by:
            column = getattr(model, order_by, None)
            if column is None:
                raise StoreError(f"Unknown column {order_by} on {table}")
            # Nulls sort last either way
            query = query.order_by(column.is_(None), column.desc() if descending else column.asc())
        if limit is not None:
            query = query.limit(limit)
        return [row.to_dict() for row in query.all()]

    @db_operation
    def get(self, table: str, row_id: str) -> Optional[Dict]:
        row = self._session.get(self._model(table), row_id)
        return row.to_dict() if row else None

    @db_operation
    def insert(self, table: str, row: Dict) -> Dict:
        model = self._model(table)
        columns = self._columns(model)
        record = model(**{k: v for k, v in row.items() if k in columns})
        self._session.add(record)
        self._session.flush()
        return record.to_dict()

    @db_operation
    def update(self, table: str, row_id: str, changes: Dict) -> Optional[Dict]:
        model = self._model(table)
        record = self._session.get(model, row_id)
        if record is None:
            return None
        columns = self._columns(model)
        for key, value in changes.items():
            if key != 'id' and key in columns:
                setattr(record, key, value)
        if 'updated_at' in columns and 'updated_at' not in changes:
            record.updated_at = datetime.utcnow().isoformat()
        self._session.flush()
        return record.to_dict()

    def upsert(self, table: str, row: Dict) -> Dict:
        """Insert the row, or replace the existing row with the same id"""
        if row.get('id') and self.get(table, row['id']) is not None:
            return self.update(table, row['id'], row)
        return self.insert(table, row)

    @db_operation
    def delete(self, table: str, row_id: str) -> bool:
        record = self._session.get(self._model(table), row_id)
        if record is None:
            return False
        self._session.delete(record)
        return True

    @db_operation
    def clear(self, table: str) -> int:
        return self._session.query(self._model(table)).delete()

    def ping(self) -> bool:
        """True when the database answers a trivial query"""
        try:
            if self.session_factory is not None:
                with get_db_session(self.session_factory) as session:
                    return check_db_connection(session.get_bind())
            return check_db_connection()
        except RuntimeError:
            return False

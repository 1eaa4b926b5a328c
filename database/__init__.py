"""
Database package for Yardstick CRM.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    get_engine,
    get_session_factory,
    get_db_session,
    init_db,
    check_db_connection,
    is_db_configured
)

from database.models import (
    Client,
    Job,
    Invoice,
    Employee,
    Deal,
    Note,
    Pin,
    Measurement
)

__all__ = [
    # Connection
    'Base',
    'get_engine',
    'get_session_factory',
    'get_db_session',
    'init_db',
    'check_db_connection',
    'is_db_configured',
    # Models
    'Client',
    'Job',
    'Invoice',
    'Employee',
    'Deal',
    'Note',
    'Pin',
    'Measurement'
]

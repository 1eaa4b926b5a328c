"""
SQLAlchemy models for Yardstick CRM.
Defines the CRM tables and the property pin / measurement tables.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Float, Integer, Boolean, ForeignKey, JSON, Index
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from database.connection import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB, 'postgresql')


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


# =============================================================================
# CRM - CLIENTS
# =============================================================================

class Client(Base):
    """Client records."""
    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    jobs = relationship("Job", back_populates="client")
    invoices = relationship("Invoice", back_populates="client")
    pins = relationship("Pin", back_populates="client")

    __table_args__ = (
        Index('ix_clients_name', 'name'),
        Index('ix_clients_email', 'email'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }


# =============================================================================
# CRM - JOBS, INVOICES
# =============================================================================

class Job(Base):
    """Scheduled work for a client."""
    __tablename__ = 'jobs'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey('clients.id'))
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(50), default='pending')  # pending, in_progress, completed, cancelled
    scheduled_date = Column(String(40))
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    client = relationship("Client", back_populates="jobs")

    __table_args__ = (
        Index('ix_jobs_client', 'client_id'),
        Index('ix_jobs_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'scheduled_date': self.scheduled_date,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }


class Invoice(Base):
    """Invoices billed to clients."""
    __tablename__ = 'invoices'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey('clients.id'))
    invoice_number = Column(String(50), nullable=False)
    amount = Column(Float, default=0.0)
    due_date = Column(String(40))
    status = Column(String(50), default='pending')  # pending, paid, overdue, cancelled
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    client = relationship("Client", back_populates="invoices")

    __table_args__ = (
        Index('ix_invoices_client', 'client_id'),
        Index('ix_invoices_number', 'invoice_number'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'invoice_number': self.invoice_number,
            'amount': self.amount,
            'due_date': self.due_date,
            'status': self.status,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }


# =============================================================================
# CRM - EMPLOYEES, DEALS, NOTES
# =============================================================================

class Employee(Base):
    """Staff with role-based permissions."""
    __tablename__ = 'employees'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    role = Column(String(50), default='employee')  # employee, manager, admin
    permissions = Column(JSONType, default=dict)
    is_active = Column(Boolean, default=True)
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'permissions': self.permissions or {},
            'is_active': self.is_active,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }


class Deal(Base):
    """Sales pipeline entries."""
    __tablename__ = 'deals'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    amount = Column(Float, default=0.0)
    status = Column(String(50), default='open')  # open, negotiation, won, lost
    probability = Column(Integer, default=0)
    expected_close_date = Column(String(40))
    company_name = Column(String(255))
    contact_name = Column(String(255))
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'amount': self.amount,
            'status': self.status,
            'probability': self.probability,
            'expected_close_date': self.expected_close_date,
            'company_name': self.company_name,
            'contact_name': self.contact_name,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }


class Note(Base):
    """Free-text notes, optionally attached to a client or job."""
    __tablename__ = 'notes'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    content = Column(Text)
    type = Column(String(20), default='general')  # client, job, general
    reference_id = Column(String(36))
    reference_name = Column(String(255))
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'type': self.type,
            'reference_id': self.reference_id,
            'reference_name': self.reference_name,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }


# =============================================================================
# PROPERTY PINS & MEASUREMENTS
# =============================================================================

class Pin(Base):
    """A saved property location, optionally carrying its latest measurement."""
    __tablename__ = 'pins'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey('clients.id'))
    address = Column(Text, nullable=False)
    coordinates = Column(JSONType, nullable=False)  # {"lat": .., "lng": ..}
    measurement = Column(JSONType)  # {"length": .., "width": .., "area": ..}
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    client = relationship("Client", back_populates="pins")

    __table_args__ = (
        Index('ix_pins_client', 'client_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'address': self.address,
            'coordinates': self.coordinates,
            'measurement': self.measurement,
            'created_at': self.created_at
        }


class Measurement(Base):
    """
    Recorded dimensions for a property feature.

    Either the linear columns (length/width/depth/area/volume) or snowfall are
    populated, selected by type.
    """
    __tablename__ = 'measurements'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    pin_id = Column(String(36), ForeignKey('pins.id', ondelete='SET NULL'))
    type = Column(String(20), nullable=False)
    material = Column(String(20))
    length = Column(Float)
    width = Column(Float)
    depth = Column(Float)
    area = Column(Float)
    volume = Column(Float)
    snowfall = Column(Float)
    location = Column(Text)
    address = Column(Text)
    notes = Column(Text)
    coordinates = Column(JSONType)  # point {"lat","lng"} or polygon [{"lat","lng"}, ...]
    created_at = Column(String(40), default=lambda: datetime.utcnow().isoformat())

    __table_args__ = (
        Index('ix_measurements_type', 'type'),
        Index('ix_measurements_created', 'created_at'),
    )

    def to_dict(self):
        data = {
            'id': self.id,
            'pin_id': self.pin_id,
            'type': self.type,
            'material': self.material,
            'length': self.length,
            'width': self.width,
            'depth': self.depth,
            'area': self.area,
            'volume': self.volume,
            'snowfall': self.snowfall,
            'location': self.location,
            'address': self.address,
            'notes': self.notes,
            'coordinates': self.coordinates,
            'created_at': self.created_at
        }
        return {k: v for k, v in data.items() if v is not None}

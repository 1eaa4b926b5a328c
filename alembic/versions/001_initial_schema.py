"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates the CRM tables and the property pin / measurement tables for Yardstick CRM.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Clients table
    op.create_table('clients',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.Text()),
        sa.Column('created_at', sa.String(40)),
        sa.Column('updated_at', sa.String(40)),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clients_name', 'clients', ['name'])
    op.create_index('ix_clients_email', 'clients', ['email'])

    # Jobs table
    op.create_table('jobs',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36)),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(50), default='pending'),
        sa.Column('scheduled_date', sa.String(40)),
        sa.Column('created_at', sa.String(40)),
        sa.Column('updated_at', sa.String(40)),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_jobs_client', 'jobs', ['client_id'])
    op.create_index('ix_jobs_status', 'jobs', ['status'])

    # Invoices table
    op.create_table('invoices',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36)),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('amount', sa.Float(), default=0.0),
        sa.Column('due_date', sa.String(40)),
        sa.Column('status', sa.String(50), default='pending'),
        sa.Column('created_at', sa.String(40)),
        sa.Column('updated_at', sa.String(40)),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invoices_client', 'invoices', ['client_id'])
    op.create_index('ix_invoices_number', 'invoices', ['invoice_number'])

    # Employees table
    op.create_table('employees',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('role', sa.String(50), default='employee'),
        sa.Column('permissions', postgresql.JSONB, default={}),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.String(40)),
        sa.Column('updated_at', sa.String(40)),
        sa.PrimaryKeyConstraint('id')
    )

    # Deals table
    op.create_table('deals',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('amount', sa.Float(), default=0.0),
        sa.Column('status', sa.String(50), default='open'),
        sa.Column('probability', sa.Integer(), default=0),
        sa.Column('expected_close_date', sa.String(40)),
        sa.Column('company_name', sa.String(255)),
        sa.Column('contact_name', sa.String(255)),
        sa.Column('created_at', sa.String(40)),
        sa.Column('updated_at', sa.String(40)),
        sa.PrimaryKeyConstraint('id')
    )

    # Notes table
    op.create_table('notes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text()),
        sa.Column('type', sa.String(20), default='general'),
        sa.Column('reference_id', sa.String(36)),
        sa.Column('reference_name', sa.String(255)),
        sa.Column('created_at', sa.String(40)),
        sa.Column('updated_at', sa.String(40)),
        sa.PrimaryKeyConstraint('id')
    )

    # Pins table
    op.create_table('pins',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36)),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('coordinates', postgresql.JSONB, nullable=False),
        sa.Column('measurement', postgresql.JSONB),
        sa.Column('created_at', sa.String(40)),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pins_client', 'pins', ['client_id'])

    # Measurements table
    op.create_table('measurements',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('pin_id', sa.String(36)),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('material', sa.String(20)),
        sa.Column('length', sa.Float()),
        sa.Column('width', sa.Float()),
        sa.Column('depth', sa.Float()),
        sa.Column('area', sa.Float()),
        sa.Column('volume', sa.Float()),
        sa.Column('snowfall', sa.Float()),
        sa.Column('location', sa.Text()),
        sa.Column('address', sa.Text()),
        sa.Column('notes', sa.Text()),
        sa.Column('coordinates', postgresql.JSONB),
        sa.Column('created_at', sa.String(40)),
        sa.ForeignKeyConstraint(['pin_id'], ['pins.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_measurements_type', 'measurements', ['type'])
    op.create_index('ix_measurements_created', 'measurements', ['created_at'])


def downgrade() -> None:
    op.drop_table('measurements')
    op.drop_table('pins')
    op.drop_table('notes')
    op.drop_table('deals')
    op.drop_table('employees')
    op.drop_table('invoices')
    op.drop_table('jobs')
    op.drop_table('clients')

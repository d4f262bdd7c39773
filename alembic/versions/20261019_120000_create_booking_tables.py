"""create users, therapies, appointments and appointment_users tables

Revision ID: 20261019_120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_120000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the booking schema"""

    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(16), nullable=False, server_default='GUEST'),
        sa.Column('approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'therapies',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('image', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'appointments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('therapy_id', sa.String(36),
                  sa.ForeignKey('therapies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('end_time > start_time', name='ck_appointments_end_after_start'),
    )
    op.create_index('ix_appointments_therapy_id_date', 'appointments', ['therapy_id', 'date'])
    # Batch completion scans occupied rows by end time
    op.create_index('ix_appointments_status_end_time', 'appointments', ['status', 'end_time'])

    op.create_table(
        'appointment_users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('appointment_id', sa.String(36),
                  sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('appointment_id', 'user_id',
                            name='uq_appointment_users_appointment_id_user_id'),
    )
    op.create_index('ix_appointment_users_user_id', 'appointment_users', ['user_id'])


def downgrade() -> None:
    """Drop the booking schema"""

    op.drop_index('ix_appointment_users_user_id', table_name='appointment_users')
    op.drop_table('appointment_users')
    op.drop_index('ix_appointments_status_end_time', table_name='appointments')
    op.drop_index('ix_appointments_therapy_id_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('therapies')
    op.drop_table('users')

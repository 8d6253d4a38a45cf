"""Complaint core schema

Revision ID: 0001_complaint_core
Revises:
Create Date: 2026-10-18

Creates the party directory, sequence counters, complaints, the notification
audit trail and billing records.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_complaint_core'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create complaint core tables."""

    # ==========================================================================
    # Party directory
    # ==========================================================================
    op.create_table(
        'technicians',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('phone_number', sa.String(15), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_technicians_phone_active', 'technicians', ['phone_number', 'is_active'])

    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('phone_number', sa.String(15), nullable=True, unique=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'admins',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('phone_number', sa.String(15), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ==========================================================================
    # Sequence counters (one series per store code)
    # ==========================================================================
    op.create_table(
        'sequence_counters',
        sa.Column('key', sa.String(64), primary_key=True),
        sa.Column('seq', sa.BigInteger(), server_default=sa.text('0'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ==========================================================================
    # Complaints
    # ==========================================================================
    op.create_table(
        'complaints',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('complaint_number', sa.String(32), nullable=False, unique=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(200), nullable=False),
        sa.Column('store_code', sa.String(3), nullable=False),
        sa.Column('priority', sa.String(10), server_default=sa.text("'medium'"), nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('photos', sa.JSON(), nullable=False),
        sa.Column('creator_type', sa.String(20), nullable=False),
        sa.Column('client_id', sa.Uuid(), sa.ForeignKey('clients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by_technician_id', sa.Uuid(), sa.ForeignKey('technicians.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_technician_id', sa.Uuid(), sa.ForeignKey('technicians.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_by_admin_id', sa.Uuid(), sa.ForeignKey('admins.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('technician_notes', sa.Text(), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('resolution_photos', sa.JSON(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_complaints_client', 'complaints', ['client_id', 'created_at'])
    op.create_index('idx_complaints_assignee_status', 'complaints', ['assigned_technician_id', 'status'])
    op.create_index('idx_complaints_creator_tech', 'complaints', ['created_by_technician_id'])
    op.create_index('idx_complaints_status_created', 'complaints', ['status', 'created_at'])

    # ==========================================================================
    # Notification audit trail
    # ==========================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('complaint_id', sa.Uuid(), sa.ForeignKey('complaints.id', ondelete='CASCADE'), nullable=False),
        sa.Column('recipient', sa.String(20), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('external_message_id', sa.String(255), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_notif_complaint_type', 'notifications', ['complaint_id', 'type'])
    op.create_index('idx_notif_recipient_created', 'notifications', ['recipient', 'created_at'])

    # ==========================================================================
    # Billing records (at most one per complaint)
    # ==========================================================================
    op.create_table(
        'billing_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('complaint_id', sa.Uuid(), sa.ForeignKey('complaints.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('technician_id', sa.Uuid(), sa.ForeignKey('technicians.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('is_complaint_resolved', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('materials_used', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('materials', sa.JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_by_admin_id', sa.Uuid(), sa.ForeignKey('admins.id', ondelete='SET NULL'), nullable=True),
        sa.Column('updated_by_admin_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_billing_technician_submitted', 'billing_records', ['technician_id', 'submitted_at'])


def downgrade() -> None:
    """Drop complaint core tables."""
    op.drop_index('idx_billing_technician_submitted', table_name='billing_records')
    op.drop_table('billing_records')
    op.drop_index('idx_notif_recipient_created', table_name='notifications')
    op.drop_index('idx_notif_complaint_type', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('idx_complaints_status_created', table_name='complaints')
    op.drop_index('idx_complaints_creator_tech', table_name='complaints')
    op.drop_index('idx_complaints_assignee_status', table_name='complaints')
    op.drop_index('idx_complaints_client', table_name='complaints')
    op.drop_table('complaints')
    op.drop_table('sequence_counters')
    op.drop_table('admins')
    op.drop_table('clients')
    op.drop_index('idx_technicians_phone_active', table_name='technicians')
    op.drop_table('technicians')

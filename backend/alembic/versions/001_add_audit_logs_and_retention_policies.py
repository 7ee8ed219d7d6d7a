"""Create audit_logs and data_retention_policies tables

Revision ID: 001_add_audit_logs
Revises:
Create Date: 2026-10-12 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_add_audit_logs'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create audit log and retention policy tables."""
    op.create_table(
        'audit_logs',
        sa.Column('seq', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('clinic_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.String(length=255), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('successful', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('retention_date', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('seq'),
        sa.UniqueConstraint('id', name='uq_audit_logs_id'),
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'], unique=False)
    op.create_index('ix_audit_logs_clinic_id', 'audit_logs', ['clinic_id'], unique=False)
    op.create_index('ix_audit_logs_retention_date', 'audit_logs', ['retention_date'], unique=False)
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id', 'timestamp', 'seq'], unique=False)

    op.create_table(
        'data_retention_policies',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('data_type', sa.String(length=100), nullable=False),
        sa.Column('retention_period_days', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('legal_basis', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('retention_period_days > 0', name='ck_retention_period_positive'),
    )
    op.create_index('ix_data_retention_policies_data_type', 'data_retention_policies', ['data_type'], unique=False)
    # One active policy per data category
    op.create_index(
        'uq_data_retention_policies_active_data_type',
        'data_retention_policies',
        ['data_type'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active = 1'),
    )


def downgrade() -> None:
    """Drop audit log and retention policy tables."""
    op.drop_index('uq_data_retention_policies_active_data_type', table_name='data_retention_policies')
    op.drop_index('ix_data_retention_policies_data_type', table_name='data_retention_policies')
    op.drop_table('data_retention_policies')
    op.drop_index('ix_audit_logs_entity', table_name='audit_logs')
    op.drop_index('ix_audit_logs_retention_date', table_name='audit_logs')
    op.drop_index('ix_audit_logs_clinic_id', table_name='audit_logs')
    op.drop_index('ix_audit_logs_user_id', table_name='audit_logs')
    op.drop_table('audit_logs')

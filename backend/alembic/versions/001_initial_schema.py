"""initial employee directory schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Departments, locations, assets, permissions, employees with their
permission assignments, and refresh-token sessions.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'departments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), unique=True, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), unique=True, nullable=False),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('storage_key', sa.String(512), unique=True, nullable=False),
        sa.Column('bucket', sa.String(255), nullable=True),
        sa.Column('original_name', sa.String(255), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(1024), nullable=False),
        sa.Column('cdn_url', sa.String(1024), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(50), unique=True, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('position', sa.String(100), nullable=False),
        sa.Column('hire_date', sa.DateTime(), nullable=False),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reports_to_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('profile_asset_id', sa.Integer(), sa.ForeignKey('assets.id', ondelete='SET NULL'), unique=True, nullable=True),
        sa.Column('deactivated_at', sa.DateTime(), nullable=True),
        sa.Column('deactivated_by', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'reports_to_id IS NULL OR reports_to_id <> id',
            name='ck_employees_not_own_manager',
        ),
    )
    op.create_index('ix_employees_email', 'employees', ['email'], unique=True)
    op.create_index('idx_employees_department_id', 'employees', ['department_id'])
    op.create_index('idx_employees_location_id', 'employees', ['location_id'])
    op.create_index('idx_employees_reports_to_id', 'employees', ['reports_to_id'])
    op.create_index('idx_employees_deactivated_at', 'employees', ['deactivated_at'])

    op.create_table(
        'employee_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('employee_id', 'permission_id', name='uq_employee_permission'),
    )
    op.create_index('idx_employee_permissions_employee_id', 'employee_permissions', ['employee_id'])

    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('device_info', sa.String(255), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
    )
    op.create_index('ix_refresh_tokens_token_hash', 'refresh_tokens', ['token_hash'], unique=True)
    op.create_index('ix_refresh_tokens_employee_expires', 'refresh_tokens', ['employee_id', 'expires_at'])
    op.create_index('ix_refresh_tokens_cleanup', 'refresh_tokens', ['expires_at', 'is_revoked'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_refresh_tokens_cleanup', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_employee_expires', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_token_hash', table_name='refresh_tokens')
    op.drop_table('refresh_tokens')
    op.drop_index('idx_employee_permissions_employee_id', table_name='employee_permissions')
    op.drop_table('employee_permissions')
    op.drop_index('idx_employees_deactivated_at', table_name='employees')
    op.drop_index('idx_employees_reports_to_id', table_name='employees')
    op.drop_index('idx_employees_location_id', table_name='employees')
    op.drop_index('idx_employees_department_id', table_name='employees')
    op.drop_index('ix_employees_email', table_name='employees')
    op.drop_table('employees')
    op.drop_table('permissions')
    op.drop_table('assets')
    op.drop_table('locations')
    op.drop_table('departments')

"""Initial schema: tenants, users, module access, licenses, geofencing and attendance

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(onupdate: bool = True):
    # Use CURRENT_TIMESTAMP for defaults so it works on SQLite and Postgres
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]
    if onupdate:
        cols.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False)
        )
    return cols


def upgrade() -> None:
    bind = op.get_bind()
    if 'companies' in sa.inspect(bind).get_table_names():
        return

    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('contact_number', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('employee_limit', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('branch_limit', sa.Integer(), nullable=False, server_default='10'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_companies_id'), 'companies', ['id'], unique=False)
    op.create_index(op.f('ix_companies_company_code'), 'companies', ['company_code'], unique=True)

    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('name_key', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('employee_limit', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'name_key', name='uq_branch_company_name'),
    )
    op.create_index(op.f('ix_branches_id'), 'branches', ['id'], unique=False)
    op.create_index(op.f('ix_branches_company_id'), 'branches', ['company_id'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('employee_code', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('designation', sa.String(), nullable=True),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='employee'),
        sa.Column('attendance_mode', sa.String(), nullable=False, server_default='geofencing'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'employee_code', name='uq_user_company_employee_code'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_company_id'), 'users', ['company_id'], unique=False)
    op.create_index(op.f('ix_users_branch_id'), 'users', ['branch_id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=True)
    op.create_index(op.f('ix_users_employee_code'), 'users', ['employee_code'], unique=False)

    op.create_table(
        'company_modules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('module_name', sa.String(), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'module_name', name='uq_company_module'),
    )
    op.create_index(op.f('ix_company_modules_id'), 'company_modules', ['id'], unique=False)
    op.create_index(op.f('ix_company_modules_company_id'), 'company_modules', ['company_id'], unique=False)

    op.create_table(
        'branch_manager_modules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=False),
        sa.Column('module_name', sa.String(), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_view', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_modify', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_update', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(onupdate=False),
        sa.ForeignKeyConstraint(['manager_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('manager_id', 'module_name', name='uq_branch_manager_module'),
    )
    op.create_index(op.f('ix_branch_manager_modules_id'), 'branch_manager_modules', ['id'], unique=False)
    op.create_index(op.f('ix_branch_manager_modules_manager_id'), 'branch_manager_modules', ['manager_id'], unique=False)

    op.create_table(
        'employee_module_access',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('module_name', sa.String(), nullable=False),
        sa.Column('access_level', sa.String(), nullable=False, server_default='view'),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(onupdate=False),
        sa.ForeignKeyConstraint(['employee_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'module_name', name='uq_employee_module'),
    )
    op.create_index(op.f('ix_employee_module_access_id'), 'employee_module_access', ['id'], unique=False)
    op.create_index(op.f('ix_employee_module_access_employee_id'), 'employee_module_access', ['employee_id'], unique=False)

    op.create_table(
        'company_licenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_value', sa.Integer(), nullable=False),
        sa.Column('duration_unit', sa.String(), nullable=False, server_default='years'),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_company_licenses_id'), 'company_licenses', ['id'], unique=False)
    op.create_index(op.f('ix_company_licenses_company_id'), 'company_licenses', ['company_id'], unique=True)

    op.create_table(
        'geofence_zones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('radius_meters', sa.Float(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_geofence_zones_id'), 'geofence_zones', ['id'], unique=False)
    op.create_index(op.f('ix_geofence_zones_company_id'), 'geofence_zones', ['company_id'], unique=False)
    op.create_index(op.f('ix_geofence_zones_branch_id'), 'geofence_zones', ['branch_id'], unique=False)

    op.create_table(
        'attendance_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('check_in_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('check_in_lat', sa.Float(), nullable=False),
        sa.Column('check_in_lng', sa.Float(), nullable=False),
        sa.Column('check_in_status', sa.String(), nullable=False, server_default='unchecked'),
        sa.Column('check_in_zone_id', sa.Integer(), nullable=True),
        sa.Column('check_in_distance_m', sa.Float(), nullable=True),
        sa.Column('check_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('check_out_lat', sa.Float(), nullable=True),
        sa.Column('check_out_lng', sa.Float(), nullable=True),
        sa.Column('check_out_status', sa.String(), nullable=True),
        sa.Column('check_out_zone_id', sa.Integer(), nullable=True),
        sa.Column('check_out_distance_m', sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['check_in_zone_id'], ['geofence_zones.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['check_out_zone_id'], ['geofence_zones.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_attendance_logs_id'), 'attendance_logs', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_logs_user_id'), 'attendance_logs', ['user_id'], unique=False)
    op.create_index(op.f('ix_attendance_logs_company_id'), 'attendance_logs', ['company_id'], unique=False)
    op.create_index(op.f('ix_attendance_logs_work_date'), 'attendance_logs', ['work_date'], unique=False)
    # At most one open record per user and work date
    op.create_index(
        'uq_attendance_open_per_day',
        'attendance_logs',
        ['user_id', 'work_date'],
        unique=True,
        sqlite_where=sa.text('check_out_at IS NULL'),
        postgresql_where=sa.text('check_out_at IS NULL'),
    )

    op.create_table(
        'one_time_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('code_hash', sa.String(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(onupdate=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_one_time_codes_id'), 'one_time_codes', ['id'], unique=False)
    op.create_index(op.f('ix_one_time_codes_key'), 'one_time_codes', ['key'], unique=True)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)
    op.create_index(op.f('ix_audit_logs_company_id'), 'audit_logs', ['company_id'], unique=False)

    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='available'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(onupdate=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_inventory_items_id'), 'inventory_items', ['id'], unique=False)
    op.create_index(op.f('ix_inventory_items_company_id'), 'inventory_items', ['company_id'], unique=False)
    op.create_index(op.f('ix_inventory_items_branch_id'), 'inventory_items', ['branch_id'], unique=False)


def downgrade() -> None:
    op.drop_table('inventory_items')
    op.drop_table('audit_logs')
    op.drop_table('one_time_codes')
    op.drop_index('uq_attendance_open_per_day', table_name='attendance_logs')
    op.drop_table('attendance_logs')
    op.drop_table('geofence_zones')
    op.drop_table('company_licenses')
    op.drop_table('employee_module_access')
    op.drop_table('branch_manager_modules')
    op.drop_table('company_modules')
    op.drop_table('users')
    op.drop_table('branches')
    op.drop_table('companies')

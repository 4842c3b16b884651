"""Add employee_geofence_zones (per-employee zone assignments)

Revision ID: 002_add_employee_geofence_zones
Revises: 001_initial_schema
Create Date: 2026-10-20

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002_add_employee_geofence_zones'
down_revision: Union[str, None] = '001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    if 'employee_geofence_zones' in sa.inspect(bind).get_table_names():
        return

    op.create_table(
        'employee_geofence_zones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('geofence_zone_id', sa.Integer(), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['geofence_zone_id'], ['geofence_zones.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'geofence_zone_id', name='uq_employee_geofence_zone'),
    )
    op.create_index(op.f('ix_employee_geofence_zones_id'), 'employee_geofence_zones', ['id'], unique=False)
    op.create_index(op.f('ix_employee_geofence_zones_user_id'), 'employee_geofence_zones', ['user_id'], unique=False)
    op.create_index(op.f('ix_employee_geofence_zones_geofence_zone_id'), 'employee_geofence_zones', ['geofence_zone_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_employee_geofence_zones_geofence_zone_id'), table_name='employee_geofence_zones')
    op.drop_index(op.f('ix_employee_geofence_zones_user_id'), table_name='employee_geofence_zones')
    op.drop_index(op.f('ix_employee_geofence_zones_id'), table_name='employee_geofence_zones')
    op.drop_table('employee_geofence_zones')

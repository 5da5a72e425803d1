"""Initial hatchwatch schema

Revision ID: 001
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Animals lookup (display labels)
    op.create_table(
        'animals',
        sa.Column('id', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('incubation_days', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Devices; current_cycle_id FK is added once cycles exists
    op.create_table(
        'devices',
        sa.Column('device_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('location', sa.String(255), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('current_cycle_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint('device_id')
    )

    op.create_table(
        'user_devices',
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('device_id', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['device_id'], ['devices.device_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'device_id')
    )

    op.create_table(
        'cycles',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('device_id', sa.String(64), nullable=False),
        sa.Column('animal_type', sa.String(50), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['device_id'], ['devices.device_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['animal_type'], ['animals.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cycles_device_id', 'cycles', ['device_id'])
    op.create_foreign_key(
        'fk_devices_current_cycle', 'devices', 'cycles',
        ['current_cycle_id'], ['id'], ondelete='SET NULL'
    )

    op.create_table(
        'device_state',
        sa.Column('device_id', sa.String(64), nullable=False),
        sa.Column('animal_type', sa.String(50), nullable=True),
        sa.Column('day', sa.Integer(), nullable=True),
        sa.Column('temp', sa.Float(), nullable=True),
        sa.Column('hum', sa.Float(), nullable=True),
        sa.Column('target_temp', sa.Float(), nullable=True),
        sa.Column('tol_temp', sa.Float(), nullable=True),
        sa.Column('target_hum', sa.Float(), nullable=True),
        sa.Column('tol_hum', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['device_id'], ['devices.device_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['animal_type'], ['animals.id']),
        sa.PrimaryKeyConstraint('device_id')
    )

    op.create_table(
        'measurements',
        sa.Column('device_id', sa.String(64), nullable=False),
        sa.Column('ts', sa.DateTime(timezone=True), nullable=False),
        sa.Column('temp', sa.Float(), nullable=True),
        sa.Column('hum', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['device_id'], ['devices.device_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('device_id', 'ts')
    )
    op.create_index('ix_measurements_device_ts', 'measurements', ['device_id', 'ts'])

    alert_level = postgresql.ENUM('warn', 'alert', name='alert_level')
    alert_level.create(op.get_bind(), checkfirst=True)
    op.create_table(
        'alerts',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('device_id', sa.String(64), nullable=False),
        sa.Column('ts', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('level', postgresql.ENUM('warn', 'alert', name='alert_level', create_type=False), nullable=False),
        sa.Column('code', sa.String(32), nullable=False),
        sa.Column('message', sa.String(255), nullable=False),
        sa.Column('value', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['device_id'], ['devices.device_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_alerts_device_code_ts', 'alerts', ['device_id', 'code', 'ts'])


def downgrade() -> None:
    op.drop_index('ix_alerts_device_code_ts', table_name='alerts')
    op.drop_table('alerts')
    op.execute("DROP TYPE IF EXISTS alert_level")
    op.drop_index('ix_measurements_device_ts', table_name='measurements')
    op.drop_table('measurements')
    op.drop_table('device_state')
    op.drop_constraint('fk_devices_current_cycle', 'devices', type_='foreignkey')
    op.drop_index('ix_cycles_device_id', table_name='cycles')
    op.drop_table('cycles')
    op.drop_table('user_devices')
    op.drop_table('devices')
    op.drop_table('animals')

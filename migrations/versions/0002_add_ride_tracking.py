"""add penalties, ops_events and ride_locations tables

Revision ID: 0002_add_ride_tracking
Revises: 0001_initial
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0002_add_ride_tracking'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'penalties',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('ride_id', sa.String(36), sa.ForeignKey('rides.id', ondelete='CASCADE'), nullable=False),
        sa.Column('passenger_id', sa.String(64), nullable=True),
        sa.Column('driver_id', sa.String(36), nullable=True),
        sa.Column('type', sa.String(64), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reason', sa.String(1024), nullable=True),
        sa.Column('applied', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_penalties_ride_id', 'penalties', ['ride_id'])

    # Журнал аудита; payload в JSONB для выборок по полям
    op.create_table(
        'ops_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('event_type', sa.String(64), nullable=False),
        sa.Column('ref_id', sa.String(64), nullable=True),
        sa.Column('message', sa.String(1024), nullable=True),
        sa.Column('payload', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_ops_events_event_type', 'ops_events', ['event_type'])
    op.create_index('ix_ops_events_ref_id', 'ops_events', ['ref_id'])

    op.create_table(
        'ride_locations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('ride_id', sa.String(36), sa.ForeignKey('rides.id', ondelete='CASCADE'), nullable=False),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('recorded_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_ride_locations_ride_id', 'ride_locations', ['ride_id'])


def downgrade():
    op.drop_index('ix_ride_locations_ride_id', table_name='ride_locations')
    op.drop_table('ride_locations')
    op.drop_index('ix_ops_events_ref_id', table_name='ops_events')
    op.drop_index('ix_ops_events_event_type', table_name='ops_events')
    op.drop_table('ops_events')
    op.drop_index('ix_penalties_ride_id', table_name='penalties')
    op.drop_table('penalties')

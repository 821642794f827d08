"""Flight alerts and price records

Revision ID: 001
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None

trip_type = sa.Enum('ONE_WAY', 'ROUND_TRIP', name='triptype')
check_frequency = sa.Enum('HOURS_1', 'HOURS_3', 'HOURS_6', 'HOURS_12', 'HOURS_24', name='checkfrequency')
alert_status = sa.Enum('ACTIVE', 'PAUSED', 'DELETED', name='alertstatus')


def upgrade():
    op.create_table(
        'flight_alerts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('departure_city', sa.String(100), nullable=False),
        sa.Column('departure_airport_code', sa.String(3)),
        sa.Column('destination_city', sa.String(100), nullable=False),
        sa.Column('destination_airport_code', sa.String(3)),
        sa.Column('trip_type', trip_type, nullable=False),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('departure_date_end', sa.Date()),
        sa.Column('departure_day_shift', sa.JSON(), nullable=False),
        sa.Column('return_date', sa.Date()),
        sa.Column('return_date_end', sa.Date()),
        sa.Column('return_day_shift', sa.JSON(), nullable=False),
        sa.Column('price_threshold', sa.Numeric(10, 2), nullable=False),
        sa.Column('airlines', sa.JSON(), nullable=False),
        sa.Column('max_flight_duration', sa.Integer()),
        sa.Column('check_frequency', check_frequency, nullable=False),
        sa.Column('status', alert_status, nullable=False),
        sa.Column('last_checked_at', sa.DateTime()),
        sa.Column('next_check_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_flight_alerts_user_id', 'flight_alerts', ['user_id'])
    op.create_index('ix_flight_alerts_status', 'flight_alerts', ['status'])
    op.create_index('ix_flight_alerts_next_check_at', 'flight_alerts', ['next_check_at'])

    op.create_table(
        'price_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('alert_id', sa.Integer(), sa.ForeignKey('flight_alerts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('airline', sa.String(3), nullable=False),
        sa.Column('flight_number', sa.String(10), nullable=False),
        sa.Column('departure_time', sa.DateTime(), nullable=False),
        sa.Column('arrival_time', sa.DateTime(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('stops', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('booking_link', sa.Text()),
        sa.Column('checked_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_price_records_alert_id', 'price_records', ['alert_id'])
    op.create_index('ix_price_records_alert_checked', 'price_records', ['alert_id', 'checked_at'])


def downgrade():
    op.drop_table('price_records')
    op.drop_table('flight_alerts')
    alert_status.drop(op.get_bind(), checkfirst=True)
    check_frequency.drop(op.get_bind(), checkfirst=True)
    trip_type.drop(op.get_bind(), checkfirst=True)

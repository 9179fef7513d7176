"""Create analytics, booking mirror and webhook tables.

Revision ID: create_analytics_and_bookings
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'create_analytics_and_bookings'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'analytics_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('user_id', sa.String(255), nullable=True, index=True),
        sa.Column('session_id', sa.String(255), nullable=True, index=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('action', sa.String(100), nullable=False, index=True),
        sa.Column('label', sa.String(255), nullable=True),
        sa.Column('value', sa.Float(), nullable=True),
        sa.Column('path', sa.Text(), nullable=True),
        sa.Column('referrer', sa.Text(), nullable=True),
        sa.Column('device_type', sa.String(20), nullable=True),
        sa.Column('browser', sa.String(100), nullable=True),
        sa.Column('os', sa.String(100), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
    )
    op.create_index(
        'ix_analytics_events_category_timestamp',
        'analytics_events',
        ['category', 'timestamp'],
    )

    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('time_zone', sa.String(64), nullable=True),
        sa.Column('booking_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('first_booking_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_booking_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('cal_booking_id', sa.BigInteger(), nullable=False, unique=True, index=True),
        sa.Column('cal_booking_uid', sa.String(255), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING', index=True),
        sa.Column('attendee_name', sa.String(255), nullable=True),
        sa.Column('attendee_email', sa.String(255), nullable=True, index=True),
        sa.Column('attendee_time_zone', sa.String(64), nullable=True),
        sa.Column('event_type_id', sa.Integer(), nullable=True),
        sa.Column('event_type_title', sa.String(255), nullable=True),
        sa.Column('event_type_slug', sa.String(255), nullable=True),
        sa.Column('event_length', sa.Integer(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('currency', sa.String(3), nullable=True),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payment_status', sa.String(20), nullable=True),
        sa.Column('payment_id', sa.String(255), nullable=True),
        sa.Column('payment_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('payment_currency', sa.String(3), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rescheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('customers.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('provider_created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('provider_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'sync_states',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('sync_type', sa.String(50), nullable=False, unique=True),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('records_processed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('records_errored', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_run_status', sa.String(20), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'gallery_items',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('artist', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'cal_webhook_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('trigger_event', sa.String(50), nullable=False, index=True),
        sa.Column('cal_booking_id', sa.BigInteger(), nullable=True),
        sa.Column('cal_booking_uid', sa.String(255), nullable=True, index=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('signature', sa.String(255), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(255), nullable=True),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_error', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table('cal_webhook_events')
    op.drop_table('gallery_items')
    op.drop_table('sync_states')
    op.drop_table('bookings')
    op.drop_table('customers')
    op.drop_index('ix_analytics_events_category_timestamp', table_name='analytics_events')
    op.drop_table('analytics_events')

"""initial_schema

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-17 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b31'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    'userrole': ('user', 'saler', 'admin'),
    'lessonstatus': ('published', 'draft'),
    'progressstatus': ('NOT_STARTED', 'IN_PROGRESS', 'COMPLETED'),
    'enrollmentstatus': ('active', 'suspended', 'completed'),
    'enrollmentsource': ('payment', 'admin'),
    'orderstatus': ('pending', 'paid'),
    'bookaccessstatus': ('active', 'revoked'),
    'subscriptionstatus': ('pending', 'active', 'expired'),
    'coupontype': ('PERCENTAGE', 'FIXED_AMOUNT'),
    'commissionstatus': ('pending', 'available', 'paid'),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('role', _enum('userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('must_change_password', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'courses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('thumbnail_url', sa.String(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('discount_percentage', sa.Integer(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_courses_id', 'courses', ['id'])
    op.create_index('ix_courses_slug', 'courses', ['slug'], unique=True)

    op.create_table(
        'lessons',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('video_url', sa.String(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=False),
        sa.Column('status', _enum('lessonstatus'), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_lessons_id', 'lessons', ['id'])
    op.create_index('ix_lessons_course_id', 'lessons', ['course_id'])
    op.create_index('ix_lessons_course_order', 'lessons', ['course_id', 'sort_order'])

    op.create_table(
        'lesson_progress',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('lesson_id', sa.Uuid(), sa.ForeignKey('lessons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', _enum('progressstatus'), nullable=False),
        sa.Column('watch_time', sa.Integer(), nullable=False),
        sa.Column('last_position', sa.Integer(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('progress_percent', sa.Float(), nullable=False),
        sa.Column('watched_segments', postgresql.JSONB(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'course_id', 'lesson_id', name='uq_user_course_lesson_progress'),
    )
    op.create_index('ix_lesson_progress_id', 'lesson_progress', ['id'])
    op.create_index('ix_lesson_progress_user_id', 'lesson_progress', ['user_id'])
    op.create_index('ix_lesson_progress_course_id', 'lesson_progress', ['course_id'])
    op.create_index('ix_lesson_progress_lesson_id', 'lesson_progress', ['lesson_id'])
    op.create_index('ix_lesson_progress_status', 'lesson_progress', ['status'])
    op.create_index('ix_lesson_progress_user_course', 'lesson_progress', ['user_id', 'course_id'])

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', _enum('enrollmentstatus'), nullable=False),
        sa.Column('source', _enum('enrollmentsource'), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('enrolled_at', sa.DateTime(), nullable=False),
        sa.Column('progress_percent', sa.Float(), nullable=False),
        sa.Column('completed_lessons_count', sa.Integer(), nullable=False),
        sa.Column('current_lesson_id', sa.Uuid(), sa.ForeignKey('lessons.id', ondelete='SET NULL'), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'course_id', name='uq_user_course_enrollment'),
    )
    op.create_index('ix_enrollments_id', 'enrollments', ['id'])
    op.create_index('ix_enrollments_user_id', 'enrollments', ['user_id'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])
    op.create_index('ix_enrollments_status', 'enrollments', ['status'])
    op.create_index('ix_enrollments_user_course', 'enrollments', ['user_id', 'course_id'])

    op.create_table(
        'books',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('author', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('cover_url', sa.String(), nullable=True),
        sa.Column('file_url', sa.String(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('discount_percentage', sa.Integer(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_books_id', 'books', ['id'])
    op.create_index('ix_books_slug', 'books', ['slug'], unique=True)

    op.create_table(
        'book_orders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('book_id', sa.Uuid(), sa.ForeignKey('books.id', ondelete='CASCADE'), nullable=False),
        sa.Column('transfer_code', sa.String(), nullable=True),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('qr_code_url', sa.String(), nullable=True),
        sa.Column('status', _enum('orderstatus'), nullable=False),
        sa.Column('metadata', postgresql.JSONB(), nullable=False),
        sa.Column('sepay_transaction_id', sa.String(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_book_orders_id', 'book_orders', ['id'])
    op.create_index('ix_book_orders_user_id', 'book_orders', ['user_id'])
    op.create_index('ix_book_orders_book_id', 'book_orders', ['book_id'])
    op.create_index('ix_book_orders_status', 'book_orders', ['status'])
    op.create_index('ix_book_orders_transfer_code', 'book_orders', ['transfer_code'], unique=True)
    # One open order per buyer and book
    op.create_index(
        'uq_book_orders_pending_user_book',
        'book_orders',
        ['user_id', 'book_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'book_order_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('book_orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('book_id', sa.Uuid(), sa.ForeignKey('books.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
    )
    op.create_index('ix_book_order_items_order_id', 'book_order_items', ['order_id'])

    op.create_table(
        'user_book_access',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('book_id', sa.Uuid(), sa.ForeignKey('books.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('status', _enum('bookaccessstatus'), nullable=False),
        sa.Column('granted_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'book_id', name='uq_user_book_access'),
    )
    op.create_index('ix_user_book_access_user_id', 'user_book_access', ['user_id'])
    op.create_index('ix_user_book_access_book_id', 'user_book_access', ['book_id'])

    op.create_table(
        'indicators',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('discount_percentage', sa.Integer(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_indicators_id', 'indicators', ['id'])
    op.create_index('ix_indicators_slug', 'indicators', ['slug'], unique=True)

    op.create_table(
        'indicator_subscriptions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('indicator_id', sa.Uuid(), sa.ForeignKey('indicators.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', _enum('subscriptionstatus'), nullable=False),
        sa.Column('auto_renew', sa.Boolean(), nullable=False),
        sa.Column('transfer_code', sa.String(), nullable=True),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('qr_code_url', sa.String(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False),
        sa.Column('start_at', sa.DateTime(), nullable=True),
        sa.Column('end_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_indicator_subscriptions_id', 'indicator_subscriptions', ['id'])
    op.create_index('ix_indicator_subscriptions_user_id', 'indicator_subscriptions', ['user_id'])
    op.create_index('ix_indicator_subscriptions_indicator_id', 'indicator_subscriptions', ['indicator_id'])
    op.create_index('ix_indicator_subscriptions_status', 'indicator_subscriptions', ['status'])
    op.create_index(
        'ix_indicator_subscriptions_transfer_code',
        'indicator_subscriptions',
        ['transfer_code'],
        unique=True,
    )
    op.create_index(
        'uq_indicator_subscriptions_pending_user_indicator',
        'indicator_subscriptions',
        ['user_id', 'indicator_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'indicator_payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'subscription_id',
            sa.Uuid(),
            sa.ForeignKey('indicator_subscriptions.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('sepay_transaction_id', sa.String(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_indicator_payments_subscription_id', 'indicator_payments', ['subscription_id'])

    op.create_table(
        'course_orders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('saler_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('transfer_code', sa.String(), nullable=True),
        sa.Column('qr_code_url', sa.String(), nullable=True),
        sa.Column('status', _enum('orderstatus'), nullable=False),
        sa.Column('metadata', postgresql.JSONB(), nullable=False),
        sa.Column('sepay_transaction_id', sa.String(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_course_orders_id', 'course_orders', ['id'])
    op.create_index('ix_course_orders_user_id', 'course_orders', ['user_id'])
    op.create_index('ix_course_orders_course_id', 'course_orders', ['course_id'])
    op.create_index('ix_course_orders_saler_id', 'course_orders', ['saler_id'])
    op.create_index('ix_course_orders_status', 'course_orders', ['status'])
    op.create_index('ix_course_orders_transfer_code', 'course_orders', ['transfer_code'], unique=True)
    op.create_index(
        'uq_course_orders_pending_user_course',
        'course_orders',
        ['user_id', 'course_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'coupons',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('type', _enum('coupontype'), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False),
        sa.Column('applicable_to', postgresql.JSONB(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=False),
        sa.Column('usage_count', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_coupons_id', 'coupons', ['id'])
    op.create_index('ix_coupons_code', 'coupons', ['code'], unique=True)

    op.create_table(
        'saler_details',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code_saler', sa.String(), nullable=False),
        sa.Column('default_commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_saler_details_user_id', 'saler_details', ['user_id'], unique=True)
    op.create_index('ix_saler_details_code_saler', 'saler_details', ['code_saler'], unique=True)

    op.create_table(
        'saler_course_commissions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'saler_details_id',
            sa.Uuid(),
            sa.ForeignKey('saler_details.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.UniqueConstraint('saler_details_id', 'course_id', name='uq_saler_course_commission'),
    )
    op.create_index(
        'ix_saler_course_commissions_saler_details_id',
        'saler_course_commissions',
        ['saler_details_id'],
    )

    op.create_table(
        'commissions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'order_id',
            sa.Uuid(),
            sa.ForeignKey('course_orders.id', ondelete='CASCADE'),
            nullable=False,
            unique=True,
        ),
        sa.Column('saler_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_amount', sa.Integer(), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('commission_amount', sa.Integer(), nullable=False),
        sa.Column('status', _enum('commissionstatus'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_commissions_id', 'commissions', ['id'])
    op.create_index('ix_commissions_saler_id', 'commissions', ['saler_id'])
    op.create_index('ix_commissions_status', 'commissions', ['status'])

    op.create_table(
        'processed_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('handler', sa.String(length=100), nullable=False),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('handler', 'idempotency_key', name='uq_processed_event_handler_key'),
    )


def downgrade() -> None:
    for table in (
        'processed_events',
        'commissions',
        'saler_course_commissions',
        'saler_details',
        'coupons',
        'course_orders',
        'indicator_payments',
        'indicator_subscriptions',
        'indicators',
        'user_book_access',
        'book_order_items',
        'book_orders',
        'books',
        'enrollments',
        'lesson_progress',
        'lessons',
        'courses',
        'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).drop(bind, checkfirst=True)

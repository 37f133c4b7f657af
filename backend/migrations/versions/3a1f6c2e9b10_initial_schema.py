"""Initial schema: users, courses, sessions, session messages, reports, reviews

Revision ID: 3a1f6c2e9b10
Revises:
Create Date: 2026-10-19 10:12:04.118532
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3a1f6c2e9b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigIntPK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    # 1. users
    op.create_table(
        'users',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('is_tutor', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('validation_status', sa.String(), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('reviews', sa.Integer(), nullable=True),
        sa.Column('hourly_rate', sa.Integer(), nullable=True),
        sa.Column('specialty_rates', sa.JSON(), nullable=True),
        sa.Column('courses', sa.JSON(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('professional_link', sa.Text(), nullable=True),
        sa.Column('verification_document_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "validation_status in ('pending','approved','rejected') or validation_status is null",
            name='ck_users_validation_status',
        ),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('idx_users_is_tutor', 'users', ['is_tutor'])

    # 2. courses
    op.create_table(
        'courses',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
    )
    op.create_index('ix_courses_id', 'courses', ['id'])

    # 3. sessions
    op.create_table(
        'sessions',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('student_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tutor_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('course', sa.String(), nullable=False),
        sa.Column('tutor', sa.JSON(), nullable=False),
        sa.Column('student', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('session_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status in ('pending','accepted','declined','completed','cancelled')",
            name='ck_sessions_status',
        ),
    )
    op.create_index('idx_sessions_student', 'sessions', ['student_id', 'status'])
    op.create_index('idx_sessions_tutor', 'sessions', ['tutor_id', 'status'])

    # 4. session chat
    op.create_table(
        'session_messages',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('session_id', sa.BigInteger(), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sender_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('idx_session_msg_session_time', 'session_messages', ['session_id', 'created_at'])

    # 5. reports
    op.create_table(
        'reports',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('reported_user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reported_user_name', sa.String(), nullable=False),
        sa.Column('reported_by_user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reported_by_user_name', sa.String(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='Pendiente'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "status in ('Pendiente','En Revisión','Resuelto','Descartado')",
            name='ck_reports_status',
        ),
    )
    op.create_index('ix_reports_id', 'reports', ['id'])
    op.create_index('idx_reports_reported_user', 'reports', ['reported_user_id'])
    op.create_index('idx_reports_reported_by', 'reports', ['reported_by_user_id'])

    # 6. reviews
    op.create_table(
        'reviews',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('psychologist_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_name', sa.String(), nullable=False),
        sa.Column('author_image_url', sa.Text(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('rating >= 1 and rating <= 5', name='ck_reviews_rating'),
    )
    op.create_index('ix_reviews_id', 'reviews', ['id'])
    op.create_index('idx_reviews_psychologist_time', 'reviews', ['psychologist_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('reviews')
    op.drop_table('reports')
    op.drop_table('session_messages')
    op.drop_table('sessions')
    op.drop_table('courses')
    op.drop_table('users')

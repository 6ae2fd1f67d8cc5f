"""create_live_quiz_tables

Revision ID: 3c1d8e2a9f47
Revises:
Create Date: 2026-10-12 14:05:31.402117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d8e2a9f47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """문제, 퀴즈 세션, 방송 이력, 참여 학생, 제출 기록 테이블 생성"""
    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('course_id', sa.String(length=64), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.Text(), nullable=False),
        sa.Column('correct_answer', sa.Integer(), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('explanation', sa.Text(), nullable=False),
        sa.Column('source', sa.String(length=16), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('times_used', sa.Integer(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reserved_by_session_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_questions_course_id'), 'questions', ['course_id'], unique=False)
    op.create_index(op.f('ix_questions_reserved_by_session_id'), 'questions', ['reserved_by_session_id'], unique=False)

    op.create_table(
        'quiz_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('session_type', sa.String(length=16), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_by_name', sa.String(length=255), nullable=True),
        sa.Column('course_id', sa.String(length=64), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=True),
        sa.Column('active_question_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ),
        sa.ForeignKeyConstraint(['active_question_id'], ['questions.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_quiz_sessions_code'), 'quiz_sessions', ['code'], unique=False)
    op.create_index(op.f('ix_quiz_sessions_status'), 'quiz_sessions', ['status'], unique=False)
    op.create_index('ix_quiz_sessions_status_expires_at', 'quiz_sessions', ['status', 'expires_at'], unique=False)
    # 만료되지 않은 세션끼리만 코드 유니크
    op.create_index(
        'uq_quiz_sessions_live_code',
        'quiz_sessions',
        ['code'],
        unique=True,
        postgresql_where=sa.text("status <> 'expired'"),
    )

    op.create_table(
        'quiz_session_broadcasts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('broadcasted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['quiz_sessions.id'], ),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_quiz_session_broadcasts_session_id'), 'quiz_session_broadcasts', ['session_id'], unique=False)

    op.create_table(
        'quiz_session_participants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('student_identity', sa.String(length=255), nullable=False),
        sa.Column('student_name', sa.String(length=255), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['quiz_sessions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'student_identity', name='uq_quiz_session_participants_student'),
    )
    op.create_index(op.f('ix_quiz_session_participants_session_id'), 'quiz_session_participants', ['session_id'], unique=False)

    op.create_table(
        'quiz_submissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('student_identity', sa.String(length=255), nullable=False),
        sa.Column('student_name', sa.String(length=255), nullable=True),
        sa.Column('selected_option', sa.Integer(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('time_taken', sa.Float(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['quiz_sessions.id'], ),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'question_id', 'student_identity', name='uq_quiz_submissions_answer'),
    )
    op.create_index(op.f('ix_quiz_submissions_session_id'), 'quiz_submissions', ['session_id'], unique=False)
    op.create_index(op.f('ix_quiz_submissions_student_identity'), 'quiz_submissions', ['student_identity'], unique=False)


def downgrade() -> None:
    """테이블 제거"""
    op.drop_index(op.f('ix_quiz_submissions_student_identity'), table_name='quiz_submissions')
    op.drop_index(op.f('ix_quiz_submissions_session_id'), table_name='quiz_submissions')
    op.drop_table('quiz_submissions')
    op.drop_index(op.f('ix_quiz_session_participants_session_id'), table_name='quiz_session_participants')
    op.drop_table('quiz_session_participants')
    op.drop_index(op.f('ix_quiz_session_broadcasts_session_id'), table_name='quiz_session_broadcasts')
    op.drop_table('quiz_session_broadcasts')
    op.drop_index('uq_quiz_sessions_live_code', table_name='quiz_sessions')
    op.drop_index('ix_quiz_sessions_status_expires_at', table_name='quiz_sessions')
    op.drop_index(op.f('ix_quiz_sessions_status'), table_name='quiz_sessions')
    op.drop_index(op.f('ix_quiz_sessions_code'), table_name='quiz_sessions')
    op.drop_table('quiz_sessions')
    op.drop_index(op.f('ix_questions_reserved_by_session_id'), table_name='questions')
    op.drop_index(op.f('ix_questions_course_id'), table_name='questions')
    op.drop_table('questions')

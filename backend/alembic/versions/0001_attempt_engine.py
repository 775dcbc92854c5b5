"""attempt engine schema

Revision ID: 0001_attempt_engine
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '0001_attempt_engine'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _json_list(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb"))


def _json_object(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb"))


def upgrade() -> None:
    op.create_table(
        'subjects',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('kind', sa.String(length=30), nullable=False, server_default='assessment'),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('max_attempts', sa.Integer(), nullable=True),
        sa.Column('time_limit_seconds', sa.Integer(), nullable=True),
        sa.Column('passing_score', sa.Float(), nullable=True),
        sa.Column('feedback_setting', sa.String(length=30), nullable=False, server_default='after_submit'),
        _json_list('bank_ids'),
        sa.Column('question_count', sa.Integer(), nullable=True),
        sa.Column('selection_mode', sa.String(length=30), nullable=False, server_default='sequential'),
        _json_list('filter_tags'),
        _json_list('filter_difficulties'),
        sa.Column('selection_seed', sa.Integer(), nullable=True),
        sa.Column('weighting_strategy', sa.String(length=50), nullable=False, server_default='difficulty'),
        sa.Column('scorm_version', sa.String(length=10), nullable=True),
        sa.Column('launch_data', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("kind in ('assessment', 'content')", name='subject_kind_values'),
        sa.CheckConstraint(
            "feedback_setting in ('never', 'after_submit', 'after_all_attempts')",
            name='subject_feedback_setting_values',
        ),
        sa.CheckConstraint(
            "selection_mode in ('sequential', 'random', 'weighted')",
            name='subject_selection_mode_values',
        ),
        sa.CheckConstraint("scorm_version is null or scorm_version in ('1.2', '2004')", name='subject_scorm_version_values'),
        sa.CheckConstraint('max_attempts is null or max_attempts >= 1', name='subject_max_attempts_positive'),
    )
    op.create_index('ix_subjects_kind', 'subjects', ['kind'])

    op.create_table(
        'questions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('question_type', sa.String(length=30), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1'),
        _json_list('options'),
        sa.Column('correct_answer', sa.Text(), nullable=True),
        _json_list('correct_answers'),
        _json_object('matching_pairs'),
        sa.Column('difficulty', sa.String(length=20), nullable=True),
        _json_list('tags'),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
        sa.CheckConstraint('points >= 1', name='question_points_positive'),
        sa.CheckConstraint(
            "difficulty is null or difficulty in ('easy', 'medium', 'hard')",
            name='question_difficulty_values',
        ),
    )
    op.create_index('ix_questions_question_type', 'questions', ['question_type'])
    op.create_index('ix_questions_difficulty', 'questions', ['difficulty'])
    op.create_index('ix_questions_is_active', 'questions', ['is_active'])

    op.create_table(
        'question_banks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        _json_list('question_ids'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
    )
    op.create_index('ix_question_banks_is_active', 'question_banks', ['is_active'])

    op.create_table(
        'attempts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('subject_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('learner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('learner_name', sa.String(length=200), nullable=True),
        sa.Column('kind', sa.String(length=30), nullable=False, server_default='assessment'),
        sa.Column('attempt_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='in_progress'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_limit_seconds', sa.Integer(), nullable=True),
        sa.Column('accumulated_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active_since', sa.DateTime(timezone=True), nullable=True),
        sa.Column('raw_score', sa.Float(), nullable=True),
        sa.Column('max_score', sa.Float(), nullable=True),
        sa.Column('percentage_score', sa.Float(), nullable=True),
        sa.Column('passed', sa.Boolean(), nullable=True),
        sa.Column('grading_complete', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('requires_manual_grading', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('scorm_version', sa.String(length=10), nullable=True),
        sa.Column('progress_percent', sa.Float(), nullable=True),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('suspend_data', sa.Text(), nullable=True),
        sa.Column('launch_data', sa.Text(), nullable=True),
        sa.Column('lesson_status', sa.String(length=30), nullable=True),
        sa.Column('completion_status', sa.String(length=30), nullable=True),
        sa.Column('success_status', sa.String(length=30), nullable=True),
        sa.Column('score_raw', sa.Float(), nullable=True),
        sa.Column('score_min', sa.Float(), nullable=True),
        sa.Column('score_max', sa.Float(), nullable=True),
        sa.Column('score_scaled', sa.Float(), nullable=True),
        sa.Column('session_time_seconds', sa.Float(), nullable=True),
        sa.Column('entry', sa.String(length=30), nullable=True),
        sa.Column('exit_mode', sa.String(length=30), nullable=True),
        _json_object('cmi_data'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('subject_id', 'learner_id', 'attempt_number', name='uq_attempts_subject_learner_number'),
        sa.CheckConstraint(
            "status in ('in_progress', 'suspended', 'submitted', 'graded', "
            "'completed', 'passed', 'failed', 'abandoned')",
            name='attempt_status_values',
        ),
        sa.CheckConstraint("kind in ('assessment', 'content')", name='attempt_kind_values'),
        sa.CheckConstraint('attempt_number >= 1', name='attempt_number_positive'),
        sa.CheckConstraint(
            'progress_percent is null or (progress_percent >= 0 and progress_percent <= 100)',
            name='attempt_progress_percent_range',
        ),
    )
    op.create_index('ix_attempts_subject_id', 'attempts', ['subject_id'])
    op.create_index('ix_attempts_learner_id', 'attempts', ['learner_id'])
    op.create_index('ix_attempts_status', 'attempts', ['status'])
    op.create_index(
        'uq_attempts_active_subject_learner',
        'attempts',
        ['subject_id', 'learner_id'],
        unique=True,
        postgresql_where=sa.text("status in ('in_progress', 'suspended')"),
    )

    op.create_table(
        'attempt_questions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('attempt_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('question_id', sa.String(length=64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        _json_object('snapshot'),
        sa.Column('response', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('points_possible', sa.Float(), nullable=False, server_default='1'),
        sa.Column('points_earned', sa.Float(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('graded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('graded_by', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['attempt_id'], ['attempts.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('attempt_id', 'position', name='uq_attempt_questions_position'),
        sa.CheckConstraint(
            'points_earned is null or (points_earned >= 0 and points_earned <= points_possible)',
            name='attempt_question_points_range',
        ),
    )
    op.create_index('ix_attempt_questions_attempt_id', 'attempt_questions', ['attempt_id'])


def downgrade() -> None:
    op.drop_index('ix_attempt_questions_attempt_id', table_name='attempt_questions')
    op.drop_table('attempt_questions')

    op.drop_index('uq_attempts_active_subject_learner', table_name='attempts')
    op.drop_index('ix_attempts_status', table_name='attempts')
    op.drop_index('ix_attempts_learner_id', table_name='attempts')
    op.drop_index('ix_attempts_subject_id', table_name='attempts')
    op.drop_table('attempts')

    op.drop_index('ix_question_banks_is_active', table_name='question_banks')
    op.drop_table('question_banks')

    op.drop_index('ix_questions_is_active', table_name='questions')
    op.drop_index('ix_questions_difficulty', table_name='questions')
    op.drop_index('ix_questions_question_type', table_name='questions')
    op.drop_table('questions')

    op.drop_index('ix_subjects_kind', table_name='subjects')
    op.drop_table('subjects')

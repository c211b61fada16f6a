"""Create hiring pipeline tables

Revision ID: c4e8a1f2b3d9
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'c4e8a1f2b3d9'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPLICATION_STATUSES = (
    'submitted', 'under_review', 'interview_scheduled', 'interview_completed',
    'offer_made', 'accepted', 'rejected', 'withdrawn',
)
INTERVIEW_STATUSES = (
    'scheduled', 'confirmed', 'rescheduled', 'in_progress', 'completed', 'cancelled', 'no_show',
)


def upgrade() -> None:
    """Upgrade schema - jobs, applications, notes, interviews, feedback and both status ledgers."""
    application_status = sa.Enum(*APPLICATION_STATUSES, name='application_status')
    interview_status = sa.Enum(*INTERVIEW_STATUSES, name='interview_status')

    op.create_table('jobs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('employer_id', sa.String(length=36), nullable=False),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_jobs_id'), 'jobs', ['id'], unique=False)
    op.create_index(op.f('ix_jobs_employer_id'), 'jobs', ['employer_id'], unique=False)

    op.create_table('applications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('job_id', sa.String(length=36), nullable=False),
        sa.Column('candidate_id', sa.String(length=36), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('resume_url', sa.String(), nullable=True),
        sa.Column('cover_letter', sa.Text(), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=True),
        sa.Column('expected_salary', sa.String(), nullable=True),
        sa.Column('status', application_status, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('job_id', 'candidate_id', name='uq_applications_job_candidate')
    )
    op.create_index(op.f('ix_applications_id'), 'applications', ['id'], unique=False)
    op.create_index(op.f('ix_applications_job_id'), 'applications', ['job_id'], unique=False)
    op.create_index(op.f('ix_applications_candidate_id'), 'applications', ['candidate_id'], unique=False)
    op.create_index(op.f('ix_applications_status'), 'applications', ['status'], unique=False)

    op.create_table('application_status_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.String(length=36), nullable=False),
        sa.Column('from_status', postgresql.ENUM(*APPLICATION_STATUSES, name='application_status', create_type=False), nullable=True),
        sa.Column('to_status', postgresql.ENUM(*APPLICATION_STATUSES, name='application_status', create_type=False), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('actor_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_application_status_events_application_id'), 'application_status_events', ['application_id'], unique=False)
    op.create_index(op.f('ix_application_status_events_created_at'), 'application_status_events', ['created_at'], unique=False)

    op.create_table('application_notes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('application_id', sa.String(length=36), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('note_type', sa.Enum('general', 'interview', 'screening', 'feedback', 'internal', name='application_note_type'), nullable=False),
        sa.Column('is_visible_to_candidate', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_application_notes_id'), 'application_notes', ['id'], unique=False)
    op.create_index(op.f('ix_application_notes_application_id'), 'application_notes', ['application_id'], unique=False)

    op.create_table('interviews',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('application_id', sa.String(length=36), nullable=False),
        sa.Column('interview_type', sa.Enum('phone', 'video', 'technical', 'panel', 'in_person', 'final', name='interview_type'), nullable=False),
        sa.Column('status', interview_status, nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('meeting_link', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_interviews_id'), 'interviews', ['id'], unique=False)
    op.create_index(op.f('ix_interviews_application_id'), 'interviews', ['application_id'], unique=False)
    op.create_index(op.f('ix_interviews_status'), 'interviews', ['status'], unique=False)
    op.create_index(op.f('ix_interviews_scheduled_at'), 'interviews', ['scheduled_at'], unique=False)

    op.create_table('interview_participants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('interview_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('role', sa.Enum('candidate', 'interviewer', 'observer', name='participant_role'), nullable=False),
        sa.Column('status', sa.Enum('invited', 'confirmed', 'declined', 'attended', 'no_show', name='participant_status'), nullable=False),
        sa.ForeignKeyConstraint(['interview_id'], ['interviews.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('interview_id', 'user_id', name='uq_interview_participants_user')
    )
    op.create_index(op.f('ix_interview_participants_interview_id'), 'interview_participants', ['interview_id'], unique=False)
    op.create_index(op.f('ix_interview_participants_user_id'), 'interview_participants', ['user_id'], unique=False)

    op.create_table('interview_status_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('interview_id', sa.String(length=36), nullable=False),
        sa.Column('from_status', postgresql.ENUM(*INTERVIEW_STATUSES, name='interview_status', create_type=False), nullable=True),
        sa.Column('to_status', postgresql.ENUM(*INTERVIEW_STATUSES, name='interview_status', create_type=False), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('actor_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['interview_id'], ['interviews.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_interview_status_events_interview_id'), 'interview_status_events', ['interview_id'], unique=False)
    op.create_index(op.f('ix_interview_status_events_created_at'), 'interview_status_events', ['created_at'], unique=False)

    op.create_table('interview_feedback',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('interview_id', sa.String(length=36), nullable=False),
        sa.Column('evaluator_id', sa.String(length=36), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('strengths', sa.Text(), nullable=True),
        sa.Column('weaknesses', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('recommendation', sa.Enum('strong_yes', 'yes', 'maybe', 'no', 'strong_no', name='recommendation'), nullable=False),
        sa.Column('is_visible_to_candidate', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['interview_id'], ['interviews.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_interview_feedback_id'), 'interview_feedback', ['id'], unique=False)
    op.create_index(op.f('ix_interview_feedback_interview_id'), 'interview_feedback', ['interview_id'], unique=False)
    op.create_index(op.f('ix_interview_feedback_evaluator_id'), 'interview_feedback', ['evaluator_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema - drop every pipeline table and enum type."""
    op.drop_table('interview_feedback')
    op.drop_table('interview_status_events')
    op.drop_table('interview_participants')
    op.drop_table('interviews')
    op.drop_table('application_notes')
    op.drop_table('application_status_events')
    op.drop_table('applications')
    op.drop_table('jobs')

    bind = op.get_bind()
    for enum_name in ('recommendation', 'participant_status', 'participant_role', 'interview_type',
                      'interview_status', 'application_note_type', 'application_status'):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)

"""Initial schema - candidates, job postings, applications and the analysis queue.

Revision ID: 00001
Revises:
Create Date: 2025-01-15

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '00001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # =====================
    # Independent tables (no foreign keys)
    # =====================

    # candidates
    op.create_table(
        'candidates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('skills', sa.Text(), nullable=True),  # JSON
        sa.Column('experience', sa.Text(), nullable=True),  # JSON
        sa.Column('education', sa.Text(), nullable=True),  # JSON
        sa.Column('years_of_experience', sa.Integer(), nullable=True),
        sa.Column('professional_status', sa.String(100), nullable=True),
        sa.Column('employment_status', sa.String(100), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('availability_date', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )

    # job_postings
    op.create_table(
        'job_postings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('education_level', sa.String(100), nullable=True),
        sa.Column('field_of_study', sa.String(255), nullable=True),
        sa.Column('years_experience_required', sa.Integer(), nullable=True),
        sa.Column('experience_domain', sa.String(255), nullable=True),
        sa.Column('hard_skills', sa.Text(), nullable=True),
        sa.Column('soft_skills', sa.Text(), nullable=True),
        sa.Column('languages', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )

    # queue_jobs (application_id has no FK so orphaned jobs can be detected)
    op.create_table(
        'queue_jobs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('queue_name', sa.String(100), nullable=False),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),  # JSON
        sa.Column('status', sa.String(20), nullable=False, server_default='waiting'),
        sa.Column('priority', sa.Integer(), server_default='0'),
        sa.Column('attempts_made', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('backoff_delay', sa.Float(), nullable=False, server_default='1'),
        sa.Column('timeout_seconds', sa.Float(), nullable=False, server_default='300'),
        sa.Column('lock_token', sa.String(64), nullable=True),
        sa.Column('locked_until', sa.DateTime(), nullable=True),
        sa.Column('stalled_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('scheduled_for', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_queue_jobs_claim', 'queue_jobs', ['queue_name', 'status', 'scheduled_for'])
    op.create_index('idx_queue_jobs_application', 'queue_jobs', ['application_id'])

    # queue_states
    op.create_table(
        'queue_states',
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('name'),
    )

    # =====================
    # Dependent tables
    # =====================

    # applications
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('candidate_id', sa.Integer(), nullable=False),
        sa.Column('job_posting_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('status_note', sa.Text(), nullable=True),
        sa.Column('analysis', sa.Text(), nullable=True),  # JSON analysis record
        sa.Column('analysis_error', sa.Text(), nullable=True),
        sa.Column('applied_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('analyzed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidates.id']),
        sa.ForeignKeyConstraint(['job_posting_id'], ['job_postings.id']),
        sa.UniqueConstraint('candidate_id', 'job_posting_id', name='uq_applications_candidate_job'),
    )
    op.create_index('idx_applications_status', 'applications', ['status', 'updated_at'])


def downgrade() -> None:
    # Drop in reverse order of dependencies
    op.drop_index('idx_applications_status', 'applications')
    op.drop_table('applications')
    op.drop_table('queue_states')
    op.drop_index('idx_queue_jobs_application', 'queue_jobs')
    op.drop_index('idx_queue_jobs_claim', 'queue_jobs')
    op.drop_table('queue_jobs')
    op.drop_table('job_postings')
    op.drop_table('candidates')

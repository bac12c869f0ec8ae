"""Create CLEP policy tables

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

Creates:
- universities: bulk-loaded institution records (unique DI code)
- clep_exam_policies: per-exam acceptance terms for each university
- institution_updates: institution-supplied overrides, one per (DI code, exam)
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'universities',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('city', sa.String(100), nullable=False, server_default=''),
        sa.Column('state', sa.String(50), nullable=False, server_default=''),
        sa.Column('di_code', sa.Integer(), nullable=False),
        sa.Column('zip', sa.String(20), nullable=True),
        sa.Column('enrollment', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('url', sa.String(500), nullable=True),
        sa.Column('max_credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('transcription_fee', sa.Float(), nullable=False, server_default='0'),
        sa.Column('score_validity_years', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('can_use_for_failed_courses', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_enrolled_students_use_clep', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('msea_org_id', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_universities_di_code', 'universities', ['di_code'], unique=True)
    op.create_index('ix_universities_state', 'universities', ['state'], unique=False)

    op.create_table(
        'clep_exam_policies',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('university_id', sa.UUID(), nullable=False),
        sa.Column('exam_name', sa.String(100), nullable=False),
        sa.Column('minimum_score', sa.Float(), nullable=True),
        sa.Column('credits_awarded', sa.Float(), nullable=True),
        sa.Column('course_equivalent', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['university_id'], ['universities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('university_id', 'exam_name', name='uq_policy_university_exam')
    )
    op.create_index('ix_clep_exam_policies_university_id', 'clep_exam_policies', ['university_id'], unique=False)
    op.create_index('ix_clep_exam_policies_exam_name', 'clep_exam_policies', ['exam_name'], unique=False)

    op.create_table(
        'institution_updates',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('institution_di_code', sa.Integer(), nullable=False),
        sa.Column('exam_name', sa.String(100), nullable=False),
        sa.Column('min_score', sa.String(20), nullable=True),
        sa.Column('credits', sa.String(20), nullable=True),
        sa.Column('course_code', sa.String(255), nullable=True),
        sa.Column('last_updated', sa.String(20), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_di_code', 'exam_name', name='uq_update_institution_exam')
    )
    op.create_index(
        'ix_institution_updates_institution_di_code',
        'institution_updates',
        ['institution_di_code'],
        unique=False
    )


def downgrade() -> None:
    op.drop_index('ix_institution_updates_institution_di_code', table_name='institution_updates')
    op.drop_table('institution_updates')
    op.drop_index('ix_clep_exam_policies_exam_name', table_name='clep_exam_policies')
    op.drop_index('ix_clep_exam_policies_university_id', table_name='clep_exam_policies')
    op.drop_table('clep_exam_policies')
    op.drop_index('ix_universities_state', table_name='universities')
    op.drop_index('ix_universities_di_code', table_name='universities')
    op.drop_table('universities')

"""Create locker_state, country_states and audit_log tables

Revision ID: 001
Revises:
Create Date: 2025-01-15 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('locker_state',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('energy_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_unlocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('energy_percentage >= 0 AND energy_percentage <= 100', name='ck_locker_state_energy_range'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('country_states',
        sa.Column('country_code', sa.String(2), nullable=False),
        sa.Column('activation_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('glow_band', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('activation_count >= 0', name='ck_country_states_count_non_negative'),
        sa.CheckConstraint('glow_band >= 0 AND glow_band <= 3', name='ck_country_states_glow_band_range'),
        sa.PrimaryKeyConstraint('country_code')
    )

    op.create_table('audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('admin_email', sa.String(), nullable=False),
        sa.Column('action_type', sa.String(), nullable=False),
        sa.Column('subject', sa.String(), nullable=False),
        sa.Column('delta_or_value', sa.String(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_log_admin_email', 'audit_log', ['admin_email'])
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'])
    op.create_index('ix_audit_log_subject_created', 'audit_log', ['subject', 'created_at'])
    op.create_index('ix_audit_log_action_created', 'audit_log', ['action_type', 'created_at'])


def downgrade():
    op.drop_index('ix_audit_log_action_created', 'audit_log')
    op.drop_index('ix_audit_log_subject_created', 'audit_log')
    op.drop_index('ix_audit_log_created_at', 'audit_log')
    op.drop_index('ix_audit_log_admin_email', 'audit_log')
    op.drop_table('audit_log')
    op.drop_table('country_states')
    op.drop_table('locker_state')

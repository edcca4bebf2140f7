"""create_membership_schema

Revision ID: 3a7c9e21d4b0
Revises:
Create Date: 2026-10-19 10:12:41.503912

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c9e21d4b0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    tiers = op.create_table(
        'tiers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('max_members', sa.Integer(), nullable=True),
        sa.Column('max_teams', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_tiers_name')
    )
    op.create_index('ix_tiers_id', 'tiers', ['id'], unique=False)

    op.bulk_insert(tiers, [
        {'name': 'free', 'max_members': 25, 'max_teams': 5},
        {'name': 'pro', 'max_members': 100, 'max_teams': 20},
        {'name': 'enterprise', 'max_members': -1, 'max_teams': -1},
    ])

    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('tier_id', sa.Integer(), nullable=False),
        sa.Column('color_palette', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tier_id'], ['tiers.id'], name='fk_organizations_tier_id'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_organizations_id', 'organizations', ['id'], unique=False)
    op.create_index('ix_organizations_tier_id', 'organizations', ['tier_id'], unique=False)

    op.create_table(
        'identities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_identities_id', 'identities', ['id'], unique=False)
    op.create_index('ix_identities_email', 'identities', ['email'], unique=True)

    # users.team_id gets its foreign key after teams exists
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('team_id', sa.Integer(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_users_organization_id'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'], unique=False)
    op.create_index('ix_users_organization_id', 'users', ['organization_id'], unique=False)
    op.create_index('ix_users_team_id', 'users', ['team_id'], unique=False)

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_teams_organization_id'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_teams_created_by'),
        sa.ForeignKeyConstraint(['manager_id'], ['users.id'], name='fk_teams_manager_id'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_teams_id', 'teams', ['id'], unique=False)
    op.create_index('ix_teams_organization_id', 'teams', ['organization_id'], unique=False)
    op.create_index('ix_teams_created_by', 'teams', ['created_by'], unique=False)
    op.create_index('ix_teams_manager_id', 'teams', ['manager_id'], unique=False)

    op.create_foreign_key('fk_users_team_id', 'users', 'teams', ['team_id'], ['id'])

    op.create_table(
        'invites',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('invited_by', sa.Integer(), nullable=True),
        sa.Column('accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_invites_organization_id'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], name='fk_invites_team_id'),
        sa.ForeignKeyConstraint(['invited_by'], ['users.id'], name='fk_invites_invited_by'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invites_id', 'invites', ['id'], unique=False)
    op.create_index('ix_invites_email', 'invites', ['email'], unique=False)
    op.create_index('ix_invites_organization_id', 'invites', ['organization_id'], unique=False)

    op.create_table(
        'activity_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('action_type', sa.String(length=50), nullable=False),
        sa.Column('target_type', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.Integer(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], name='fk_activity_log_actor_id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_activity_log_organization_id'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_activity_log_id', 'activity_log', ['id'], unique=False)
    op.create_index('ix_activity_log_actor_id', 'activity_log', ['actor_id'], unique=False)
    op.create_index('ix_activity_log_organization_id', 'activity_log', ['organization_id'], unique=False)
    op.create_index('ix_activity_log_action_type', 'activity_log', ['action_type'], unique=False)
    op.create_index('ix_activity_log_created_at', 'activity_log', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('activity_log')
    op.drop_table('invites')
    op.drop_constraint('fk_users_team_id', 'users', type_='foreignkey')
    op.drop_table('teams')
    op.drop_table('users')
    op.drop_index('ix_identities_email', table_name='identities')
    op.drop_table('identities')
    op.drop_table('organizations')
    op.drop_table('tiers')

"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('provider_identity', sa.String(), nullable=False),
        sa.Column('credential_hash', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('provider_identity', name='uq_users_provider_identity'),
    )
    op.create_index('ix_users_provider_identity', 'users', ['provider_identity'])
    op.create_index('ix_users_credential_hash', 'users', ['credential_hash'])

    # boards
    op.create_table(
        'boards',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('visibility', sa.String(length=16), nullable=False, server_default='private'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_boards_owner_id', 'boards', ['owner_id'])

    # notes
    op.create_table(
        'notes',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('board_id', sa.Integer(), sa.ForeignKey('boards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_notes_author_id', 'notes', ['author_id'])
    op.create_index('ix_notes_board_id', 'notes', ['board_id'])

    # permissions (one grant per user per board)
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('board_id', sa.Integer(), sa.ForeignKey('boards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('can_read', sa.Boolean(), nullable=False),
        sa.Column('can_write', sa.Boolean(), nullable=False),
        sa.UniqueConstraint('user_id', 'board_id', name='uq_permissions_user_board'),
    )
    op.create_index('ix_permissions_user_id', 'permissions', ['user_id'])
    op.create_index('ix_permissions_board_id', 'permissions', ['board_id'])

    # pending oauth logins
    op.create_table(
        'oauth_states',
        sa.Column('state', sa.String(), primary_key=True, nullable=False),
        sa.Column('provider', sa.String(length=32), nullable=False),
        sa.Column('code_verifier', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_oauth_states_created_at', 'oauth_states', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_oauth_states_created_at', table_name='oauth_states')
    op.drop_table('oauth_states')
    op.drop_index('ix_permissions_board_id', table_name='permissions')
    op.drop_index('ix_permissions_user_id', table_name='permissions')
    op.drop_table('permissions')
    op.drop_index('ix_notes_board_id', table_name='notes')
    op.drop_index('ix_notes_author_id', table_name='notes')
    op.drop_table('notes')
    op.drop_index('ix_boards_owner_id', table_name='boards')
    op.drop_table('boards')
    op.drop_index('ix_users_credential_hash', table_name='users')
    op.drop_index('ix_users_provider_identity', table_name='users')
    op.drop_table('users')

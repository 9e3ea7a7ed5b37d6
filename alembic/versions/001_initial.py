"""
Initial migration - create users and user_connections.

Revision ID: 001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True, index=True),
        sa.Column('hashed_password', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )
    
    # Create user_connections table; rank orders a user's accounts per provider
    op.create_table(
        'user_connections',
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('provider_id', sa.String(255), primary_key=True),
        sa.Column('provider_user_id', sa.String(255), primary_key=True),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('profile_url', sa.String(512), nullable=True),
        sa.Column('image_url', sa.String(512), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('secret', sa.Text(), nullable=True),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('expire_time', sa.BigInteger(), nullable=True),
        sa.UniqueConstraint('user_id', 'provider_id', 'rank', name='uq_user_connections_rank'),
    )
    op.create_index(
        'ix_user_connections_user_provider_rank',
        'user_connections',
        ['user_id', 'provider_id', 'rank'],
    )


def downgrade() -> None:
    op.drop_index('ix_user_connections_user_provider_rank', table_name='user_connections')
    op.drop_table('user_connections')
    op.drop_table('users')

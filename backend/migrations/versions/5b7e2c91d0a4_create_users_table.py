"""create users table for the global leaderboard

Revision ID: 5b7e2c91d0a4
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e2c91d0a4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'users' in set(insp.get_table_names()):
        return

    op.create_table(
        'users',
        sa.Column('fid', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('username', sa.String(length=64), nullable=True),
        sa.Column('display_name', sa.String(length=128), nullable=True),
        sa.Column('pfp_url', sa.Text(), nullable=True),
        sa.Column('wallet_address', sa.String(length=64), nullable=True),
        sa.Column('score', sa.Integer(), server_default='0', nullable=False),
        sa.Column('reaction_time', sa.Integer(), nullable=True),
        sa.Column('last_seen', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('fid'),
    )
    op.create_index('ix_users_score', 'users', ['score'], unique=False)


def downgrade():
    op.drop_index('ix_users_score', table_name='users')
    op.drop_table('users')

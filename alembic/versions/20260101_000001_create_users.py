"""Create users table.

Revision ID: 20260101_000001
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260101_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users table with the traversal indexes."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(128), nullable=False),
        sa.Column('upline', sa.String(128), nullable=True, comment='Direct parent, NULL for roots'),
        sa.Column('referral_code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('normalized_name', sa.String(255), nullable=False, server_default='', comment='Lowercased name for prefix search'),
        sa.Column('email', sa.String(255), nullable=False, server_default=''),
        sa.Column('phone', sa.String(50), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('referrals', sa.JSON(), nullable=False, server_default='[]', comment='Advisory child list'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_index('ix_users_upline', 'users', ['upline'])
    op.create_index('ix_users_referral_code', 'users', ['referral_code'], unique=True)
    op.create_index('ix_users_normalized_name', 'users', ['normalized_name'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_phone', 'users', ['phone'])
    op.create_index('ix_users_upline_created_at', 'users', ['upline', 'created_at'])


def downgrade() -> None:
    """Drop users table."""
    op.drop_index('ix_users_upline_created_at', table_name='users')
    op.drop_index('ix_users_phone', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_normalized_name', table_name='users')
    op.drop_index('ix_users_referral_code', table_name='users')
    op.drop_index('ix_users_upline', table_name='users')
    op.drop_table('users')

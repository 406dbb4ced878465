# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


agent_action = sa.Enum('BUY', 'SELL', 'HOLD', name='agentactionenum')


def upgrade():
    # Create agent_wallet table
    op.create_table('agent_wallet',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('circle_wallet_id', sa.String(length=64), nullable=False),
        sa.Column('address', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('circle_wallet_id'),
        sa.UniqueConstraint('address')
    )

    # Create agent_log table
    op.create_table('agent_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('action', agent_action, nullable=False),
        sa.Column('amount', sa.String(length=78), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('sentiment_score', sa.Float(), nullable=False),
        sa.Column('market_apy_snapshot', sa.Float(), nullable=False),
        sa.Column('tx_hash', sa.String(length=128), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_agent_log_timestamp'), 'agent_log', ['timestamp'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_agent_log_timestamp'), table_name='agent_log')
    op.drop_table('agent_log')
    op.drop_table('agent_wallet')
    agent_action.drop(op.get_bind(), checkfirst=True)

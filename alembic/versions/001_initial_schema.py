"""Initial schema for the claim ledger and settlement layer.

Revision ID: 001_initial
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
    # Identifier counter per registry
    op.create_table(
        'registry_state',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(64), nullable=False),
        sa.Column('next_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Claim tokens
    op.create_table(
        'claim_tokens',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('owner', sa.String(42), nullable=False),
        sa.Column('approved', sa.String(42), nullable=True),
        sa.Column('minted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_claim_tokens_owner', 'claim_tokens', ['owner'])

    # Custody records, one per active claim
    op.create_table(
        'custody_records',
        sa.Column('claim_id', sa.Integer(), nullable=False),
        sa.Column('asset_address', sa.String(42), nullable=False),
        sa.Column('amount', sa.String(78), nullable=False),  # uint256 as decimal text
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['claim_id'], ['claim_tokens.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('claim_id')
    )
    op.create_index('ix_custody_records_asset_address', 'custody_records', ['asset_address'])

    # Operator approvals
    op.create_table(
        'operator_approvals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner', sa.String(42), nullable=False),
        sa.Column('operator', sa.String(42), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_operator_approvals_owner_operator', 'operator_approvals', ['owner', 'operator'], unique=True
    )

    # Event log
    op.create_table(
        'ledger_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('claim_id', sa.Integer(), nullable=True),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ledger_events_kind', 'ledger_events', ['kind'])
    op.create_index('ix_ledger_events_claim_id', 'ledger_events', ['claim_id'])

    # Simulated settlement layer
    op.create_table(
        'asset_balances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('asset', sa.String(42), nullable=False),
        sa.Column('account', sa.String(42), nullable=False),
        sa.Column('amount', sa.String(78), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_asset_balances_asset_account', 'asset_balances', ['asset', 'account'], unique=True
    )

    op.create_table(
        'asset_allowances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('asset', sa.String(42), nullable=False),
        sa.Column('owner', sa.String(42), nullable=False),
        sa.Column('spender', sa.String(42), nullable=False),
        sa.Column('amount', sa.String(78), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_asset_allowances_asset_owner_spender',
        'asset_allowances',
        ['asset', 'owner', 'spender'],
        unique=True,
    )


def downgrade() -> None:
    op.drop_table('asset_allowances')
    op.drop_table('asset_balances')
    op.drop_table('ledger_events')
    op.drop_table('operator_approvals')
    op.drop_table('custody_records')
    op.drop_table('claim_tokens')
    op.drop_table('registry_state')

"""create_wallet_trust_tables

Revision ID: 4f2a9c1e7b30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1e7b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


trust_type_enum = sa.Enum('send', 'manage', 'deduct', name='trust_type_enum')
trust_request_type_enum = sa.Enum(
    'send', 'receive', 'manage', 'yield', 'deduct', name='trust_request_type_enum'
)
trust_state_enum = sa.Enum(
    'requested', 'trusted', 'declined', 'cancelled', 'revoked', name='trust_state_enum'
)
transaction_type_enum = sa.Enum(
    'initial_credit', 'transfer_in', 'transfer_out', name='transaction_type_enum'
)
transaction_direction_enum = sa.Enum('credit', 'debit', name='transaction_direction_enum')
transaction_status_enum = sa.Enum(
    'pending', 'completed', 'failed', name='transaction_status_enum'
)


def upgrade() -> None:
    """Upgrade schema - Add wallets, wallet_trust and wallet_transactions."""

    op.create_table(
        'wallets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('about', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.String(), nullable=True),
        sa.Column('cover_url', sa.String(), nullable=True),
        sa.Column('add_to_web_map', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('balance', sa.Integer(), server_default='0', nullable=False),
        sa.Column('active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('balance >= 0', name='ck_wallet_balance_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    # Names are unique among active wallets only
    op.create_index(
        'uq_wallets_active_name',
        'wallets',
        ['name'],
        unique=True,
        postgresql_where=sa.text('active'),
        sqlite_where=sa.text('active'),
    )
    op.create_index('ix_wallets_created_at', 'wallets', ['created_at'])

    op.create_table(
        'wallet_trust',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor_wallet_id', sa.Uuid(), nullable=False),
        sa.Column('target_wallet_id', sa.Uuid(), nullable=False),
        sa.Column('originator_wallet_id', sa.Uuid(), nullable=False),
        sa.Column('type', trust_type_enum, nullable=False),
        sa.Column('request_type', trust_request_type_enum, nullable=False),
        sa.Column('state', trust_state_enum, nullable=False),
        sa.Column('active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('actor_wallet_id != target_wallet_id', name='ck_trust_no_self_edge'),
        sa.ForeignKeyConstraint(['actor_wallet_id'], ['wallets.id']),
        sa.ForeignKeyConstraint(['target_wallet_id'], ['wallets.id']),
        sa.ForeignKeyConstraint(['originator_wallet_id'], ['wallets.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_wallet_trust_actor_wallet_id', 'wallet_trust', ['actor_wallet_id'])
    op.create_index('ix_wallet_trust_target_wallet_id', 'wallet_trust', ['target_wallet_id'])
    op.create_index(
        'ix_wallet_trust_actor_request_state',
        'wallet_trust',
        ['actor_wallet_id', 'request_type', 'state'],
    )
    op.create_index(
        'ix_wallet_trust_target_request_state',
        'wallet_trust',
        ['target_wallet_id', 'request_type', 'state'],
    )

    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('wallet_id', sa.Uuid(), nullable=False),
        sa.Column('counterparty_wallet_id', sa.Uuid(), nullable=True),
        sa.Column('idempotency_key', sa.String(), nullable=False),
        sa.Column('transaction_type', transaction_type_enum, nullable=False),
        sa.Column('direction', transaction_direction_enum, nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('balance_before', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('status', transaction_status_enum, nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_transaction_amount_positive'),
        sa.ForeignKeyConstraint(['wallet_id'], ['wallets.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_wallet_transactions_wallet_id', 'wallet_transactions', ['wallet_id']
    )
    op.create_index(
        'ix_wallet_transactions_idempotency_key',
        'wallet_transactions',
        ['idempotency_key'],
        unique=True,
    )
    op.create_index(
        'ix_wallet_transactions_wallet_created',
        'wallet_transactions',
        ['wallet_id', 'created_at'],
    )


def downgrade() -> None:
    """Downgrade schema - Drop wallet tables and enums."""
    op.drop_table('wallet_transactions')
    op.drop_table('wallet_trust')
    op.drop_index('ix_wallets_created_at', table_name='wallets')
    op.drop_index('uq_wallets_active_name', table_name='wallets')
    op.drop_table('wallets')

    bind = op.get_bind()
    for enum in (
        transaction_status_enum,
        transaction_direction_enum,
        transaction_type_enum,
        trust_state_enum,
        trust_request_type_enum,
        trust_type_enum,
    ):
        enum.drop(bind, checkfirst=True)

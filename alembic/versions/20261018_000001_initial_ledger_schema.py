"""Initial ledger schema.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

Creates accounts, purchases, the transaction ledger, referral tables,
system logs, deposit/withdrawal requests and daily check-ins.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_000001'
down_revision = None
branch_labels = None
depends_on = None


MONEY = sa.Numeric(precision=18, scale=2)
PERCENT = sa.Numeric(precision=5, scale=2)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text('CURRENT_TIMESTAMP'),
    )


def upgrade() -> None:
    """Create all ledger tables."""
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mobile', sa.String(length=32), nullable=False),
        sa.Column('referral_code', sa.String(length=16), nullable=False),
        sa.Column('inviter_id', sa.Integer(), nullable=True),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'initial_balance',
            MONEY,
            nullable=False,
            server_default='0',
            comment='Signup balance; not represented by a transaction row'
        ),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(
            ['inviter_id'],
            ['accounts.id'],
            name='fk_accounts_inviter_id_accounts',
            ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_accounts'),
    )
    op.create_index('ix_accounts_mobile', 'accounts', ['mobile'], unique=True)
    op.create_index(
        'ix_accounts_referral_code', 'accounts', ['referral_code'], unique=True
    )
    op.create_index('ix_accounts_inviter_id', 'accounts', ['inviter_id'])

    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('daily_return', MONEY, nullable=False),
        sa.Column('cycle_days', sa.Integer(), nullable=False),
        _timestamp('purchase_date'),
        sa.Column('next_payout', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='active',
            comment='active, completed, cancelled'
        ),
        sa.Column('total_earned', MONEY, nullable=False, server_default='0'),
        sa.Column('payout_count', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('last_payout', nullable=True),
        _timestamp('completed_at', nullable=True),
        _timestamp('cancelled_at', nullable=True),
        sa.ForeignKeyConstraint(
            ['account_id'],
            ['accounts.id'],
            name='fk_purchases_account_id_accounts',
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_purchases'),
        sa.CheckConstraint('amount >= 0', name='ck_purchases_amount_non_negative'),
        sa.CheckConstraint(
            'daily_return >= 0', name='ck_purchases_daily_return_non_negative'
        ),
        sa.CheckConstraint('cycle_days > 0', name='ck_purchases_cycle_days_positive'),
        sa.CheckConstraint(
            'payout_count >= 0', name='ck_purchases_payout_count_non_negative'
        ),
    )
    op.create_index('ix_purchases_account_id', 'purchases', ['account_id'])
    op.create_index('ix_purchases_status', 'purchases', ['status'])
    # Payout scan: status = 'active' AND next_payout <= now
    op.create_index(
        'idx_purchase_status_next_payout', 'purchases', ['status', 'next_payout']
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=40), nullable=False),
        sa.Column('amount', MONEY, nullable=False, comment='Signed amount'),
        sa.Column('balance_after', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(
            ['account_id'],
            ['accounts.id'],
            name='fk_transactions_account_id_accounts',
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_transactions'),
    )
    op.create_index('ix_transactions_account_id', 'transactions', ['account_id'])
    op.create_index(
        'idx_transaction_account_created', 'transactions', ['account_id', 'created_at']
    )
    op.create_index(
        'idx_transaction_type_created', 'transactions', ['type', 'created_at']
    )

    op.create_table(
        'referral_levels',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(
            ['referrer_id'],
            ['accounts.id'],
            name='fk_referral_levels_referrer_id_accounts',
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['account_id'],
            ['accounts.id'],
            name='fk_referral_levels_account_id_accounts',
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_referral_levels'),
        sa.CheckConstraint(
            'level >= 1 AND level <= 3', name='ck_referral_levels_level_range'
        ),
        sa.UniqueConstraint(
            'account_id', 'level', name='uq_referral_level_account_level'
        ),
        sa.UniqueConstraint(
            'referrer_id', 'account_id', name='uq_referral_level_referrer_account'
        ),
    )
    op.create_index('ix_referral_levels_referrer_id', 'referral_levels', ['referrer_id'])
    op.create_index('ix_referral_levels_account_id', 'referral_levels', ['account_id'])

    op.create_table(
        'referral_bonuses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_account_id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('purchase_amount', MONEY, nullable=False),
        sa.Column('bonus_amount', MONEY, nullable=False),
        sa.Column('bonus_percentage', PERCENT, nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False, server_default=''),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(
            ['referrer_id'],
            ['accounts.id'],
            name='fk_referral_bonuses_referrer_id_accounts',
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['referred_account_id'],
            ['accounts.id'],
            name='fk_referral_bonuses_referred_account_id_accounts',
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['purchase_id'],
            ['purchases.id'],
            name='fk_referral_bonuses_purchase_id_purchases',
            ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_referral_bonuses'),
    )
    op.create_index('ix_referral_bonuses_referrer_id', 'referral_bonuses', ['referrer_id'])
    op.create_index(
        'ix_referral_bonuses_referred_account_id', 'referral_bonuses', ['referred_account_id']
    )
    op.create_index('ix_referral_bonuses_purchase_id', 'referral_bonuses', ['purchase_id'])

    op.create_table(
        'system_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id', name='pk_system_logs'),
    )
    op.create_index('ix_system_logs_account_id', 'system_logs', ['account_id'])
    op.create_index(
        'idx_system_log_action_created', 'system_logs', ['action', 'created_at']
    )

    for table in ('deposits', 'withdrawals'):
        extra = []
        checks = [sa.CheckConstraint('amount > 0', name=f'ck_{table}_amount_positive')]
        if table == 'withdrawals':
            extra = [
                sa.Column('tax', MONEY, nullable=False, server_default='0'),
                sa.Column('net_amount', MONEY, nullable=False),
            ]
            checks.append(
                sa.CheckConstraint('tax >= 0', name='ck_withdrawals_tax_non_negative')
            )
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('account_id', sa.Integer(), nullable=False),
            sa.Column('amount', MONEY, nullable=False),
            *extra,
            sa.Column('account_name', sa.String(length=255), nullable=False),
            sa.Column('iban', sa.String(length=64), nullable=False),
            sa.Column('bank_name', sa.String(length=255), nullable=False),
            sa.Column('bank_code', sa.String(length=32), nullable=True),
            sa.Column(
                'status',
                sa.String(length=20),
                nullable=False,
                server_default='pending',
                comment='pending, completed, failed'
            ),
            sa.Column('rejection_reason', sa.String(length=255), nullable=True),
            _timestamp('created_at'),
            _timestamp('processed_at', nullable=True),
            sa.ForeignKeyConstraint(
                ['account_id'],
                ['accounts.id'],
                name=f'fk_{table}_account_id_accounts',
                ondelete='CASCADE'
            ),
            sa.PrimaryKeyConstraint('id', name=f'pk_{table}'),
            *checks,
        )
        op.create_index(f'ix_{table}_account_id', table, ['account_id'])
        op.create_index(f'ix_{table}_status', table, ['status'])

    op.create_table(
        'daily_checkins',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        _timestamp('checkin_date'),
        sa.Column('amount_received', MONEY, nullable=False),
        sa.Column('next_checkin', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['account_id'],
            ['accounts.id'],
            name='fk_daily_checkins_account_id_accounts',
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_daily_checkins'),
    )
    op.create_index('ix_daily_checkins_account_id', 'daily_checkins', ['account_id'])


def downgrade() -> None:
    """Drop all ledger tables."""
    for table in (
        'daily_checkins',
        'withdrawals',
        'deposits',
        'system_logs',
        'referral_bonuses',
        'referral_levels',
        'transactions',
        'purchases',
        'accounts',
    ):
        op.drop_table(table)

"""Add saved bank accounts.

Revision ID: 20261018_000002
Revises: 20261018_000001
Create Date: 2026-10-18

One payout bank account per account, removed with the account.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_000002'
down_revision = '20261018_000001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create bank_accounts."""
    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('bank_name', sa.String(length=255), nullable=False),
        sa.Column('account_holder', sa.String(length=255), nullable=False),
        sa.Column('account_number', sa.String(length=64), nullable=False),
        sa.Column('branch_code', sa.String(length=32), nullable=False),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('CURRENT_TIMESTAMP'),
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('CURRENT_TIMESTAMP'),
        ),
        sa.ForeignKeyConstraint(
            ['account_id'],
            ['accounts.id'],
            name='fk_bank_accounts_account_id_accounts',
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_bank_accounts'),
    )
    op.create_index(
        'ix_bank_accounts_account_id', 'bank_accounts', ['account_id'], unique=True
    )


def downgrade() -> None:
    """Drop bank_accounts."""
    op.drop_index('ix_bank_accounts_account_id', table_name='bank_accounts')
    op.drop_table('bank_accounts')

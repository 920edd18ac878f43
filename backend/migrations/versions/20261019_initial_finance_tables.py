"""Create linked account, transaction, budget and user profile tables

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261019_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create user_profiles table
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create user_accounts table
    op.create_table(
        'user_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('account_id', sa.String(255), nullable=False),
        sa.Column('item_id', sa.String(255), nullable=True),
        sa.Column('account_name', sa.String(255), nullable=True),
        sa.Column('official_name', sa.String(255), nullable=True),
        sa.Column('account_type', sa.String(50), nullable=True),
        sa.Column('account_subtype', sa.String(50), nullable=True),
        sa.Column('account_number_masked', sa.String(10), nullable=True),
        sa.Column('balance', sa.Numeric(18, 2), nullable=True),
        sa.Column('available_balance', sa.Numeric(18, 2), nullable=True),
        sa.Column('currency', sa.String(10), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'account_id', name='uq_user_account')
    )
    op.create_index('ix_user_accounts_user_id', 'user_accounts', ['user_id'])
    op.create_index('idx_user_accounts_active', 'user_accounts', ['user_id', 'is_active'])

    # Create transactions table
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('merchant_name', sa.String(255), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('posted_date', sa.Date(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('subcategory', sa.String(255), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_manual', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['user_accounts.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transactions_account_id', 'transactions', ['account_id'])
    op.create_index('ix_transactions_transaction_id', 'transactions', ['transaction_id'], unique=True)
    op.create_index('idx_transactions_account_date', 'transactions', ['account_id', 'date'])
    op.create_index('idx_transactions_category', 'transactions', ['category'])

    # Create custom_categories table
    op.create_table(
        'custom_categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('is_income', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('parent_category', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'name', name='uq_custom_category_name')
    )
    op.create_index('ix_custom_categories_user_id', 'custom_categories', ['user_id'])

    # Create budgets table
    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category_name', sa.String(100), nullable=False),
        sa.Column('budget_type', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('auto_renew', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('rollover_unused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('alert_threshold', sa.Numeric(5, 2), nullable=False, server_default='80'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_budgets_user_id', 'budgets', ['user_id'])
    op.create_index('idx_budgets_user_active', 'budgets', ['user_id', 'is_active'])

    # Create budget_goals table
    op.create_table(
        'budget_goals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('budget_id', sa.Integer(), nullable=False),
        sa.Column('goal_name', sa.String(255), nullable=False),
        sa.Column('target_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['budget_id'], ['budgets.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('budget_id')
    )


def downgrade() -> None:
    op.drop_table('budget_goals')
    op.drop_index('idx_budgets_user_active', table_name='budgets')
    op.drop_index('ix_budgets_user_id', table_name='budgets')
    op.drop_table('budgets')
    op.drop_index('ix_custom_categories_user_id', table_name='custom_categories')
    op.drop_table('custom_categories')
    op.drop_index('idx_transactions_category', table_name='transactions')
    op.drop_index('idx_transactions_account_date', table_name='transactions')
    op.drop_index('ix_transactions_transaction_id', table_name='transactions')
    op.drop_index('ix_transactions_account_id', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('idx_user_accounts_active', table_name='user_accounts')
    op.drop_index('ix_user_accounts_user_id', table_name='user_accounts')
    op.drop_table('user_accounts')
    op.drop_table('user_profiles')

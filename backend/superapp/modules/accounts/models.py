"""
Linked bank account model.

One row per (user, Plaid account). Re-linking the same Plaid account updates
the row; unlinking only clears is_active.
"""

from sqlalchemy import Column, String, Numeric, DateTime, Text, UniqueConstraint, Index

from superapp.shared.models.base import BaseModel, SoftDeleteMixin


class LinkedAccount(BaseModel, SoftDeleteMixin):
    """A bank account linked through Plaid."""

    __tablename__ = "user_accounts"

    user_id = Column(String(64), nullable=False, index=True)  # Supabase auth user id
    account_id = Column(String(255), nullable=False)  # Plaid account_id
    item_id = Column(String(255), nullable=True)  # Plaid item the account belongs to

    # Account details
    account_name = Column(String(255), nullable=True)
    official_name = Column(String(255), nullable=True)
    account_type = Column(String(50), nullable=True)  # depository, credit, loan, investment
    account_subtype = Column(String(50), nullable=True)  # checking, savings, credit card, ...
    account_number_masked = Column(String(10), nullable=True)  # Last 4 digits

    # Balances (updated on every link/sync)
    balance = Column(Numeric(18, 2), nullable=True)
    available_balance = Column(Numeric(18, 2), nullable=True)
    currency = Column(String(10), default="CAD")

    # Plaid access token - never returned by the API
    access_token = Column(Text, nullable=False)

    last_synced_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "account_id", name="uq_user_account"),
        Index("idx_user_accounts_active", "user_id", "is_active"),
    )

"""
Bank transaction model.

Amounts follow Plaid's sign convention: positive = money out (expense),
negative = money in.
"""

from sqlalchemy import Column, Integer, String, Numeric, Date, Boolean, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from superapp.modules.accounts.models import LinkedAccount
from superapp.shared.models.base import BaseModel


class Transaction(BaseModel):
    """A transaction imported from Plaid for a linked account."""

    __tablename__ = "transactions"

    account_id = Column(Integer, ForeignKey("user_accounts.id"), nullable=False, index=True)
    transaction_id = Column(String(255), unique=True, nullable=False, index=True)  # Plaid transaction_id

    # Transaction details
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(Text, nullable=True)
    merchant_name = Column(String(255), nullable=True)
    date = Column(Date, nullable=False)
    posted_date = Column(Date, nullable=True)

    # Categorization
    category = Column(String(100), nullable=True)  # Normalized label
    subcategory = Column(String(255), nullable=True)  # Raw Plaid label

    # User flags
    is_recurring = Column(Boolean, default=False, nullable=False)
    is_manual = Column(Boolean, default=False, nullable=False)

    account = relationship(LinkedAccount)

    __table_args__ = (
        Index("idx_transactions_account_date", "account_id", "date"),
        Index("idx_transactions_category", "category"),
    )

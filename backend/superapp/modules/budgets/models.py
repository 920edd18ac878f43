"""
Budgeting database models.

Budgets reference categories by name (either a normalized transaction
category or one of the user's custom categories); there is no foreign key.
"""

from sqlalchemy import Column, Integer, String, Numeric, Date, Boolean, Text, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from superapp.shared.models.base import BaseModel, SoftDeleteMixin


class CustomCategory(BaseModel, SoftDeleteMixin):
    """User-defined spending or income category."""

    __tablename__ = "custom_categories"

    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), default="#3182ce")
    icon = Column(String(50), default="tag")
    is_income = Column(Boolean, default=False, nullable=False)
    parent_category = Column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_custom_category_name"),
    )


class Budget(BaseModel, SoftDeleteMixin):
    """Spending target for one category over a period."""

    __tablename__ = "budgets"

    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category_name = Column(String(100), nullable=False)
    budget_type = Column(String(20), nullable=False, default="monthly")  # weekly, monthly, annual, goal
    amount = Column(Numeric(18, 2), nullable=False)  # Target amount

    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)

    auto_renew = Column(Boolean, default=True, nullable=False)
    rollover_unused = Column(Boolean, default=False, nullable=False)
    alert_threshold = Column(Numeric(5, 2), default=80, nullable=False)  # Percent of target
    notes = Column(Text, nullable=True)

    goal = relationship("BudgetGoal", back_populates="budget", uselist=False)

    __table_args__ = (
        Index("idx_budgets_user_active", "user_id", "is_active"),
    )


class BudgetGoal(BaseModel):
    """Savings goal attached to a budget of type 'goal'."""

    __tablename__ = "budget_goals"

    budget_id = Column(Integer, ForeignKey("budgets.id"), nullable=False, unique=True)
    goal_name = Column(String(255), nullable=False)
    target_amount = Column(Numeric(18, 2), nullable=False)
    target_date = Column(Date, nullable=True)

    budget = relationship("Budget", back_populates="goal")

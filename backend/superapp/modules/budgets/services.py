"""
Budget engine: custom categories, budgets and spending insights.

Spent amounts are never stored. They are summed from transactions every time
budgets are read, so edits to transaction categories show up immediately.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Any
import math
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session

from superapp.core.database import commit
from superapp.core.errors import ConflictError, NotFoundError, StoreConflict, StoreError, ValidationError
from superapp.core.timezone import format_date_for_api, format_datetime_for_api, today_utc
from superapp.modules.accounts.models import LinkedAccount
from superapp.modules.budgets.models import Budget, BudgetGoal, CustomCategory
from superapp.modules.categories.mapper import DEFAULT_CATEGORY, category_color, category_icon
from superapp.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)

BUDGET_TYPES = ("weekly", "monthly", "annual", "goal")

# Fields a budget patch may touch
UPDATABLE_FIELDS = {
    "name",
    "category_name",
    "budget_type",
    "amount",
    "period_start",
    "period_end",
    "auto_renew",
    "rollover_unused",
    "alert_threshold",
    "notes",
}

SUGGESTION_BUFFER = Decimal("1.10")  # Suggested budget = average + 10%


def _money(value) -> Decimal:
    return Decimal(str(value or 0))


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def category_to_dict(cat: CustomCategory) -> Dict[str, Any]:
    return {
        "id": cat.id,
        "name": cat.name,
        "type": "custom",
        "description": cat.description,
        "is_income": cat.is_income,
        "color": cat.color,
        "icon": cat.icon,
        "parent_category": cat.parent_category,
    }


def goal_to_dict(goal: Optional[BudgetGoal]) -> Optional[Dict[str, Any]]:
    if goal is None:
        return None
    return {
        "id": goal.id,
        "goal_name": goal.goal_name,
        "target_amount": _float(goal.target_amount),
        "target_date": format_date_for_api(goal.target_date),
    }


def budget_to_dict(budget: Budget) -> Dict[str, Any]:
    return {
        "id": budget.id,
        "user_id": budget.user_id,
        "name": budget.name,
        "category_name": budget.category_name,
        "budget_type": budget.budget_type,
        "amount": _float(budget.amount),
        "period_start": format_date_for_api(budget.period_start),
        "period_end": format_date_for_api(budget.period_end),
        "auto_renew": budget.auto_renew,
        "rollover_unused": budget.rollover_unused,
        "alert_threshold": _float(budget.alert_threshold),
        "notes": budget.notes,
        "is_active": budget.is_active,
        "goal": goal_to_dict(budget.goal),
        "created_at": format_datetime_for_api(budget.created_at),
        "updated_at": format_datetime_for_api(budget.updated_at),
    }


def compute_budget_progress(target, spent, alert_threshold) -> Dict[str, Any]:
    """
    Derived budget fields for a target and an amount spent.

    percentage_used is 0 for a zero target with nothing spent, and 100 once
    anything is spent against a zero target.
    """
    target = _money(target)
    spent = _money(spent)
    threshold = _money(alert_threshold)

    if target > 0:
        percentage = spent / target * 100
    else:
        percentage = Decimal(100) if spent > 0 else Decimal(0)

    return {
        "spent_amount": float(spent),
        "remaining_amount": float(target - spent),
        "percentage_used": float(percentage.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        "is_over_budget": spent > target,
        "is_near_limit": percentage >= threshold,
    }


class BudgetEngine:
    """Custom categories, budgets and spending suggestions for a user."""

    def __init__(self, db: Session):
        self.db = db

    def _expenses(self, user_id: str):
        """Positive-amount transactions on the user's active accounts."""
        return self.db.query(Transaction).join(
            LinkedAccount, Transaction.account_id == LinkedAccount.id
        ).filter(
            LinkedAccount.user_id == user_id,
            LinkedAccount.is_active == True,  # noqa: E712
            Transaction.amount > 0,
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(self, user_id: str, data: Dict[str, Any]) -> CustomCategory:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Category name is required")

        category = CustomCategory(
            user_id=user_id,
            name=name,
            description=data.get("description"),
            color=data.get("color") or "#3182ce",
            icon=data.get("icon") or "tag",
            is_income=bool(data.get("is_income") or False),
            parent_category=data.get("parent_category"),
        )
        self.db.add(category)
        try:
            commit(self.db)
        except StoreConflict as e:
            raise ConflictError(f"Category '{name}' already exists") from e
        self.db.refresh(category)
        logger.info(f"Created custom category '{name}' for user {user_id}")
        return category

    def list_categories(self, user_id: str) -> Dict[str, List[Dict[str, Any]]]:
        """
        Categories available to a user.

        predefined: normalized labels seen on the user's own transactions.
        custom: the user's active custom categories.
        """
        rows = self.db.query(Transaction.category).join(
            LinkedAccount, Transaction.account_id == LinkedAccount.id
        ).filter(
            LinkedAccount.user_id == user_id,
            LinkedAccount.is_active == True,  # noqa: E712
            Transaction.category.isnot(None),
        ).distinct().order_by(Transaction.category).all()

        predefined = [
            {
                "name": name,
                "type": "predefined",
                "is_income": False,
                "color": category_color(name),
                "icon": category_icon(name),
            }
            for (name,) in rows
        ]

        custom_rows = self.db.query(CustomCategory).filter(
            CustomCategory.user_id == user_id,
            CustomCategory.is_active == True,  # noqa: E712
        ).order_by(CustomCategory.name).all()
        custom = [category_to_dict(c) for c in custom_rows]

        return {
            "predefined": predefined,
            "custom": custom,
            "all": predefined + custom,
        }

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def _validate_budget(self, budget: Budget) -> None:
        if budget.budget_type not in BUDGET_TYPES:
            raise ValidationError(f"budget_type must be one of {', '.join(BUDGET_TYPES)}")
        if _money(budget.amount) <= 0:
            raise ValidationError("amount must be greater than zero")
        if budget.period_end < budget.period_start:
            raise ValidationError("period_end must not be before period_start")
        threshold = _money(budget.alert_threshold)
        if threshold < 0 or threshold > 100:
            raise ValidationError("alert_threshold must be between 0 and 100")

    def create_budget(self, user_id: str, data: Dict[str, Any]) -> Budget:
        budget = Budget(
            user_id=user_id,
            name=data["name"],
            category_name=data["category_name"],
            budget_type=data.get("budget_type") or "monthly",
            amount=_money(data["amount"]),
            period_start=data["period_start"],
            period_end=data["period_end"],
            auto_renew=data.get("auto_renew", True) is not False,
            rollover_unused=bool(data.get("rollover_unused") or False),
            alert_threshold=_money(data["alert_threshold"] if data.get("alert_threshold") is not None else 80),
            notes=data.get("notes"),
        )
        self._validate_budget(budget)

        goal_data = data.get("goal_data")
        if budget.budget_type == "goal" and goal_data:
            budget.goal = BudgetGoal(
                goal_name=goal_data["goal_name"],
                target_amount=_money(goal_data["target_amount"]),
                target_date=goal_data.get("target_date"),
            )

        self.db.add(budget)
        try:
            commit(self.db)
        except StoreConflict as e:
            raise StoreError(details=str(e)) from e
        self.db.refresh(budget)
        logger.info(f"Created {budget.budget_type} budget '{budget.name}' for user {user_id}")
        return budget

    def calculate_spent_amount(self, user_id: str, budget: Budget) -> Decimal:
        """Sum of expenses in the budget's category within its period."""
        total = self._expenses(user_id).filter(
            Transaction.category == budget.category_name,
            Transaction.date >= budget.period_start,
            Transaction.date <= budget.period_end,
        ).with_entities(
            func.coalesce(func.sum(Transaction.amount), 0)
        ).scalar()
        return _money(total)

    def list_budgets(self, user_id: str) -> List[Dict[str, Any]]:
        """Active budgets, newest first, with spending progress."""
        budgets = self.db.query(Budget).filter(
            Budget.user_id == user_id,
            Budget.is_active == True,  # noqa: E712
        ).order_by(Budget.created_at.desc(), Budget.id.desc()).all()

        results = []
        for budget in budgets:
            spent = self.calculate_spent_amount(user_id, budget)
            entry = budget_to_dict(budget)
            entry.update(compute_budget_progress(budget.amount, spent, budget.alert_threshold))
            results.append(entry)
        return results

    def _owned_budget(self, budget_id: int, user_id: str) -> Budget:
        # Foreign and missing budgets look the same to the caller
        budget = self.db.query(Budget).filter(
            Budget.id == budget_id,
            Budget.user_id == user_id,
            Budget.is_active == True,  # noqa: E712
        ).first()
        if budget is None:
            raise NotFoundError("Budget not found")
        return budget

    def update_budget(self, budget_id: int, user_id: str, patch: Dict[str, Any]) -> Budget:
        # Only notes may be cleared; null for any other field means "unchanged"
        changes = {
            k: v for k, v in (patch or {}).items()
            if k in UPDATABLE_FIELDS and (v is not None or k == "notes")
        }
        if not changes:
            raise ValidationError("No budget fields to update")

        budget = self._owned_budget(budget_id, user_id)
        for field, value in changes.items():
            if field in ("amount", "alert_threshold"):
                value = _money(value)
            setattr(budget, field, value)
        try:
            self._validate_budget(budget)
        except ValidationError:
            self.db.rollback()
            raise
        budget.updated_at = datetime.utcnow()

        try:
            commit(self.db)
        except StoreConflict as e:
            raise StoreError(details=str(e)) from e
        self.db.refresh(budget)
        logger.info(f"Updated budget {budget_id} ({', '.join(sorted(changes))})")
        return budget

    def delete_budget(self, budget_id: int, user_id: str) -> None:
        budget = self._owned_budget(budget_id, user_id)
        budget.deactivate()
        try:
            commit(self.db)
        except StoreConflict as e:
            raise StoreError(details=str(e)) from e
        logger.info(f"Deactivated budget {budget_id} for user {user_id}")

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def get_spending_insights(self, user_id: str, months: int = 3, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        Per-category spending over the trailing N months with a suggested
        monthly budget (average plus a 10% buffer, rounded up).
        """
        if months is None or months < 1:
            raise ValidationError("months must be at least 1")

        start_date = (today or today_utc()) - relativedelta(months=months)
        category = func.coalesce(Transaction.category, DEFAULT_CATEGORY)

        rows = self._expenses(user_id).filter(
            Transaction.date >= start_date,
        ).with_entities(
            category.label("category"),
            func.sum(Transaction.amount).label("total"),
            func.count(Transaction.id).label("txn_count"),
            func.max(Transaction.amount).label("highest"),
        ).group_by(category).all()

        suggestions = []
        for row in rows:
            average = _money(row.total) / months
            suggestions.append({
                "category": row.category,
                "historical_average": float(average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
                "suggested_budget": math.ceil(average * SUGGESTION_BUFFER),
                "transaction_count": row.txn_count,
                "highest_amount": float(_money(row.highest)),
                "_average": average,
            })

        suggestions.sort(key=lambda s: s["_average"], reverse=True)
        for s in suggestions:
            del s["_average"]
        return suggestions

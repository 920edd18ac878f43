"""
Budget API routes.
Custom categories, budgets with live spending progress, and spending
insights used to suggest budget amounts.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session

from superapp.core.auth import CurrentUser, ensure_user_access, optional_auth
from superapp.core.database import get_db
from superapp.core.errors import ValidationError
from superapp.modules.budgets.services import BudgetEngine, budget_to_dict, category_to_dict
from superapp.shared.schemas import RequestModel, ok

router = APIRouter()


# Request Models

class CategoryCreate(RequestModel):
    """Request body for creating a custom category."""
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_income: bool = False
    parent_category: Optional[str] = None


class GoalData(RequestModel):
    goal_name: str
    target_amount: float = Field(gt=0)
    target_date: Optional[date] = None


class BudgetCreate(RequestModel):
    """Request body for creating a budget."""
    name: str = Field(min_length=1)
    category_name: str = Field(min_length=1)
    budget_type: str = "monthly"  # weekly, monthly, annual, goal
    amount: float = Field(gt=0)
    period_start: date
    period_end: date
    auto_renew: bool = True
    rollover_unused: bool = False
    alert_threshold: float = Field(80.0, ge=0, le=100)
    notes: Optional[str] = None
    goal_data: Optional[GoalData] = None


class BudgetUpdate(RequestModel):
    """Partial budget update. user_id scopes the update to its owner."""
    user_id: str
    name: Optional[str] = None
    category_name: Optional[str] = None
    budget_type: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    auto_renew: Optional[bool] = None
    rollover_unused: Optional[bool] = None
    alert_threshold: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = None


def get_budget_engine(db: Session = Depends(get_db)) -> BudgetEngine:
    return BudgetEngine(db)


# Categories

@router.get("/users/{user_id}/categories")
async def list_categories(
    user_id: str,
    engine: BudgetEngine = Depends(get_budget_engine),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """Predefined (seen on the user's transactions) and custom categories."""
    ensure_user_access(user_id, current_user)
    return ok(**engine.list_categories(user_id))


@router.post("/users/{user_id}/categories")
async def create_category(
    user_id: str,
    request: CategoryCreate,
    engine: BudgetEngine = Depends(get_budget_engine),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    ensure_user_access(user_id, current_user)
    category = engine.create_category(user_id, request.model_dump())
    return ok(category=category_to_dict(category))


# Insights

@router.get("/users/{user_id}/insights")
async def get_spending_insights(
    user_id: str,
    months: int = Query(3, description="Trailing months to average over"),
    engine: BudgetEngine = Depends(get_budget_engine),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """Per-category average spending with a suggested budget amount."""
    ensure_user_access(user_id, current_user)
    insights = engine.get_spending_insights(user_id, months)
    return ok(insights=insights, months=months)


# Budgets

@router.post("/users/{user_id}/budgets")
async def create_budget(
    user_id: str,
    request: BudgetCreate,
    engine: BudgetEngine = Depends(get_budget_engine),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    ensure_user_access(user_id, current_user)
    budget = engine.create_budget(user_id, request.model_dump())
    return ok(budget=budget_to_dict(budget))


@router.get("/users/{user_id}/budgets")
async def list_budgets(
    user_id: str,
    engine: BudgetEngine = Depends(get_budget_engine),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """Active budgets with spent/remaining amounts computed from transactions."""
    ensure_user_access(user_id, current_user)
    return ok(budgets=engine.list_budgets(user_id))


@router.put("/budgets/{budget_id}")
async def update_budget(
    budget_id: int,
    request: BudgetUpdate,
    engine: BudgetEngine = Depends(get_budget_engine),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    ensure_user_access(request.user_id, current_user)
    patch = request.model_dump(exclude_unset=True, exclude={"user_id"})
    budget = engine.update_budget(budget_id, request.user_id, patch)
    return ok(budget=budget_to_dict(budget))


@router.delete("/budgets/{budget_id}")
async def delete_budget(
    budget_id: int,
    user_id: Optional[str] = Query(None, description="Owner of the budget"),
    engine: BudgetEngine = Depends(get_budget_engine),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """Soft delete: the budget is deactivated, not removed."""
    owner = user_id or (current_user.id if current_user else None)
    if not owner:
        raise ValidationError("user_id is required")
    ensure_user_access(owner, current_user)
    engine.delete_budget(budget_id, owner)
    return ok()

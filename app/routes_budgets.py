"""
Budget endpoints: CRUD plus an across-budgets summary.
"""
from typing import List

from fastapi import APIRouter, Depends, Response

from app.deps import get_budget_service, get_current_user
from core.schema import BudgetCreate, BudgetOut, BudgetSummary, BudgetUpdate, UserOut
from services.budget_service import BudgetService

router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.post("", response_model=BudgetOut, status_code=201)
def create_budget(
    payload: BudgetCreate,
    user: UserOut = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
):
    return service.create_budget(user.id, payload)


@router.get("", response_model=List[BudgetOut])
def list_budgets(
    user: UserOut = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
):
    return service.list_budgets(user.id)


@router.get("/summary", response_model=BudgetSummary)
def budget_summary(
    user: UserOut = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
):
    return service.budget_summary(user.id)


@router.get("/{budget_id}", response_model=BudgetOut)
def get_budget(
    budget_id: int,
    user: UserOut = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
):
    return service.get_budget(user.id, budget_id)


@router.put("/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: int,
    payload: BudgetUpdate,
    user: UserOut = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
):
    return service.update_budget(user.id, budget_id, payload)


@router.delete("/{budget_id}", status_code=204)
def delete_budget(
    budget_id: int,
    user: UserOut = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
):
    service.delete_budget(user.id, budget_id)
    return Response(status_code=204)

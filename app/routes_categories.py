"""
Category CRUD endpoints, scoped to the authenticated user.
"""
from typing import List

from fastapi import APIRouter, Depends

from app.deps import get_category_service, get_current_user
from core.schema import CategoryCreate, CategoryOut, CategoryUpdate, UserOut
from services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryCreate,
    user: UserOut = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return service.create_category(user.id, payload)


@router.get("", response_model=List[CategoryOut])
def list_categories(
    user: UserOut = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """All categories of the user, newest first."""
    return service.list_categories(user.id)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: int,
    user: UserOut = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return service.get_category(user.id, category_id)


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user: UserOut = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return service.update_category(user.id, category_id, payload)


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    user: UserOut = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    service.delete_category(user.id, category_id)
    return {"message": "Category deleted"}

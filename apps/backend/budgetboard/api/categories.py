from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budgetboard.core.database import get_db
from budgetboard.core.deps import get_current_user
from budgetboard.schemas import (
    ApiResponse,
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    DefaultCategoriesIn,
)
from budgetboard.services.category_service import CATEGORY_COLORS, CategoryService


router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("/all", response_model=ApiResponse[list[CategoryOut]])
def list_categories(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    rows = CategoryService(db).get_all(user_id=current_user.id)
    return ApiResponse(data=[CategoryOut.model_validate(r) for r in rows], message="Categories retrieved")


@router.get("/colors", response_model=ApiResponse[list[str]])
def list_category_colors():
    return ApiResponse(data=list(CATEGORY_COLORS))


@router.post("/create", response_model=ApiResponse[CategoryOut], status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    row = CategoryService(db).create(payload.model_dump(), user_id=current_user.id)
    return ApiResponse(data=CategoryOut.model_validate(row), message="Category created")


@router.post("/default", response_model=ApiResponse[list[CategoryOut]], status_code=201)
def create_default_categories(
    payload: DefaultCategoriesIn,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    items = [c.model_dump() for c in payload.categories]
    rows = CategoryService(db).create_defaults(items, user_id=current_user.id)
    return ApiResponse(data=[CategoryOut.model_validate(r) for r in rows], message="Default categories ready")


@router.put("/{category_id}", response_model=ApiResponse[CategoryOut])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = CategoryService(db)
    row = svc.get_by_id(current_user.id, category_id)
    row = svc.update(row, payload.model_dump(exclude_unset=True, exclude_none=True))
    return ApiResponse(data=CategoryOut.model_validate(row), message="Category updated")


@router.delete("/{category_id}", response_model=ApiResponse[dict])
def delete_category(
    category_id: int,
    reassign_to: int | None = Query(None),
    force: bool = Query(False),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = CategoryService(db)
    row = svc.get_by_id(current_user.id, category_id)
    affected = svc.delete(row, reassign_to=reassign_to, force=force)
    return ApiResponse(data={"id": category_id, "transactions_affected": affected}, message="Category deleted")

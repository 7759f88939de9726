from datetime import date
from decimal import Decimal
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from cropmgmt.db.session import get_db
from cropmgmt.auth.dependencies import is_farmer
from cropmgmt.auth.security import Identity
from cropmgmt.schemas.expense import Expense, ExpenseCreate, ExpenseUpdate, ExpenseSearchCriteria
from cropmgmt.services.expenses import SeasonExpenseService

# Mounted under /seasons/{season_id}/expenses
season_router = APIRouter()

# Mounted under /expenses
router = APIRouter()

@season_router.get("/", response_model=List[Expense])
def read_season_expenses(
    season_id: int,
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    min_amount: Optional[Decimal] = Query(None, alias="minAmount"),
    max_amount: Optional[Decimal] = Query(None, alias="maxAmount"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return SeasonExpenseService(db).list_expenses_for_season(
        current_user.user_id, season_id, from_date, to_date, min_amount, max_amount, skip, limit
    )

@season_router.post("/", response_model=Expense, status_code=status.HTTP_201_CREATED)
def create_expense(
    season_id: int,
    expense: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return SeasonExpenseService(db).create_expense(current_user.user_id, season_id, expense)

@router.get("/", response_model=List[Expense])
def read_expenses(
    season_id: Optional[int] = Query(None, alias="seasonId"),
    q: Optional[str] = None,
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return SeasonExpenseService(db).list_all_expenses(
        current_user.user_id, season_id, q, from_date, to_date, skip, limit
    )

@router.post("/search", response_model=List[Expense])
def search_expenses(
    criteria: ExpenseSearchCriteria,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return SeasonExpenseService(db).search_expenses(current_user.user_id, criteria, skip, limit)

@router.get("/{expense_id}", response_model=Expense)
def read_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return SeasonExpenseService(db).get_expense(current_user.user_id, expense_id)

@router.put("/{expense_id}", response_model=Expense)
def update_expense(
    expense_id: int,
    expense: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return SeasonExpenseService(db).update_expense(current_user.user_id, expense_id, expense)

@router.delete("/{expense_id}")
def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    SeasonExpenseService(db).delete_expense(current_user.user_id, expense_id)
    return {"ok": True}

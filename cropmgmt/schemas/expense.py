from datetime import date
from decimal import Decimal
from typing import Optional
from pydantic import Field
from cropmgmt.schemas.base import BaseSchema, TimestampSchema


class ExpenseBase(BaseSchema):
    item_name: str = Field(min_length=1, max_length=200)
    unit_price: Decimal
    quantity: int
    expense_date: date
    category: Optional[str] = None
    task_id: Optional[int] = None


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(ExpenseBase):
    pass


class Expense(TimestampSchema):
    id: int
    season_id: int
    season_name: Optional[str] = None
    user_name: Optional[str] = None
    item_name: str
    unit_price: Decimal
    quantity: int
    total_cost: Decimal
    expense_date: date
    category: Optional[str] = None
    task_id: Optional[int] = None


class ExpenseSearchCriteria(BaseSchema):
    season_id: Optional[int] = None
    plot_id: Optional[int] = None
    task_id: Optional[int] = None
    category: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    keyword: Optional[str] = None

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cropmgmt.exceptions import AppException, ErrorCode
from cropmgmt.models.enums import CLOSED_SEASON_STATUSES
from cropmgmt.models.farm import Farm, Plot, Season
from cropmgmt.models.season_records import Expense, Task
from cropmgmt.schemas.expense import Expense as ExpenseSchema
from cropmgmt.schemas.expense import ExpenseCreate, ExpenseSearchCriteria, ExpenseUpdate
from cropmgmt.services.ownership import OwnershipService

logger = logging.getLogger(__name__)


def compute_total_cost(unit_price: Decimal, quantity: int) -> Decimal:
    return unit_price * Decimal(quantity)


def ensure_season_open_for_expenses(season: Optional[Season]) -> None:
    if season is None:
        raise AppException(ErrorCode.SEASON_NOT_FOUND)
    if season.status in CLOSED_SEASON_STATUSES:
        raise AppException(ErrorCode.EXPENSE_PERIOD_LOCKED)


def validate_expense_date_within_season(season: Season, expense_date: date) -> None:
    start = season.start_date
    end = season.end_date or season.planned_harvest_date
    if start is None or expense_date < start or (end is not None and expense_date > end):
        raise AppException(ErrorCode.INVALID_SEASON_DATES)


def validate_expense_amount(unit_price: Decimal, quantity: int) -> None:
    if compute_total_cost(unit_price, quantity) <= 0:
        raise AppException(ErrorCode.EXPENSE_AMOUNT_INVALID)


def validate_task_in_season(db: Session, season: Season, task_id: Optional[int]) -> None:
    """A linked task must belong to the expense's season, which also makes it owned."""
    if task_id is None:
        return
    task = db.get(Task, task_id)
    if task is None or task.season_id != season.id:
        raise AppException(ErrorCode.TASK_NOT_FOUND)


def to_expense_response(expense: Expense) -> ExpenseSchema:
    return ExpenseSchema(
        id=expense.id,
        season_id=expense.season_id,
        season_name=expense.season.season_name if expense.season is not None else None,
        user_name=expense.user.username if expense.user is not None else None,
        item_name=expense.item_name,
        unit_price=expense.unit_price,
        quantity=expense.quantity,
        total_cost=expense.total_cost,
        expense_date=expense.expense_date,
        category=expense.category,
        task_id=expense.task_id,
        created_at=expense.created_at,
        updated_at=expense.updated_at,
    )


class SeasonExpenseService:
    """Expenses recorded against a season the caller owns.

    Expenses can only be written while the season is open, must be dated
    within the season and must cost more than zero.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ownership = OwnershipService(db)

    def _owned_expenses_query(self, owner_id: int):
        return (
            self.db.query(Expense)
            .join(Season, Expense.season_id == Season.id)
            .join(Plot, Season.plot_id == Plot.id)
            .join(Farm, Plot.farm_id == Farm.id)
            .filter(Farm.owner_id == owner_id)
        )

    def _get_owned_expense(self, owner_id: int, expense_id: int) -> Expense:
        expense = self._owned_expenses_query(owner_id).filter(Expense.id == expense_id).first()
        if expense is None:
            raise AppException(ErrorCode.EXPENSE_NOT_FOUND)
        return expense

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_expenses_for_season(
        self,
        owner_id: int,
        season_id: int,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ExpenseSchema]:
        season = self.ownership.require_owned_season(season_id, owner_id)
        query = self.db.query(Expense).filter(Expense.season_id == season.id)
        query = self._apply_date_range(query, from_date, to_date)
        if min_amount is not None:
            query = query.filter(Expense.total_cost >= min_amount)
        if max_amount is not None:
            query = query.filter(Expense.total_cost <= max_amount)

        expenses = query.order_by(Expense.id.desc()).offset(skip).limit(limit).all()
        return [to_expense_response(expense) for expense in expenses]

    def list_all_expenses(
        self,
        owner_id: int,
        season_id: Optional[int] = None,
        q: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ExpenseSchema]:
        query = self._owned_expenses_query(owner_id)
        if season_id is not None:
            self.ownership.require_owned_season(season_id, owner_id)
            query = query.filter(Expense.season_id == season_id)
        if q and q.strip():
            query = query.filter(func.lower(Expense.item_name).contains(q.strip().lower()))
        query = self._apply_date_range(query, from_date, to_date)

        expenses = query.order_by(Expense.expense_date.desc(), Expense.id.desc()).offset(skip).limit(limit).all()
        return [to_expense_response(expense) for expense in expenses]

    def search_expenses(
        self, owner_id: int, criteria: ExpenseSearchCriteria, skip: int = 0, limit: int = 100
    ) -> List[ExpenseSchema]:
        query = self._owned_expenses_query(owner_id)
        if criteria.season_id is not None:
            query = query.filter(Expense.season_id == criteria.season_id)
        if criteria.plot_id is not None:
            query = query.filter(Season.plot_id == criteria.plot_id)
        if criteria.task_id is not None:
            query = query.filter(Expense.task_id == criteria.task_id)
        if criteria.category and criteria.category.strip():
            query = query.filter(func.lower(Expense.category) == criteria.category.strip().lower())
        query = self._apply_date_range(query, criteria.from_date, criteria.to_date)
        if criteria.min_amount is not None:
            query = query.filter(Expense.total_cost >= criteria.min_amount)
        if criteria.max_amount is not None:
            query = query.filter(Expense.total_cost <= criteria.max_amount)
        if criteria.keyword and criteria.keyword.strip():
            query = query.filter(func.lower(Expense.item_name).contains(criteria.keyword.strip().lower()))

        expenses = query.order_by(Expense.id.desc()).offset(skip).limit(limit).all()
        return [to_expense_response(expense) for expense in expenses]

    @staticmethod
    def _apply_date_range(query, from_date: Optional[date], to_date: Optional[date]):
        if from_date is not None:
            query = query.filter(Expense.expense_date >= from_date)
        if to_date is not None:
            query = query.filter(Expense.expense_date <= to_date)
        return query

    def get_expense(self, owner_id: int, expense_id: int) -> ExpenseSchema:
        return to_expense_response(self._get_owned_expense(owner_id, expense_id))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_expense(self, owner_id: int, season_id: int, data: ExpenseCreate) -> ExpenseSchema:
        validate_expense_amount(data.unit_price, data.quantity)
        season = self.ownership.require_owned_season(season_id, owner_id)
        ensure_season_open_for_expenses(season)
        validate_expense_date_within_season(season, data.expense_date)
        validate_task_in_season(self.db, season, data.task_id)

        expense = Expense(
            user_id=owner_id,
            season_id=season.id,
            task_id=data.task_id,
            category=data.category,
            item_name=data.item_name,
            unit_price=data.unit_price,
            quantity=data.quantity,
            total_cost=compute_total_cost(data.unit_price, data.quantity),
            expense_date=data.expense_date,
        )
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        logger.info("Expense %s recorded for season %s", expense.id, season.id)
        return to_expense_response(expense)

    def update_expense(self, owner_id: int, expense_id: int, data: ExpenseUpdate) -> ExpenseSchema:
        validate_expense_amount(data.unit_price, data.quantity)
        expense = self._get_owned_expense(owner_id, expense_id)
        ensure_season_open_for_expenses(expense.season)
        validate_expense_date_within_season(expense.season, data.expense_date)
        validate_task_in_season(self.db, expense.season, data.task_id)

        for field, value in data.model_dump().items():
            setattr(expense, field, value)
        expense.total_cost = compute_total_cost(data.unit_price, data.quantity)

        self.db.commit()
        self.db.refresh(expense)
        return to_expense_response(expense)

    def delete_expense(self, owner_id: int, expense_id: int) -> None:
        expense = self._get_owned_expense(owner_id, expense_id)
        ensure_season_open_for_expenses(expense.season)
        self.db.delete(expense)
        self.db.commit()
        logger.info("Expense %s deleted", expense_id)

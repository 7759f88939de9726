"""
Farmer dashboard aggregation.

Every query is scoped to one owner (passed in explicitly) and, where it
applies, to one season context. The season context is either the season the
caller asked for, which must be theirs, or a default picked by
``pick_default_season``.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from cropmgmt.config import Settings, settings
from cropmgmt.models.enums import IncidentStatus, SeasonStatus, TaskStatus
from cropmgmt.models.farm import Farm, Plot, Season
from cropmgmt.models.inventory import StockMovement, SupplyLot, Warehouse
from cropmgmt.models.season_records import Expense, Harvest, Incident, Task
from cropmgmt.schemas.dashboard import (
    Alerts,
    Counts,
    DashboardOverview,
    ExpenseSummary,
    HarvestSummary,
    Kpis,
    LowStockAlert,
    PlotStatus,
    SeasonContext,
    TodayTask,
)
from cropmgmt.services.ownership import OwnershipService

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")
KG_PER_TON = Decimal(1000)

OPEN_INCIDENT_STATUSES = (IncidentStatus.OPEN, IncidentStatus.IN_PROGRESS)
FINISHED_TASK_STATUSES = (TaskStatus.DONE, TaskStatus.CANCELLED)

# Checked in order; the first category with a matching keyword wins
TASK_TYPE_KEYWORDS = (
    ("irrigation", ("irrigat", "water")),
    ("fertilizing", ("fertil", "npk")),
    ("spraying", ("spray", "pest", "insect")),
    ("harvesting", ("harvest", "collect")),
    ("scouting", ("inspect", "scout")),
)
DEFAULT_TASK_TYPE = "scouting"

NOT_AVAILABLE = "N/A"


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def pick_default_season(seasons: Iterable[Season]) -> Optional[Season]:
    """Newest ACTIVE season by start date, else newest season of any status."""
    seasons = list(seasons)
    active = [season for season in seasons if season.status == SeasonStatus.ACTIVE]
    candidates = active or seasons
    return max(candidates, key=lambda season: (season.start_date, season.id), default=None)


def infer_task_type(title: Optional[str], description: Optional[str]) -> str:
    text = f"{title or ''} {description or ''}".lower()
    for task_type, keywords in TASK_TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return task_type
    return DEFAULT_TASK_TYPE


def plot_health(open_incidents: int) -> str:
    if open_incidents > 2:
        return "CRITICAL"
    if open_incidents > 0:
        return "WARNING"
    return "HEALTHY"


def cost_per_hectare(total_expense, area) -> Optional[Decimal]:
    if area is None or _to_decimal(area) <= 0:
        return None
    return (_to_decimal(total_expense) / _to_decimal(area)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def on_time_percent(on_time: int, completed: int) -> Optional[Decimal]:
    if completed <= 0:
        return None
    return (Decimal(on_time) * 100 / Decimal(completed)).quantize(ONE_PLACE, rounding=ROUND_HALF_UP)


def avg_yield_tons_per_ha(actual_yield_kg, area) -> Optional[Decimal]:
    if actual_yield_kg is None or area is None or _to_decimal(area) <= 0:
        return None
    tons = (_to_decimal(actual_yield_kg) / KG_PER_TON).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
    return (tons / _to_decimal(area)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def yield_vs_plan_percent(actual_kg, expected_kg) -> Optional[Decimal]:
    if expected_kg is None or _to_decimal(expected_kg) <= 0:
        return None
    expected = _to_decimal(expected_kg)
    return ((_to_decimal(actual_kg) - expected) * 100 / expected).quantize(ONE_PLACE, rounding=ROUND_HALF_UP)


class DashboardService:
    def __init__(self, db: Session, config: Settings = settings):
        self.db = db
        self.config = config
        self.ownership = OwnershipService(db)

    # ------------------------------------------------------------------
    # Overview
    # ------------------------------------------------------------------

    def get_overview(
        self, owner_id: int, season_id: Optional[int] = None, low_stock_limit: Optional[int] = None
    ) -> DashboardOverview:
        season = self.resolve_season_context(owner_id, season_id)
        if low_stock_limit is None:
            low_stock_limit = self.config.LOW_STOCK_ALERT_LIMIT

        return DashboardOverview(
            season_context=self._build_season_context(season),
            counts=self._build_counts(owner_id),
            kpis=self._build_kpis(season),
            expenses=ExpenseSummary(total_expense=self._total_expense(season)),
            harvest=self._build_harvest(season),
            alerts=self._build_alerts(owner_id, low_stock_limit),
        )

    def resolve_season_context(self, owner_id: int, season_id: Optional[int] = None) -> Optional[Season]:
        if season_id is not None:
            return self.ownership.require_owned_season(season_id, owner_id)
        return pick_default_season(self.ownership.list_owned_seasons(owner_id))

    def _build_season_context(self, season: Optional[Season]) -> Optional[SeasonContext]:
        if season is None:
            return None
        return SeasonContext(
            season_id=season.id,
            season_name=season.season_name,
            start_date=season.start_date,
            end_date=season.end_date,
            planned_harvest_date=season.planned_harvest_date,
        )

    def _build_counts(self, owner_id: int) -> Counts:
        """Plots are counted only when their farm is active."""
        active_farms = (
            self.db.query(func.count(Farm.id)).filter(Farm.owner_id == owner_id, Farm.active.is_(True)).scalar()
        )
        active_plots = (
            self.db.query(func.count(Plot.id))
            .join(Farm, Plot.farm_id == Farm.id)
            .filter(Farm.owner_id == owner_id, Farm.active.is_(True))
            .scalar()
        )

        rows = (
            self.db.query(Season.status, func.count(Season.id))
            .join(Plot, Season.plot_id == Plot.id)
            .join(Farm, Plot.farm_id == Farm.id)
            .filter(Farm.owner_id == owner_id)
            .group_by(Season.status)
            .all()
        )
        found = {status: count for status, count in rows}
        seasons_by_status = {status.value: int(found.get(status, 0)) for status in SeasonStatus}

        return Counts(active_farms=active_farms or 0, active_plots=active_plots or 0, seasons_by_status=seasons_by_status)

    def _total_expense(self, season: Optional[Season]) -> Decimal:
        if season is None:
            return Decimal(0)
        total = (
            self.db.query(func.coalesce(func.sum(Expense.total_cost), 0))
            .filter(Expense.season_id == season.id)
            .scalar()
        )
        return _to_decimal(total)

    def _build_kpis(self, season: Optional[Season]) -> Kpis:
        if season is None:
            return Kpis()

        area = season.plot.area if season.plot is not None else None

        completed = (
            self.db.query(func.count(Task.id))
            .filter(Task.season_id == season.id, Task.status == TaskStatus.DONE)
            .scalar()
        )
        on_time = 0
        if completed:
            on_time = (
                self.db.query(func.count(Task.id))
                .filter(
                    Task.season_id == season.id,
                    Task.status == TaskStatus.DONE,
                    Task.actual_end_date.isnot(None),
                    Task.due_date.isnot(None),
                    Task.actual_end_date <= Task.due_date,
                )
                .scalar()
            )

        return Kpis(
            avg_yield_tons_per_ha=avg_yield_tons_per_ha(season.actual_yield_kg, area),
            cost_per_hectare=cost_per_hectare(self._total_expense(season), area),
            on_time_percent=on_time_percent(on_time or 0, completed or 0),
        )

    def _build_harvest(self, season: Optional[Season]) -> HarvestSummary:
        if season is None:
            return HarvestSummary(total_quantity_kg=Decimal(0), total_revenue=Decimal(0))

        total_quantity, total_revenue = (
            self.db.query(
                func.coalesce(func.sum(Harvest.quantity), 0),
                func.coalesce(func.sum(Harvest.quantity * Harvest.unit_price), 0),
            )
            .filter(Harvest.season_id == season.id)
            .one()
        )
        total_quantity = _to_decimal(total_quantity)

        return HarvestSummary(
            total_quantity_kg=total_quantity,
            total_revenue=_to_decimal(total_revenue),
            expected_yield_kg=season.expected_yield_kg,
            yield_vs_plan_percent=yield_vs_plan_percent(total_quantity, season.expected_yield_kg),
        )

    def _build_alerts(self, owner_id: int, low_stock_limit: int) -> Alerts:
        open_incidents = (
            self.db.query(func.count(Incident.id))
            .join(Season, Incident.season_id == Season.id)
            .join(Plot, Season.plot_id == Plot.id)
            .join(Farm, Plot.farm_id == Farm.id)
            .filter(Farm.owner_id == owner_id, Incident.status.in_(OPEN_INCIDENT_STATUSES))
            .scalar()
        )

        expiry_threshold = date.today() + timedelta(days=self.config.EXPIRING_LOT_DAYS)
        expiring_lots = sum(
            1
            for _, lot, _ in self._iter_stocked_lots(owner_id)
            if lot.expiry_date is not None and lot.expiry_date <= expiry_threshold
        )

        return Alerts(
            open_incidents=open_incidents or 0,
            expiring_lots=expiring_lots,
            low_stock_items=len(self.get_low_stock(owner_id, low_stock_limit)),
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def _owned_tasks_query(self, owner_id: int, season_id: Optional[int]):
        if season_id is not None:
            self.ownership.require_owned_season(season_id, owner_id)

        query = (
            self.db.query(Task)
            .join(Season, Task.season_id == Season.id)
            .join(Plot, Season.plot_id == Plot.id)
            .join(Farm, Plot.farm_id == Farm.id)
            .filter(Farm.owner_id == owner_id)
        )
        if season_id is not None:
            query = query.filter(Task.season_id == season_id)
        return query

    def get_today_tasks(
        self, owner_id: int, season_id: Optional[int] = None, skip: int = 0, limit: int = 20
    ) -> List[TodayTask]:
        due = func.coalesce(Task.due_date, Task.planned_date)
        tasks = (
            self._owned_tasks_query(owner_id, season_id)
            .filter(due == date.today())
            .order_by(Task.id)
            .offset(skip)
            .limit(limit)
            .all()
        )
        return [self._to_today_task(task) for task in tasks]

    def get_upcoming_tasks(self, owner_id: int, days: int = 7, season_id: Optional[int] = None) -> List[TodayTask]:
        today = date.today()
        due = func.coalesce(Task.due_date, Task.planned_date)
        tasks = (
            self._owned_tasks_query(owner_id, season_id)
            .filter(
                due >= today,
                due <= today + timedelta(days=days),
                Task.status.notin_(FINISHED_TASK_STATUSES),
            )
            .order_by(due, Task.id)
            .all()
        )
        return [self._to_today_task(task) for task in tasks]

    def _to_today_task(self, task: Task) -> TodayTask:
        assignee_name = ""
        if task.assignee is not None:
            assignee_name = task.assignee.full_name or task.assignee.username
        return TodayTask(
            task_id=task.id,
            title=task.title,
            plot_name=task.season.plot.plot_name or "",
            type=infer_task_type(task.title, task.description),
            assignee_name=assignee_name,
            due_date=task.due_date or task.planned_date,
            status=task.status.value if task.status else "",
        )

    # ------------------------------------------------------------------
    # Plots
    # ------------------------------------------------------------------

    def get_plot_status(self, owner_id: int, season_id: Optional[int] = None) -> List[PlotStatus]:
        """Every owned plot with its latest season; a given season_id only has to be owned."""
        if season_id is not None:
            self.ownership.require_owned_season(season_id, owner_id)

        reports = []
        for plot in self.ownership.list_owned_plots(owner_id):
            latest = (
                self.db.query(Season)
                .filter(Season.plot_id == plot.id)
                .order_by(Season.start_date.desc(), Season.id.desc())
                .first()
            )
            reports.append(self._to_plot_status(plot, latest))
        return reports

    def _to_plot_status(self, plot: Plot, season: Optional[Season]) -> PlotStatus:
        crop_name = NOT_AVAILABLE
        stage = NOT_AVAILABLE
        open_incidents = 0
        if season is not None:
            if season.crop is not None:
                crop_name = season.crop.crop_name
            stage = season.status.value if season.status else NOT_AVAILABLE
            open_incidents = (
                self.db.query(func.count(Incident.id))
                .filter(Incident.season_id == season.id, Incident.status.in_(OPEN_INCIDENT_STATUSES))
                .scalar()
            )

        return PlotStatus(
            plot_id=plot.id,
            plot_name=plot.plot_name,
            area_ha=plot.area,
            crop_name=crop_name,
            stage=stage,
            health=plot_health(open_incidents or 0),
        )

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def _iter_stocked_lots(self, owner_id: int) -> Iterator[Tuple[Warehouse, SupplyLot, Decimal]]:
        """Yield (warehouse, lot, on-hand) for every lot with movements at an owned warehouse.

        Farms, warehouses and lots are visited in ascending id order.
        """
        for farm in self.ownership.list_owned_farms(owner_id):
            for warehouse in farm.warehouses:
                balances = (
                    self.db.query(StockMovement.supply_lot_id, func.coalesce(func.sum(StockMovement.quantity), 0))
                    .filter(StockMovement.warehouse_id == warehouse.id)
                    .group_by(StockMovement.supply_lot_id)
                    .order_by(StockMovement.supply_lot_id)
                    .all()
                )
                for lot_id, on_hand in balances:
                    lot = self.db.get(SupplyLot, lot_id)
                    if lot is None:
                        continue
                    yield warehouse, lot, _to_decimal(on_hand)

    def get_low_stock(self, owner_id: int, limit: int = 5) -> List[LowStockAlert]:
        if limit <= 0:
            return []

        threshold = Decimal(self.config.LOW_STOCK_THRESHOLD)
        low_stock = []
        for warehouse, lot, on_hand in self._iter_stocked_lots(owner_id):
            if on_hand > threshold:
                continue
            item = lot.supply_item
            low_stock.append(
                LowStockAlert(
                    supply_lot_id=lot.id,
                    batch_code=lot.batch_code,
                    item_name=item.name if item is not None else "Unknown",
                    warehouse_name=warehouse.name,
                    on_hand=on_hand,
                    unit=item.unit if item is not None else "unit",
                )
            )
            if len(low_stock) >= limit:
                break

        logger.debug("Low stock scan for owner %s found %d lots", owner_id, len(low_stock))
        return low_stock

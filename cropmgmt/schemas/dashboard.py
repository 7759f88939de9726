from datetime import date
from decimal import Decimal
from typing import Dict, Optional
from cropmgmt.schemas.base import BaseSchema


class SeasonContext(BaseSchema):
    season_id: int
    season_name: str
    start_date: date
    end_date: Optional[date] = None
    planned_harvest_date: Optional[date] = None


class Counts(BaseSchema):
    active_farms: int
    active_plots: int
    seasons_by_status: Dict[str, int]


class Kpis(BaseSchema):
    avg_yield_tons_per_ha: Optional[Decimal] = None
    cost_per_hectare: Optional[Decimal] = None
    on_time_percent: Optional[Decimal] = None


class ExpenseSummary(BaseSchema):
    total_expense: Decimal


class HarvestSummary(BaseSchema):
    total_quantity_kg: Decimal
    total_revenue: Decimal
    expected_yield_kg: Optional[Decimal] = None
    yield_vs_plan_percent: Optional[Decimal] = None


class Alerts(BaseSchema):
    open_incidents: int
    expiring_lots: int
    low_stock_items: int


class DashboardOverview(BaseSchema):
    season_context: Optional[SeasonContext] = None
    counts: Counts
    kpis: Kpis
    expenses: ExpenseSummary
    harvest: HarvestSummary
    alerts: Alerts


class TodayTask(BaseSchema):
    task_id: int
    title: str
    plot_name: str
    type: str
    assignee_name: str
    due_date: Optional[date] = None
    status: str


class PlotStatus(BaseSchema):
    plot_id: int
    plot_name: str
    area_ha: Optional[Decimal] = None
    crop_name: str
    stage: str
    health: str


class LowStockAlert(BaseSchema):
    supply_lot_id: int
    batch_code: Optional[str] = None
    item_name: str
    warehouse_name: str
    location_label: str = ""
    on_hand: Decimal
    unit: str

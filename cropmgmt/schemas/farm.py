from datetime import date
from decimal import Decimal
from typing import Optional
from cropmgmt.models.enums import SeasonStatus
from cropmgmt.schemas.base import TimestampSchema


class Farm(TimestampSchema):
    id: int
    farm_name: str
    province_id: Optional[int] = None
    ward_id: Optional[int] = None
    area: Optional[Decimal] = None
    active: bool


class Plot(TimestampSchema):
    id: int
    farm_id: int
    plot_name: str
    area: Optional[Decimal] = None


class Season(TimestampSchema):
    id: int
    plot_id: int
    crop_id: Optional[int] = None
    season_name: str
    status: SeasonStatus
    start_date: date
    end_date: Optional[date] = None
    planned_harvest_date: Optional[date] = None
    expected_yield_kg: Optional[Decimal] = None
    actual_yield_kg: Optional[Decimal] = None

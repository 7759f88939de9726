from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from cropmgmt.db.session import get_db
from cropmgmt.auth.dependencies import is_farmer
from cropmgmt.auth.security import Identity
from cropmgmt.schemas.dashboard import DashboardOverview, TodayTask, PlotStatus, LowStockAlert
from cropmgmt.services.dashboard import DashboardService

router = APIRouter()

@router.get("/overview", response_model=DashboardOverview)
def read_overview(
    season_id: Optional[int] = Query(None, alias="seasonId"),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return DashboardService(db).get_overview(current_user.user_id, season_id)

@router.get("/today-tasks", response_model=List[TodayTask])
def read_today_tasks(
    season_id: Optional[int] = Query(None, alias="seasonId"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return DashboardService(db).get_today_tasks(current_user.user_id, season_id, skip=skip, limit=limit)

@router.get("/upcoming-tasks", response_model=List[TodayTask])
def read_upcoming_tasks(
    days: int = Query(7, ge=0, le=365),
    season_id: Optional[int] = Query(None, alias="seasonId"),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return DashboardService(db).get_upcoming_tasks(current_user.user_id, days, season_id)

@router.get("/plot-status", response_model=List[PlotStatus])
def read_plot_status(
    season_id: Optional[int] = Query(None, alias="seasonId"),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return DashboardService(db).get_plot_status(current_user.user_id, season_id)

@router.get("/low-stock", response_model=List[LowStockAlert])
def read_low_stock(
    limit: int = Query(5, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return DashboardService(db).get_low_stock(current_user.user_id, limit)

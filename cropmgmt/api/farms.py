from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from cropmgmt.db.session import get_db
from cropmgmt.auth.dependencies import is_farmer
from cropmgmt.auth.security import Identity
from cropmgmt.schemas.farm import Farm, Plot, Season
from cropmgmt.services.ownership import OwnershipService

router = APIRouter()

@router.get("/", response_model=List[Farm])
def read_farms(
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return OwnershipService(db).list_owned_farms(current_user.user_id)

@router.get("/plots", response_model=List[Plot])
def read_plots(
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return OwnershipService(db).list_owned_plots(current_user.user_id)

@router.get("/seasons", response_model=List[Season])
def read_seasons(
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return OwnershipService(db).list_owned_seasons(current_user.user_id)

@router.get("/seasons/{season_id}", response_model=Season)
def read_season(
    season_id: int,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return OwnershipService(db).require_owned_season(season_id, current_user.user_id)

@router.get("/{farm_id}", response_model=Farm)
def read_farm(
    farm_id: int,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return OwnershipService(db).require_owned_farm(farm_id, current_user.user_id)

@router.get("/plots/{plot_id}", response_model=Plot)
def read_plot(
    plot_id: int,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(is_farmer)
):
    return OwnershipService(db).require_owned_plot(plot_id, current_user.user_id)

from typing import List

from sqlalchemy.orm import Session

from cropmgmt.exceptions import AppException, ErrorCode
from cropmgmt.models.farm import Farm, Plot, Season


class OwnershipService:
    """Scopes farms, plots and seasons to the user owning the farm.

    A season belongs to its owner through season -> plot -> farm -> owner.
    Records of another owner are reported as not found.
    """

    def __init__(self, db: Session):
        self.db = db

    def _owned_plots_query(self, owner_id: int):
        return self.db.query(Plot).join(Farm, Plot.farm_id == Farm.id).filter(Farm.owner_id == owner_id)

    def _owned_seasons_query(self, owner_id: int):
        return (
            self.db.query(Season)
            .join(Plot, Season.plot_id == Plot.id)
            .join(Farm, Plot.farm_id == Farm.id)
            .filter(Farm.owner_id == owner_id)
        )

    def list_owned_farms(self, owner_id: int) -> List[Farm]:
        return self.db.query(Farm).filter(Farm.owner_id == owner_id).order_by(Farm.id).all()

    def list_owned_plots(self, owner_id: int) -> List[Plot]:
        return self._owned_plots_query(owner_id).order_by(Plot.id).all()

    def list_owned_seasons(self, owner_id: int) -> List[Season]:
        return self._owned_seasons_query(owner_id).order_by(Season.id).all()

    def require_owned_farm(self, farm_id: int, owner_id: int) -> Farm:
        farm = self.db.query(Farm).filter(Farm.id == farm_id, Farm.owner_id == owner_id).first()
        if farm is None:
            raise AppException(ErrorCode.FARM_NOT_FOUND)
        return farm

    def require_owned_plot(self, plot_id: int, owner_id: int) -> Plot:
        plot = self._owned_plots_query(owner_id).filter(Plot.id == plot_id).first()
        if plot is None:
            raise AppException(ErrorCode.PLOT_NOT_FOUND)
        return plot

    def require_owned_season(self, season_id: int, owner_id: int) -> Season:
        season = self._owned_seasons_query(owner_id).filter(Season.id == season_id).first()
        if season is None:
            raise AppException(ErrorCode.SEASON_NOT_FOUND)
        return season

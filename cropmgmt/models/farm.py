from sqlalchemy import Column, String, Numeric, Boolean, ForeignKey, Integer, Date, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from cropmgmt.models.base import BaseModel
from cropmgmt.models.enums import SeasonStatus


class Farm(BaseModel):
    __tablename__ = "farms"

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    farm_name = Column(String(100), nullable=False)
    province_id = Column(Integer)
    ward_id = Column(Integer)
    area = Column(Numeric(12, 2))
    active = Column(Boolean, nullable=False, default=True)

    owner = relationship("User", back_populates="farms")
    plots = relationship("Plot", back_populates="farm", order_by="Plot.id")
    warehouses = relationship("Warehouse", back_populates="farm", order_by="Warehouse.id")


class Plot(BaseModel):
    __tablename__ = "plots"

    farm_id = Column(Integer, ForeignKey("farms.id"), nullable=False, index=True)
    plot_name = Column(String(100), nullable=False)
    area = Column(Numeric(12, 2))

    farm = relationship("Farm", back_populates="plots")
    seasons = relationship("Season", back_populates="plot")


class Crop(BaseModel):
    __tablename__ = "crops"

    crop_name = Column(String(100), nullable=False)


class Season(BaseModel):
    __tablename__ = "seasons"
    __table_args__ = (
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_season_date_range"),
    )

    plot_id = Column(Integer, ForeignKey("plots.id"), nullable=False, index=True)
    crop_id = Column(Integer, ForeignKey("crops.id"))
    season_name = Column(String(100), nullable=False)
    status = Column(Enum(SeasonStatus, name="season_status"), nullable=False, default=SeasonStatus.PLANNED)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)
    planned_harvest_date = Column(Date)
    expected_yield_kg = Column(Numeric(12, 2))
    actual_yield_kg = Column(Numeric(12, 2))

    plot = relationship("Plot", back_populates="seasons")
    crop = relationship("Crop")

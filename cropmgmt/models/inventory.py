from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, Date, Enum
from sqlalchemy.orm import relationship
from cropmgmt.models.base import BaseModel
from cropmgmt.models.enums import MovementType


class Warehouse(BaseModel):
    __tablename__ = "warehouses"

    farm_id = Column(Integer, ForeignKey("farms.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    farm = relationship("Farm", back_populates="warehouses")


class SupplyItem(BaseModel):
    __tablename__ = "supply_items"

    name = Column(String(100), nullable=False)
    unit = Column(String(20), nullable=False, default="unit")


class SupplyLot(BaseModel):
    __tablename__ = "supply_lots"

    supply_item_id = Column(Integer, ForeignKey("supply_items.id"), nullable=False)
    batch_code = Column(String(50))
    expiry_date = Column(Date)

    supply_item = relationship("SupplyItem")


class StockMovement(BaseModel):
    """Signed quantity delta for one lot at one warehouse."""

    __tablename__ = "stock_movements"

    supply_lot_id = Column(Integer, ForeignKey("supply_lots.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    movement_type = Column(Enum(MovementType, name="movement_type"), nullable=False)
    quantity = Column(Numeric(14, 3), nullable=False)
    movement_date = Column(Date)

    supply_lot = relationship("SupplyLot")
    warehouse = relationship("Warehouse")

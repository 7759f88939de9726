import logging

from sqlalchemy.orm import Session

from cropmgmt.models.user import User, Role, InvalidatedToken
from cropmgmt.models.farm import Farm, Plot, Crop, Season
from cropmgmt.models.season_records import Task, Expense, Harvest, Incident
from cropmgmt.models.inventory import Warehouse, SupplyItem, SupplyLot, StockMovement
from cropmgmt.models.enums import RoleCode
from cropmgmt.db.session import engine, Base, SessionLocal

logger = logging.getLogger(__name__)

DEFAULT_ROLES = (
    (RoleCode.ADMIN, "Administrator", "System administrator"),
    (RoleCode.FARMER, "Farmer", "Farmer user"),
    (RoleCode.BUYER, "Buyer", "Buyer user"),
)


def ensure_default_roles(db: Session) -> None:
    for code, name, description in DEFAULT_ROLES:
        if db.get(Role, code.value) is None:
            logger.info("Creating default role with code: %s", code.value)
            db.add(Role(code=code.value, name=name, description=description))
    db.commit()


def init_db(bind=engine):
    # Create all tables
    Base.metadata.create_all(bind=bind)

    db = SessionLocal(bind=bind)
    try:
        ensure_default_roles(db)
    finally:
        db.close()

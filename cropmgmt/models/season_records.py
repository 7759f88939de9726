from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, Date, Enum
from sqlalchemy.orm import relationship
from cropmgmt.models.base import BaseModel
from cropmgmt.models.enums import IncidentStatus, TaskStatus


class Task(BaseModel):
    __tablename__ = "tasks"

    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    assignee_id = Column(Integer, ForeignKey("users.id"))
    title = Column(String(200), nullable=False)
    description = Column(String)
    planned_date = Column(Date)
    due_date = Column(Date)
    actual_end_date = Column(Date)
    status = Column(Enum(TaskStatus, name="task_status"), nullable=False, default=TaskStatus.PENDING)

    season = relationship("Season")
    assignee = relationship("User")


class Expense(BaseModel):
    __tablename__ = "expenses"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"))
    category = Column(String(50))
    item_name = Column(String(200), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_cost = Column(Numeric(16, 2), nullable=False)
    expense_date = Column(Date, nullable=False)

    user = relationship("User")
    season = relationship("Season")
    task = relationship("Task")


class Harvest(BaseModel):
    __tablename__ = "harvests"

    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    harvest_date = Column(Date, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    note = Column(String)

    season = relationship("Season")


class Incident(BaseModel):
    __tablename__ = "incidents"

    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    incident_type = Column(String(50), nullable=False)
    severity = Column(String(20))
    description = Column(String)
    status = Column(Enum(IncidentStatus, name="incident_status"), nullable=False, default=IncidentStatus.OPEN)

    season = relationship("Season")

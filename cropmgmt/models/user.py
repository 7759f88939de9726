from sqlalchemy import Column, String, Enum, ForeignKey, Integer, Table, DateTime
from sqlalchemy.orm import relationship
from cropmgmt.db.session import Base
from cropmgmt.models.base import BaseModel
from cropmgmt.models.enums import UserStatus

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_code", String(50), ForeignKey("roles.code", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"

    code = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255))


class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(100))
    phone = Column(String(20))
    province_id = Column(Integer)
    ward_id = Column(Integer)
    status = Column(Enum(UserStatus, name="user_status"), nullable=False, default=UserStatus.ACTIVE)

    roles = relationship("Role", secondary=user_roles, lazy="selectin")
    farms = relationship("Farm", back_populates="owner")


class InvalidatedToken(Base):
    """Denylisted token id; rows past ``expiry_time`` can be purged."""

    __tablename__ = "invalidated_tokens"

    id = Column(String(64), primary_key=True)
    expiry_time = Column(DateTime, nullable=False, index=True)

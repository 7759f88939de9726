from enum import Enum


class RoleCode(str, Enum):
    """Predefined role codes, declared in primary-role precedence order."""

    ADMIN = "ADMIN"
    FARMER = "FARMER"
    BUYER = "BUYER"

    @classmethod
    def rank(cls, code: str) -> int:
        for index, member in enumerate(cls):
            if member.value == code:
                return index
        return len(cls)


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    LOCKED = "LOCKED"
    INACTIVE = "INACTIVE"


class SeasonStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ARCHIVED = "ARCHIVED"


# No expense may be recorded, edited or removed once a season reaches one of these.
CLOSED_SEASON_STATUSES = (SeasonStatus.COMPLETED, SeasonStatus.CANCELLED, SeasonStatus.ARCHIVED)


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class IncidentStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CANCELLED = "CANCELLED"


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"

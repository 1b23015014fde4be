"""Models package for the staff directory."""

from staffdir.models.base import Base
from staffdir.models.employee import (
    MANAGEMENT_DEPARTMENT,
    UNASSIGNED_DEPARTMENT,
    UNASSIGNED_POSITION,
    Employee,
)
from staffdir.models.user import User, UserRole

__all__ = [
    "Base",
    "Employee",
    "MANAGEMENT_DEPARTMENT",
    "UNASSIGNED_DEPARTMENT",
    "UNASSIGNED_POSITION",
    "User",
    "UserRole",
]

"""SQLAlchemy Employee model for database operations."""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from staffdir.models.base import Base, new_uuid, utcnow

if TYPE_CHECKING:
    from staffdir.models.user import User


# Department of the organization root; its members may manage any department
MANAGEMENT_DEPARTMENT = "management"

# Parking values given to employees detached from the hierarchy
UNASSIGNED_DEPARTMENT = "unassigned"
UNASSIGNED_POSITION = "Employee"


class Employee(Base):
    """
    Employee record and node of the reporting tree.

    ``manager_id`` is the parent edge. Exactly one employee outside the
    ``unassigned`` department has no manager: the organization root.
    """

    __tablename__ = "employees"

    # Primary Key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    # Unique Identifiers
    employee_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    # Personal Information
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Employment Information
    position: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    manager_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True
    )
    salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    profile_picture: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # System Fields
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    # Relationships
    manager: Mapped[Optional["Employee"]] = relationship(
        "Employee", remote_side=[id], foreign_keys=[manager_id], back_populates="subordinates"
    )
    subordinates: Mapped[List["Employee"]] = relationship(
        "Employee", foreign_keys=[manager_id], back_populates="manager"
    )
    user: Mapped[Optional["User"]] = relationship(
        "User",
        primaryjoin="foreign(Employee.email) == User.email",
        viewonly=True,
        uselist=False,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, employee_number='{self.employee_number}', name='{self.full_name}')>"

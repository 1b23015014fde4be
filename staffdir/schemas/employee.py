"""Pydantic request models for employee endpoints."""

import re
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from staffdir.utils.positions import normalize_department

EMPLOYEE_NUMBER_PATTERN = re.compile(r"^EMP-\d{3,5}$")
DEPARTMENT_PATTERN = re.compile(r"^[a-z0-9-]{2,30}$")


def _clean_employee_number(value: str) -> str:
    value = value.strip().upper()
    if not EMPLOYEE_NUMBER_PATTERN.match(value):
        raise ValueError("Employee number must be in format EMP-XXX")
    return value


def _clean_department(value: str) -> str:
    value = normalize_department(value)
    if not DEPARTMENT_PATTERN.match(value):
        raise ValueError("Department name must be 2-30 characters, letters/numbers/hyphens only")
    return value


# =============================================================================
# Request Models
# =============================================================================


class EmployeeCreateRequest(BaseModel):
    """Request model for onboarding a new employee."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1, max_length=100, description="First name")
    last_name: str = Field(..., min_length=1, max_length=100, description="Last name")
    email: EmailStr = Field(..., description="Work email address")
    birth_date: date = Field(..., description="Date of birth (ISO 8601)")
    employee_number: str = Field(..., description="Business key, EMP-NNN to EMP-NNNNN")
    salary: Decimal = Field(
        ...,
        ge=Decimal("0"),
        max_digits=12,
        decimal_places=2,
        description="Annual salary",
    )
    position: str = Field(..., min_length=1, max_length=100, description="Job title")
    department: str = Field(..., description="Department tag, normalized to lowercase-hyphenated")
    manager_id: Optional[str] = Field(default=None, description="Manager's employee id")
    is_manager: Optional[bool] = Field(
        default=None,
        description="Create the login with the MANAGER role regardless of title",
    )

    @field_validator("employee_number")
    @classmethod
    def validate_employee_number(cls, v: str) -> str:
        return _clean_employee_number(v)

    @field_validator("department")
    @classmethod
    def validate_department(cls, v: str) -> str:
        return _clean_department(v)

    @field_validator("manager_id")
    @classmethod
    def blank_manager_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class EmployeeUpdateRequest(BaseModel):
    """
    Partial update of an employee.

    Only fields present in the request body are applied. ``manager_id`` may
    be sent explicitly to reassign; clearing it is done through detach.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    birth_date: Optional[date] = None
    employee_number: Optional[str] = None
    salary: Optional[Decimal] = Field(default=None, ge=Decimal("0"), max_digits=12, decimal_places=2)
    position: Optional[str] = Field(default=None, min_length=1, max_length=100)
    department: Optional[str] = None
    manager_id: Optional[str] = None

    @field_validator(
        "first_name",
        "last_name",
        "email",
        "birth_date",
        "employee_number",
        "salary",
        "position",
        "department",
        mode="before",
    )
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("employee_number")
    @classmethod
    def validate_employee_number(cls, v: Optional[str]) -> Optional[str]:
        return _clean_employee_number(v) if v is not None else v

    @field_validator("department")
    @classmethod
    def validate_department(cls, v: Optional[str]) -> Optional[str]:
        return _clean_department(v) if v is not None else v


class ManagerAssignmentRequest(BaseModel):
    """Drag-and-drop reassignment body."""

    model_config = ConfigDict(str_strip_whitespace=True)

    manager_id: str = Field(..., min_length=1, description="New manager's employee id")

"""Pydantic response models for organization structure endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class HierarchyNode(BaseModel):
    """A node in the organization tree."""

    id: str = Field(..., description="Employee id")
    name: str = Field(..., description="Full name")
    position: str = Field(..., description="Job title")
    department: str = Field(..., description="Department tag")
    email: str = Field(..., description="Work email")
    employee_number: str = Field(..., description="Business key")
    salary: float = Field(..., description="Annual salary")
    role: Optional[str] = Field(None, description="Login role")
    children: List["HierarchyNode"] = Field(
        default_factory=list,
        description="Direct reports",
    )


HierarchyNode.model_rebuild()


class HierarchyTreeResponse(BaseModel):
    """Response for the hierarchy tree endpoint."""

    hierarchy: HierarchyNode
    unassigned: List[HierarchyNode] = Field(
        default_factory=list,
        description="Detached employees outside the tree",
    )


class ManagerOption(BaseModel):
    """A selectable manager."""

    id: str
    first_name: str
    last_name: str
    position: str
    department: str


class ManagersByDepartmentResponse(BaseModel):
    department: str
    managers: List[ManagerOption] = Field(default_factory=list)


class DepartmentOption(BaseModel):
    value: str = Field(..., description="Department tag")
    label: str = Field(..., description="Display name")


class DepartmentsResponse(BaseModel):
    departments: List[DepartmentOption] = Field(default_factory=list)


class ManagementRatio(BaseModel):
    total_managers: int
    ratio: float = Field(..., description="Managers per employee, 0..1")


class DepartmentCount(BaseModel):
    name: str
    count: int


class DashboardStats(BaseModel):
    """Organization statistics for the dashboard."""

    total_employees: int
    average_salary: Optional[float] = Field(
        None, description="Null unless the caller's role may view salaries"
    )
    management_ratio: ManagementRatio
    department_distribution: List[DepartmentCount] = Field(default_factory=list)
    generated_at: datetime

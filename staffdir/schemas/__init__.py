"""Pydantic schemas for API request/response validation."""

from staffdir.schemas.employee import (
    EmployeeCreateRequest,
    EmployeeUpdateRequest,
    ManagerAssignmentRequest,
)
from staffdir.schemas.hierarchy import (
    DashboardStats,
    DepartmentCount,
    DepartmentOption,
    DepartmentsResponse,
    HierarchyNode,
    HierarchyTreeResponse,
    ManagementRatio,
    ManagerOption,
    ManagersByDepartmentResponse,
)

__all__ = [
    # Request schemas
    "EmployeeCreateRequest",
    "EmployeeUpdateRequest",
    "ManagerAssignmentRequest",
    # Response schemas
    "DashboardStats",
    "DepartmentCount",
    "DepartmentOption",
    "DepartmentsResponse",
    "HierarchyNode",
    "HierarchyTreeResponse",
    "ManagementRatio",
    "ManagerOption",
    "ManagersByDepartmentResponse",
]

"""API endpoints for the employee directory and organization structure."""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from staffdir.config.settings import get_settings
from staffdir.data.employee_repository import PaginationParams, SearchFilters, SortParams
from staffdir.database.database import get_db
from staffdir.schemas.employee import (
    EmployeeCreateRequest,
    EmployeeUpdateRequest,
    ManagerAssignmentRequest,
)
from staffdir.schemas.hierarchy import (
    DashboardStats,
    DepartmentsResponse,
    HierarchyTreeResponse,
    ManagersByDepartmentResponse,
)
from staffdir.services.employee_service import EmployeeService
from staffdir.utils.auth import CurrentUser, get_current_user
from staffdir.utils.positions import normalize_department


# =============================================================================
# Dependency Injection
# =============================================================================

def get_employee_service(
    session: Annotated[Session, Depends(get_db)],
) -> EmployeeService:
    """Get employee service instance."""
    return EmployeeService(session)


# =============================================================================
# Router Setup
# =============================================================================

employee_router = APIRouter(
    prefix="/api/employees",
    tags=["Employees"],
)


# =============================================================================
# Collection Endpoints
# =============================================================================

@employee_router.get(
    "",
    summary="List Employees",
    description="Paginated listing of the employees visible to the current user.",
)
async def list_employees(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    limit: Annotated[Optional[int], Query(ge=1, le=100, description="Page size")] = None,
    search: Annotated[Optional[str], Query(description="Name, email or employee number")] = None,
    name: Annotated[Optional[str], Query(description="First name, last name or email")] = None,
    employee_number: Annotated[Optional[str], Query(description="Employee number contains")] = None,
    position: Annotated[Optional[str], Query(description="Position contains")] = None,
    department: Annotated[Optional[str], Query(description="Department equals")] = None,
    manager_only: Annotated[bool, Query(description="Only valid manager candidates")] = False,
    managers_for: Annotated[
        Optional[str],
        Query(description="Exclude this employee and everyone below them"),
    ] = None,
    sort_by: Annotated[str, Query(description="first_name, last_name, salary or created_at")] = "created_at",
    sort_order: Annotated[str, Query(pattern="^(asc|desc)$", description="asc or desc")] = "desc",
) -> Dict[str, Any]:
    """
    List employees.

    - ADMIN sees everyone
    - MANAGER sees themselves and their whole subtree
    - EMPLOYEE sees themselves, their peers and their management chain
    - salary and birth_date are omitted where the caller may not see them
    """
    settings = get_settings()
    page_size = min(limit or settings.pagination.default_page_size, settings.pagination.max_page_size)

    return service.list_employees(
        current_user=current_user,
        pagination=PaginationParams(page=page, page_size=page_size),
        sort=SortParams(field=sort_by, order=sort_order),
        filters=SearchFilters(
            search=search,
            name=name,
            employee_number=employee_number,
            position=position,
            department=normalize_department(department) if department else None,
        ),
        manager_only=manager_only,
        managers_for=managers_for,
    )


@employee_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Employee",
    description="Onboard a new employee together with its login.",
)
async def create_employee(
    data: EmployeeCreateRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return service.create_employee(data, current_user)


# =============================================================================
# Static Endpoints (registered before /{employee_id})
# =============================================================================

@employee_router.get(
    "/me",
    summary="Get My Record",
    description="The current user's own employee record.",
)
async def get_me(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return {"employee": service.get_me(current_user)}


@employee_router.get(
    "/departments",
    response_model=DepartmentsResponse,
    summary="List Departments",
)
async def list_departments(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> DepartmentsResponse:
    return service.list_departments()


@employee_router.get(
    "/managers-by-department/{department}",
    response_model=ManagersByDepartmentResponse,
    summary="Managers for Department",
    description="Employees the current user may pick as manager in a department.",
)
async def managers_by_department(
    department: str,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ManagersByDepartmentResponse:
    return service.managers_by_department(department, current_user)


@employee_router.get(
    "/hierarchy/tree",
    response_model=HierarchyTreeResponse,
    summary="Organization Tree",
    description="Nested tree from the organization root (ADMIN) or the caller (MANAGER).",
)
async def hierarchy_tree(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> HierarchyTreeResponse:
    return service.get_hierarchy_tree(current_user)


@employee_router.get(
    "/stats/dashboard",
    response_model=DashboardStats,
    summary="Dashboard Statistics",
)
async def dashboard_stats(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> DashboardStats:
    return service.get_dashboard_stats(current_user)


# =============================================================================
# Single Employee Endpoints
# =============================================================================

@employee_router.get(
    "/{employee_id}",
    summary="Get Employee",
)
async def get_employee(
    employee_id: str,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return {"employee": service.get_employee(employee_id, current_user)}


@employee_router.put(
    "/{employee_id}",
    summary="Update Employee",
    description="Partial update. A department change without manager_id is routed to that department's head.",
)
async def update_employee(
    employee_id: str,
    data: EmployeeUpdateRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return service.update_employee(employee_id, data, current_user)


@employee_router.delete(
    "/{employee_id}",
    summary="Delete Employee",
    description="Delete an employee without subordinates, together with its login.",
)
async def delete_employee(
    employee_id: str,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return service.delete_employee(employee_id, current_user)


@employee_router.put(
    "/{employee_id}/manager",
    summary="Reassign Manager",
    description="Move an employee under a new manager (org chart drag-and-drop).",
)
async def reassign_manager(
    employee_id: str,
    data: ManagerAssignmentRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return service.reassign_manager(employee_id, data, current_user)


@employee_router.patch(
    "/{employee_id}/detach",
    summary="Detach Employee",
    description="Remove an employee from the tree and park them as unassigned.",
)
async def detach_employee(
    employee_id: str,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return service.detach_employee(employee_id, current_user)

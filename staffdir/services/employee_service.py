"""Employee service: listing, lookups and structural changes."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from staffdir.data.employee_repository import (
    SORTABLE_FIELDS,
    EmployeeRepository,
    PaginationParams,
    SearchFilters,
    SortParams,
)
from staffdir.models.employee import Employee
from staffdir.models.user import UserRole
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
from staffdir.services.hierarchy_index import HierarchyIndex
from staffdir.services.hierarchy_mutator import HierarchyMutator
from staffdir.services.mutation_authorizer import MutationAuthorizer
from staffdir.services.visibility_resolver import VisibilityResolver
from staffdir.utils.auth import CurrentUser
from staffdir.utils.errors import (
    DuplicateError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from staffdir.utils.positions import department_display_name, normalize_department

logger = logging.getLogger(__name__)


def summarize_employee(employee: Employee) -> Dict[str, Any]:
    return {
        "id": employee.id,
        "first_name": employee.first_name,
        "last_name": employee.last_name,
        "position": employee.position,
    }


def serialize_employee(employee: Employee) -> Dict[str, Any]:
    """Full record shape returned by the API, before redaction."""
    return {
        "id": employee.id,
        "employee_number": employee.employee_number,
        "first_name": employee.first_name,
        "last_name": employee.last_name,
        "email": employee.email,
        "birth_date": employee.birth_date.isoformat() if employee.birth_date else None,
        "salary": float(employee.salary) if employee.salary is not None else None,
        "position": employee.position,
        "department": employee.department,
        "manager_id": employee.manager_id,
        "profile_picture": employee.profile_picture,
        "created_at": employee.created_at.isoformat() if employee.created_at else None,
        "updated_at": employee.updated_at.isoformat() if employee.updated_at else None,
        "manager": summarize_employee(employee.manager) if employee.manager else None,
        "subordinates": [summarize_employee(s) for s in employee.subordinates],
    }


class EmployeeService:
    """
    Service layer for the employee directory and organization structure.

    Every call loads a fresh ``HierarchyIndex`` inside the request's
    transaction, so authorization decisions never rest on stale state.
    """

    def __init__(self, session: Session):
        """Initialize service with database session."""
        self.session = session
        self.repository = EmployeeRepository(session)
        self.mutator = HierarchyMutator(session, self.repository)

    # =========================================================================
    # Read Operations
    # =========================================================================

    def list_employees(
        self,
        current_user: CurrentUser,
        pagination: PaginationParams,
        sort: SortParams,
        filters: SearchFilters,
        manager_only: bool = False,
        managers_for: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        List employees visible to the current user.

        ``manager_only`` narrows the listing to manager candidates;
        ``managers_for`` additionally removes that employee's subtree so
        that no offered manager could create a cycle.
        """
        if sort.field not in SORTABLE_FIELDS:
            raise ValidationError(
                f"Cannot sort by '{sort.field}'",
                details={"allowed": list(SORTABLE_FIELDS)},
            )

        resolver = VisibilityResolver(self._load_index())
        resolver.check_sort_field(current_user, sort.field)

        visible = resolver.visible_ids(current_user)
        if manager_only:
            visible = resolver.manager_candidates(current_user)
        if managers_for:
            visible = resolver.exclude_subtree(managers_for, visible)

        employees, total_count = self.repository.list_employees(
            pagination, sort, filters, visible_ids=visible
        )

        total_pages = math.ceil(total_count / pagination.page_size) if total_count else 0

        return {
            "employees": [
                resolver.redact(current_user, e, serialize_employee(e)) for e in employees
            ],
            "pagination": {
                "current_page": pagination.page,
                "total_pages": total_pages,
                "total_count": total_count,
                "has_next_page": pagination.page < total_pages,
                "has_previous_page": pagination.page > 1,
            },
        }

    def get_employee(self, employee_id: str, current_user: CurrentUser) -> Dict[str, Any]:
        """Get a single employee, redacted for the current user."""
        resolver = VisibilityResolver(self._load_index())

        if employee_id not in resolver.index:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})

        if not resolver.can_view(current_user, employee_id):
            raise ForbiddenError("You do not have permission to view this employee")

        employee = self._get_or_404(employee_id)
        return resolver.redact(current_user, employee, serialize_employee(employee))

    def get_me(self, current_user: CurrentUser) -> Dict[str, Any]:
        """The current user's own full record."""
        if not current_user.employee_id:
            raise NotFoundError("Employee record not found")
        employee = self.repository.get_by_id(current_user.employee_id)
        if employee is None:
            raise NotFoundError("Employee record not found")
        return serialize_employee(employee)

    def list_departments(self) -> DepartmentsResponse:
        return DepartmentsResponse(
            departments=[
                DepartmentOption(value=d, label=department_display_name(d))
                for d in self.repository.list_departments()
            ]
        )

    def managers_by_department(
        self, department: str, current_user: CurrentUser
    ) -> ManagersByDepartmentResponse:
        department = normalize_department(department)
        resolver = VisibilityResolver(self._load_index())
        managers = resolver.managers_for_department(current_user, department)
        return ManagersByDepartmentResponse(
            department=department,
            managers=[
                ManagerOption(
                    id=m.id,
                    first_name=m.first_name,
                    last_name=m.last_name,
                    position=m.position,
                    department=m.department,
                )
                for m in managers
            ],
        )

    def get_hierarchy_tree(self, current_user: CurrentUser) -> HierarchyTreeResponse:
        """
        Full organization tree from the root, plus detached employees.

        Nodes are not redacted; only roles that may view salaries may call it.
        """
        if not current_user.permissions.can_view_salaries:
            raise ForbiddenError("Employees cannot view the organization hierarchy")

        index = self._load_index()
        roles = self.repository.get_user_roles_by_email()

        def render(employee: Employee) -> Dict[str, Any]:
            role = roles.get(employee.email)
            return {
                "id": employee.id,
                "name": employee.full_name,
                "position": employee.position,
                "department": employee.department,
                "email": employee.email,
                "employee_number": employee.employee_number,
                "salary": float(employee.salary),
                "role": role.value if role else None,
            }

        def sort_key(employee: Employee):
            return (employee.last_name, employee.first_name)

        root = index.root()
        if root is None:
            raise NotFoundError("No CEO found in organization")

        unassigned = [
            HierarchyNode.model_validate(index.build_tree(e.id, render, sort_key))
            for e in sorted(index.detached(), key=sort_key)
        ]
        return HierarchyTreeResponse(
            hierarchy=HierarchyNode.model_validate(index.build_tree(root.id, render, sort_key)),
            unassigned=unassigned,
        )

    def get_dashboard_stats(self, current_user: CurrentUser) -> DashboardStats:
        """Organization-wide statistics."""
        distribution = self.repository.count_by_department()
        total = sum(count for _, count in distribution)
        total_managers = self.repository.count_users_with_role(UserRole.MANAGER)

        average_salary = None
        if current_user.permissions.can_view_salaries and total:
            average = self.repository.average_salary()
            average_salary = round(float(average), 2) if average is not None else None

        return DashboardStats(
            total_employees=total,
            average_salary=average_salary,
            management_ratio=ManagementRatio(
                total_managers=total_managers,
                ratio=round(total_managers / total, 4) if total else 0.0,
            ),
            department_distribution=[
                DepartmentCount(name=name, count=count) for name, count in distribution
            ],
            generated_at=datetime.now(timezone.utc),
        )

    # =========================================================================
    # Structural Changes
    # =========================================================================

    def create_employee(
        self, data: EmployeeCreateRequest, current_user: CurrentUser
    ) -> Dict[str, Any]:
        """Onboard a new employee together with its login."""
        index = self._load_index()
        fields = data.model_dump()
        plan = MutationAuthorizer(index).authorize_create(current_user, fields)

        try:
            employee = self.mutator.create(current_user, plan, fields)
        except IntegrityError as e:
            raise self._conflict(e)

        return {
            "message": "Employee created successfully",
            "employee": self._build_employee_response(index, employee.id, current_user),
        }

    def update_employee(
        self, employee_id: str, data: EmployeeUpdateRequest, current_user: CurrentUser
    ) -> Dict[str, Any]:
        """Apply a partial update; only fields present in the body change."""
        index = self._load_index()
        changes = data.model_dump(exclude_unset=True)
        plan = MutationAuthorizer(index).authorize_update(current_user, employee_id, changes)

        try:
            self.mutator.update(current_user, plan)
        except IntegrityError as e:
            raise self._conflict(e)

        return {"employee": self._build_employee_response(index, employee_id, current_user)}

    def delete_employee(self, employee_id: str, current_user: CurrentUser) -> Dict[str, Any]:
        index = self._load_index()
        plan = MutationAuthorizer(index).authorize_delete(current_user, employee_id)
        self.mutator.delete(current_user, plan)
        return {"message": "Employee deleted successfully"}

    def reassign_manager(
        self, employee_id: str, data: ManagerAssignmentRequest, current_user: CurrentUser
    ) -> Dict[str, Any]:
        index = self._load_index()
        plan = MutationAuthorizer(index).authorize_reassign(
            current_user, employee_id, data.manager_id
        )
        self.mutator.reassign(current_user, plan)
        return {"employee": self._build_employee_response(index, employee_id, current_user)}

    def detach_employee(self, employee_id: str, current_user: CurrentUser) -> Dict[str, Any]:
        index = self._load_index()
        plan = MutationAuthorizer(index).authorize_detach(current_user, employee_id)
        self.mutator.detach(current_user, plan)
        return {"employee": self._build_employee_response(index, employee_id, current_user)}

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _load_index(self) -> HierarchyIndex:
        return HierarchyIndex(self.repository.get_all())

    def _get_or_404(self, employee_id: str) -> Employee:
        employee = self.repository.get_by_id(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})
        return employee

    def _build_employee_response(
        self, index: HierarchyIndex, employee_id: str, current_user: CurrentUser
    ) -> Dict[str, Any]:
        employee = self._get_or_404(employee_id)
        resolver = VisibilityResolver(index)
        return resolver.redact(current_user, employee, serialize_employee(employee))

    @staticmethod
    def _conflict(error: IntegrityError) -> DuplicateError:
        logger.info(f"Uniqueness conflict while writing employee: {error.orig}")
        return DuplicateError("Email or employee number already exists")

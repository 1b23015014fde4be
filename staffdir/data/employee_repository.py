"""Employee repository for data access operations."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from staffdir.models.employee import Employee
from staffdir.models.user import User, UserRole


@dataclass
class PaginationParams:
    """Pagination parameters."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        """Calculate offset from page and page_size."""
        return (self.page - 1) * self.page_size


@dataclass
class SortParams:
    """Sort parameters."""

    field: str = "created_at"
    order: str = "desc"  # 'asc' or 'desc'


@dataclass
class SearchFilters:
    """Search filter parameters."""

    search: Optional[str] = None
    name: Optional[str] = None
    employee_number: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None


SORTABLE_FIELDS = ("first_name", "last_name", "salary", "created_at")


class EmployeeRepository:
    """
    Repository for employee and user data access.

    Structural decisions are made over ``get_all()`` snapshots; the other
    queries serve listings, lookups and the writes that accompany them.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_all(self) -> Sequence[Employee]:
        """Fetch every employee in one round-trip."""
        return self.session.execute(select(Employee)).scalars().all()

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        """Fetch an employee with its manager and direct reports."""
        stmt = (
            select(Employee)
            .options(joinedload(Employee.manager), selectinload(Employee.subordinates))
            .where(Employee.id == employee_id)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().unique().one_or_none()

    def get_by_ids(self, employee_ids: Collection[str]) -> Sequence[Employee]:
        if not employee_ids:
            return []
        stmt = (
            select(Employee)
            .options(joinedload(Employee.manager), selectinload(Employee.subordinates))
            .where(Employee.id.in_(list(employee_ids)))
            .order_by(Employee.last_name.asc(), Employee.first_name.asc())
        )
        return self.session.execute(stmt).scalars().unique().all()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.session.execute(select(User).where(User.email == email)).scalar_one_or_none()

    # =========================================================================
    # Directory/List Operations
    # =========================================================================

    def list_employees(
        self,
        pagination: PaginationParams,
        sort: SortParams,
        filters: SearchFilters,
        visible_ids: Optional[Collection[str]] = None,
    ) -> Tuple[Sequence[Employee], int]:
        """
        Get a page of employees.

        Args:
            pagination: Pagination parameters
            sort: Sort parameters
            filters: Search filters
            visible_ids: Restrict to these ids; None means no restriction

        Returns:
            Tuple of (employees, total_count)
        """
        stmt = select(Employee).options(
            joinedload(Employee.manager),
            selectinload(Employee.subordinates),
        )

        stmt = self._apply_filters(stmt, filters)

        if visible_ids is not None:
            stmt = stmt.where(Employee.id.in_(list(visible_ids)))

        # Get total count before pagination
        count_stmt = select(func.count()).select_from(stmt.subquery())
        total_count = self.session.execute(count_stmt).scalar() or 0

        stmt = self._apply_sorting(stmt, sort)
        stmt = stmt.offset(pagination.offset).limit(pagination.page_size)

        employees = self.session.execute(stmt).scalars().unique().all()

        return employees, total_count

    def list_departments(self) -> List[str]:
        stmt = select(Employee.department).distinct().order_by(Employee.department)
        return list(self.session.execute(stmt).scalars().all())

    # =========================================================================
    # Statistics
    # =========================================================================

    def count_by_department(self) -> List[Tuple[str, int]]:
        """Employee count per department, largest first."""
        stmt = (
            select(Employee.department, func.count(Employee.id).label("count"))
            .group_by(Employee.department)
            .order_by(func.count(Employee.id).desc(), Employee.department)
        )
        return [(row.department, row.count) for row in self.session.execute(stmt)]

    def average_salary(self) -> Optional[Decimal]:
        return self.session.execute(select(func.avg(Employee.salary))).scalar()

    def count_users_with_role(self, role: UserRole) -> int:
        stmt = select(func.count(User.id)).where(User.role == role)
        return self.session.execute(stmt).scalar() or 0

    def get_user_roles_by_email(self) -> Dict[str, UserRole]:
        rows = self.session.execute(select(User.email, User.role)).all()
        return {row.email: row.role for row in rows}

    # =========================================================================
    # Writes
    # =========================================================================

    def detach_direct_reports(self, manager_id: str) -> int:
        """Clear ``manager_id`` on every direct report of a manager."""
        stmt = (
            update(Employee)
            .where(Employee.manager_id == manager_id)
            .values(manager_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return self.session.execute(stmt).rowcount

    def delete_user_by_email(self, email: str) -> int:
        result = self.session.execute(delete(User).where(User.email == email))
        return result.rowcount

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _apply_filters(self, stmt, filters: SearchFilters):
        """Apply search filters to query."""
        conditions = []

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    Employee.first_name.ilike(pattern),
                    Employee.last_name.ilike(pattern),
                    Employee.email.ilike(pattern),
                    Employee.employee_number.ilike(pattern),
                )
            )

        if filters.name:
            pattern = f"%{filters.name}%"
            conditions.append(
                or_(
                    Employee.first_name.ilike(pattern),
                    Employee.last_name.ilike(pattern),
                    Employee.email.ilike(pattern),
                )
            )

        if filters.employee_number:
            conditions.append(Employee.employee_number.ilike(f"%{filters.employee_number}%"))

        if filters.position:
            conditions.append(Employee.position.ilike(f"%{filters.position}%"))

        if filters.department:
            conditions.append(Employee.department == filters.department)

        if conditions:
            stmt = stmt.where(and_(*conditions))

        return stmt

    def _apply_sorting(self, stmt, sort: SortParams):
        """Apply sorting to query."""
        sort_columns = {
            "first_name": Employee.first_name,
            "last_name": Employee.last_name,
            "salary": Employee.salary,
            "created_at": Employee.created_at,
        }

        column = sort_columns.get(sort.field, Employee.created_at)

        if sort.order.lower() == "desc":
            column = column.desc()
        else:
            column = column.asc()

        # Tie-break so pages are stable
        return stmt.order_by(column, Employee.id.asc())

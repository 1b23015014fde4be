"""Service for employee CSV and hierarchy JSON exports."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from staffdir.data.employee_repository import EmployeeRepository
from staffdir.models.employee import Employee
from staffdir.services.employee_service import serialize_employee
from staffdir.services.hierarchy_index import HierarchyIndex
from staffdir.services.visibility_resolver import VisibilityResolver
from staffdir.utils.auth import CurrentUser
from staffdir.utils.csv_writer import generate_csv_content

logger = logging.getLogger(__name__)


# (column header, record key) in output order
CSV_COLUMNS: List[Tuple[str, str]] = [
    ("Employee Number", "employee_number"),
    ("First Name", "first_name"),
    ("Last Name", "last_name"),
    ("Email", "email"),
    ("Position", "position"),
    ("Department", "department"),
    ("Salary", "salary"),
    ("Birth Date", "birth_date"),
    ("Manager", "manager_name"),
    ("Manager Position", "manager_position"),
    ("Created Date", "created_at"),
]


class ExportService:
    """
    Exports of the employees visible to the current user.

    Rows follow the same membership and redaction rules as the listing;
    redacted values become empty cells.
    """

    def __init__(self, session: Session):
        """Initialize with database session."""
        self.session = session
        self.repository = EmployeeRepository(session)

    def export_employees_csv(self, current_user: CurrentUser) -> Tuple[bytes, str]:
        """
        Export visible employees to CSV.

        Returns:
            Tuple of (CSV content bytes, download filename)
        """
        current_user.require(
            "can_export_data", "You do not have permission to export employee data"
        )

        resolver, employees = self._visible_employees(current_user)

        rows = []
        for employee in employees:
            record = resolver.redact(current_user, employee, serialize_employee(employee))
            manager = employee.manager
            record["manager_name"] = manager.full_name if manager else "No Manager"
            record["manager_position"] = manager.position if manager else None
            record["created_at"] = employee.created_at
            rows.append({header: record.get(key) for header, key in CSV_COLUMNS})

        content = generate_csv_content(rows, [header for header, _ in CSV_COLUMNS])
        filename = f"employees_export_{datetime.now(timezone.utc).date().isoformat()}.csv"

        logger.info(f"Exported {len(rows)} employees to CSV for actor {current_user.employee_id}")
        return content, filename

    def export_hierarchy_json(self, current_user: CurrentUser) -> Dict[str, Any]:
        """Visible employees with manager and direct-report summaries."""
        current_user.require(
            "can_export_data", "You do not have permission to export hierarchy data"
        )

        _, employees = self._visible_employees(current_user)

        hierarchy = [
            {
                "id": employee.id,
                "employee_number": employee.employee_number,
                "name": employee.full_name,
                "position": employee.position,
                "department": employee.department,
                "email": employee.email,
                "manager": self._summary(employee.manager),
                "subordinates": [self._summary(s) for s in employee.subordinates],
            }
            for employee in employees
        ]

        logger.info(
            f"Exported hierarchy of {len(hierarchy)} employees for actor {current_user.employee_id}"
        )
        return {
            "export_date": datetime.now(timezone.utc).isoformat(),
            "total_employees": len(hierarchy),
            "hierarchy": hierarchy,
        }

    def get_export_stats(self, current_user: CurrentUser) -> Dict[str, Any]:
        current_user.require(
            "can_export_data", "You do not have permission to view export statistics"
        )
        _, employees = self._visible_employees(current_user)
        return {
            "total_employees": len(employees),
            "available_formats": ["CSV", "JSON"],
            "export_date": datetime.now(timezone.utc).isoformat(),
        }

    def _visible_employees(
        self, current_user: CurrentUser
    ) -> Tuple[VisibilityResolver, Sequence[Employee]]:
        index = HierarchyIndex(self.repository.get_all())
        resolver = VisibilityResolver(index)
        visible = resolver.visible_ids(current_user)
        ids = index.ids() if visible is None else visible
        return resolver, self.repository.get_by_ids(ids)

    @staticmethod
    def _summary(employee: Optional[Employee]) -> Optional[Dict[str, Any]]:
        if employee is None:
            return None
        return {"id": employee.id, "name": employee.full_name, "position": employee.position}

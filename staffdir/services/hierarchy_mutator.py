"""Applies authorized structural changes to the organization."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from staffdir.config.settings import get_settings
from staffdir.data.employee_repository import EmployeeRepository
from staffdir.database.database import atomic
from staffdir.models.employee import Employee
from staffdir.models.user import User
from staffdir.services.mutation_authorizer import (
    CreatePlan,
    DeletePlan,
    DetachPlan,
    ReassignPlan,
    UpdatePlan,
)
from staffdir.utils.auth import CurrentUser, hash_password
from staffdir.utils.errors import NotFoundError

logger = logging.getLogger(__name__)

EMPLOYEE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "birth_date",
    "employee_number",
    "salary",
    "position",
    "department",
    "manager_id",
)


class HierarchyMutator:
    """
    Writes approved plans.

    Each operation is one unit of work: Employee and User rows change
    together or not at all.
    """

    def __init__(self, session: Session, repository: Optional[EmployeeRepository] = None):
        self.session = session
        self.repository = repository or EmployeeRepository(session)

    def create(self, actor: CurrentUser, plan: CreatePlan, data: Dict[str, Any]) -> Employee:
        """Create the employee together with its login."""
        onboarding = get_settings().onboarding

        with atomic(self.session):
            user = User(
                email=data["email"],
                password_hash=hash_password(onboarding.default_password),
                role=plan.role,
                must_change_password=plan.must_change_password,
            )
            self.session.add(user)

            employee = Employee(
                first_name=data["first_name"],
                last_name=data["last_name"],
                email=data["email"],
                birth_date=data["birth_date"],
                employee_number=data["employee_number"],
                salary=data["salary"],
                position=data["position"],
                department=plan.department,
                manager_id=plan.manager_id,
            )
            self.session.add(employee)

        logger.info(
            f"Created employee {employee.id} ({employee.employee_number}) with role "
            f"{plan.role.value} under manager {plan.manager_id} by actor {actor.employee_id}"
        )
        return employee

    def update(self, actor: CurrentUser, plan: UpdatePlan) -> Employee:
        """
        Apply field changes.

        A new email is written to the login first, then to the employee,
        inside one transaction so the two never diverge.
        """
        employee = self._load(plan.employee_id)

        with atomic(self.session):
            if plan.email_changed:
                user = employee.user
                if user is not None:
                    user.email = plan.changes["email"]
                    self.session.flush()
            self._apply_employee_changes(employee, plan.changes)

        logger.info(
            f"Updated employee {employee.id} fields {sorted(plan.changes)} "
            f"by actor {actor.employee_id}"
        )
        return employee

    def delete(self, actor: CurrentUser, plan: DeletePlan) -> None:
        """Delete the employee and its login."""
        employee = self._load(plan.employee_id)

        with atomic(self.session):
            detached = self.repository.detach_direct_reports(employee.id)
            employee.profile_picture = None
            self.session.delete(employee)
            self.session.flush()
            self.repository.delete_user_by_email(plan.email)

        logger.info(
            f"Deleted employee {plan.employee_id} and user {plan.email} "
            f"(detached {detached} reports) by actor {actor.employee_id}"
        )

    def reassign(self, actor: CurrentUser, plan: ReassignPlan) -> Employee:
        employee = self._load(plan.employee_id)
        previous = employee.manager_id

        with atomic(self.session):
            employee.manager_id = plan.manager_id
            employee.department = plan.department

        logger.info(
            f"Reassigned employee {employee.id} from manager {previous} to {plan.manager_id} "
            f"by actor {actor.employee_id}"
        )
        return employee

    def detach(self, actor: CurrentUser, plan: DetachPlan) -> Employee:
        employee = self._load(plan.employee_id)
        previous = employee.manager_id

        with atomic(self.session):
            employee.manager_id = plan.manager_id
            employee.department = plan.department
            employee.position = plan.position

        logger.info(
            f"Detached employee {employee.id} from manager {previous} by actor {actor.employee_id}"
        )
        return employee

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _load(self, employee_id: str) -> Employee:
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})
        return employee

    def _apply_employee_changes(self, employee: Employee, changes: Dict[str, Any]) -> None:
        for name, value in changes.items():
            if name in EMPLOYEE_FIELDS:
                setattr(employee, name, value)
        self.session.flush()

"""Allow/deny decisions for structural changes to the organization.

Every check runs against a ``HierarchyIndex`` loaded inside the same
transaction that will apply the change. A denial is raised as a typed
``APIError`` carrying the message shown to the user; an approval returns
a plan describing exactly what the mutator should write.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from staffdir.models.employee import (
    MANAGEMENT_DEPARTMENT,
    UNASSIGNED_DEPARTMENT,
    UNASSIGNED_POSITION,
    Employee,
)
from staffdir.models.user import UserRole
from staffdir.services.hierarchy_index import HierarchyIndex
from staffdir.utils.auth import CurrentUser
from staffdir.utils.errors import (
    APIError,
    ForbiddenError,
    InvariantViolationError,
    NotFoundError,
    duplicate_field_error,
)
from staffdir.utils.positions import (
    default_role_for_position,
    is_chief_executive_title,
    is_manager_class_title,
)

logger = logging.getLogger(__name__)

# Fields whose change can move an employee within the tree
STRUCTURAL_FIELDS = ("manager_id", "department", "position")


@dataclass
class CreatePlan:
    """Approved onboarding of a new employee and login."""

    role: UserRole
    manager_id: Optional[str]
    department: str
    must_change_password: bool = True


@dataclass
class UpdatePlan:
    """Approved field changes for an existing employee."""

    employee_id: str
    changes: Dict[str, Any] = field(default_factory=dict)
    previous_email: Optional[str] = None

    @property
    def email_changed(self) -> bool:
        return "email" in self.changes and self.changes["email"] != self.previous_email


@dataclass
class DeletePlan:
    employee_id: str
    email: str


@dataclass
class ReassignPlan:
    employee_id: str
    manager_id: str
    department: str


@dataclass
class DetachPlan:
    employee_id: str
    manager_id: Optional[str] = None
    department: str = UNASSIGNED_DEPARTMENT
    position: str = UNASSIGNED_POSITION


class MutationAuthorizer:
    """Decides create, update, delete, reassign and detach requests."""

    def __init__(self, index: HierarchyIndex):
        self.index = index

    # =========================================================================
    # Create
    # =========================================================================

    def authorize_create(self, actor: CurrentUser, data: Dict[str, Any]) -> CreatePlan:
        """
        Decide whether ``actor`` may onboard the employee described by ``data``.

        ``data`` holds validated request fields; ``department`` is already
        normalized.
        """
        try:
            return self._authorize_create(actor, data)
        except APIError as e:
            self._log_denial("create", actor, data.get("email"), e)
            raise

    def _authorize_create(self, actor: CurrentUser, data: Dict[str, Any]) -> CreatePlan:
        if actor.is_employee:
            raise ForbiddenError("Employees cannot create new employee records")

        department = data["department"]
        position = data["position"]
        manager_id = data.get("manager_id")
        manager = None

        if manager_id:
            manager = self.index.get(manager_id)
            if manager is None:
                raise NotFoundError("Manager not found", details={"manager_id": manager_id})

            if manager.email.lower() == data["email"].lower():
                raise InvariantViolationError("Employee cannot be their own manager.")

        if actor.is_manager:
            if manager_id != actor.employee_id:
                raise ForbiddenError(
                    "Managers can only assign employees and sub-managers to themselves"
                )
            me = self.index.get(actor.employee_id)
            if me is None or me.department != department:
                raise ForbiddenError("Managers can only add employees to their own department")

        if actor.is_admin and manager is not None:
            if manager.department not in (MANAGEMENT_DEPARTMENT, department):
                raise InvariantViolationError(
                    f"Selected manager is not authorized for the {department} department",
                    details={"manager_department": manager.department, "department": department},
                )

        if manager is not None:
            self._check_department_head(department, manager, position)
        else:
            if not is_chief_executive_title(position):
                raise InvariantViolationError(
                    "Employees must have a manager assigned, except for the CEO."
                )
            if self.index.root() is not None:
                raise InvariantViolationError(
                    "Organization already has a CEO. Assign a manager to the new employee."
                )

        self._check_unique(data.get("email"), data.get("employee_number"))

        return CreatePlan(
            role=default_role_for_position(position, data.get("is_manager")),
            manager_id=manager.id if manager is not None else None,
            department=department,
        )

    # =========================================================================
    # Update
    # =========================================================================

    def authorize_update(
        self, actor: CurrentUser, employee_id: str, changes: Dict[str, Any]
    ) -> UpdatePlan:
        """
        Decide a partial update; ``changes`` holds only the fields sent.

        A department move without an explicit manager is resolved to the
        top-most manager-class employee of the destination department.
        """
        try:
            return self._authorize_update(actor, employee_id, dict(changes))
        except APIError as e:
            self._log_denial("update", actor, employee_id, e)
            raise

    def _authorize_update(
        self, actor: CurrentUser, employee_id: str, changes: Dict[str, Any]
    ) -> UpdatePlan:
        if actor.is_employee:
            raise ForbiddenError("Employees cannot edit employee records")

        target = self.index.get(employee_id)
        if target is None:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})

        if actor.is_manager and employee_id not in self._scope_of(actor):
            raise ForbiddenError(
                "Managers can only edit employees under their management or themselves"
            )

        department = changes.get("department", target.department)
        if department != target.department and "manager_id" not in changes:
            resolved = self._department_manager(department, exclude_id=target.id)
            if resolved is None:
                raise InvariantViolationError(
                    "Cannot change department: no manager exists for the selected department."
                )
            changes["manager_id"] = resolved.id

        if "manager_id" in changes:
            self._check_manager_change(actor, target, changes["manager_id"])

        structural = any(
            name in changes and changes[name] != getattr(target, name)
            for name in STRUCTURAL_FIELDS
        )
        if structural:
            manager = self.index.get(changes.get("manager_id", target.manager_id))
            position = changes.get("position", target.position)
            self._check_department_head(department, manager, position, exclude_id=target.id)

        self._check_unique(
            changes.get("email"),
            changes.get("employee_number"),
            exclude_id=target.id,
        )

        return UpdatePlan(employee_id=target.id, changes=changes, previous_email=target.email)

    def _check_manager_change(
        self, actor: CurrentUser, target: Employee, new_manager_id: Optional[str]
    ) -> None:
        if new_manager_id is None:
            if target.manager_id is not None:
                raise InvariantViolationError(
                    "An employee's manager cannot be cleared by an update. Detach the employee instead."
                )
            return

        if new_manager_id == target.id:
            raise InvariantViolationError("Employee cannot be their own manager")

        if new_manager_id not in self.index:
            raise NotFoundError("Manager not found", details={"manager_id": new_manager_id})

        if self.index.is_descendant(target.id, new_manager_id):
            raise InvariantViolationError(
                "Cannot assign a subordinate as manager (would create a cycle)"
            )

        if new_manager_id != target.manager_id:
            self._check_stays_rooted(target, new_manager_id)

        if actor.is_manager and new_manager_id != target.manager_id:
            allowed = {actor.employee_id, self.index.parent(actor.employee_id)}
            if new_manager_id not in allowed:
                raise ForbiddenError(
                    "Managers can only assign employees to themselves or their direct superiors"
                )

    # =========================================================================
    # Delete
    # =========================================================================

    def authorize_delete(self, actor: CurrentUser, employee_id: str) -> DeletePlan:
        try:
            return self._authorize_delete(actor, employee_id)
        except APIError as e:
            self._log_denial("delete", actor, employee_id, e)
            raise

    def _authorize_delete(self, actor: CurrentUser, employee_id: str) -> DeletePlan:
        if actor.is_employee:
            raise ForbiddenError("Employees cannot delete employee records")

        target = self.index.get(employee_id)
        if target is None:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})

        if actor.is_manager and not self.index.is_descendant(actor.employee_id, employee_id):
            raise ForbiddenError("Managers can only delete employees under their management")

        if self.index.has_children(employee_id):
            raise InvariantViolationError(
                "Cannot delete manager with employees assigned. Please reassign or remove "
                "all subordinates before deleting this manager.",
                details={"subordinate_count": len(self.index.children(employee_id))},
            )

        roots = self.index.roots()
        if len(roots) == 1 and roots[0].id == employee_id:
            raise InvariantViolationError(
                "Cannot delete the only CEO. The organization must always have a CEO."
            )

        return DeletePlan(employee_id=target.id, email=target.email)

    # =========================================================================
    # Reassign / Detach
    # =========================================================================

    def authorize_reassign(
        self, actor: CurrentUser, employee_id: str, manager_id: str
    ) -> ReassignPlan:
        """Drag-and-drop reassignment of ``employee_id`` under ``manager_id``."""
        try:
            return self._authorize_reassign(actor, employee_id, manager_id)
        except APIError as e:
            self._log_denial("reassign", actor, employee_id, e)
            raise

    def _authorize_reassign(
        self, actor: CurrentUser, employee_id: str, manager_id: str
    ) -> ReassignPlan:
        if actor.is_employee:
            raise ForbiddenError("Employees cannot change manager assignments")

        if employee_id == manager_id:
            raise InvariantViolationError("Employee cannot be their own manager")

        employee = self.index.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})

        manager = self.index.get(manager_id)
        if manager is None:
            raise NotFoundError("Manager not found", details={"manager_id": manager_id})

        # Authoritative cycle check; candidate filtering at read time is advisory
        if manager_id in self.index.descendants(employee_id):
            raise InvariantViolationError(
                "Cannot assign a subordinate as manager (would create a cycle)"
            )

        self._check_stays_rooted(employee, manager_id)

        if actor.is_manager and employee_id not in self._scope_of(actor):
            raise ForbiddenError("Managers can only reassign their own subordinates")

        # The management department may manage anyone, so it is not inherited,
        # except by a detached employee returning to the tree
        department = employee.department
        if manager.department != MANAGEMENT_DEPARTMENT or department == UNASSIGNED_DEPARTMENT:
            department = manager.department

        if is_manager_class_title(employee.position):
            self._check_department_head(
                department, manager, employee.position, exclude_id=employee.id
            )

        return ReassignPlan(employee_id=employee.id, manager_id=manager.id, department=department)

    def authorize_detach(self, actor: CurrentUser, employee_id: str) -> DetachPlan:
        try:
            return self._authorize_detach(actor, employee_id)
        except APIError as e:
            self._log_denial("detach", actor, employee_id, e)
            raise

    def _authorize_detach(self, actor: CurrentUser, employee_id: str) -> DetachPlan:
        if actor.is_employee:
            raise ForbiddenError("Employees cannot detach employees")

        employee = self.index.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found", details={"employee_id": employee_id})

        if actor.is_manager and employee_id not in self._scope_of(actor):
            raise ForbiddenError("Managers can only detach their own subordinates")

        if self._is_root(employee):
            raise InvariantViolationError("Cannot detach the CEO")

        return DetachPlan(employee_id=employee.id)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _scope_of(self, actor: CurrentUser) -> Set[str]:
        """The actor plus everyone below them."""
        if actor.employee_id not in self.index:
            return set()
        return self.index.subtree(actor.employee_id)

    def _is_root(self, employee: Employee) -> bool:
        return employee.manager_id is None and employee.department != UNASSIGNED_DEPARTMENT

    def _check_stays_rooted(self, employee: Employee, new_manager_id: str) -> None:
        """
        The organization keeps exactly one root.

        The root cannot be given a manager, and nobody may be placed under a
        manager whose chain does not end at the root.
        """
        if self._is_root(employee):
            raise InvariantViolationError(
                "Cannot assign a manager to the CEO. The organization must always have a CEO."
            )

        chain = [new_manager_id, *self.index.ancestors(new_manager_id)]
        top = self.index.get(chain[-1])
        if top is None or not self._is_root(top):
            raise InvariantViolationError(
                "Selected manager is not part of the organization hierarchy",
                details={"manager_id": new_manager_id},
            )

    def _manager_class_in(self, department: str, exclude_id: Optional[str] = None) -> List[Employee]:
        return [
            employee
            for employee in self.index.in_department(department)
            if employee.id != exclude_id and is_manager_class_title(employee.position)
        ]

    def _department_manager(
        self, department: str, exclude_id: Optional[str] = None
    ) -> Optional[Employee]:
        """Highest-ranking manager-class employee of a department."""
        occupants = self._manager_class_in(department, exclude_id)
        if not occupants:
            return None
        return min(occupants, key=lambda e: (len(self.index.ancestors(e.id)), e.last_name, e.id))

    def _check_department_head(
        self,
        department: str,
        manager: Optional[Employee],
        position: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        """
        One head per department.

        Once a department has manager-class occupants, new manager-class
        placements in it must report to one of them.
        """
        manager_is_head = manager is not None and is_manager_class_title(manager.position)
        if not (manager_is_head or is_manager_class_title(position)):
            return

        occupants = self._manager_class_in(department, exclude_id)
        if not occupants:
            return
        if manager is not None and manager.id in {e.id for e in occupants}:
            return

        raise duplicate_field_error(
            "department", f"The {department} department already has a manager"
        )

    def _check_unique(
        self,
        email: Optional[str],
        employee_number: Optional[str],
        exclude_id: Optional[str] = None,
    ) -> None:
        for employee in self.index:
            if employee.id == exclude_id:
                continue
            if email and employee.email.lower() == email.lower():
                raise duplicate_field_error("email", "Email already exists")
            if employee_number and employee.employee_number == employee_number:
                raise duplicate_field_error("employee_number", "Employee number already exists")

    @staticmethod
    def _log_denial(operation: str, actor: CurrentUser, target: Any, error: APIError) -> None:
        logger.info(
            f"Denied {operation} of {target} for actor {actor.employee_id} "
            f"({actor.role.value}): {error.message}"
        )

"""Which employees an actor may see, and which of their fields."""

import logging
from typing import Any, Dict, List, Optional, Set

from staffdir.models.employee import MANAGEMENT_DEPARTMENT, UNASSIGNED_DEPARTMENT, Employee
from staffdir.services.hierarchy_index import HierarchyIndex
from staffdir.utils.auth import CurrentUser
from staffdir.utils.errors import NotFoundError, ValidationError
from staffdir.utils.positions import is_manager_class_title

logger = logging.getLogger(__name__)

# Keys removed from a record the actor is not entitled to see in full
SENSITIVE_FIELDS = ("salary", "birth_date")


class VisibilityResolver:
    """
    Role-scoped read rules over a ``HierarchyIndex`` snapshot.

    Membership:
        ADMIN sees everyone. MANAGER sees themselves and everyone below them.
        EMPLOYEE sees themselves, their siblings and their management chain.

    Redaction:
        ADMIN gets full records. MANAGER gets full records for themselves and
        their direct reports only. EMPLOYEE gets a full record for themselves
        only. Everyone else visible has ``salary`` and ``birth_date`` removed.
    """

    def __init__(self, index: HierarchyIndex):
        self.index = index

    # =========================================================================
    # Membership
    # =========================================================================

    def visible_ids(self, actor: CurrentUser) -> Optional[Set[str]]:
        """Ids the actor may list; None means unrestricted."""
        if actor.is_admin:
            return None

        if actor.employee_id not in self.index:
            logger.info(f"Actor {actor.id} has no employee record; nothing is visible")
            return set()

        me = actor.employee_id
        if actor.is_manager:
            return self.index.subtree(me)

        return {me, *self.index.siblings(me), *self.index.ancestors(me)}

    def can_view(self, actor: CurrentUser, employee_id: str) -> bool:
        visible = self.visible_ids(actor)
        return visible is None or employee_id in visible

    # =========================================================================
    # Redaction
    # =========================================================================

    def can_view_sensitive(self, actor: CurrentUser, employee: Employee) -> bool:
        if actor.is_admin:
            return True
        if actor.employee_id is None:
            return False
        if employee.id == actor.employee_id:
            return True
        if actor.is_manager:
            return employee.manager_id == actor.employee_id
        return False

    def redact(self, actor: CurrentUser, employee: Employee, record: Dict[str, Any]) -> Dict[str, Any]:
        """Drop sensitive keys from ``record`` unless the actor may see them."""
        if self.can_view_sensitive(actor, employee):
            return record
        return {key: value for key, value in record.items() if key not in SENSITIVE_FIELDS}

    def check_sort_field(self, actor: CurrentUser, sort_field: str) -> None:
        """
        Ordering by a hidden field would leak it.

        Refused whenever any record in the actor's visible set is redacted.
        """
        if sort_field not in SENSITIVE_FIELDS:
            return

        visible = self.visible_ids(actor)
        if visible is None:
            return
        if any(not self.can_view_sensitive(actor, self.index.get(i)) for i in visible):
            raise ValidationError(
                f"Sorting by {sort_field} is not permitted for your role",
                details={"sort_by": sort_field},
            )

    # =========================================================================
    # Manager candidates
    # =========================================================================

    def manager_candidates(self, actor: CurrentUser) -> Set[str]:
        """Employees offered as managers when assigning someone."""
        root = self.index.root()

        if actor.is_admin:
            candidates = {employee.id for employee in self.index.roots()}
            candidates.update(
                employee.id
                for employee in self.index
                if self.index.has_children(employee.id)
                and employee.department != UNASSIGNED_DEPARTMENT
            )
            return candidates

        if actor.is_manager:
            return {actor.employee_id} if actor.employee_id in self.index else set()

        # Employees get read-only context: the root and the department heads below it
        if root is None:
            return set()
        heads = {
            child_id
            for child_id in self.index.children(root.id)
            if self.index.has_children(child_id)
        }
        return {root.id, *heads}

    def exclude_subtree(self, target_id: str, pool: Optional[Set[str]]) -> Set[str]:
        """
        Remove ``target_id`` and everything below it from ``pool``.

        None means the whole organization. Used to offer only managers that
        cannot create a cycle.
        """
        if target_id not in self.index:
            raise NotFoundError("Employee not found", details={"employee_id": target_id})
        base = self.index.ids() if pool is None else pool
        return base - self.index.subtree(target_id)

    def managers_for_department(self, actor: CurrentUser, department: str) -> List[Employee]:
        """Valid managers for an employee placed in ``department``."""
        if actor.is_employee:
            return []

        if actor.is_manager:
            me = self.index.get(actor.employee_id)
            if me is not None and me.department == department:
                return [me]
            return []

        root = self.index.root()
        managers: List[Employee] = [root] if root is not None else []
        if department == MANAGEMENT_DEPARTMENT:
            return managers

        for employee in self.index.in_department(department):
            if root is not None and employee.id == root.id:
                continue
            if is_manager_class_title(employee.position):
                managers.append(employee)
        return managers

"""In-memory index of the reporting tree.

Built from a single bulk fetch of all employees. Every traversal is
iterative and bounded by the number of indexed employees, so corrupt data
(a manager cycle) surfaces as a ``DataIntegrityError`` instead of a hang.
"""

import logging
from collections import deque
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set

from staffdir.models.employee import UNASSIGNED_DEPARTMENT, Employee
from staffdir.utils.errors import DataIntegrityError

logger = logging.getLogger(__name__)


class HierarchyIndex:
    """Parent/children adjacency over a snapshot of employees."""

    def __init__(self, employees: Iterable[Employee]):
        self._nodes: Dict[str, Employee] = {}
        self._children: Dict[str, List[str]] = {}

        for employee in employees:
            self._nodes[employee.id] = employee
            self._children.setdefault(employee.id, [])

        for employee in self._nodes.values():
            if employee.manager_id is not None:
                self._children.setdefault(employee.manager_id, []).append(employee.id)

    # =========================================================================
    # Lookup
    # =========================================================================

    def __contains__(self, employee_id: object) -> bool:
        return employee_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Employee]:
        return iter(self._nodes.values())

    def get(self, employee_id: Optional[str]) -> Optional[Employee]:
        if employee_id is None:
            return None
        return self._nodes.get(employee_id)

    def ids(self) -> Set[str]:
        return set(self._nodes)

    def parent(self, employee_id: str) -> Optional[str]:
        """Manager id of an employee, or None for roots and unknown ids."""
        employee = self._nodes.get(employee_id)
        if employee is None or employee.manager_id is None:
            return None
        if employee.manager_id not in self._nodes:
            logger.warning(
                f"Employee {employee_id} references missing manager {employee.manager_id}"
            )
            return None
        return employee.manager_id

    def children(self, employee_id: str) -> List[str]:
        """Direct reports of an employee."""
        return list(self._children.get(employee_id, []))

    def has_children(self, employee_id: str) -> bool:
        return bool(self._children.get(employee_id))

    def siblings(self, employee_id: str) -> List[str]:
        """Employees sharing the same manager, excluding the employee itself."""
        parent_id = self.parent(employee_id)
        if parent_id is None:
            return []
        return [child for child in self._children.get(parent_id, []) if child != employee_id]

    def roots(self) -> List[Employee]:
        """Employees without a manager, excluding detached (unassigned) ones."""
        return [
            employee
            for employee in self._nodes.values()
            if employee.manager_id is None and employee.department != UNASSIGNED_DEPARTMENT
        ]

    def root(self) -> Optional[Employee]:
        """The organization root, if there is one."""
        roots = self.roots()
        if len(roots) > 1:
            logger.warning(f"Organization has {len(roots)} root employees; expected one")
        return roots[0] if roots else None

    def detached(self) -> List[Employee]:
        """Employees parked outside the tree."""
        return [
            employee
            for employee in self._nodes.values()
            if employee.manager_id is None and employee.department == UNASSIGNED_DEPARTMENT
        ]

    def in_department(self, department: str) -> List[Employee]:
        return [e for e in self._nodes.values() if e.department == department]

    # =========================================================================
    # Traversal
    # =========================================================================

    def descendants(self, employee_id: str) -> List[str]:
        """
        All employees below ``employee_id``, breadth-first.

        Each node has at most one parent, so meeting a node twice means the
        walk went round a cycle.
        """
        result: List[str] = []
        seen: Set[str] = {employee_id}
        queue = deque(self._children.get(employee_id, []))

        while queue:
            current = queue.popleft()
            if current in seen:
                self._integrity_fault(
                    f"Manager cycle detected below employee {employee_id} at {current}",
                    employee_id,
                )
            seen.add(current)
            result.append(current)
            if len(result) > len(self._nodes):
                self._integrity_fault(
                    f"Subtree walk from employee {employee_id} exceeded organization size",
                    employee_id,
                )
            queue.extend(self._children.get(current, []))

        return result

    def subtree(self, employee_id: str) -> Set[str]:
        """The employee plus all of its descendants."""
        return {employee_id, *self.descendants(employee_id)}

    def ancestors(self, employee_id: str) -> List[str]:
        """Management chain from the immediate manager up to the root."""
        chain: List[str] = []
        seen: Set[str] = {employee_id}
        current = self.parent(employee_id)

        while current is not None:
            if current in seen or len(chain) >= len(self._nodes):
                self._integrity_fault(
                    f"Manager cycle detected above employee {employee_id} at {current}",
                    employee_id,
                )
            seen.add(current)
            chain.append(current)
            current = self.parent(current)

        return chain

    def is_descendant(self, ancestor_id: str, employee_id: str) -> bool:
        """True when ``ancestor_id`` sits somewhere above ``employee_id``."""
        return ancestor_id in self.ancestors(employee_id)

    def assert_acyclic(self) -> None:
        """Verify that no employee appears in its own management chain."""
        cleared: Set[str] = set()
        for employee_id in self._nodes:
            if employee_id in cleared:
                continue
            path = [employee_id]
            path_set = {employee_id}
            current = self.parent(employee_id)
            while current is not None and current not in cleared:
                if current in path_set:
                    self._integrity_fault(
                        f"Manager cycle detected through employee {current}", current
                    )
                path.append(current)
                path_set.add(current)
                current = self.parent(current)
            cleared.update(path)

    # =========================================================================
    # Tree construction
    # =========================================================================

    def build_tree(
        self,
        root_id: str,
        render: Callable[[Employee], Dict[str, Any]],
        sort_key: Optional[Callable[[Employee], Any]] = None,
    ) -> Dict[str, Any]:
        """
        Nest the subtree under ``root_id`` as dictionaries.

        ``render`` produces the node payload; a ``children`` list is added to
        every node. Built from the index only, without per-node queries.
        """
        order = [root_id, *self.descendants(root_id)]
        nodes: Dict[str, Dict[str, Any]] = {}
        for employee_id in order:
            node = render(self._nodes[employee_id])
            node["children"] = []
            nodes[employee_id] = node

        for employee_id in order:
            child_ids = self._children.get(employee_id, [])
            if sort_key is not None:
                child_ids = sorted(child_ids, key=lambda cid: sort_key(self._nodes[cid]))
            nodes[employee_id]["children"] = [nodes[cid] for cid in child_ids]

        return nodes[root_id]

    @staticmethod
    def _integrity_fault(message: str, employee_id: str) -> None:
        logger.error(message)
        raise DataIntegrityError(message, details={"employee_id": employee_id})

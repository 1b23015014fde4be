"""Classification helpers for free-text job titles and department tags.

Whether an employee is "manager-class" is inferred from the wording of the
position title. This is a heuristic over free text: a title such as
"Managing Editor" will not match, while "Office Manager" will. Every call
site goes through these functions so the rule lives in one place.
"""

import re
from typing import Optional

from staffdir.models.user import UserRole

MANAGER_TITLE_MARKERS = ("manager", "head of", "director", "chief executive")

_CEO_WORD = re.compile(r"\bceo\b")
_WHITESPACE = re.compile(r"\s+")


def is_chief_executive_title(position: Optional[str]) -> bool:
    """True when the title names the chief executive."""
    if not position:
        return False
    title = position.lower()
    return "chief executive" in title or bool(_CEO_WORD.search(title))


def is_manager_class_title(position: Optional[str]) -> bool:
    """True when the title marks a supervisory role."""
    if not position:
        return False
    title = position.lower()
    if any(marker in title for marker in MANAGER_TITLE_MARKERS):
        return True
    return bool(_CEO_WORD.search(title))


def default_role_for_position(position: Optional[str], is_manager: Optional[bool] = None) -> UserRole:
    """
    Role given to a new hire's login.

    Chief executive -> ADMIN, manager-class title (or an explicit
    ``is_manager`` hint) -> MANAGER, anything else -> EMPLOYEE.
    """
    if is_chief_executive_title(position):
        return UserRole.ADMIN
    if is_manager_class_title(position) or is_manager:
        return UserRole.MANAGER
    return UserRole.EMPLOYEE


def normalize_department(value: str) -> str:
    """'  Human Resources ' -> 'human-resources'."""
    return _WHITESPACE.sub("-", value.strip().lower())


def department_display_name(value: str) -> str:
    """'human-resources' -> 'Human Resources'."""
    return " ".join(part.capitalize() for part in value.split("-") if part)

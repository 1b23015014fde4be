"""Actor identity, role permissions and password hashing."""

from dataclasses import dataclass
from typing import Annotated, Dict, Optional

import bcrypt
from fastapi import Header

from staffdir.config.settings import get_settings
from staffdir.models.user import UserRole
from staffdir.utils.errors import ForbiddenError, UnauthorizedError


@dataclass(frozen=True)
class RolePermissions:
    """Coarse capabilities granted to a role."""

    can_create_employees: bool = False
    can_edit_employees: bool = False
    can_delete_employees: bool = False
    can_assign_managers: bool = False
    can_view_salaries: bool = False
    can_export_data: bool = False
    can_view_reports: bool = False


ROLE_PERMISSIONS: Dict[UserRole, RolePermissions] = {
    UserRole.ADMIN: RolePermissions(
        can_create_employees=True,
        can_edit_employees=True,
        can_delete_employees=True,
        can_assign_managers=True,
        can_view_salaries=True,
        can_export_data=True,
        can_view_reports=True,
    ),
    # Scoped to their own subtree; organization-wide manager assignment is admin-only
    UserRole.MANAGER: RolePermissions(
        can_create_employees=True,
        can_edit_employees=True,
        can_delete_employees=True,
        can_assign_managers=False,
        can_view_salaries=True,
        can_export_data=True,
        can_view_reports=True,
    ),
    UserRole.EMPLOYEE: RolePermissions(),
}


@dataclass(frozen=True)
class CurrentUser:
    """The actor on whose behalf a request is evaluated."""

    id: Optional[str]
    employee_id: Optional[str]
    role: UserRole

    @property
    def permissions(self) -> RolePermissions:
        return ROLE_PERMISSIONS[self.role]

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER

    @property
    def is_employee(self) -> bool:
        return self.role == UserRole.EMPLOYEE

    def require(self, permission: str, message: str) -> None:
        """Raise ForbiddenError unless the role grants ``permission``."""
        if not getattr(self.permissions, permission):
            raise ForbiddenError(message, details={"role": self.role.value})


def parse_role(value: Optional[str]) -> UserRole:
    """Parse a role name case-insensitively."""
    if not value:
        raise UnauthorizedError("Authentication required")
    try:
        return UserRole(value.strip().upper())
    except ValueError:
        raise UnauthorizedError(f"Unknown role '{value}'")


def get_current_user(
    x_user_id: Annotated[Optional[str], Header(alias="X-User-ID")] = None,
    x_employee_id: Annotated[Optional[str], Header(alias="X-Employee-ID")] = None,
    x_user_role: Annotated[Optional[str], Header(alias="X-User-Role")] = None,
) -> CurrentUser:
    """
    Get the current actor from request headers.

    Token verification happens upstream; the authenticating proxy forwards
    the verified identity in these headers.
    """
    role = parse_role(x_user_role)
    return CurrentUser(
        id=x_user_id or None,
        employee_id=x_employee_id or None,
        role=role,
    )


def hash_password(password: str) -> str:
    """Hash a password with bcrypt at the configured work factor."""
    rounds = get_settings().onboarding.bcrypt_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

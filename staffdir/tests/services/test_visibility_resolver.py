"""Tests for role-scoped visibility and redaction."""

import pytest

from staffdir.models.user import UserRole
from staffdir.services.visibility_resolver import VisibilityResolver
from staffdir.utils.auth import CurrentUser
from staffdir.utils.errors import NotFoundError, ValidationError


@pytest.fixture
def resolver(index):
    return VisibilityResolver(index)


def ids(org, *keys):
    return {org[key].id for key in keys}


class TestMembership:
    """Tests for which employees an actor may list."""

    def test_admin_is_unrestricted(self, resolver, admin):
        """Test ADMIN visibility is unbounded."""
        assert resolver.visible_ids(admin) is None

    def test_manager_sees_subtree(self, resolver, org, tech_head):
        """Test MANAGER sees themselves and everyone below them."""
        assert resolver.visible_ids(tech_head) == ids(
            org, "head_tech", "eng_manager", "engineer_1", "engineer_2", "qa"
        )

    def test_employee_sees_peers_and_chain(self, resolver, org, engineer):
        """Test EMPLOYEE sees self, siblings and the management chain."""
        assert resolver.visible_ids(engineer) == ids(
            org, "engineer_1", "engineer_2", "eng_manager", "head_tech", "ceo"
        )

    def test_employee_cannot_see_other_branches(self, resolver, org, engineer):
        """Test cousins and other departments stay hidden."""
        assert not resolver.can_view(engineer, org["qa"].id)
        assert not resolver.can_view(engineer, org["sales_rep"].id)
        assert resolver.can_view(engineer, org["ceo"].id)

    def test_unknown_actor_sees_nothing(self, resolver):
        """Test an actor without an employee record gets an empty set."""
        stranger = CurrentUser(id="u-x", employee_id="missing", role=UserRole.MANAGER)
        assert resolver.visible_ids(stranger) == set()


class TestRedaction:
    """Tests for sensitive field removal."""

    def test_admin_sees_everything(self, resolver, org, admin):
        """Test ADMIN always gets the full record."""
        record = {"id": "x", "salary": 1.0, "birth_date": "2000-01-01"}
        assert resolver.redact(admin, org["sales_rep"], record) == record

    def test_manager_sees_direct_reports_only(self, resolver, org, tech_head):
        """Test MANAGER gets full records for direct reports but not deeper."""
        assert resolver.can_view_sensitive(tech_head, org["head_tech"])
        assert resolver.can_view_sensitive(tech_head, org["eng_manager"])
        assert resolver.can_view_sensitive(tech_head, org["qa"])
        assert not resolver.can_view_sensitive(tech_head, org["engineer_1"])

    def test_employee_sees_own_record_only(self, resolver, org, engineer):
        """Test EMPLOYEE gets redacted peers and managers."""
        record = {"id": "x", "first_name": "Tom", "salary": 1.0, "birth_date": "2000-01-01"}

        redacted = resolver.redact(engineer, org["engineer_2"], record)

        assert redacted == {"id": "x", "first_name": "Tom"}
        assert resolver.redact(engineer, org["engineer_1"], record) == record

    def test_sort_by_hidden_field_rejected_for_employee(self, resolver, admin, engineer):
        """Test ordering by salary is refused where it would leak salaries."""
        with pytest.raises(ValidationError):
            resolver.check_sort_field(engineer, "salary")
        resolver.check_sort_field(engineer, "last_name")
        resolver.check_sort_field(admin, "salary")

    def test_sort_by_hidden_field_rejected_for_manager_with_grandchildren(
        self, resolver, tech_head, eng_manager
    ):
        """Test a manager may sort by salary only when every visible record is full."""
        with pytest.raises(ValidationError):
            resolver.check_sort_field(tech_head, "salary")
        with pytest.raises(ValidationError):
            resolver.check_sort_field(tech_head, "birth_date")
        resolver.check_sort_field(tech_head, "last_name")
        resolver.check_sort_field(eng_manager, "salary")


class TestManagerCandidates:
    """Tests for manager picker options."""

    def test_admin_candidates(self, resolver, org, admin):
        """Test ADMIN is offered the root and everyone with reports."""
        assert resolver.manager_candidates(admin) == ids(
            org, "ceo", "head_tech", "head_sales", "eng_manager"
        )

    def test_manager_candidates(self, resolver, org, tech_head):
        """Test MANAGER may only pick themselves."""
        assert resolver.manager_candidates(tech_head) == ids(org, "head_tech")

    def test_employee_candidates(self, resolver, org, engineer):
        """Test EMPLOYEE sees the root and department heads as context."""
        assert resolver.manager_candidates(engineer) == ids(org, "ceo", "head_tech", "head_sales")

    def test_exclude_subtree(self, resolver, org):
        """Test the target and everyone below it are removed."""
        remaining = resolver.exclude_subtree(org["head_tech"].id, None)
        assert remaining == ids(org, "ceo", "head_sales", "sales_rep")

    def test_exclude_subtree_from_pool(self, resolver, org):
        """Test exclusion narrows an existing candidate pool."""
        pool = ids(org, "ceo", "head_tech", "eng_manager")
        assert resolver.exclude_subtree(org["eng_manager"].id, pool) == ids(org, "ceo", "head_tech")

    def test_exclude_subtree_unknown_target(self, resolver):
        """Test an unknown target raises not found."""
        with pytest.raises(NotFoundError):
            resolver.exclude_subtree("missing", None)


class TestManagersForDepartment:
    """Tests for department-scoped manager options."""

    def test_admin_gets_root_and_department_heads(self, resolver, org, admin):
        """Test ADMIN gets the root plus manager-class members."""
        managers = resolver.managers_for_department(admin, "technology")
        assert [m.id for m in managers][0] == org["ceo"].id
        assert {m.id for m in managers} == ids(org, "ceo", "head_tech", "eng_manager")

    def test_admin_management_department(self, resolver, org, admin):
        """Test the management department only offers the root."""
        assert [m.id for m in resolver.managers_for_department(admin, "management")] == [org["ceo"].id]

    def test_manager_own_department(self, resolver, org, tech_head):
        """Test MANAGER is offered only for their own department."""
        assert [m.id for m in resolver.managers_for_department(tech_head, "technology")] == [
            org["head_tech"].id
        ]
        assert resolver.managers_for_department(tech_head, "sales") == []

    def test_employee_gets_nothing(self, resolver, engineer):
        """Test EMPLOYEE has no options."""
        assert resolver.managers_for_department(engineer, "technology") == []

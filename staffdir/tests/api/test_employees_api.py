"""Tests for employee directory API endpoints."""

import pytest
from fastapi.testclient import TestClient

from staffdir.database.database import get_db
from staffdir.main import app


client = TestClient(app)


@pytest.fixture(autouse=True)
def override_db(session):
    """Serve every request from the seeded test session."""

    def _get_test_db():
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_test_db
    yield
    app.dependency_overrides.pop(get_db, None)


def headers_for(employee, role):
    return {
        "X-User-ID": f"user-{employee.employee_number}",
        "X-Employee-ID": employee.id,
        "X-User-Role": role,
    }


def new_hire_payload(manager_id, **overrides):
    payload = {
        "first_name": "Nina",
        "last_name": "Park",
        "email": "nina.park@example.com",
        "birth_date": "1994-02-11",
        "employee_number": "EMP-100",
        "salary": 90000,
        "position": "Software Engineer",
        "department": "technology",
        "manager_id": manager_id,
    }
    payload.update(overrides)
    return payload


# =============================================================================
# Authentication
# =============================================================================

class TestAuthentication:
    """Test cases for actor headers."""

    def test_missing_role_is_unauthorized(self, org):
        """Test requests without a role are rejected."""
        response = client.get("/api/employees")

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required", "code": "unauthorized"}

    def test_unknown_role_is_unauthorized(self, org):
        """Test unknown roles are rejected."""
        response = client.get("/api/employees", headers={"X-User-Role": "superuser"})
        assert response.status_code == 401

    def test_role_is_case_insensitive(self, org):
        """Test lowercase role names are accepted."""
        response = client.get("/api/employees", headers=headers_for(org["ceo"], "admin"))
        assert response.status_code == 200


# =============================================================================
# Read Endpoints
# =============================================================================

class TestReadEndpoints:
    """Test cases for listing and lookups."""

    def test_list_as_employee(self, org):
        """Test the employee listing scope and redaction."""
        response = client.get(
            "/api/employees",
            params={"sort_by": "last_name", "sort_order": "asc"},
            headers=headers_for(org["engineer_1"], "EMPLOYEE"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total_count"] == 5
        records = {e["id"]: e for e in data["employees"]}
        assert "salary" in records[org["engineer_1"].id]
        assert "salary" not in records[org["engineer_2"].id]
        assert org["sales_rep"].id not in records

    def test_limit_out_of_range(self, org):
        """Test page size above the maximum is a validation error."""
        response = client.get(
            "/api/employees", params={"limit": 500}, headers=headers_for(org["ceo"], "ADMIN")
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_sort_by_salary_forbidden_for_employee(self, org):
        """Test employees cannot order by salary."""
        response = client.get(
            "/api/employees",
            params={"sort_by": "salary"},
            headers=headers_for(org["engineer_1"], "EMPLOYEE"),
        )
        assert response.status_code == 400

    def test_get_me(self, org):
        """Test the caller's own record."""
        response = client.get("/api/employees/me", headers=headers_for(org["qa"], "EMPLOYEE"))

        assert response.status_code == 200
        assert response.json()["employee"]["email"] == org["qa"].email

    def test_get_employee_forbidden(self, org):
        """Test records outside the visible set are refused."""
        response = client.get(
            f"/api/employees/{org['sales_rep'].id}",
            headers=headers_for(org["engineer_1"], "EMPLOYEE"),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "You do not have permission to view this employee"

    def test_get_employee_not_found(self, org):
        """Test unknown ids return 404."""
        response = client.get("/api/employees/missing", headers=headers_for(org["ceo"], "ADMIN"))

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_departments(self, org):
        """Test the department list."""
        response = client.get(
            "/api/employees/departments", headers=headers_for(org["qa"], "EMPLOYEE")
        )

        assert response.status_code == 200
        assert {"value": "sales", "label": "Sales"} in response.json()["departments"]

    def test_managers_by_department(self, org):
        """Test manager options for a department."""
        response = client.get(
            "/api/employees/managers-by-department/sales",
            headers=headers_for(org["ceo"], "ADMIN"),
        )

        assert response.status_code == 200
        ids = [m["id"] for m in response.json()["managers"]]
        assert ids == [org["ceo"].id, org["head_sales"].id]

    def test_hierarchy_tree(self, org):
        """Test admins and managers get the full tree while employees are denied."""
        response = client.get(
            "/api/employees/hierarchy/tree", headers=headers_for(org["ceo"], "ADMIN")
        )
        assert response.status_code == 200
        assert response.json()["hierarchy"]["id"] == org["ceo"].id

        response = client.get(
            "/api/employees/hierarchy/tree", headers=headers_for(org["eng_manager"], "MANAGER")
        )
        assert response.status_code == 200
        assert response.json()["hierarchy"]["id"] == org["ceo"].id
        assert response.json()["hierarchy"]["salary"] == 250000.0

        response = client.get(
            "/api/employees/hierarchy/tree", headers=headers_for(org["qa"], "EMPLOYEE")
        )
        assert response.status_code == 403

    def test_dashboard(self, org):
        """Test dashboard statistics."""
        response = client.get(
            "/api/employees/stats/dashboard", headers=headers_for(org["qa"], "EMPLOYEE")
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_employees"] == 8
        assert data["average_salary"] is None
        assert data["management_ratio"]["ratio"] == 0.375


# =============================================================================
# Write Endpoints
# =============================================================================

class TestWriteEndpoints:
    """Test cases for structural changes."""

    def test_create_employee(self, org):
        """Test onboarding returns 201 with the new record."""
        response = client.post(
            "/api/employees",
            json=new_hire_payload(org["eng_manager"].id),
            headers=headers_for(org["ceo"], "ADMIN"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Employee created successfully"
        assert data["employee"]["manager_id"] == org["eng_manager"].id

    def test_create_invalid_employee_number(self, org):
        """Test request validation errors are 400 with field details."""
        response = client.post(
            "/api/employees",
            json=new_hire_payload(org["eng_manager"].id, employee_number="12345"),
            headers=headers_for(org["ceo"], "ADMIN"),
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Employee number must be in format EMP-XXX"
        assert data["field_errors"][0]["field"] == "employee_number"

    def test_create_as_employee_forbidden(self, org):
        """Test employees cannot create records."""
        response = client.post(
            "/api/employees",
            json=new_hire_payload(org["eng_manager"].id),
            headers=headers_for(org["engineer_1"], "EMPLOYEE"),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Employees cannot create new employee records"

    def test_create_duplicate_email(self, org):
        """Test duplicate emails are a conflict."""
        response = client.post(
            "/api/employees",
            json=new_hire_payload(org["eng_manager"].id, email=org["engineer_2"].email),
            headers=headers_for(org["ceo"], "ADMIN"),
        )

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "duplicate"
        assert data["field_errors"][0]["field"] == "email"

    def test_create_without_manager(self, org):
        """Test a non-CEO without a manager violates the tree invariant."""
        response = client.post(
            "/api/employees",
            json=new_hire_payload(None),
            headers=headers_for(org["ceo"], "ADMIN"),
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invariant_violation"

    def test_update_email(self, org, session):
        """Test an email change is applied to the employee and the login."""
        response = client.put(
            f"/api/employees/{org['qa'].id}",
            json={"email": "aisha.b@example.com"},
            headers=headers_for(org["head_tech"], "MANAGER"),
        )

        assert response.status_code == 200
        assert response.json()["employee"]["email"] == "aisha.b@example.com"

    def test_update_rejects_null(self, org):
        """Test explicit nulls on required fields are refused."""
        response = client.put(
            f"/api/employees/{org['qa'].id}",
            json={"first_name": None},
            headers=headers_for(org["ceo"], "ADMIN"),
        )
        assert response.status_code == 400

    def test_reassign_cycle(self, org):
        """Test dropping a manager under their own report is refused."""
        response = client.put(
            f"/api/employees/{org['head_tech'].id}/manager",
            json={"manager_id": org["engineer_1"].id},
            headers=headers_for(org["ceo"], "ADMIN"),
        )

        assert response.status_code == 422
        assert "cycle" in response.json()["error"]

    def test_reassign(self, org):
        """Test reassignment moves the employee into the manager's department."""
        response = client.put(
            f"/api/employees/{org['qa'].id}/manager",
            json={"manager_id": org["head_sales"].id},
            headers=headers_for(org["ceo"], "ADMIN"),
        )

        assert response.status_code == 200
        employee = response.json()["employee"]
        assert employee["manager_id"] == org["head_sales"].id
        assert employee["department"] == "sales"

    def test_detach(self, org):
        """Test detach parks the employee."""
        response = client.patch(
            f"/api/employees/{org['engineer_2'].id}/detach",
            headers=headers_for(org["eng_manager"], "MANAGER"),
        )

        assert response.status_code == 200
        employee = response.json()["employee"]
        assert employee["manager_id"] is None
        assert employee["department"] == "unassigned"

    def test_delete_with_reports(self, org):
        """Test a manager with reports cannot be deleted."""
        response = client.delete(
            f"/api/employees/{org['eng_manager'].id}", headers=headers_for(org["ceo"], "ADMIN")
        )
        assert response.status_code == 422

    def test_delete_leaf(self, org):
        """Test deleting an employee without reports."""
        response = client.delete(
            f"/api/employees/{org['engineer_2'].id}",
            headers=headers_for(org["eng_manager"], "MANAGER"),
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Employee deleted successfully"}

        response = client.get(
            f"/api/employees/{org['engineer_2'].id}", headers=headers_for(org["ceo"], "ADMIN")
        )
        assert response.status_code == 404


# =============================================================================
# Export and Health
# =============================================================================

class TestExportEndpoints:
    """Test cases for export endpoints."""

    def test_export_csv(self, org):
        """Test CSV download headers and content."""
        response = client.get(
            "/api/export/employees/csv", headers=headers_for(org["ceo"], "ADMIN")
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("Employee Number,First Name,Last Name")
        assert len(lines) == 9

    def test_export_csv_forbidden_for_employee(self, org):
        """Test employees cannot export."""
        response = client.get(
            "/api/export/employees/csv", headers=headers_for(org["qa"], "EMPLOYEE")
        )
        assert response.status_code == 403

    def test_export_hierarchy_json(self, org):
        """Test the JSON export for a manager."""
        response = client.get(
            "/api/export/hierarchy/json", headers=headers_for(org["head_sales"], "MANAGER")
        )

        assert response.status_code == 200
        assert response.json()["total_employees"] == 2


def test_health_check():
    """Test health endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

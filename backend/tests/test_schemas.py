"""
Tests for employee_directory/schemas - Input validation and response projections.
"""
import pytest
from datetime import datetime
from types import SimpleNamespace

from pydantic import ValidationError


def _payload(**overrides):
    payload = {
        "email": "someone@company.com",
        "password": "secret123",
        "firstName": "  Some  ",
        "lastName": "One",
        "phone": "+96170123456",
        "position": "Engineer",
        "hireDate": "2024-01-15",
    }
    payload.update(overrides)
    return payload


class TestEmployeeCreate:

    def test_valid_payload_normalized(self):
        from employee_directory.schemas.employee import EmployeeCreate

        data = EmployeeCreate.model_validate(_payload(departmentId="", permissions=["READ_EMPLOYEE", "READ_EMPLOYEE"]))

        assert data.first_name == "Some"
        assert data.hire_date == datetime(2024, 1, 15)
        assert data.department_id is None
        assert data.permissions == ["READ_EMPLOYEE"]

    @pytest.mark.parametrize("phone", ["96170123456", "+0123", "+1", "+1234567890123456", "+961 70 123456"])
    def test_rejects_non_e164_phone(self, phone):
        from employee_directory.schemas.employee import EmployeeCreate

        with pytest.raises(ValidationError):
            EmployeeCreate.model_validate(_payload(phone=phone))

    def test_timezone_aware_hire_date_converted_to_utc(self):
        from employee_directory.schemas.employee import EmployeeCreate

        data = EmployeeCreate.model_validate(_payload(hireDate="2024-01-15T02:00:00+02:00"))

        assert data.hire_date == datetime(2024, 1, 15, 0, 0)
        assert data.hire_date.tzinfo is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-01-15", datetime(2024, 1, 15)),
            ("2024-01-15T09:30:00Z", datetime(2024, 1, 15, 9, 30)),
            ("2024-01-15T09:30:00", datetime(2024, 1, 15, 9, 30)),
        ],
    )
    def test_hire_date_formats(self, value, expected):
        from employee_directory.schemas.employee import EmployeeCreate

        assert EmployeeCreate.model_validate(_payload(hireDate=value)).hire_date == expected

    @pytest.mark.parametrize("value", ["yesterday", "2024-13-01", "15/01/2024"])
    def test_invalid_hire_date_message(self, value):
        from employee_directory.core.exceptions import format_validation_errors
        from employee_directory.schemas.employee import EmployeeCreate

        with pytest.raises(ValidationError) as exc_info:
            EmployeeCreate.model_validate(_payload(hireDate=value))

        assert format_validation_errors(exc_info.value.errors()) == "Valid hire date is required (ISO 8601)"

    @pytest.mark.parametrize("field,value", [("firstName", "   "), ("lastName", "x" * 51), ("departmentId", 0)])
    def test_field_bounds(self, field, value):
        from employee_directory.schemas.employee import EmployeeCreate

        with pytest.raises(ValidationError):
            EmployeeCreate.model_validate(_payload(**{field: value}))

    def test_snake_case_names_accepted(self):
        from employee_directory.schemas.employee import EmployeeCreate

        payload = _payload()
        payload["first_name"] = payload.pop("firstName")

        assert EmployeeCreate.model_validate(payload).first_name == "Some"


class TestEmployeeUpdate:

    def test_only_present_fields_are_set(self):
        from employee_directory.schemas.employee import EmployeeUpdate

        data = EmployeeUpdate.model_validate({"position": "Lead"})

        assert data.model_dump(exclude_unset=True) == {"position": "Lead"}

    def test_password_length_still_enforced(self):
        from employee_directory.schemas.employee import EmployeeUpdate

        with pytest.raises(ValidationError):
            EmployeeUpdate.model_validate({"password": "123"})


class TestProjection:
    """Join rows are flattened to permission names."""

    def _employee(self):
        def grant(name):
            return SimpleNamespace(permission=SimpleNamespace(name=name))

        now = datetime(2024, 1, 1)
        return SimpleNamespace(
            id=1,
            email="ceo@company.com",
            password="$2b$04$hash",
            first_name="John",
            last_name="Smith",
            phone="+96170100200",
            position="Chief Executive Officer",
            hire_date=now,
            department_id=1,
            location_id=None,
            reports_to_id=None,
            department=SimpleNamespace(id=1, name="Executive"),
            location=None,
            reports_to=None,
            profile_asset=None,
            deactivated_at=None,
            created_at=now,
            updated_at=now,
            permissions=[grant("READ_EMPLOYEE"), grant("CREATE_EMPLOYEE")],
        )

    def test_permissions_flattened_and_sorted(self):
        from employee_directory.schemas.employee import to_employee_with_permissions

        profile = to_employee_with_permissions(self._employee())

        assert profile.permissions == ["CREATE_EMPLOYEE", "READ_EMPLOYEE"]

    def test_serialized_in_camel_case_without_password(self):
        from employee_directory.schemas.base import envelope
        from employee_directory.schemas.employee import to_employee_with_permissions

        body = envelope(to_employee_with_permissions(self._employee()), message="ok")

        assert body["success"] is True
        assert body["message"] == "ok"
        assert body["data"]["firstName"] == "John"
        assert body["data"]["profilePhoto"] is None
        assert "password" not in body["data"]
        assert body["data"]["permissions"] == ["CREATE_EMPLOYEE", "READ_EMPLOYEE"]

"""
Tests for employee_directory/services/employee_service.py - Write paths against a real database.
"""
import pytest
from unittest.mock import AsyncMock

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError


def _create_payload(**overrides):
    from employee_directory.schemas.employee import EmployeeCreate

    values = {
        "email": "new.hire@company.com",
        "password": "secret123",
        "firstName": "New",
        "lastName": "Hire",
        "phone": "+96170000001",
        "position": "Software Engineer",
        "hireDate": "2024-05-01",
        "permissions": ["READ_EMPLOYEE"],
    }
    values.update(overrides)
    return EmployeeCreate(**values)


class TestCreateIntegrityErrors:
    """Constraint violations raised at commit time."""

    @pytest.mark.asyncio
    async def test_email_race_reported_as_email_conflict(self, seeded_database, storage, monkeypatch):
        """Another request registers the email between the pre-check and the commit."""
        from employee_directory.core.exceptions import ConflictError
        from employee_directory.services import employee_service

        monkeypatch.setattr(
            employee_service, "_email_taken", AsyncMock(side_effect=[False, True])
        )

        async with seeded_database.session() as db:
            with pytest.raises(ConflictError) as exc_info:
                await employee_service.create_employee(
                    db, storage, _create_payload(email="ceo@company.com")
                )

        assert exc_info.value.message == "Email already exists"

    @pytest.mark.asyncio
    async def test_other_violation_is_not_reported_as_email(self, seeded_database, storage, monkeypatch):
        from employee_directory.models.employee import Employee
        from employee_directory.services import employee_service

        async with seeded_database.session() as db:
            permission_ids = await employee_service._resolve_permissions(db, ["READ_EMPLOYEE"])
            # Two join rows for the same permission violate uq_employee_permission
            monkeypatch.setattr(
                employee_service,
                "_resolve_permissions",
                AsyncMock(return_value=permission_ids * 2),
            )

            with pytest.raises(IntegrityError):
                await employee_service.create_employee(db, storage, _create_payload())

        async with seeded_database.session() as db:
            created = await db.scalar(
                select(func.count(Employee.id)).where(Employee.email == "new.hire@company.com")
            )

        assert created == 0


class TestUpdateIntegrityErrors:

    @pytest.mark.asyncio
    async def test_other_violation_is_not_reported_as_email(self, seeded_database, storage, monkeypatch):
        from employee_directory.models.employee import Employee
        from employee_directory.schemas.employee import EmployeeUpdate
        from employee_directory.services import employee_service

        async with seeded_database.session() as db:
            employee_id = await db.scalar(
                select(Employee.id).where(Employee.email == "sarah.johnson@company.com")
            )
            permission_ids = await employee_service._resolve_permissions(db, ["UPDATE_EMPLOYEE"])
            monkeypatch.setattr(
                employee_service,
                "_resolve_permissions",
                AsyncMock(return_value=permission_ids * 2),
            )

            with pytest.raises(IntegrityError):
                await employee_service.update_employee(
                    db,
                    storage,
                    employee_id,
                    EmployeeUpdate(email="sarah.j@company.com", permissions=["UPDATE_EMPLOYEE"]),
                )

        async with seeded_database.session() as db:
            email = await db.scalar(select(Employee.email).where(Employee.id == employee_id))

        assert email == "sarah.johnson@company.com"

"""
Idempotent seed data: reference tables, the four permissions, a CEO with
every permission and sample employees reporting to the CEO.

Existing rows (matched by unique name or email) are left untouched.
"""

import logging
from datetime import datetime
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from employee_directory.core.permissions import Permissions
from employee_directory.core.security import get_password_hash
from employee_directory.models.employee import Employee
from employee_directory.models.organization import Department, Location
from employee_directory.models.permission import EmployeePermission, Permission

logger = logging.getLogger("employee_directory.seed")

SEED_HIRE_DATE = datetime(2024, 1, 1)

DEPARTMENTS = [
    ("Executive", "Executive leadership team"),
    ("Engineering", "Software development and technical teams"),
    ("Marketing", "Marketing and communications"),
    ("Sales", "Sales and business development"),
    ("Human Resources", "HR and people operations"),
    ("Finance", "Finance and accounting"),
]

LOCATIONS = [
    {"name": "Beirut Office", "address": "Hamra Street, Beirut Central District",
     "city": "Beirut", "country": "Lebanon", "postal_code": "1103-2090"},
    {"name": "Tripoli Office", "address": "El Mina Street",
     "city": "Tripoli", "country": "Lebanon", "postal_code": "1300"},
    {"name": "Jounieh Office", "address": "Kaslik Highway",
     "city": "Jounieh", "country": "Lebanon", "postal_code": "1200"},
    {"name": "Saida Office", "address": "Riad El Solh Street",
     "city": "Saida", "country": "Lebanon", "postal_code": "1600"},
    {"name": "Remote"},
]

CEO = {
    "email": "ceo@company.com",
    "password": "ceo123456",
    "first_name": "John",
    "last_name": "Smith",
    "phone": "+96170100200",
    "position": "Chief Executive Officer",
    "department": "Executive",
    "location": "Beirut Office",
}

SAMPLE_EMPLOYEE_PASSWORD = "password123"

# (email, first, last, phone, position, department, location)
SAMPLE_EMPLOYEES = [
    ("sarah.johnson@company.com", "Sarah", "Johnson", "+96170123456", "Senior Software Engineer", "Engineering", "Tripoli Office"),
    ("mike.chen@company.com", "Mike", "Chen", "+96171123457", "Marketing Manager", "Marketing", "Jounieh Office"),
    ("emma.wilson@company.com", "Emma", "Wilson", "+96176123458", "Sales Representative", "Sales", "Saida Office"),
    ("ahmad.hassan@company.com", "Ahmad", "Hassan", "+96178234567", "HR Manager", "Human Resources", "Beirut Office"),
    ("fatima.khoury@company.com", "Fatima", "Khoury", "+96179345678", "Financial Analyst", "Finance", "Beirut Office"),
    ("david.rodriguez@company.com", "David", "Rodriguez", "+96170456789", "Frontend Developer", "Engineering", "Remote"),
    ("maya.aboud@company.com", "Maya", "Aboud", "+96171567890", "UX Designer", "Engineering", "Beirut Office"),
    ("james.taylor@company.com", "James", "Taylor", "+96172678901", "Digital Marketing Specialist", "Marketing", "Tripoli Office"),
    ("layla.najjar@company.com", "Layla", "Najjar", "+96173789012", "Sales Manager", "Sales", "Jounieh Office"),
    ("robert.kim@company.com", "Robert", "Kim", "+96174890123", "Backend Developer", "Engineering", "Saida Office"),
    ("nour.said@company.com", "Nour", "Said", "+96175901234", "HR Specialist", "Human Resources", "Remote"),
    ("alex.morgan@company.com", "Alex", "Morgan", "+96176012345", "Accountant", "Finance", "Tripoli Office"),
    ("yasmin.farah@company.com", "Yasmin", "Farah", "+96177123456", "Content Marketing Manager", "Marketing", "Beirut Office"),
    ("chris.brown@company.com", "Chris", "Brown", "+96178234567", "DevOps Engineer", "Engineering", "Jounieh Office"),
]


async def _upsert_by_name(db: AsyncSession, model, values: dict):
    row = await db.scalar(select(model).where(model.name == values["name"]))
    if row is None:
        row = model(**values)
        db.add(row)
        await db.flush()
    return row


async def _ensure_employee(
    db: AsyncSession,
    values: dict,
    password: str,
    permission_ids: List[int],
) -> Employee:
    employee = await db.scalar(select(Employee).where(Employee.email == values["email"]))
    if employee is not None:
        return employee

    employee = Employee(**values, password=get_password_hash(password), hire_date=SEED_HIRE_DATE)
    employee.permissions = [EmployeePermission(permission_id=pid) for pid in permission_ids]
    db.add(employee)
    await db.flush()
    return employee


async def seed_database(db: AsyncSession, include_samples: bool = True) -> Dict[str, int]:
    """
    Insert seed rows that are missing and commit.

    Returns:
        Counts of rows present per table after seeding
    """
    departments = {
        name: await _upsert_by_name(db, Department, {"name": name, "description": description})
        for name, description in DEPARTMENTS
    }
    locations = {
        values["name"]: await _upsert_by_name(db, Location, values)
        for values in LOCATIONS
    }
    permissions = {
        name: await _upsert_by_name(
            db, Permission, {"name": name, "description": Permissions.DESCRIPTIONS[name]}
        )
        for name in Permissions.ALL
    }

    ceo = await _ensure_employee(
        db,
        {
            "email": CEO["email"],
            "first_name": CEO["first_name"],
            "last_name": CEO["last_name"],
            "phone": CEO["phone"],
            "position": CEO["position"],
            "department_id": departments[CEO["department"]].id,
            "location_id": locations[CEO["location"]].id,
        },
        CEO["password"],
        [p.id for p in permissions.values()],
    )

    employee_count = 1
    if include_samples:
        read_permission = permissions[Permissions.READ_EMPLOYEE].id
        for email, first, last, phone, position, department, location in SAMPLE_EMPLOYEES:
            await _ensure_employee(
                db,
                {
                    "email": email,
                    "first_name": first,
                    "last_name": last,
                    "phone": phone,
                    "position": position,
                    "department_id": departments[department].id,
                    "location_id": locations[location].id,
                    "reports_to_id": ceo.id,
                },
                SAMPLE_EMPLOYEE_PASSWORD,
                [read_permission],
            )
            employee_count += 1

    await db.commit()
    logger.info("Seed data ensured")
    return {
        "departments": len(departments),
        "locations": len(locations),
        "permissions": len(permissions),
        "employees": employee_count,
    }

"""
Employee directory operations.

All reads exclude soft-deleted employees. Writes that touch several tables
(employee row, permission rows, assets, sessions) commit once.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import and_, delete, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from employee_directory.core.exceptions import ConflictError, NotFoundError, ValidationError
from employee_directory.core.security import get_password_hash
from employee_directory.core.storage import ObjectStorage, StorageError
from employee_directory.db.base_class import utcnow
from employee_directory.models.asset import Asset
from employee_directory.models.employee import Employee
from employee_directory.models.organization import Department, Location
from employee_directory.models.permission import EmployeePermission, Permission
from employee_directory.schemas.employee import (
    EmployeeCreate,
    EmployeeDetail,
    EmployeeListParams,
    EmployeeListResponse,
    EmployeeSummary,
    EmployeeUpdate,
    EmployeeWithPermissions,
    PaginationMetadata,
    to_employee_with_permissions,
)
from employee_directory.services import asset_service, session_store
from employee_directory.services.asset_service import PhotoUpload
from employee_directory.services.utils.query_helpers import escape_like, total_pages

logger = logging.getLogger("employee_directory.employees")


def employee_load_options():
    """Eager loads needed to build EmployeeWithPermissions without lazy IO."""
    return (
        selectinload(Employee.permissions).joinedload(EmployeePermission.permission),
        selectinload(Employee.department),
        selectinload(Employee.location),
        selectinload(Employee.reports_to),
        selectinload(Employee.profile_asset),
    )


def _has_active_reports(manager=Employee):
    report = aliased(Employee)
    return exists().where(
        report.reports_to_id == manager.id,
        report.deactivated_at.is_(None),
    ).correlate(manager)


async def load_employee(
    db: AsyncSession,
    employee_id: int,
    *,
    include_inactive: bool = False,
    refresh: bool = False,
) -> Optional[Employee]:
    stmt = select(Employee).options(*employee_load_options()).where(Employee.id == employee_id)
    if not include_inactive:
        stmt = stmt.where(Employee.deactivated_at.is_(None))
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    return await db.scalar(stmt)


async def find_active_by_email(db: AsyncSession, email: str) -> Optional[Employee]:
    return await db.scalar(
        select(Employee)
        .options(*employee_load_options())
        .where(func.lower(Employee.email) == email.lower(), Employee.deactivated_at.is_(None))
    )


async def get_employee(db: AsyncSession, employee_id: int) -> EmployeeWithPermissions:
    employee = await load_employee(db, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return to_employee_with_permissions(employee)


# ============ Listings ============

_SORT_COLUMNS = {
    "firstName": lambda manager: Employee.first_name,
    "lastName": lambda manager: Employee.last_name,
    "email": lambda manager: Employee.email,
    "position": lambda manager: Employee.position,
    "department.name": lambda manager: Department.name,
    "location.name": lambda manager: Location.name,
    "reportsTo.firstName": lambda manager: manager.first_name,
}


async def list_employees(db: AsyncSession, params: EmployeeListParams) -> EmployeeListResponse:
    """
    One page of active employees matching search and filters.

    Search is a case-insensitive substring match over first name, last name,
    email and position. Filters combine with AND; ids within one filter with OR.
    """
    conditions = [Employee.deactivated_at.is_(None)]

    if params.search and params.search.strip():
        pattern = f"%{escape_like(params.search.strip())}%"
        conditions.append(
            or_(
                Employee.first_name.ilike(pattern, escape="\\"),
                Employee.last_name.ilike(pattern, escape="\\"),
                Employee.email.ilike(pattern, escape="\\"),
                Employee.position.ilike(pattern, escape="\\"),
            )
        )
    if params.department_ids:
        conditions.append(Employee.department_id.in_(params.department_ids))
    if params.location_ids:
        conditions.append(Employee.location_id.in_(params.location_ids))
    if params.reports_to_ids:
        conditions.append(Employee.reports_to_id.in_(params.reports_to_ids))

    where = and_(*conditions)
    total = await db.scalar(select(func.count(Employee.id)).where(where)) or 0

    manager = aliased(Employee)
    sort_column = _SORT_COLUMNS[params.sort_field](manager)
    order = sort_column.desc() if params.sort_order == "desc" else sort_column.asc()

    stmt = (
        select(Employee)
        .options(*employee_load_options())
        .outerjoin(Department, Employee.department_id == Department.id)
        .outerjoin(Location, Employee.location_id == Location.id)
        .outerjoin(manager, Employee.reports_to_id == manager.id)
        .where(where)
        .order_by(order, Employee.id.asc())
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
    )
    employees = (await db.scalars(stmt)).all()

    return EmployeeListResponse(
        employees=[EmployeeDetail.model_validate(e) for e in employees],
        pagination_metadata=PaginationMetadata(
            total=total,
            page=params.page,
            limit=params.limit,
            total_pages=total_pages(total, params.limit),
        ),
    )


async def list_all_employees(db: AsyncSession) -> List[EmployeeSummary]:
    rows = await db.scalars(
        select(Employee)
        .where(Employee.deactivated_at.is_(None))
        .order_by(Employee.first_name.asc(), Employee.id.asc())
    )
    return [EmployeeSummary.model_validate(e) for e in rows]


async def list_reporting_managers(db: AsyncSession) -> List[EmployeeSummary]:
    """Active employees with at least one active direct report."""
    rows = await db.scalars(
        select(Employee)
        .where(Employee.deactivated_at.is_(None), _has_active_reports())
        .order_by(Employee.first_name.asc(), Employee.id.asc())
    )
    return [EmployeeSummary.model_validate(e) for e in rows]


# ============ Writes ============

async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Employee.id).where(func.lower(Employee.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(Employee.id != exclude_id)
    return await db.scalar(stmt.limit(1)) is not None


async def _check_references(db: AsyncSession, changes: Dict) -> None:
    """Reject ids that point at missing departments, locations or managers."""
    if changes.get("department_id") is not None:
        if await db.get(Department, changes["department_id"]) is None:
            raise ValidationError("Department not found")
    if changes.get("location_id") is not None:
        if await db.get(Location, changes["location_id"]) is None:
            raise ValidationError("Location not found")
    if changes.get("reports_to_id") is not None:
        manager_id = await db.scalar(
            select(Employee.id).where(
                Employee.id == changes["reports_to_id"],
                Employee.deactivated_at.is_(None),
            )
        )
        if manager_id is None:
            raise ValidationError("Manager not found")


async def _resolve_permissions(db: AsyncSession, names: List[str]) -> List[int]:
    if not names:
        return []
    rows = (await db.execute(select(Permission.id, Permission.name).where(Permission.name.in_(names)))).all()
    by_name = {name: permission_id for permission_id, name in rows}
    unknown = [name for name in names if name not in by_name]
    if unknown:
        raise ValidationError(f"Unknown permission: {', '.join(unknown)}")
    return [by_name[name] for name in names]


async def create_employee(
    db: AsyncSession,
    storage: ObjectStorage,
    data: EmployeeCreate,
    photo: Optional[PhotoUpload] = None,
) -> EmployeeWithPermissions:
    """
    Create an employee with its permissions and optional profile photo.

    Raises:
        ConflictError: email already registered (active or not)
        ValidationError: unknown department, location, manager or permission
    """
    if await _email_taken(db, data.email):
        raise ConflictError("Email already exists")

    fields = data.model_dump(exclude={"permissions", "password"})
    await _check_references(db, fields)
    permission_ids = await _resolve_permissions(db, data.permissions)

    uploaded_key = None
    try:
        asset: Optional[Asset] = None
        if photo is not None:
            asset = await asset_service.create_asset(db, storage, photo)
            uploaded_key = asset.storage_key

        employee = Employee(**fields, password=get_password_hash(data.password))
        if asset is not None:
            employee.profile_asset = asset
        employee.permissions = [EmployeePermission(permission_id=pid) for pid in permission_ids]
        db.add(employee)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        await asset_service.discard_upload(storage, uploaded_key)
        if await _email_taken(db, data.email):
            raise ConflictError("Email already exists")
        raise
    except Exception:
        await db.rollback()
        await asset_service.discard_upload(storage, uploaded_key)
        raise

    logger.info(f"Created employee {employee.id} with permissions {data.permissions}")
    created = await load_employee(db, employee.id, refresh=True)
    return to_employee_with_permissions(created)


async def update_employee(
    db: AsyncSession,
    storage: ObjectStorage,
    employee_id: int,
    data: EmployeeUpdate,
    photo: Optional[PhotoUpload] = None,
    remove_photo: bool = False,
) -> EmployeeWithPermissions:
    """
    Apply a partial update.

    Only fields present in `data` change. A present `permissions` list
    replaces the whole set. A new photo or `remove_photo` unlinks the old
    asset, which is deleted once the update has committed.

    Raises:
        NotFoundError: employee missing or deactivated
        ConflictError: new email already registered
        ValidationError: self-reporting, unknown references or permissions
    """
    employee = await load_employee(db, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")

    changes = data.model_dump(exclude_unset=True)
    new_permissions = changes.pop("permissions", None)
    new_password = changes.pop("password", None)

    for required in ("email", "first_name", "last_name", "position", "hire_date"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be empty")

    if "email" in changes and changes["email"].lower() != employee.email.lower():
        if await _email_taken(db, changes["email"], exclude_id=employee_id):
            raise ConflictError("Email already exists")
    if changes.get("reports_to_id") == employee_id:
        raise ValidationError("An employee cannot report to themselves")
    await _check_references(db, changes)
    permission_ids = (
        await _resolve_permissions(db, new_permissions) if new_permissions is not None else None
    )

    old_asset_id = employee.profile_asset_id
    replacing_photo = photo is not None or remove_photo
    uploaded_key = None
    try:
        for field, value in changes.items():
            setattr(employee, field, value)
        if new_password is not None:
            employee.password = get_password_hash(new_password)

        if permission_ids is not None:
            await db.execute(
                delete(EmployeePermission)
                .where(EmployeePermission.employee_id == employee_id)
                .execution_options(synchronize_session=False)
            )
            for pid in permission_ids:
                db.add(EmployeePermission(employee_id=employee_id, permission_id=pid))

        if photo is not None:
            asset = await asset_service.create_asset(db, storage, photo)
            uploaded_key = asset.storage_key
            employee.profile_asset = asset
        elif remove_photo:
            employee.profile_asset = None

        await db.commit()
    except IntegrityError:
        await db.rollback()
        await asset_service.discard_upload(storage, uploaded_key)
        if "email" in changes and await _email_taken(db, changes["email"], exclude_id=employee_id):
            raise ConflictError("Email already exists")
        raise
    except Exception:
        await db.rollback()
        await asset_service.discard_upload(storage, uploaded_key)
        raise

    if replacing_photo and old_asset_id is not None:
        try:
            await asset_service.delete_asset(db, storage, old_asset_id)
        except (NotFoundError, StorageError):
            await db.rollback()
            logger.warning(f"Could not delete previous profile photo asset {old_asset_id}", exc_info=True)

    logger.info(f"Updated employee {employee_id} (fields: {sorted(changes)})")
    updated = await load_employee(db, employee_id, refresh=True)
    return to_employee_with_permissions(updated)


async def delete_employee(db: AsyncSession, employee_id: int, actor_id: int) -> None:
    """
    Soft-delete an employee and revoke its sessions.

    The deactivation is a single conditional UPDATE guarded by "still
    active and no active direct reports"; when it matches no row the
    reason is re-read to pick the error.

    Raises:
        NotFoundError: missing or already deactivated
        ConflictError: the employee still manages active employees
    """
    stmt = (
        update(Employee)
        .where(
            Employee.id == employee_id,
            Employee.deactivated_at.is_(None),
            ~_has_active_reports(),
        )
        .values(deactivated_at=utcnow(), deactivated_by=actor_id)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)

    if result.rowcount == 0:
        await db.rollback()
        still_active = await db.scalar(
            select(Employee.id).where(
                Employee.id == employee_id,
                Employee.deactivated_at.is_(None),
            )
        )
        if still_active is None:
            raise NotFoundError("Employee not found")
        raise ConflictError("Cannot delete an employee who has active direct reports")

    revoked = await session_store.revoke_all_for_employee(db, employee_id)
    await db.commit()
    logger.info(f"Employee {employee_id} deactivated by {actor_id}; {revoked} session(s) revoked")

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from employee_directory.models.organization import Department, Location
from employee_directory.models.permission import Permission
from employee_directory.schemas.misc import PermissionOut
from employee_directory.schemas.employee import NamedRef


async def list_permissions(db: AsyncSession) -> List[PermissionOut]:
    rows = await db.scalars(select(Permission).order_by(Permission.name.asc()))
    return [PermissionOut.model_validate(p) for p in rows]


async def list_departments(db: AsyncSession) -> List[NamedRef]:
    rows = await db.scalars(select(Department).order_by(Department.name.asc()))
    return [NamedRef.model_validate(d) for d in rows]


async def list_locations(db: AsyncSession) -> List[NamedRef]:
    rows = await db.scalars(select(Location).order_by(Location.name.asc()))
    return [NamedRef.model_validate(loc) for loc in rows]

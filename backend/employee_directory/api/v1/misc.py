from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from employee_directory.api.deps import get_current_employee, get_db
from employee_directory.schemas.base import envelope
from employee_directory.services import reference_data_service

# Reference data for forms and filters; any authenticated employee may read it
router = APIRouter(dependencies=[Depends(get_current_employee)])


@router.get("/permissions")
async def list_permissions(db: AsyncSession = Depends(get_db)) -> Any:
    permissions = await reference_data_service.list_permissions(db)
    return envelope(permissions, message="Permissions retrieved successfully")


@router.get("/departments")
async def list_departments(db: AsyncSession = Depends(get_db)) -> Any:
    departments = await reference_data_service.list_departments(db)
    return envelope(departments, message="Departments retrieved successfully")


@router.get("/locations")
async def list_locations(db: AsyncSession = Depends(get_db)) -> Any:
    locations = await reference_data_service.list_locations(db)
    return envelope(locations, message="Locations retrieved successfully")

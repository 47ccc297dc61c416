import json
import logging
from typing import Any, Optional, Tuple, Type, TypeVar

from fastapi import APIRouter, Depends, Path, Query, Request, status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from employee_directory.api.deps import (
    can_access_employee,
    can_delete_employee,
    can_modify_employee,
    get_db,
    get_object_storage,
    require_permission,
)
from employee_directory.core.exceptions import ValidationError, format_validation_errors
from employee_directory.core.permissions import AuthenticatedEmployee, Permissions
from employee_directory.core.storage import ObjectStorage
from employee_directory.schemas.base import envelope
from employee_directory.schemas.employee import (
    EmployeeCreate,
    EmployeeListParams,
    EmployeeUpdate,
    SortField,
    SortOrder,
)
from employee_directory.services import employee_service
from employee_directory.services.asset_service import PhotoUpload
from employee_directory.services.utils.query_helpers import parse_filter_ids

logger = logging.getLogger("employee_directory.api.employees")

router = APIRouter()

ModelT = TypeVar("ModelT", bound=BaseModel)

PHOTO_FIELD = "profilePhoto"
REMOVE_PHOTO_FIELD = "removeProfilePhoto"


def _parse_permissions(values: list) -> list:
    """
    Permissions arrive as a JSON array (string or native) or as repeated
    form fields.
    """
    if len(values) == 1 and isinstance(values[0], list):
        values = values[0]
    elif len(values) == 1 and isinstance(values[0], str):
        text = values[0].strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                values = json.loads(text)
            except json.JSONDecodeError:
                raise ValidationError("Invalid permissions format")
            if not isinstance(values, list):
                raise ValidationError("Invalid permissions format")
    if not all(isinstance(v, str) for v in values):
        raise ValidationError("Invalid permissions format")
    return values


async def _read_payload(request: Request) -> Tuple[dict, Optional[PhotoUpload], bool]:
    """
    Read an employee payload from multipart/urlencoded form data or JSON.

    Returns:
        (fields, photo, remove_photo)
    """
    content_type = request.headers.get("content-type", "")
    data: dict = {}
    permissions: Optional[list] = None
    photo: Optional[PhotoUpload] = None

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key == PHOTO_FIELD and value.filename:
                    photo = PhotoUpload(
                        filename=value.filename,
                        content_type=value.content_type or "",
                        data=await value.read(),
                    )
                continue
            if key in ("permissions", "permissions[]"):
                permissions = (permissions or []) + [value]
            else:
                data[key] = value
    else:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Invalid JSON body")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        data = dict(body)
        if "permissions" in data:
            permissions = [data.pop("permissions")]

    if permissions is not None:
        data["permissions"] = _parse_permissions(permissions)

    remove_flag = data.pop(REMOVE_PHOTO_FIELD, False)
    remove_photo = remove_flag is True or str(remove_flag).lower() == "true"
    return data, photo, remove_photo


def _validate(model: Type[ModelT], data: dict) -> ModelT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(format_validation_errors(e.errors()))


@router.get("", dependencies=[Depends(require_permission(Permissions.READ_EMPLOYEE))])
@router.get("/", include_in_schema=False, dependencies=[Depends(require_permission(Permissions.READ_EMPLOYEE))])
async def list_employees(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(15, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    sort_field: SortField = Query("firstName", alias="sortField"),
    sort_order: SortOrder = Query("asc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Paginated, searchable list of active employees.

    Filters use `filters[departmentIds][]=1&filters[departmentIds][]=2`
    (also `filters[departmentIds]=1,2`), likewise `locationIds` and
    `reportsToIds`.
    """
    query_items = request.query_params.multi_items()
    params = EmployeeListParams(
        page=page,
        limit=limit,
        search=search,
        sort_field=sort_field,
        sort_order=sort_order,
        department_ids=parse_filter_ids(query_items, "departmentIds"),
        location_ids=parse_filter_ids(query_items, "locationIds"),
        reports_to_ids=parse_filter_ids(query_items, "reportsToIds"),
    )
    result = await employee_service.list_employees(db, params)
    return envelope(result, message="Employees retrieved successfully")


@router.get("/all", dependencies=[Depends(require_permission(Permissions.READ_EMPLOYEE))])
async def list_all_employees(db: AsyncSession = Depends(get_db)) -> Any:
    employees = await employee_service.list_all_employees(db)
    return envelope(employees, message="Employees retrieved successfully")


@router.get("/reporting-managers", dependencies=[Depends(require_permission(Permissions.READ_EMPLOYEE))])
async def list_reporting_managers(db: AsyncSession = Depends(get_db)) -> Any:
    managers = await employee_service.list_reporting_managers(db)
    return envelope(managers, message="Reporting managers retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_employee(
    request: Request,
    caller: AuthenticatedEmployee = Depends(require_permission(Permissions.CREATE_EMPLOYEE)),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
) -> Any:
    """
    Create an employee from JSON or multipart form data.

    Multipart requests may carry a `profilePhoto` file; `permissions` is a
    JSON array string or repeated field.
    """
    data, photo, _ = await _read_payload(request)
    payload = _validate(EmployeeCreate, data)

    employee = await employee_service.create_employee(db, storage, payload, photo)
    logger.info(f"Employee {employee.id} created by {caller.id}")
    return envelope(employee, message="Employee created successfully")


@router.get("/{id}")
async def get_employee(
    id: int = Path(..., gt=0),
    caller: AuthenticatedEmployee = Depends(can_access_employee),
    db: AsyncSession = Depends(get_db),
) -> Any:
    employee = await employee_service.get_employee(db, id)
    return envelope(employee, message="Employee retrieved successfully")


@router.put("/{id}")
async def update_employee(
    request: Request,
    id: int = Path(..., gt=0),
    caller: AuthenticatedEmployee = Depends(can_modify_employee),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
) -> Any:
    """
    Partially update an employee. Send `removeProfilePhoto=true` to drop
    the current photo, or a new `profilePhoto` file to replace it.
    """
    data, photo, remove_photo = await _read_payload(request)
    payload = _validate(EmployeeUpdate, data)

    employee = await employee_service.update_employee(
        db, storage, id, payload, photo=photo, remove_photo=remove_photo
    )
    logger.info(f"Employee {id} updated by {caller.id}")
    return envelope(employee, message="Employee updated successfully")


@router.delete("/{id}")
async def delete_employee(
    id: int = Path(..., gt=0),
    caller: AuthenticatedEmployee = Depends(can_delete_employee),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await employee_service.delete_employee(db, id, actor_id=caller.id)
    return envelope(message="Employee deleted successfully")

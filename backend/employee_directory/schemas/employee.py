import re
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import EmailStr, Field, PositiveInt, ValidationError, field_validator

from employee_directory.core.config import settings
from employee_directory.schemas.base import CamelModel


E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")

SortField = Literal[
    "firstName",
    "lastName",
    "email",
    "position",
    "department.name",
    "location.name",
    "reportsTo.firstName",
]
SortOrder = Literal["asc", "desc"]


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ============ Response projections ============

class EmployeeSummary(CamelModel):
    id: int
    first_name: str
    last_name: str


class NamedRef(CamelModel):
    id: int
    name: str


class ProfilePhoto(CamelModel):
    id: int
    url: str
    cdn_url: Optional[str] = None
    mime_type: str


class EmployeeDetail(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    position: str
    hire_date: datetime
    department_id: Optional[int] = None
    location_id: Optional[int] = None
    reports_to_id: Optional[int] = None
    department: Optional[NamedRef] = None
    location: Optional[NamedRef] = None
    reports_to: Optional[EmployeeSummary] = None
    profile_photo: Optional[ProfilePhoto] = Field(default=None, validation_alias="profile_asset")
    deactivated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class EmployeeWithPermissions(EmployeeDetail):
    """Employee with its permission join rows flattened to names."""

    permissions: List[str] = []

    @field_validator("permissions", mode="before")
    @classmethod
    def _flatten(cls, v):
        return sorted(
            item if isinstance(item, str) else item.permission.name
            for item in (v or [])
        )


def to_employee_with_permissions(employee) -> EmployeeWithPermissions:
    """
    Project an ORM employee (permissions, department, location, manager
    and profile asset loaded) into the public shape.
    """
    return EmployeeWithPermissions.model_validate(employee)


class PaginationMetadata(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class EmployeeListResponse(CamelModel):
    employees: List[EmployeeDetail]
    pagination_metadata: PaginationMetadata


# ============ Input schemas ============

class _EmployeeFields(CamelModel):
    @field_validator("first_name", "last_name", "position", mode="before", check_fields=False)
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone", check_fields=False)
    @classmethod
    def _validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not E164_PATTERN.match(v):
            raise ValueError("Phone number must be in E.164 format (e.g. +96170123456)")
        return v

    @field_validator("password", check_fields=False)
    @classmethod
    def _validate_password(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
            )
        return v

    @field_validator("hire_date", mode="wrap", check_fields=False)
    @classmethod
    def _parse_hire_date(cls, v, handler):
        # ISO 8601 dates or datetimes; a bare date means midnight
        try:
            return to_naive_utc(handler(v))
        except ValidationError:
            raise ValueError("Valid hire date is required (ISO 8601)")

    @field_validator("department_id", "location_id", "reports_to_id", "phone", mode="before", check_fields=False)
    @classmethod
    def _empty_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator("permissions", check_fields=False)
    @classmethod
    def _dedupe_permissions(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return list(dict.fromkeys(name.strip() for name in v if name.strip()))


class EmployeeCreate(_EmployeeFields):
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: str
    position: str = Field(..., min_length=1, max_length=100)
    hire_date: datetime
    department_id: Optional[PositiveInt] = None
    location_id: Optional[PositiveInt] = None
    reports_to_id: Optional[PositiveInt] = None
    permissions: List[str] = []


class EmployeeUpdate(_EmployeeFields):
    """Partial update; only fields present in the request are applied."""

    email: Optional[EmailStr] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = None
    position: Optional[str] = Field(default=None, min_length=1, max_length=100)
    hire_date: Optional[datetime] = None
    department_id: Optional[PositiveInt] = None
    location_id: Optional[PositiveInt] = None
    reports_to_id: Optional[PositiveInt] = None
    permissions: Optional[List[str]] = None


class EmployeeListParams(CamelModel):
    page: int = 1
    limit: int = 15
    search: Optional[str] = None
    sort_field: SortField = "firstName"
    sort_order: SortOrder = "asc"
    department_ids: List[int] = []
    location_ids: List[int] = []
    reports_to_ids: List[int] = []

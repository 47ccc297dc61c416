from pydantic import BaseModel, EmailStr, Field, field_validator

from employee_directory.schemas.base import CamelModel
from employee_directory.schemas.employee import EmployeeWithPermissions


class AccessTokenPayload(BaseModel):
    """Claims carried by an access token."""

    sub: str
    email: str
    iat: int
    exp: int

    @field_validator("sub")
    @classmethod
    def _sub_is_employee_id(cls, v: str) -> str:
        if not v.isdigit() or int(v) <= 0:
            raise ValueError("sub must be a positive employee id")
        return v

    @property
    def employee_id(self) -> int:
        return int(self.sub)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(CamelModel):
    access_token: str
    user: EmployeeWithPermissions


class TokenRefreshResponse(CamelModel):
    access_token: str

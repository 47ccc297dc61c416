from typing import Optional

from employee_directory.schemas.base import CamelModel


class PermissionOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None


class HealthResponse(CamelModel):
    """Health check response format."""
    status: str
    timestamp: str
    version: str
    environment: str
    checks: dict

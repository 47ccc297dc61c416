from fastapi import APIRouter

from employee_directory.api.v1 import auth, employees, misc

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(misc.router, prefix="/misc", tags=["misc"])

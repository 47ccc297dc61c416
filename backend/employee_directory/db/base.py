# Import all the models, so that Base has them before being
# imported by Alembic and by create_all()
from employee_directory.db.base_class import Base  # noqa

from employee_directory.models.organization import Department, Location  # noqa
from employee_directory.models.asset import Asset  # noqa
from employee_directory.models.permission import Permission, EmployeePermission  # noqa
from employee_directory.models.employee import Employee  # noqa
from employee_directory.models.refresh_token import RefreshToken  # noqa

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from employee_directory.db.base_class import Base, utcnow


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    employee_permissions = relationship("EmployeePermission", back_populates="permission")


class EmployeePermission(Base):
    __tablename__ = "employee_permissions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    employee = relationship("Employee", back_populates="permissions")
    permission = relationship("Permission", back_populates="employee_permissions", lazy="joined")

    __table_args__ = (
        UniqueConstraint("employee_id", "permission_id", name="uq_employee_permission"),
    )


Index('idx_employee_permissions_employee_id', EmployeePermission.employee_id)

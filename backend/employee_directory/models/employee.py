from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from employee_directory.db.base_class import Base, utcnow


class Employee(Base):
    """
    Directory entry and login identity.

    `password` holds a bcrypt hash. Employees are never physically deleted;
    `deactivated_at`/`deactivated_by` mark a soft delete.
    """
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    position = Column(String(100), nullable=False)
    hire_date = Column(DateTime, nullable=False)

    department_id = Column(Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    reports_to_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    profile_asset_id = Column(Integer, ForeignKey("assets.id", ondelete="SET NULL"), unique=True, nullable=True)

    # Soft delete
    deactivated_at = Column(DateTime, nullable=True)
    deactivated_by = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    department = relationship("Department", back_populates="employees")
    location = relationship("Location", back_populates="employees")
    reports_to = relationship(
        "Employee",
        remote_side=[id],
        foreign_keys=[reports_to_id],
        back_populates="reports",
    )
    reports = relationship(
        "Employee",
        foreign_keys=[reports_to_id],
        back_populates="reports_to",
    )
    profile_asset = relationship("Asset", foreign_keys=[profile_asset_id])
    permissions = relationship(
        "EmployeePermission",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    refresh_tokens = relationship("RefreshToken", back_populates="employee")

    __table_args__ = (
        CheckConstraint(
            "reports_to_id IS NULL OR reports_to_id <> id",
            name="ck_employees_not_own_manager",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.deactivated_at is None

    @property
    def permission_names(self) -> list[str]:
        return sorted(ep.permission.name for ep in self.permissions)


Index('idx_employees_department_id', Employee.department_id)
Index('idx_employees_location_id', Employee.location_id)
Index('idx_employees_reports_to_id', Employee.reports_to_id)
Index('idx_employees_deactivated_at', Employee.deactivated_at)

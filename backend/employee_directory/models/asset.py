from sqlalchemy import Column, Integer, String, DateTime

from employee_directory.db.base_class import Base, utcnow


class Asset(Base):
    """
    A file held in object storage (currently only profile photos).

    Owned by the single employee that references it through
    `Employee.profile_asset_id`; replaced or removed assets are deleted
    explicitly, storage object first.
    """
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    storage_key = Column(String(512), unique=True, nullable=False)
    bucket = Column(String(255), nullable=True)
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    url = Column(String(1024), nullable=False)
    cdn_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

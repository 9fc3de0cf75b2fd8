"""SQLAlchemy model for the directory's user table (read-only for this service)."""

from sqlalchemy import Boolean, Column, Integer, String

from app.infrastructure.database import Base


class UserModel(Base):
    """Directory row describing a portal user.

    Users are managed by the portal's user administration; this service only
    queries them to resolve notification audiences.
    """

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False, default="")
    role = Column(String(20), nullable=False, index=True)
    department_id = Column(Integer, nullable=True, index=True)
    year = Column(Integer, nullable=True)
    section = Column(String(10), nullable=True)
    academic_year_id = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


__all__ = ["UserModel"]

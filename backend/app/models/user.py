from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.clock import utcnow

ROLES = ("admin", "user", "viewer")
WRITE_ROLES = ("admin", "user")


class User(Base):
    """Identity record: owned by the auth side of the service."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # immutable once created
    email = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=True)

    password_hash = Column(String, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    access = relationship(
        "UserRole",
        uselist=False,
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def role(self) -> str:
        return self.access.role if self.access else "user"

    @property
    def is_active(self) -> bool:
        return self.access.is_active if self.access else True

    @property
    def identity(self) -> str:
        return self.display_name or self.email


class UserRole(Base):
    """Access-control record keyed by user id."""

    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    # "admin" | "user" | "viewer"
    role = Column(String, nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="access")

"""User model."""

import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum

from app.database import Base
from app.services.clock import utcnow

DEFAULT_TENANT = "default"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class AuthProvider(str, Enum):
    LOCAL = "local"
    GOOGLE = "google"
    FACEBOOK = "facebook"


def _new_id() -> str:
    return str(uuid.uuid4())


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    """One account within one tenant. ``(tenant_id, email)`` is unique."""

    __tablename__ = "user"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_user_tenant_email"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(128), nullable=False, default=DEFAULT_TENANT, index=True)
    email = Column(String(320), nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    name = Column(String(256), nullable=False)
    avatar_url = Column(String(2048), nullable=True)
    role = Column(
        SAEnum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=UserRole.USER,
    )
    provider = Column(
        SAEnum(AuthProvider, name="auth_provider", values_callable=_enum_values),
        nullable=False,
        default=AuthProvider.LOCAL,
    )
    is_verified = Column(Boolean, nullable=False, default=False)

    # One {token, expires_at} pair per purpose
    verification_token = Column(String(64), nullable=True, unique=True, index=True)
    verification_token_expires_at = Column(DateTime, nullable=True)
    reset_token = Column(String(64), nullable=True, unique=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} tenant={self.tenant_id} email={self.email} role={self.role}>"

"""Credential store: persistence for User records."""

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.exceptions import DuplicateCredentialError, NotFoundError
from app.models.user import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """Reads and writes User records.

    Lookups by email are scoped to a tenant. Lookups by token are global,
    since a 256-bit token identifies its record on its own.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_email(self, tenant_id: str, email: str) -> User | None:
        return (
            self.db.query(User)
            .filter(User.tenant_id == tenant_id, User.email == normalize_email(email))
            .first()
        )

    def find_by_id(self, tenant_id: str, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id, User.tenant_id == tenant_id).first()

    def find_by_verification_token(self, token: str) -> User | None:
        return self.db.query(User).filter(User.verification_token == token).first()

    def find_by_reset_token(self, token: str) -> User | None:
        return self.db.query(User).filter(User.reset_token == token).first()

    def create(self, user: User) -> User:
        """Insert a new user.

        Uniqueness of ``(tenant_id, email)`` is enforced by the database
        constraint, so two concurrent registrations cannot both succeed.
        """
        user.email = normalize_email(user.email)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateCredentialError() from None
        self.db.refresh(user)
        return user

    def update(self, user: User) -> User:
        """Persist changes made to a loaded user."""
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise NotFoundError("User not found") from None
        return user

    def consume_verification_token(self, user_id: str, token: str, now: datetime) -> bool:
        """Mark the user verified and clear the token in one conditional UPDATE.

        Returns False when the token was already consumed, replaced or has
        expired in the meantime.
        """
        result = self.db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.verification_token == token,
                User.verification_token_expires_at >= now,
            )
            .values(
                is_verified=True,
                verification_token=None,
                verification_token_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def consume_reset_token(self, user_id: str, token: str, now: datetime, password_hash: str) -> bool:
        """Swap in the new password hash and clear the reset token atomically."""
        result = self.db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.reset_token == token,
                User.reset_token_expires_at >= now,
            )
            .values(
                password_hash=password_hash,
                reset_token=None,
                reset_token_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

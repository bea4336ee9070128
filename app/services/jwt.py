"""JWT session token service."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from app.config import Settings
from app.exceptions import TokenExpiredError, TokenInvalidError
from app.models.user import UserRole

REQUIRED_CLAIMS = ("sub", "email", "role", "tenantId")


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a session token."""

    user_id: str
    email: str
    role: UserRole
    tenant_id: str

    def to_dict(self) -> dict[str, str]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "role": self.role.value,
            "tenant_id": self.tenant_id,
        }


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, settings: Settings) -> None:
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES

    def create_token(self, user_id: str, email: str, role: UserRole, tenant_id: str) -> str:
        """Create a signed session token for the given user."""
        issued_at = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "userId": user_id,
            "email": email,
            "role": UserRole(role).value,
            "tenantId": tenant_id,
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> SessionClaims:
        """Verify signature and expiry and return the claims.

        Raises TokenExpiredError for a well-signed but expired token and
        TokenInvalidError for anything else.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError() from None
        except JWTError:
            raise TokenInvalidError() from None

        if any(not payload.get(claim) for claim in REQUIRED_CLAIMS):
            raise TokenInvalidError()
        try:
            role = UserRole(payload["role"])
        except ValueError:
            raise TokenInvalidError() from None

        return SessionClaims(
            user_id=str(payload["sub"]),
            email=payload["email"],
            role=role,
            tenant_id=payload["tenantId"],
        )

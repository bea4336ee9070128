"""Authentication service.

Drives the account lifecycle: registration, email verification, login,
password recovery and profile updates. All durable state lives in the
credential store; this service holds none between calls.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from app.config import Settings, get_settings
from app.exceptions import (
    DeliveryError,
    ExpiredTokenError,
    ForbiddenError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
    UnauthorizedReason,
    ValidationError,
)
from app.models.user import AuthProvider, User, UserRole
from app.repositories.users import CredentialStore, normalize_email
from app.services.clock import Clock
from app.services.email import EmailSender, build_email_sender, password_reset_email, verification_email
from app.services.jwt import JWTService, SessionClaims
from app.services.passwords import PasswordHasher
from app.services.tokens import TokenIssuer, TokenPurpose

logger = logging.getLogger("authkit")

INVALID_CREDENTIALS = "Invalid credentials."
VERIFY_EMAIL_PATH = "/verify-email"
RESET_PASSWORD_PATH = "/reset-password"


@dataclass
class LoginResult:
    """Session token plus the user it was issued for."""

    token: str
    user: User


@dataclass
class ProfileChanges:
    name: str | None = None
    avatar_url: str | None = None


def _link(base_url: str, path: str, token: str) -> str:
    return f"{base_url.rstrip('/')}{path}?{urlencode({'token': token})}"


class AuthService:
    """Handles user registration, verification and authentication."""

    def __init__(self, settings: Settings, email_sender: EmailSender, clock: Clock | None = None) -> None:
        self.clock = clock or Clock()
        self.email_sender = email_sender
        self.hasher = PasswordHasher(settings)
        self.tokens = TokenIssuer(settings, self.clock)
        self.jwt = JWTService(settings)
        self._verification_ttl_minutes = settings.VERIFICATION_TOKEN_TTL_MINUTES
        self._reset_ttl_minutes = settings.RESET_TOKEN_TTL_MINUTES

    # --- registration and verification ---

    def register(self, store: CredentialStore, tenant_id: str, name: str, email: str, password: str, base_url: str) -> User:
        """Create an unverified user and email a verification link.

        A failed delivery is logged and swallowed: the account exists and the
        link can be resent.
        """
        issued = self.tokens.issue(TokenPurpose.VERIFICATION)
        user = User(
            tenant_id=tenant_id,
            email=normalize_email(email),
            name=name.strip(),
            password_hash=self.hasher.hash(password),
            role=UserRole.USER,
            provider=AuthProvider.LOCAL,
            is_verified=False,
            verification_token=issued.token,
            verification_token_expires_at=issued.expires_at,
        )
        user = store.create(user)
        logger.info("User %s registered for tenant %s", user.email, tenant_id)

        message = verification_email(
            to=user.email,
            name=user.name,
            link=_link(base_url, VERIFY_EMAIL_PATH, issued.token),
            tenant_id=tenant_id,
            ttl_minutes=self._verification_ttl_minutes,
        )
        try:
            self.email_sender.send(message)
        except DeliveryError:
            logger.warning("Verification email to %s for tenant %s could not be sent", user.email, tenant_id)
        return user

    def verify_email(self, store: CredentialStore, token: str | None) -> User:
        """Consume a verification token and mark its user verified."""
        if not token:
            raise ValidationError("Verification token is required. Please use the link from your email.")

        user = store.find_by_verification_token(token)
        check = self.tokens.validate(
            user.verification_token if user else None,
            user.verification_token_expires_at if user else None,
            token,
        )
        if check.expired:
            logger.warning("Expired verification token presented for tenant %s", user.tenant_id)
            raise ExpiredTokenError("Verification link has expired. Please request a new one.")
        if not check.valid or not store.consume_verification_token(user.id, token, self.clock.now()):
            raise InvalidTokenError("Invalid verification link.")

        logger.info("Email verified for user %s in tenant %s", user.email, user.tenant_id)
        return user

    def resend_verification(self, store: CredentialStore, tenant_id: str, email: str, base_url: str) -> None:
        """Replace any pending verification token with a fresh one and email it."""
        user = store.find_by_email(tenant_id, email)
        if user is None or user.is_verified:
            raise NotFoundError("No unverified account found with this email in this application.")

        issued = self.tokens.issue(TokenPurpose.VERIFICATION)
        user.verification_token = issued.token
        user.verification_token_expires_at = issued.expires_at
        store.update(user)

        self.email_sender.send(
            verification_email(
                to=user.email,
                name=user.name,
                link=_link(base_url, VERIFY_EMAIL_PATH, issued.token),
                tenant_id=tenant_id,
                ttl_minutes=self._verification_ttl_minutes,
            )
        )
        logger.info("Verification email resent to %s for tenant %s", user.email, tenant_id)

    # --- login ---

    def login(self, store: CredentialStore, tenant_id: str, email: str, password: str) -> LoginResult:
        """Authenticate by email and password within a tenant.

        Unknown email and wrong password fail identically. An unverified
        account fails with ``needs_verification`` before the password is
        checked.
        """
        user = store.find_by_email(tenant_id, email)
        if user is None:
            raise UnauthorizedError(INVALID_CREDENTIALS, reason=UnauthorizedReason.INVALID_CREDENTIALS)

        if not user.is_verified:
            raise UnauthorizedError(
                "Please verify your email before logging in.",
                reason=UnauthorizedReason.NOT_VERIFIED,
                needs_verification=True,
            )

        if not self.hasher.verify(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS, reason=UnauthorizedReason.INVALID_CREDENTIALS)

        user.last_login_at = self.clock.now()
        store.update(user)

        token = self.jwt.create_token(user.id, user.email, user.role, user.tenant_id)
        logger.info("User %s logged in for tenant %s", user.email, tenant_id)
        return LoginResult(token=token, user=user)

    # --- password recovery ---

    def forgot_password(self, store: CredentialStore, tenant_id: str, email: str, base_url: str) -> None:
        """Issue a reset token and email it. Delivery failure is surfaced."""
        user = store.find_by_email(tenant_id, email)
        if user is None:
            raise NotFoundError("No user found with this email in this application.")

        issued = self.tokens.issue(TokenPurpose.RESET)
        user.reset_token = issued.token
        user.reset_token_expires_at = issued.expires_at
        store.update(user)

        try:
            self.email_sender.send(
                password_reset_email(
                    to=user.email,
                    name=user.name,
                    link=_link(base_url, RESET_PASSWORD_PATH, issued.token),
                    tenant_id=tenant_id,
                    ttl_minutes=self._reset_ttl_minutes,
                )
            )
        except DeliveryError:
            raise DeliveryError("Could not send reset email.") from None
        logger.info("Password reset email sent to %s for tenant %s", user.email, tenant_id)

    def reset_password(self, store: CredentialStore, token: str, new_password: str) -> User:
        """Set a new password using a valid reset token."""
        if not token or not new_password:
            raise ValidationError("Token and password are required.")
        password_hash = self.hasher.hash(new_password)

        user = store.find_by_reset_token(token)
        check = self.tokens.validate(
            user.reset_token if user else None,
            user.reset_token_expires_at if user else None,
            token,
        )
        if check.expired:
            logger.warning("Expired reset token presented for tenant %s", user.tenant_id)
            raise ExpiredTokenError("Reset link has expired. Please request a new one.")
        if not check.valid or not store.consume_reset_token(user.id, token, self.clock.now(), password_hash):
            raise InvalidTokenError("Invalid or expired reset token.")

        logger.info("Password reset for user %s in tenant %s", user.email, user.tenant_id)
        return user

    # --- authenticated operations ---

    def authorize(self, store: CredentialStore, authorization: str | None) -> SessionClaims:
        """Admit a request carrying ``Bearer <session token>`` for a live, verified user."""
        scheme, _, token = (authorization or "").partition(" ")
        if scheme != "Bearer" or not token.strip():
            raise UnauthorizedError("Unauthorized: No token provided", reason=UnauthorizedReason.NO_TOKEN)

        claims = self.jwt.decode_token(token.strip())
        user = store.find_by_id(claims.tenant_id, claims.user_id)
        if user is None:
            raise UnauthorizedError("Unauthorized: User not found", reason=UnauthorizedReason.USER_NOT_FOUND)
        if not user.is_verified:
            raise UnauthorizedError("Unauthorized: Email not verified", reason=UnauthorizedReason.NOT_VERIFIED)
        return claims

    def require_role(self, claims: SessionClaims, role: UserRole) -> SessionClaims:
        if claims.role != role:
            raise ForbiddenError()
        return claims

    def update_profile(self, store: CredentialStore, claims: SessionClaims, changes: ProfileChanges) -> User:
        """Update mutable profile fields on the caller's own record."""
        user = store.find_by_id(claims.tenant_id, claims.user_id)
        if user is None:
            raise NotFoundError("User not found")

        if changes.name is not None:
            user.name = changes.name.strip()
        if changes.avatar_url is not None:
            user.avatar_url = changes.avatar_url or None
        store.update(user)

        logger.info("Profile updated for user %s in tenant %s", user.email, user.tenant_id)
        return user


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance, wired from process settings."""
    global _auth_service
    if _auth_service is None:
        settings = get_settings()
        _auth_service = AuthService(settings, build_email_sender(settings))
    return _auth_service

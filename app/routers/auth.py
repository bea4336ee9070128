"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_base_url, get_credential_store, get_current_user, get_tenant_id, require_role
from app.exceptions import ValidationError
from app.models.user import UserRole
from app.rate_limit import limiter
from app.repositories.users import CredentialStore
from app.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    SessionResponse,
    SessionUser,
    UpdateProfileRequest,
    UserResponse,
    UserSummary,
    VerifyEmailResponse,
)
from app.services.auth import AuthService, ProfileChanges, get_auth_service
from app.services.jwt import SessionClaims

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit("10/minute")
def register(
    request: Request,
    body: RegisterRequest,
    tenant_id: str = Depends(get_tenant_id),
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """Register a new, unverified account and send the verification email."""
    auth_service.register(store, tenant_id, body.name, body.email, body.password, get_base_url(request))
    return RegisterResponse(
        message="User registered successfully. Please check your email to verify your account.",
        tenant_id=tenant_id,
    )


@router.get("/verify-email", response_model=VerifyEmailResponse)
def verify_email(
    token: str | None = None,
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> VerifyEmailResponse:
    """Consume a verification token."""
    user = auth_service.verify_email(store, token)
    return VerifyEmailResponse(message="Email verified successfully.", email=user.email, tenant_id=user.tenant_id)


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit("3/minute")
def resend_verification(
    request: Request,
    body: EmailRequest,
    tenant_id: str = Depends(get_tenant_id),
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Send a fresh verification link, invalidating the previous one."""
    auth_service.resend_verification(store, tenant_id, body.email, get_base_url(request))
    return MessageResponse(message="Verification email sent. Please check your inbox.")


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    tenant_id: str = Depends(get_tenant_id),
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate and receive a session token.

    Failures are 401 ``{"detail", "code"}``. An unverified account also
    carries ``"needs_verification": true``.
    """
    result = auth_service.login(store, tenant_id, body.email, body.password)
    return LoginResponse(token=result.token, user=UserSummary.model_validate(result.user))


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: EmailRequest,
    tenant_id: str = Depends(get_tenant_id),
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Email a password reset link."""
    auth_service.forgot_password(store, tenant_id, body.email, get_base_url(request))
    return MessageResponse(message="Password reset email sent successfully! Check your email for the reset link.")


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Set a new password using a valid reset token."""
    auth_service.reset_password(store, body.token, body.new_password)
    return MessageResponse(message="Password reset successful.")


@router.get("/me", response_model=SessionResponse)
def me(claims: SessionClaims = Depends(get_current_user)) -> SessionResponse:
    """Return the identity carried by the caller's session token."""
    return SessionResponse(message="You are authorized", user=SessionUser(**claims.to_dict()))


@router.put("/me", response_model=ProfileResponse)
def update_profile(
    body: UpdateProfileRequest,
    claims: SessionClaims = Depends(get_current_user),
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """Update the caller's name and avatar."""
    if body.name is None and body.avatar_url is None:
        raise ValidationError("Nothing to update.")
    user = auth_service.update_profile(store, claims, ProfileChanges(name=body.name, avatar_url=body.avatar_url))
    return ProfileResponse(message="Profile updated", user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout() -> MessageResponse:
    """Session tokens are stateless; the client discards its copy."""
    return MessageResponse(message="Logout successful. Please remove your token on client side.")


@router.get("/admin", response_model=SessionResponse)
def admin(claims: SessionClaims = Depends(require_role(UserRole.ADMIN))) -> SessionResponse:
    """Admin-only endpoint."""
    return SessionResponse(message="Welcome to admin panel", user=SessionUser(**claims.to_dict()))

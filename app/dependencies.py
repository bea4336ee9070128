"""Request-scoped dependencies for FastAPI routes."""

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.models.user import UserRole
from app.repositories.users import CredentialStore
from app.services.auth import AuthService, get_auth_service
from app.services.jwt import SessionClaims
from app.services.tenant import APP_NAME_HEADER, TENANT_HEADER, TENANT_QUERY_PARAM, resolve_tenant_id


def get_tenant_id(request: Request) -> str:
    """Resolve the tenant from the X-Tenant-ID / X-App-Name headers or ?tenantId=."""
    return resolve_tenant_id(
        request.headers.get(TENANT_HEADER),
        request.headers.get(APP_NAME_HEADER),
        request.query_params.get(TENANT_QUERY_PARAM),
    )


def get_credential_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_base_url(request: Request) -> str:
    """Base URL for links in outgoing email."""
    return get_settings().PUBLIC_BASE_URL or str(request.base_url)


def get_current_user(
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionClaims:
    """Extract and validate the Bearer session token. Raises 401 if invalid."""
    return auth_service.authorize(store, request.headers.get("Authorization"))


def require_role(role: UserRole) -> Callable[..., SessionClaims]:
    """Dependency factory admitting only callers with the given role (403 otherwise)."""

    def dependency(
        claims: SessionClaims = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SessionClaims:
        return auth_service.require_role(claims, role)

    return dependency

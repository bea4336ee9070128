"""Tenant resolution for inbound requests."""

from app.models.user import DEFAULT_TENANT

TENANT_HEADER = "X-Tenant-ID"
APP_NAME_HEADER = "X-App-Name"
TENANT_QUERY_PARAM = "tenantId"


def normalize_tenant_id(value: str) -> str:
    return value.strip().lower()


def resolve_tenant_id(
    tenant_header: str | None = None,
    app_name_header: str | None = None,
    query_value: str | None = None,
) -> str:
    """Pick the first non-blank candidate, in priority order, else the default tenant."""
    for candidate in (tenant_header, app_name_header, query_value):
        if candidate and candidate.strip():
            return normalize_tenant_id(candidate)
    return DEFAULT_TENANT

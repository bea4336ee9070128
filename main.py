"""AuthKit - multi-tenant credential management service."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Form, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import init_db
from app.dependencies import get_credential_store
from app.exceptions import AuthError, UnauthorizedError
from app.rate_limit import limiter
from app.repositories.users import CredentialStore
from app.routers import auth_router
from app.services.auth import AuthService, get_auth_service

APP_VERSION = "0.1.0"

settings = get_settings()

# Logging
logger = logging.getLogger("authkit")
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    for warning in settings.validate():
        logger.warning("Config: %s", warning)
    if settings.AUTO_CREATE_TABLES:
        init_db()
    yield


app = FastAPI(title="AuthKit", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; style-src 'self' 'unsafe-inline'; img-src 'self' data:; form-action 'self'"
        )
        if settings.APP_ENV == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 64 * 1024  # auth payloads are tiny

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"detail": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIX = "/api/v1/auth/"

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        if request.method in ("POST", "PUT") and path.startswith(self.AUDIT_PREFIX):
            logger.info(
                "AUDIT %s %s tenant=%s -> %d (%.0fms) from %s",
                request.method,
                path,
                request.headers.get("X-Tenant-ID") or request.headers.get("X-App-Name") or "-",
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

app.include_router(auth_router)


# --- Error handlers ---
@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render service errors as {"detail", "code", ...extra}."""
    if isinstance(exc, UnauthorizedError):
        logger.info("Unauthorized on %s %s: %s", request.method, request.url.path, exc.code)
    elif exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, **exc.extra},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a 400 with the first problem spelled out."""
    errors = exc.errors()
    message = "Invalid request."
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
        message = f"{field}: {first['msg']}" if field else first["msg"]
    return JSONResponse(status_code=400, content={"detail": message, "code": "VALIDATION_ERROR"})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return JSONResponse(status_code=429, content={"detail": "Too many requests, please try again later."})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: log the details here, tell the client nothing."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server error.", "code": "INTERNAL_ERROR"})


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "authkit", "version": APP_VERSION}


# --- Web pages (targets of the links sent by email) ---
@app.get("/verify-email", response_class=HTMLResponse)
def verify_email_page(
    request: Request,
    token: str | None = None,
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> HTMLResponse:
    """Consume a verification token and show the outcome."""
    try:
        user = auth_service.verify_email(store, token)
    except AuthError as exc:
        return templates.TemplateResponse(
            request, "verify_email.html", {"error": exc.message}, status_code=exc.status_code
        )
    return templates.TemplateResponse(
        request, "verify_email.html", {"email": user.email, "tenant_id": user.tenant_id}
    )


@app.get("/reset-password", response_class=HTMLResponse)
def reset_password_page(request: Request, token: str | None = None) -> HTMLResponse:
    """Render the reset form for a token from a reset email."""
    if not token:
        return templates.TemplateResponse(
            request,
            "reset_password.html",
            {"error": "No token provided. Please check your email for the correct reset link."},
            status_code=400,
        )
    return templates.TemplateResponse(request, "reset_password.html", {"token": token})


@app.post("/reset-password", response_class=HTMLResponse)
def reset_password_submit(
    request: Request,
    token: str = Form(...),
    new_password: str = Form(...),
    confirm_password: str = Form(...),
    store: CredentialStore = Depends(get_credential_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> HTMLResponse:
    """Handle reset form submission."""
    if new_password != confirm_password:
        return templates.TemplateResponse(
            request, "reset_password.html", {"token": token, "error": "Passwords do not match."}, status_code=400
        )
    try:
        auth_service.reset_password(store, token, new_password)
    except AuthError as exc:
        return templates.TemplateResponse(
            request, "reset_password.html", {"token": token, "error": exc.message}, status_code=exc.status_code
        )
    return templates.TemplateResponse(request, "reset_password.html", {"success": True})

"""Single-use token issuer for email verification and password reset."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from app.config import Settings
from app.services.clock import Clock

TOKEN_BYTES = 32


class TokenPurpose(str, Enum):
    VERIFICATION = "verification"
    RESET = "reset"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenCheck:
    """Outcome of comparing a presented token with the stored one.

    ``expired`` is only True when the token itself matched, so callers can
    tell "link expired" apart from "link invalid".
    """

    valid: bool
    expired: bool = False


class TokenIssuer:
    """Mints opaque 256-bit hex tokens with a per-purpose TTL."""

    def __init__(self, settings: Settings, clock: Clock) -> None:
        self._clock = clock
        self._ttls = {
            TokenPurpose.VERIFICATION: timedelta(minutes=settings.VERIFICATION_TOKEN_TTL_MINUTES),
            TokenPurpose.RESET: timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
        }

    def ttl(self, purpose: TokenPurpose) -> timedelta:
        return self._ttls[purpose]

    def issue(self, purpose: TokenPurpose) -> IssuedToken:
        return IssuedToken(
            token=secrets.token_hex(TOKEN_BYTES),
            expires_at=self._clock.now() + self.ttl(purpose),
        )

    def validate(self, stored_token: str | None, stored_expiry: datetime | None, presented_token: str) -> TokenCheck:
        if stored_token is None or not presented_token:
            return TokenCheck(valid=False)
        if not secrets.compare_digest(stored_token.encode("utf-8"), presented_token.encode("utf-8")):
            return TokenCheck(valid=False)
        if stored_expiry is None or self._clock.now() > stored_expiry:
            return TokenCheck(valid=False, expired=True)
        return TokenCheck(valid=True)

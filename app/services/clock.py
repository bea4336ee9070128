"""Time source used by token expiry logic."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what the store persists."""
    return datetime.now(UTC).replace(tzinfo=None)


class Clock:
    """Wall clock. Swap for a fixed clock in tests."""

    def now(self) -> datetime:
        return utcnow()

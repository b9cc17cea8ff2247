"""Timestamp helpers shared by the ORM models."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""

    return datetime.now(timezone.utc)

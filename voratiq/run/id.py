"""Sortable run identifiers: UTC timestamp plus a random lowercase slug."""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone

SLUG_LENGTH = 5


def _slug(length: int) -> str:
    return "".join(secrets.choice(string.ascii_lowercase) for _ in range(length))


def generate_run_id(now: datetime | None = None) -> str:
    """Return an id like ``20251001-143500-fghij``."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{now:%Y%m%d-%H%M%S}-{_slug(SLUG_LENGTH)}"

"""Human-readable order numbers and customer access tokens."""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone
from typing import Optional

ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 8
ACCESS_TOKEN_BYTES = 32


def generate(store_id: int, now: Optional[datetime] = None) -> str:
    """Return ``{yyyyMMdd}-{storeId:03d}-{suffix}``.

    The suffix is drawn from a 36 symbol alphabet, so a store sees 36**8
    candidates per day. Uniqueness is enforced by the ``orders.order_number``
    constraint, not here.
    """
    moment = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{moment:%Y%m%d}-{store_id:03d}-{suffix}"


def generate_access_token() -> str:
    return secrets.token_hex(ACCESS_TOKEN_BYTES)


__all__ = ["generate", "generate_access_token", "ALPHABET", "SUFFIX_LENGTH"]

"""
Identifier generation.

Ids combine a millisecond timestamp with a random component, both in
base 36. Uniqueness is probabilistic: fine for one user's local store,
not a cryptographic guarantee.
"""

import secrets
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """
    Generate an opaque entity id.
    
    Format: <epoch-ms base36><64 random bits base36>
    """
    timestamp = _to_base36(time.time_ns() // 1_000_000)
    return timestamp + _to_base36(secrets.randbits(64)).rjust(13, "0")


def generate_invoice_number(prefix: str = "INV") -> str:
    """Build a human-facing invoice number: PREFIX-<last 8 digits of epoch ms>."""
    millis = str(time.time_ns() // 1_000_000)
    return f"{prefix}-{millis[-8:]}"

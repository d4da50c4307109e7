"""Public identifier generation for API resources."""

import secrets
import string

_ALPHABET = string.ascii_letters + string.digits

PUBLIC_ID_LENGTH = 7
TRACKING_NUMBER_DIGITS = 8


def generate_public_id(prefix: str) -> str:
    """Return an id such as ``order_aZ3kQ9x``"""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(PUBLIC_ID_LENGTH))
    return f"{prefix}_{suffix}"


def generate_tracking_number() -> str:
    """Return an order tracking number such as ``FLB-04821937``"""
    return "FLB-" + "".join(secrets.choice(string.digits) for _ in range(TRACKING_NUMBER_DIGITS))

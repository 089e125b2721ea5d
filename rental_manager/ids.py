from __future__ import annotations

import random
import secrets
import string

ALPHANUMERIC = string.ascii_letters + string.digits
BOOKING_ID_LENGTH = 8
ACCESS_TOKEN_LENGTH = 24

_SYSTEM_RANDOM = secrets.SystemRandom()


def generate_random_string(length: int, rng: random.Random | None = None) -> str:
    """Return a random alphanumeric string of ``length`` characters.

    Uses the operating system's CSPRNG unless another ``rng`` is supplied.
    """
    if length < 0:
        raise ValueError("length must not be negative")
    source = rng or _SYSTEM_RANDOM
    return "".join(source.choice(ALPHANUMERIC) for _ in range(length))

"""
Identifier generation for entries and projects.
"""

import secrets
import time

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    """Encodes a non-negative integer in lowercase base 36."""
    if number < 0:
        raise ValueError("Only non-negative integers can be encoded.")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_id(random_chars: int = 11) -> str:
    """
    Generates a short id: the millisecond timestamp in base 36 followed by
    random base-36 characters.

    Unique enough for a single user in a single process; not a UUID.
    """
    timestamp = to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(random_chars))
    return timestamp + suffix

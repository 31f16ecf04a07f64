"""Random identifiers used as session fingerprints."""
import random


def generate_mac_address() -> str:
    """Return a MAC-style string: six colon-separated uppercase hex pairs."""
    return ":".join(f"{random.randint(0, 255):02X}" for _ in range(6))


def generate_rid() -> str:
    """Return a 32-character uppercase hex session id (16 random bytes)."""
    return "".join(f"{random.randint(0, 255):02X}" for _ in range(16))


def generate_random_hex(length: int) -> str:
    """Return exactly *length* uppercase hex digits (empty for length <= 0)."""
    return "".join(f"{random.randint(0, 15):X}" for _ in range(max(length, 0)))

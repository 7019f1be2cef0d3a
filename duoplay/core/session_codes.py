from __future__ import annotations

import re
import secrets

# No 0/O, 1/I/L: codes are read aloud and typed on phones.
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SESSION_CODE_LENGTH = 6

_WHITESPACE_RE = re.compile(r"\s+")


def generate_session_code(length: int = SESSION_CODE_LENGTH) -> str:
    """Generates a short uppercase session code with low typo ambiguity."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def normalize_session_code(raw_code: str) -> str:
    return _WHITESPACE_RE.sub("", raw_code).upper()


def format_session_code(code: str) -> str:
    normalized = normalize_session_code(code)
    half = len(normalized) // 2
    return f"{normalized[:half]} {normalized[half:]}"


def is_valid_session_code(code: str) -> bool:
    normalized = normalize_session_code(code)
    return len(normalized) == SESSION_CODE_LENGTH and set(normalized).issubset(ALPHABET)

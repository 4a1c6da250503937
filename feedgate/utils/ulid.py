"""ULID generation utility for FeedGate.

Provides a single `generate_ulid()` function that returns a 26-character ULID
used as the ``check_id`` of a policy check:
  - correlation key in structured log entries
  - ``check_id`` field of the HTTP access-check response

Uses the `python-ulid` library (see pyproject.toml) — do NOT hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase string.

    Returns:
        str: A 26-character ULID string in Crockford Base32.
    """
    return str(ULID())

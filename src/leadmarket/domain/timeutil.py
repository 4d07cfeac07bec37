"""Naive-UTC time helper.

Timestamps are stored without tzinfo (SQLite drops offsets), so every
comparison in the app works on naive UTC values produced here.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

"""
Injectable id and time providers
"""

from datetime import datetime, timezone
from typing import Callable
import uuid

IdGenerator = Callable[[], uuid.UUID]
Clock = Callable[[], datetime]


def new_id() -> uuid.UUID:
    return uuid.uuid4()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every datetime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

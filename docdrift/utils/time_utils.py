"""Clock helpers and client-side identifiers"""

import time
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def epoch_millis() -> int:
    return int(time.time() * 1000)


def temp_message_id() -> str:
    """Id for an optimistic user message (replaced on the next reload)"""
    return f"temp-{epoch_millis()}"


def assistant_message_id() -> str:
    return f"assistant-{uuid4()}"


def local_entity_id(offset: int = 0) -> str:
    """Timestamp id for entities that only exist locally"""
    return str(epoch_millis() + offset)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO timestamp from a backend row; empty values map to None"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))

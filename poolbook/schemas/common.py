"""Shared schema types"""

from datetime import datetime, timezone
from typing import Annotated
from pydantic import PlainSerializer


def _serialize_utc(value: datetime) -> str:
    """Render a stored naive UTC instant as ISO 8601 with a Z suffix"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


UTCDateTime = Annotated[datetime, PlainSerializer(_serialize_utc, return_type=str)]

from datetime import datetime, timezone
from typing import List

from sqlalchemy import Column, DateTime, func, text


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_columns() -> List[Column]:
    """created_at/updated_at pair shared by pipeline tables; a fresh pair per table"""
    return [
        Column("created_at", DateTime(timezone=True),
               nullable=False,
               default=utcnow,
               server_default=text('CURRENT_TIMESTAMP')),
        Column("updated_at", DateTime(timezone=True),
               nullable=False,
               default=utcnow,
               server_default=text('CURRENT_TIMESTAMP'),
               onupdate=func.now()),
    ]

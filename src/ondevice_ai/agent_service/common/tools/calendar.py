# host-supplied calendar capability used by the calendar tools

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from pydantic import BaseModel

class CalendarEvent(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    notes: Optional[str] = None
    location: Optional[str] = None

@runtime_checkable
class CalendarProvider(Protocol):
    """
    Calendar access owned by the host (device calendar, CalDAV, ...). Opaque to the agent beyond this signature.
    """
    async def aget_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        ...

    async def acreate_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        notes: Optional[str] = None,
        location: Optional[str] = None,
    ) -> str:
        ...

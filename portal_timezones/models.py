"""
Value objects for appointment times.
"""

from dataclasses import dataclass, fields
from datetime import datetime, tzinfo
from typing import Any, Optional


@dataclass(frozen=True)
class WallClockFields:
    """Calendar date and clock time, not yet tied to a zone."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0

    def to_datetime(self, zone: tzinfo) -> datetime:
        """
        Attach a zone to these fields.

        Raises:
            ValueError: If any field is out of range
        """
        return datetime(self.year, self.month, self.day, self.hour, self.minute, tzinfo=zone)


@dataclass(frozen=True)
class ConvertedTime:
    """An availability slot rendered in the client's zone."""

    time: str
    formatted_time: str


@dataclass
class Appointment:
    """A stored appointment row. start_at/end_at are UTC ISO strings."""

    id: Optional[str] = None
    client_id: Optional[str] = None
    clinician_id: Optional[str] = None
    start_at: Optional[str] = None
    end_at: Optional[str] = None
    type: str = 'Appointment'
    status: str = 'scheduled'
    video_room_url: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> 'Appointment':
        """
        Build from a database row.

        Columns this class does not model are ignored and missing ones take
        their defaults. An empty type becomes 'Appointment'.
        """
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in record.items() if key in known}
        if not values.get('type'):
            values.pop('type', None)
        return cls(**values)

    def __repr__(self) -> str:
        return (f"Appointment(id='{self.id}', status='{self.status}', "
                f"start_at='{self.start_at}', end_at='{self.end_at}')")

"""Overlap detection against persisted bookings

Intervals are half-open ``[start, end)``: a booking ending at 10:00 and
one starting at 10:00 do not overlap.
"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking
from .repository import BookingRepository


def intervals_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Whether two canonical ``HH:MM:SS`` intervals share at least one instant"""
    return start_a < end_b and start_b < end_a


class OverlapDetector:
    """Checks a proposed interval against the store. Always queries, never caches."""

    def __init__(self, db: Session, repo: Optional[BookingRepository] = None):
        self.db = db
        self.repo = repo or BookingRepository()

    def find_conflict(
        self,
        hall_id: int,
        day: date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[str] = None,
    ) -> Optional[Booking]:
        """Return the first existing booking intersecting the interval, if any"""
        for existing in self.repo.find_bookings(self.db, hall_id, day, exclude_id=exclude_id):
            if intervals_overlap(existing.start_time, existing.end_time, start_time, end_time):
                return existing
        return None

    def has_overlap(
        self,
        hall_id: int,
        day: date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        return self.find_conflict(hall_id, day, start_time, end_time, exclude_id) is not None

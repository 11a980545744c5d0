"""Booking repository - Database operations for bookings and series

Single-row writes commit on their own. ``insert_series`` and
``insert_bookings_bulk`` only flush: the caller commits the parent and its
children together.
"""

from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import Booking, Series


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def find_bookings(
        db: Session, hall_id: int, day: date, exclude_id: Optional[str] = None
    ) -> list[Booking]:
        """Get every booking on a hall and date, optionally skipping one ID"""
        query = db.query(Booking).filter(Booking.hall_id == hall_id, Booking.date == day)

        if exclude_id:
            query = query.filter(Booking.id != exclude_id)

        return query.order_by(Booking.start_time.asc()).all()

    @staticmethod
    def find_bookings_by_date(db: Session, day: date, hall_id: Optional[int] = None) -> list[Booking]:
        """Get bookings for a date across all halls, or one hall"""
        query = db.query(Booking).filter(Booking.date == day)

        if hall_id is not None:
            query = query.filter(Booking.hall_id == hall_id)

        return query.order_by(Booking.start_time.asc(), Booking.hall_id.asc()).all()

    @staticmethod
    def find_bookings_by_series(db: Session, series_id: str) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.series_id == series_id)
            .order_by(Booking.date.asc())
            .all()
        )

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_series(db: Session, series_id: str) -> Optional[Series]:
        return db.query(Series).filter(Series.id == series_id).first()

    @staticmethod
    def insert_booking(db: Session, **booking_data) -> Booking:
        """Create a single booking"""
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def insert_series(db: Session, **series_data) -> Series:
        """Stage a series parent row. Caller commits."""
        series = Series(**series_data)
        db.add(series)
        db.flush()
        return series

    @staticmethod
    def insert_bookings_bulk(db: Session, rows: list[dict[str, Any]]) -> list[Booking]:
        """Stage many booking rows. Caller commits."""
        bookings = [Booking(**row) for row in rows]
        db.add_all(bookings)
        db.flush()
        return bookings

    @staticmethod
    def update_booking(db: Session, booking: Booking, **updates) -> Booking:
        """Update a booking with the provided fields"""
        for key, value in updates.items():
            if hasattr(booking, key):
                setattr(booking, key, value)

        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        """Delete one booking; a series left with no occurrences goes with it"""
        series_id = booking.series_id
        db.delete(booking)
        db.flush()

        if series_id:
            remaining = db.query(Booking.id).filter(Booking.series_id == series_id).first()
            if remaining is None:
                db.query(Series).filter(Series.id == series_id).delete(synchronize_session=False)

        db.commit()

    @staticmethod
    def delete_bookings_by_series(db: Session, series_id: str) -> int:
        """Delete every occurrence of a series and the series itself in one transaction"""
        deleted_count = (
            db.query(Booking)
            .filter(Booking.series_id == series_id)
            .delete(synchronize_session=False)
        )
        db.query(Series).filter(Series.id == series_id).delete(synchronize_session=False)
        db.commit()
        return deleted_count

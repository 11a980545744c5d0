"""Booking service - Write path and mutation guard for hall bookings

Every write runs the overlap check against the store first; the unique
constraint on (hall, date, start_time) catches the races the check can't,
and both surface as ConflictError.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import EDIT_SECRET_MIN_LENGTH, SERIES_MAX_INTERVAL
from ...exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidHallError,
    NoFieldsError,
    NotASeriesError,
    NotFoundError,
    OrderingError,
    PartialWriteError,
    ValidationError,
)
from ...models import Booking, Series
from ...security_utils import hash_secret, verify_secret
from ...shared.validators import format_date, normalize_time, parse_date
from ..halls.repository import HallRepository
from .overlap import OverlapDetector
from .recurrence import Frequency, expand, realized_weekdays
from .repository import BookingRepository
from .schemas import BookingCreate, BookingUpdate, SeriesCreate

logger = logging.getLogger(__name__)

DELETE_MODES = ("single", "series")


class BookingService:
    """Service layer for booking business logic"""

    def __init__(
        self,
        db: Session,
        repo: Optional[BookingRepository] = None,
        hall_repo: Optional[HallRepository] = None,
    ):
        self.db = db
        self.repo = repo or BookingRepository()
        self.hall_repo = hall_repo or HallRepository()
        self.overlap = OverlapDetector(db, self.repo)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_series(self, series_id: str) -> Series:
        series = self.repo.get_series(self.db, series_id)
        if not series:
            raise NotFoundError("Series not found")
        return series

    def list_bookings_by_date(self, day: str, hall_id: Optional[int] = None) -> list[Booking]:
        return self.repo.find_bookings_by_date(self.db, parse_date(day), hall_id)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_single(self, data: BookingCreate) -> Booking:
        """Create a one-off booking after an overlap check"""
        self._require_fields(
            hall_id=data.hall_id,
            date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            requester_name=data.requester_name,
        )
        day = parse_date(data.date)
        start, end = self._normalize_interval(data.start_time, data.end_time)
        self._require_hall(data.hall_id)
        secret_hash = self._hash_edit_secret(data.edit_secret)

        conflict = self.overlap.find_conflict(data.hall_id, day, start, end)
        if conflict:
            raise self._conflict_error(conflict)

        try:
            booking = self.repo.insert_booking(
                self.db,
                hall_id=data.hall_id,
                date=day,
                start_time=start,
                end_time=end,
                requester_name=data.requester_name,
                phone=data.phone or "",
                group_name=data.group_name or "",
                description=data.description or "",
                is_series=False,
                edit_secret_hash=secret_hash,
                edit_secret_hint=data.edit_secret_hint or None,
            )
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"⚠️ Unique constraint rejected booking hall={data.hall_id} date={day} start={start}"
            )
            raise ConflictError(
                "Another booking was just made for this time", conflict_date=format_date(day)
            ) from None

        logger.info(f"✅ Created booking {booking.id} hall={booking.hall_id} {day} {start}-{end}")
        return booking

    def create_series(self, data: SeriesCreate) -> tuple[Series, list[Booking]]:
        """
        Create a recurring series and all of its occurrences.

        Every occurrence is checked before anything is written; the parent
        row and child rows are committed together or not at all.

        Returns:
            The series row and its persisted occurrences in date order
        """
        self._require_fields(
            hall_id=data.hall_id,
            start_date=data.start_date,
            start_time=data.start_time,
            end_time=data.end_time,
            group_name=data.group_name,
        )
        frequency = self._parse_frequency(data.frequency)
        if not 1 <= data.interval <= SERIES_MAX_INTERVAL:
            raise ValidationError(f"Interval must be between 1 and {SERIES_MAX_INTERVAL}")
        if data.until and data.occurrence_count is not None:
            raise ValidationError("Give either an end date or an occurrence count, not both")

        self._require_hall(data.hall_id)
        start, end = self._normalize_interval(data.start_time, data.end_time)

        start_date = parse_date(data.start_date)
        until = parse_date(data.until) if data.until else None
        if until is not None and until < start_date:
            raise OrderingError("End date must not be before start date")

        dates = expand(
            start_date,
            frequency,
            weekdays=data.weekdays,
            until=until,
            occurrence_count=data.occurrence_count,
            interval=data.interval,
        )

        for day in dates:
            conflict = self.overlap.find_conflict(data.hall_id, day, start, end)
            if conflict:
                logger.warning(
                    f"⚠️ Series rejected: {day} conflicts with booking {conflict.id} on hall {data.hall_id}"
                )
                raise self._conflict_error(conflict)

        shared_fields = {
            "requester_name": data.requester_name or "",
            "phone": data.phone or "",
            "group_name": data.group_name,
            "description": data.description or "",
        }

        try:
            series = self.repo.insert_series(
                self.db,
                hall_id=data.hall_id,
                start_date=dates[0],
                end_date=dates[-1],
                start_time=start,
                end_time=end,
                frequency=frequency.value,
                interval=frequency.step(data.interval),
                weekdays=realized_weekdays(dates),
                **shared_fields,
            )
            self.repo.insert_bookings_bulk(
                self.db,
                [
                    {
                        "hall_id": data.hall_id,
                        "date": day,
                        "start_time": start,
                        "end_time": end,
                        "is_series": True,
                        "series_id": series.id,
                        **shared_fields,
                    }
                    for day in dates
                ],
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"⚠️ Unique constraint rejected series on hall {data.hall_id}")
            raise ConflictError("Another booking was just made for one of these dates") from None

        occurrences = self.repo.find_bookings_by_series(self.db, series.id)
        if len(occurrences) != len(dates):
            logger.critical(
                f"🚨 Series {series.id} committed {len(occurrences)} of {len(dates)} occurrences"
            )
            raise PartialWriteError(
                "Series was only partially saved; operator intervention required",
                series_id=series.id,
            )

        logger.info(
            f"✅ Created series {series.id} hall={data.hall_id} with {len(occurrences)} occurrences "
            f"({dates[0]} to {dates[-1]})"
        )
        return series, occurrences

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    def update_booking(self, booking_id: str, data: BookingUpdate) -> Booking:
        """Patch a booking, re-checking overlap against its post-patch state"""
        updates = data.supplied_fields()
        if not updates:
            raise NoFieldsError("No fields to update")

        if "date" in updates:
            updates["date"] = parse_date(updates["date"])
        for key in ("start_time", "end_time"):
            if key in updates:
                updates[key] = normalize_time(updates[key])

        booking = self.get_booking(booking_id)

        effective = {
            key: updates.get(key, getattr(booking, key))
            for key in ("hall_id", "date", "start_time", "end_time")
        }
        if effective["end_time"] <= effective["start_time"]:
            raise OrderingError("End time must be after start time")

        if effective["hall_id"] != booking.hall_id:
            self._require_hall(effective["hall_id"])

        conflict = self.overlap.find_conflict(
            effective["hall_id"],
            effective["date"],
            effective["start_time"],
            effective["end_time"],
            exclude_id=booking.id,
        )
        if conflict:
            raise self._conflict_error(conflict)

        try:
            booking = self.repo.update_booking(self.db, booking, **updates)
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"⚠️ Unique constraint rejected update of booking {booking_id}")
            raise ConflictError(
                "Another booking was just made for this time",
                conflict_date=format_date(effective["date"]),
            ) from None

        logger.info(f"✅ Updated booking {booking.id}: {', '.join(sorted(updates))}")
        return booking

    def delete_booking(
        self, booking_id: str, secret: Optional[str] = None, mode: str = "single"
    ) -> dict[str, Any]:
        """
        Cancel one booking, or every occurrence of its series.

        A booking stored with a secret hash can only be cancelled with the
        matching secret. Bookings without one are cancelled freely.
        """
        if mode not in DELETE_MODES:
            raise ValidationError(f"Unknown delete mode: {mode!r}")

        booking = self.get_booking(booking_id)

        if booking.edit_secret_hash:
            if not secret or not verify_secret(secret, booking.edit_secret_hash):
                logger.warning(f"⚠️ Rejected delete of protected booking {booking.id}")
                raise ForbiddenError("Secret is missing or incorrect")

        if mode == "series":
            if not booking.series_id:
                raise NotASeriesError("Booking is not part of a series")
            series_id = booking.series_id
            deleted_count = self.repo.delete_bookings_by_series(self.db, series_id)
            logger.info(f"✅ Deleted series {series_id} ({deleted_count} occurrences)")
            return {"ok": True, "deleted": "series", "count": deleted_count, "series_id": series_id}

        self.repo.delete_booking(self.db, booking)
        logger.info(f"✅ Deleted booking {booking_id}")
        return {"ok": True, "deleted": "single", "count": 1}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_fields(**fields: Any) -> None:
        missing = [
            name
            for name, value in fields.items()
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", missing_fields=missing
            )

    @staticmethod
    def _normalize_interval(start_time: str, end_time: str) -> tuple[str, str]:
        start, end = normalize_time(start_time), normalize_time(end_time)
        if end <= start:
            raise OrderingError("End time must be after start time")
        return start, end

    @staticmethod
    def _parse_frequency(value: str) -> Frequency:
        try:
            return Frequency(value)
        except ValueError:
            allowed = ", ".join(f.value for f in Frequency)
            raise ValidationError(f"Frequency must be one of: {allowed}") from None

    def _require_hall(self, hall_id: int) -> None:
        if not self.hall_repo.hall_exists(self.db, hall_id):
            raise InvalidHallError(f"Hall {hall_id} does not exist", hall_id=hall_id)

    @staticmethod
    def _hash_edit_secret(secret: Optional[str]) -> Optional[str]:
        if not secret:
            return None
        if len(secret) < EDIT_SECRET_MIN_LENGTH:
            raise ValidationError(
                f"Edit secret must be at least {EDIT_SECRET_MIN_LENGTH} characters"
            )
        return hash_secret(secret)

    @staticmethod
    def _conflict_error(conflict: Booking) -> ConflictError:
        day = format_date(conflict.date)
        who = f" by '{conflict.requester_name}'" if conflict.requester_name else ""
        return ConflictError(
            f"Conflict on {day}: {conflict.start_time}-{conflict.end_time} is already booked{who}",
            conflict_date=day,
            conflict_requester=conflict.requester_name or None,
            conflict_booking_id=conflict.id,
        )

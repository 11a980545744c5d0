"""Tests for the booking write path and mutation guard."""

from datetime import date
from itertools import combinations

import pytest

from hallbook.domain.bookings.overlap import OverlapDetector, intervals_overlap
from hallbook.domain.bookings.repository import BookingRepository
from hallbook.domain.bookings.schemas import BookingCreate, BookingUpdate, SeriesCreate
from hallbook.exceptions import (
    ConflictError,
    ForbiddenError,
    FormatError,
    InvalidHallError,
    NoFieldsError,
    NoOccurrencesError,
    NotASeriesError,
    NotFoundError,
    OrderingError,
    PartialWriteError,
    ValidationError,
)
from hallbook.models import Booking, Series


def single(hall, **overrides):
    data = {
        "hall_id": hall,
        "date": "2025-03-01",
        "start_time": "09:00",
        "end_time": "10:00",
        "requester_name": "Alice",
    }
    data.update(overrides)
    return BookingCreate(**data)


def weekly(hall, **overrides):
    data = {
        "hall_id": hall,
        "start_date": "2025-01-06",
        "start_time": "18:00",
        "end_time": "20:00",
        "frequency": "weekly",
        "weekdays": [1, 3],
        "occurrence_count": 4,
        "requester_name": "Choir lead",
        "group_name": "Choir",
    }
    data.update(overrides)
    return SeriesCreate(**data)


def assert_no_overlaps(db):
    bookings = db.query(Booking).all()
    for a, b in combinations(bookings, 2):
        if a.hall_id == b.hall_id and a.date == b.date:
            assert not intervals_overlap(a.start_time, a.end_time, b.start_time, b.end_time)


class TestCreateSingle:
    """Test one-off booking creation."""

    def test_creates_booking(self, service, hall_id):
        """Should persist a non-series booking with canonical times."""
        booking = service.create_single(single(hall_id, phone="010-1234"))

        assert booking.id
        assert booking.date == date(2025, 3, 1)
        assert booking.start_time == "09:00:00"
        assert booking.end_time == "10:00:00"
        assert booking.is_series is False
        assert booking.series_id is None
        assert booking.phone == "010-1234"

    def test_overlap_rejected(self, service, hall_id):
        """Should reject 09:30-10:30 when 09:00-10:00 is taken."""
        first = service.create_single(single(hall_id))

        with pytest.raises(ConflictError) as exc_info:
            service.create_single(single(hall_id, start_time="09:30", end_time="10:30", requester_name="Bob"))

        assert exc_info.value.conflict_date == "2025-03-01"
        assert exc_info.value.conflict_requester == "Alice"
        assert exc_info.value.conflict_booking_id == first.id

    def test_touching_edge_allowed(self, service, hall_id):
        """Should accept 10:00-11:00 right after 09:00-10:00."""
        service.create_single(single(hall_id))

        booking = service.create_single(single(hall_id, start_time="10:00", end_time="11:00"))

        assert booking.start_time == "10:00:00"

    def test_same_time_other_hall_allowed(self, service, halls):
        service.create_single(single(halls[0].id))

        booking = service.create_single(single(halls[1].id))

        assert booking.hall_id == halls[1].id

    @pytest.mark.parametrize("field", ["hall_id", "date", "start_time", "end_time", "requester_name"])
    def test_missing_required_field(self, service, hall_id, field):
        with pytest.raises(ValidationError) as exc_info:
            service.create_single(single(hall_id, **{field: None}))

        assert field in exc_info.value.context["missing_fields"]

    def test_blank_requester_rejected(self, service, hall_id):
        with pytest.raises(ValidationError):
            service.create_single(single(hall_id, requester_name="   "))

    def test_bad_time_format(self, service, hall_id):
        with pytest.raises(FormatError):
            service.create_single(single(hall_id, start_time="9am"))

    def test_bad_date_format(self, service, hall_id):
        with pytest.raises(FormatError):
            service.create_single(single(hall_id, date="03/01/2025"))

    @pytest.mark.parametrize("end", ["09:00", "08:00"])
    def test_end_not_after_start(self, service, hall_id, end):
        with pytest.raises(OrderingError):
            service.create_single(single(hall_id, end_time=end))

    def test_unknown_hall(self, service, halls):
        with pytest.raises(InvalidHallError):
            service.create_single(single(9999))

    def test_secret_is_hashed_not_stored(self, service, hall_id):
        booking = service.create_single(single(hall_id, edit_secret="s3cret!", edit_secret_hint="pet"))

        assert booking.edit_secret_hash
        assert booking.edit_secret_hash != "s3cret!"
        assert booking.is_protected is True
        assert booking.edit_secret_hint == "pet"

    def test_short_secret_rejected(self, service, hall_id):
        with pytest.raises(ValidationError):
            service.create_single(single(hall_id, edit_secret="abc"))

    def test_unique_constraint_backstop(self, service, hall_id, monkeypatch):
        """Should turn a constraint violation from a lost race into ConflictError."""
        service.create_single(single(hall_id))
        monkeypatch.setattr(OverlapDetector, "find_conflict", lambda self, *args, **kwargs: None)

        with pytest.raises(ConflictError):
            service.create_single(single(hall_id, end_time="09:45"))

        assert service.db.query(Booking).count() == 1


class TestCreateSeries:
    """Test recurring series creation."""

    def test_creates_parent_and_children(self, service, db, hall_id):
        """Should persist one series row and one booking per expanded date."""
        series, occurrences = service.create_series(weekly(hall_id))

        assert [b.date.isoformat() for b in occurrences] == [
            "2025-01-06",
            "2025-01-08",
            "2025-01-13",
            "2025-01-15",
        ]
        assert all(b.is_series and b.series_id == series.id for b in occurrences)
        assert all(b.group_name == "Choir" and b.requester_name == "Choir lead" for b in occurrences)
        assert all(b.start_time == "18:00:00" and b.end_time == "20:00:00" for b in occurrences)
        assert db.query(Series).count() == 1
        assert db.query(Booking).count() == 4

    def test_series_row_records_realized_schedule(self, service, hall_id):
        """Should store the first/last date and weekdays actually generated."""
        # Sunday requested but only 2 occurrences fit before it comes round
        series, _ = service.create_series(weekly(hall_id, weekdays=[1, 3, 0], occurrence_count=2))

        assert series.start_date == date(2025, 1, 6)
        assert series.end_date == date(2025, 1, 8)
        assert series.weekdays == [1, 3]
        assert series.interval == 1
        assert series.frequency == "weekly"

    def test_biweekly_interval_stored_as_weeks(self, service, hall_id):
        series, occurrences = service.create_series(
            weekly(hall_id, frequency="biweekly", weekdays=[1], occurrence_count=2)
        )

        assert series.interval == 2
        assert [b.date for b in occurrences] == [date(2025, 1, 6), date(2025, 1, 20)]

    def test_monthly_clamps(self, service, hall_id):
        _, occurrences = service.create_series(
            weekly(
                hall_id,
                frequency="monthly",
                start_date="2025-01-31",
                until="2025-04-30",
                occurrence_count=None,
            )
        )

        assert [b.date.isoformat() for b in occurrences] == [
            "2025-01-31",
            "2025-02-28",
            "2025-03-31",
            "2025-04-30",
        ]

    def test_default_cap(self, service, hall_id):
        _, occurrences = service.create_series(weekly(hall_id, weekdays=[1], occurrence_count=None))

        assert len(occurrences) == 10

    def test_conflict_writes_nothing(self, service, db, hall_id):
        """Should abort the whole series when any single date conflicts."""
        service.create_single(
            single(hall_id, date="2025-01-13", start_time="19:00", end_time="21:00", requester_name="Bob")
        )

        with pytest.raises(ConflictError) as exc_info:
            service.create_series(weekly(hall_id))

        assert exc_info.value.conflict_date == "2025-01-13"
        assert exc_info.value.conflict_requester == "Bob"
        assert db.query(Series).count() == 0
        assert db.query(Booking).count() == 1

    def test_group_name_required(self, service, hall_id):
        with pytest.raises(ValidationError):
            service.create_series(weekly(hall_id, group_name=""))

    def test_requester_optional(self, service, hall_id):
        _, occurrences = service.create_series(weekly(hall_id, requester_name=None))

        assert all(b.requester_name == "" for b in occurrences)

    def test_unknown_hall(self, service, halls):
        with pytest.raises(InvalidHallError):
            service.create_series(weekly(4242))

    def test_unknown_frequency(self, service, hall_id):
        with pytest.raises(ValidationError):
            service.create_series(weekly(hall_id, frequency="daily"))

    def test_interval_bounds(self, service, hall_id):
        with pytest.raises(ValidationError):
            service.create_series(weekly(hall_id, interval=9))

    def test_both_terminators_rejected(self, service, hall_id):
        with pytest.raises(ValidationError):
            service.create_series(weekly(hall_id, until="2025-02-01"))

    def test_until_before_start(self, service, hall_id):
        with pytest.raises(OrderingError):
            service.create_series(weekly(hall_id, until="2025-01-01", occurrence_count=None))

    def test_no_occurrences(self, service, db, hall_id):
        with pytest.raises(NoOccurrencesError):
            service.create_series(weekly(hall_id, weekdays=[]))

        assert db.query(Series).count() == 0

    def test_time_ordering(self, service, hall_id):
        with pytest.raises(OrderingError):
            service.create_series(weekly(hall_id, start_time="20:00", end_time="18:00"))

    def test_unique_constraint_backstop_rolls_back(self, service, db, hall_id, monkeypatch):
        """Should leave neither parent nor children when a child insert collides."""
        service.create_single(single(hall_id, date="2025-01-08", start_time="18:00", end_time="18:30"))
        monkeypatch.setattr(OverlapDetector, "find_conflict", lambda self, *args, **kwargs: None)

        with pytest.raises(ConflictError):
            service.create_series(weekly(hall_id))

        assert db.query(Series).count() == 0
        assert db.query(Booking).count() == 1

    def test_partial_write_detected(self, service, hall_id, monkeypatch):
        """Should raise PartialWriteError when fewer children come back than were expanded."""
        real_find = BookingRepository.find_bookings_by_series
        monkeypatch.setattr(
            BookingRepository,
            "find_bookings_by_series",
            staticmethod(lambda db, series_id: real_find(db, series_id)[:-1]),
        )

        with pytest.raises(PartialWriteError):
            service.create_series(weekly(hall_id))


class TestUpdate:
    """Test the update path."""

    def test_updates_only_supplied_fields(self, service, hall_id):
        booking = service.create_single(single(hall_id, phone="111"))

        updated = service.update_booking(booking.id, BookingUpdate(description="Rehearsal"))

        assert updated.description == "Rehearsal"
        assert updated.phone == "111"
        assert updated.start_time == "09:00:00"

    def test_normalizes_times(self, service, hall_id):
        booking = service.create_single(single(hall_id))

        updated = service.update_booking(booking.id, BookingUpdate(end_time="11:30"))

        assert updated.end_time == "11:30:00"

    def test_empty_patch(self, service, hall_id):
        booking = service.create_single(single(hall_id))

        with pytest.raises(NoFieldsError):
            service.update_booking(booking.id, BookingUpdate())

    def test_blank_values_count_as_empty(self, service, hall_id):
        booking = service.create_single(single(hall_id))

        with pytest.raises(NoFieldsError):
            service.update_booking(booking.id, BookingUpdate(phone="", description="  "))

    def test_not_found(self, service, halls):
        with pytest.raises(NotFoundError):
            service.update_booking("missing", BookingUpdate(phone="1"))

    def test_shrinking_own_interval_is_not_a_conflict(self, service, hall_id):
        """Should exclude the booking itself from the overlap check."""
        booking = service.create_single(single(hall_id))

        updated = service.update_booking(booking.id, BookingUpdate(start_time="09:15"))

        assert updated.start_time == "09:15:00"

    def test_ordering_checked_on_effective_state(self, service, hall_id):
        """Should reject a new start that lands after the existing end."""
        booking = service.create_single(single(hall_id))

        with pytest.raises(OrderingError):
            service.update_booking(booking.id, BookingUpdate(start_time="10:30"))

    def test_conflict_on_time_change(self, service, hall_id):
        service.create_single(single(hall_id, start_time="10:00", end_time="11:00", requester_name="Bob"))
        booking = service.create_single(single(hall_id))

        with pytest.raises(ConflictError):
            service.update_booking(booking.id, BookingUpdate(end_time="10:30"))

    def test_hall_change_checks_new_hall(self, service, halls):
        """Should run the overlap check on the new hall when only the hall changes."""
        main_hall, chapel = halls
        service.create_single(single(chapel.id, requester_name="Bob"))
        booking = service.create_single(single(main_hall.id))

        with pytest.raises(ConflictError) as exc_info:
            service.update_booking(booking.id, BookingUpdate(hall_id=chapel.id))

        assert exc_info.value.conflict_requester == "Bob"

    def test_date_change_checks_new_date(self, service, hall_id):
        service.create_single(single(hall_id, date="2025-03-02", requester_name="Bob"))
        booking = service.create_single(single(hall_id))

        with pytest.raises(ConflictError):
            service.update_booking(booking.id, BookingUpdate(date="2025-03-02"))

    def test_hall_change_to_free_hall(self, service, halls):
        main_hall, chapel = halls
        booking = service.create_single(single(main_hall.id))

        updated = service.update_booking(booking.id, BookingUpdate(hall_id=chapel.id))

        assert updated.hall_id == chapel.id

    def test_hall_change_to_unknown_hall(self, service, hall_id):
        booking = service.create_single(single(hall_id))

        with pytest.raises(InvalidHallError):
            service.update_booking(booking.id, BookingUpdate(hall_id=777))

    def test_invariant_holds_after_mixed_writes(self, service, db, halls):
        """Should never leave two live bookings overlapping on one hall and date."""
        main_hall, chapel = halls
        service.create_series(weekly(main_hall.id, weekdays=[6], start_date="2025-03-01"))
        attempts = [
            single(main_hall.id, start_time="17:00", end_time="18:30"),
            single(main_hall.id, start_time="20:00", end_time="21:00"),
            single(chapel.id, start_time="18:00", end_time="20:00"),
            single(main_hall.id, date="2025-03-08", start_time="19:59", end_time="22:00"),
        ]
        for attempt in attempts:
            try:
                service.create_single(attempt)
            except ConflictError:
                pass
        movable = db.query(Booking).filter(Booking.hall_id == chapel.id).first()
        with pytest.raises(ConflictError):
            service.update_booking(movable.id, BookingUpdate(hall_id=main_hall.id))

        assert_no_overlaps(db)


class TestDelete:
    """Test cancellation of single bookings and series."""

    def test_unprotected_delete_without_secret(self, service, db, hall_id):
        booking = service.create_single(single(hall_id))

        result = service.delete_booking(booking.id)

        assert result == {"ok": True, "deleted": "single", "count": 1}
        assert db.query(Booking).count() == 0

    def test_protected_requires_secret(self, service, hall_id):
        booking = service.create_single(single(hall_id, edit_secret="opensesame"))

        with pytest.raises(ForbiddenError):
            service.delete_booking(booking.id)

    def test_protected_rejects_wrong_secret(self, service, hall_id):
        booking = service.create_single(single(hall_id, edit_secret="opensesame"))

        with pytest.raises(ForbiddenError):
            service.delete_booking(booking.id, secret="guess")

    def test_protected_with_correct_secret(self, service, db, hall_id):
        booking = service.create_single(single(hall_id, edit_secret="opensesame"))

        service.delete_booking(booking.id, secret="opensesame")

        assert db.query(Booking).count() == 0

    def test_not_found(self, service, halls):
        with pytest.raises(NotFoundError):
            service.delete_booking("nope")

    def test_unknown_mode(self, service, hall_id):
        booking = service.create_single(single(hall_id))

        with pytest.raises(ValidationError):
            service.delete_booking(booking.id, mode="everything")

    def test_series_mode_on_single_booking(self, service, hall_id):
        booking = service.create_single(single(hall_id))

        with pytest.raises(NotASeriesError):
            service.delete_booking(booking.id, mode="series")

    def test_series_cascade_removes_only_that_series(self, service, db, halls):
        """Should delete every sibling occurrence and nothing else."""
        main_hall, chapel = halls
        series, occurrences = service.create_series(weekly(main_hall.id))
        other_series, _ = service.create_series(weekly(chapel.id))
        loose = service.create_single(single(main_hall.id))
        series_id, other_id, loose_id = series.id, other_series.id, loose.id

        result = service.delete_booking(occurrences[2].id, mode="series")

        assert result["deleted"] == "series"
        assert result["count"] == 4
        assert db.query(Booking).filter(Booking.series_id == series_id).count() == 0
        assert db.query(Series).filter(Series.id == series_id).count() == 0
        assert db.query(Series).filter(Series.id == other_id).count() == 1
        assert db.query(Booking).filter(Booking.series_id == other_id).count() == 4
        assert db.query(Booking).filter(Booking.id == loose_id).count() == 1

    def test_single_mode_on_series_occurrence(self, service, db, hall_id):
        series, occurrences = service.create_series(weekly(hall_id))

        service.delete_booking(occurrences[0].id)

        assert db.query(Booking).filter(Booking.series_id == series.id).count() == 3
        assert db.query(Series).count() == 1

    def test_deleting_last_occurrence_removes_series(self, service, db, hall_id):
        """Should not leave a series row with no occurrences."""
        series, occurrences = service.create_series(weekly(hall_id, occurrence_count=1))

        service.delete_booking(occurrences[0].id)

        assert db.query(Series).count() == 0

    def test_parent_delete_cascades_to_children(self, service, db, hall_id):
        """Should remove children when the series row itself is deleted."""
        series, _ = service.create_series(weekly(hall_id))

        db.delete(db.query(Series).filter(Series.id == series.id).one())
        db.commit()

        assert db.query(Booking).count() == 0


class TestReads:
    def test_get_booking_not_found(self, service, halls):
        with pytest.raises(NotFoundError):
            service.get_booking("missing")

    def test_get_series_not_found(self, service, halls):
        with pytest.raises(NotFoundError):
            service.get_series("missing")

    def test_list_by_date_sorted_and_filtered(self, service, halls):
        main_hall, chapel = halls
        service.create_single(single(main_hall.id, start_time="13:00", end_time="14:00"))
        service.create_single(single(chapel.id, start_time="08:00", end_time="09:00"))
        service.create_single(single(main_hall.id))

        everything = service.list_bookings_by_date("2025-03-01")
        main_only = service.list_bookings_by_date("2025-03-01", main_hall.id)

        assert [b.start_time for b in everything] == ["08:00:00", "09:00:00", "13:00:00"]
        assert [b.start_time for b in main_only] == ["09:00:00", "13:00:00"]

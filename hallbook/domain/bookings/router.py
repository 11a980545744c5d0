"""Booking router - FastAPI endpoints for bookings and series"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Booking
from .schemas import (
    BookingCreate,
    BookingDeleteRequest,
    BookingListItem,
    BookingResponse,
    BookingUpdate,
    DeleteResponse,
    SeriesCreate,
    SeriesCreateResponse,
    SeriesResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])
series_router = APIRouter(prefix="/series", tags=["Series"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def _to_response(booking: Booking) -> BookingResponse:
    return BookingResponse.model_validate(booking)


# ============================================================================
# READS
# ============================================================================

# Must come BEFORE /{booking_id} to avoid path conflicts
@router.get("/by-date", response_model=list[BookingListItem])
async def list_bookings_by_date(
    date: str = Query(..., description="YYYY-MM-DD"),
    hall_id: Optional[int] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """List bookings on a date, optionally for one hall, ordered by start time"""
    bookings = service.list_bookings_by_date(date, hall_id)
    return [
        BookingListItem(**_to_response(b).model_dump(), applicant=b.requester_name)
        for b in bookings
    ]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Get a single booking"""
    return _to_response(service.get_booking(booking_id.strip()))


@series_router.get("/{series_id}", response_model=SeriesResponse)
async def get_series(
    series_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Get a series with its remaining occurrences"""
    series = service.get_series(series_id.strip())
    return SeriesResponse(
        id=series.id,
        hall_id=series.hall_id,
        start_date=series.start_date,
        end_date=series.end_date,
        start_time=series.start_time,
        end_time=series.end_time,
        frequency=series.frequency,
        interval=series.interval,
        weekdays=series.weekdays or [],
        requester_name=series.requester_name,
        phone=series.phone,
        group_name=series.group_name,
        description=series.description,
        occurrences=[_to_response(b) for b in series.bookings],
    )


# ============================================================================
# WRITES
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    """Create a one-off booking"""
    return _to_response(service.create_single(data))


@router.post("/series", response_model=SeriesCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_series(
    data: SeriesCreate,
    service: BookingService = Depends(get_booking_service),
):
    """Create a recurring series; all occurrences are saved or none are"""
    series, occurrences = service.create_series(data)
    return SeriesCreateResponse(
        series_id=series.id,
        occurrence_count=len(occurrences),
        occurrences=[_to_response(b) for b in occurrences],
    )


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    data: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """Update a booking; unspecified fields keep their current values"""
    return _to_response(service.update_booking(booking_id.strip(), data))


@router.delete("/{booking_id}", response_model=DeleteResponse)
async def delete_booking(
    booking_id: str,
    mode: Optional[Literal["single", "series"]] = Query(None),
    data: Optional[BookingDeleteRequest] = Body(None),
    service: BookingService = Depends(get_booking_service),
):
    """
    Cancel a booking.
    DELETE /bookings/{id}              cancels one occurrence
    DELETE /bookings/{id}?mode=series  cancels every occurrence of its series
    The secret goes in the JSON body when the booking is protected.
    """
    secret = data.secret if data else None
    effective_mode = mode or (data.mode if data and data.mode else "single")
    return service.delete_booking(booking_id.strip(), secret=secret, mode=effective_mode)

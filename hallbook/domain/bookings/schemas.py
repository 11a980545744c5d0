"""Booking domain schemas - Pydantic models for validation

Each write operation has one request model. Alternate key spellings sent by
older clients are folded in here through ``AliasChoices`` so the service
only ever sees one name per field.
"""

import datetime
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class BookingCreate(BaseModel):
    """Schema for creating a one-off booking"""

    model_config = ConfigDict(str_strip_whitespace=True)

    hall_id: Optional[int] = Field(None, validation_alias=AliasChoices("hall_id", "hallId"))
    date: Optional[str] = None  # YYYY-MM-DD
    start_time: Optional[str] = Field(None, validation_alias=AliasChoices("start_time", "startTime"))
    end_time: Optional[str] = Field(None, validation_alias=AliasChoices("end_time", "endTime"))
    requester_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("requester_name", "requesterName")
    )
    phone: Optional[str] = None
    group_name: Optional[str] = Field(None, validation_alias=AliasChoices("group_name", "groupName"))
    description: Optional[str] = None
    edit_secret: Optional[str] = Field(
        None, validation_alias=AliasChoices("edit_secret", "editSecret", "edit_password")
    )
    edit_secret_hint: Optional[str] = Field(
        None, validation_alias=AliasChoices("edit_secret_hint", "editSecretHint", "edit_password_hint")
    )


class SeriesCreate(BaseModel):
    """Schema for creating a recurring series"""

    model_config = ConfigDict(str_strip_whitespace=True)

    hall_id: Optional[int] = Field(None, validation_alias=AliasChoices("hall_id", "hallId"))
    start_date: Optional[str] = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    start_time: Optional[str] = Field(None, validation_alias=AliasChoices("start_time", "startTime"))
    end_time: Optional[str] = Field(None, validation_alias=AliasChoices("end_time", "endTime"))
    frequency: str = Field("weekly", validation_alias=AliasChoices("frequency", "freq"))
    weekdays: Optional[list[int]] = Field(
        None, validation_alias=AliasChoices("weekdays", "byweekday", "days", "dayOfWeek")
    )
    interval: int = Field(
        1, validation_alias=AliasChoices("interval", "intervalWeeks", "interval_weeks")
    )
    until: Optional[str] = Field(
        None, validation_alias=AliasChoices("until", "end_date", "endDate")
    )
    occurrence_count: Optional[int] = Field(
        None, validation_alias=AliasChoices("occurrence_count", "occurrenceCount", "count")
    )
    requester_name: Optional[str] = Field("", validation_alias=AliasChoices("requester_name", "requesterName"))
    group_name: Optional[str] = Field(None, validation_alias=AliasChoices("group_name", "groupName"))
    phone: Optional[str] = None
    description: Optional[str] = None

    @field_validator("frequency")
    @classmethod
    def normalize_frequency(cls, v):
        return v.lower()

    @field_validator("weekdays")
    @classmethod
    def normalize_weekdays(cls, v):
        # Some clients send Sunday as 7
        if v is None:
            return v
        return [0 if d == 7 else d for d in v]


class BookingUpdate(BaseModel):
    """Schema for patching a booking. Blank strings count as not supplied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    hall_id: Optional[int] = Field(None, validation_alias=AliasChoices("hall_id", "hallId"))
    date: Optional[str] = None
    start_time: Optional[str] = Field(None, validation_alias=AliasChoices("start_time", "startTime"))
    end_time: Optional[str] = Field(None, validation_alias=AliasChoices("end_time", "endTime"))
    requester_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("requester_name", "requesterName")
    )
    phone: Optional[str] = None
    group_name: Optional[str] = Field(None, validation_alias=AliasChoices("group_name", "groupName"))
    description: Optional[str] = None

    def supplied_fields(self) -> dict:
        """Fields the caller actually sent with a usable value"""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None and value != ""
        }


class BookingDeleteRequest(BaseModel):
    """Optional body for cancelling a booking"""

    model_config = ConfigDict(str_strip_whitespace=True)

    secret: Optional[str] = Field(
        None, validation_alias=AliasChoices("secret", "edit_secret", "edit_password")
    )
    mode: Optional[Literal["single", "series"]] = None


class BookingResponse(BaseModel):
    """Schema for booking responses. Never carries the secret hash."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    hall_id: int
    date: datetime.date
    start_time: str
    end_time: str
    requester_name: str
    phone: Optional[str] = None
    group_name: Optional[str] = None
    description: Optional[str] = None
    is_series: bool
    series_id: Optional[str] = None
    is_protected: bool = False
    edit_secret_hint: Optional[str] = None


class BookingListItem(BookingResponse):
    """Listing entry; ``applicant`` mirrors ``requester_name`` for older clients"""

    applicant: str


class SeriesCreateResponse(BaseModel):
    series_id: str
    occurrence_count: int
    occurrences: list[BookingResponse]


class SeriesResponse(BaseModel):
    """Schema for a series with its current occurrences"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    hall_id: int
    start_date: datetime.date
    end_date: datetime.date
    start_time: str
    end_time: str
    frequency: str
    interval: int
    weekdays: list[int]
    requester_name: str
    phone: Optional[str] = None
    group_name: str
    description: Optional[str] = None
    occurrences: list[BookingResponse] = []


class DeleteResponse(BaseModel):
    ok: bool = True
    deleted: Literal["single", "series"]
    count: int
    series_id: Optional[str] = None

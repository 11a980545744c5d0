import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique opaque ID for bookings and series"""
    return str(uuid.uuid4())


class Hall(Base):
    """Bookable venue. Read-only reference data for the booking engine."""

    __tablename__ = "halls"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    bookings = relationship("Booking", back_populates="hall")


class Series(Base):
    """Recurrence definition owning the occurrences it generated"""

    __tablename__ = "series"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    hall_id = Column(Integer, ForeignKey("halls.id"), nullable=False, index=True)

    # First and last generated occurrence
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(String(8), nullable=False)  # HH:MM:SS
    end_time = Column(String(8), nullable=False)

    frequency = Column(String(20), nullable=False)  # weekly, biweekly, monthly
    interval = Column(Integer, nullable=False, default=1)  # weeks or months between steps
    weekdays = Column(JSON, nullable=False, default=list)  # 0=Sunday..6=Saturday, as realized

    requester_name = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=True)
    group_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    hall = relationship("Hall")
    bookings = relationship(
        "Booking",
        back_populates="series",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Booking.date",
    )


class Booking(Base):
    """A single occurrence holding [start_time, end_time) on one hall and date"""

    __tablename__ = "bookings"
    __table_args__ = (
        # Backstop against two requests passing the overlap check concurrently
        UniqueConstraint("hall_id", "date", "start_time", name="uq_booking_hall_date_start"),
        Index("ix_bookings_hall_date", "hall_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=generate_public_id)
    hall_id = Column(Integer, ForeignKey("halls.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(8), nullable=False)  # HH:MM:SS
    end_time = Column(String(8), nullable=False)

    requester_name = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=True)
    group_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    is_series = Column(Boolean, default=False, nullable=False)
    series_id = Column(
        String(36), ForeignKey("series.id", ondelete="CASCADE"), nullable=True, index=True
    )

    # Deletion gate: bcrypt hash only, the plaintext is never stored
    edit_secret_hash = Column(String(255), nullable=True)
    edit_secret_hint = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    hall = relationship("Hall", back_populates="bookings")
    series = relationship("Series", back_populates="bookings")

    @property
    def is_protected(self) -> bool:
        return bool(self.edit_secret_hash)

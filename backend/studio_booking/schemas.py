from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .domain.selection import LAST_HOUR, Selection
from .models import Reservation, ReservationStatus
from .utils.time import day_index


class SelectionSpan(BaseModel):
    booking_date: date
    resource_idx: int = Field(ge=0)
    start_hour: int = Field(ge=0, le=LAST_HOUR)
    end_hour: int = Field(ge=0, le=LAST_HOUR)

    @model_validator(mode="after")
    def _check_order(self) -> "SelectionSpan":
        if self.start_hour > self.end_hour:
            raise ValueError("start_hour must not be later than end_hour")
        return self

    def to_selection(self) -> Selection:
        return Selection(day_index(self.booking_date), self.resource_idx, self.start_hour, self.end_hour)


class SelectionRead(SelectionSpan):
    day_idx: int
    duration: int

    @classmethod
    def from_selection(cls, *, selection: Selection, booking_date: date) -> "SelectionRead":
        return cls(
            booking_date=booking_date,
            day_idx=selection.day_idx,
            resource_idx=selection.resource_idx,
            start_hour=selection.start_hour_idx,
            end_hour=selection.end_hour_idx,
            duration=selection.duration,
        )


class SelectionPropose(BaseModel):
    booking_date: date
    resource_idx: int = Field(ge=0)
    hour: int = Field(ge=0, le=LAST_HOUR)


class SelectionExtend(BaseModel):
    selection: SelectionSpan
    new_hour: int = Field(ge=0, le=LAST_HOUR)


class SelectionValidity(BaseModel):
    valid: bool


class ReservationCreate(SelectionSpan):
    notes: Optional[str] = Field(default=None, max_length=1000)


class ReservationCancel(BaseModel):
    version: Optional[int] = Field(default=None, ge=1)


class ReservationRead(BaseModel):
    reservation_id: int
    user_id: int
    booking_date: date
    day_idx: int
    resource_idx: int
    start_hour: int
    end_hour: int
    status: ReservationStatus
    version: int
    notes: Optional[str] = None

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            booking_date=reservation.booking_date,
            day_idx=day_index(reservation.booking_date),
            resource_idx=reservation.resource_idx,
            start_hour=reservation.start_hour,
            end_hour=reservation.end_hour,
            status=reservation.status,
            version=reservation.version,
            notes=reservation.notes,
        )


class GridBookingRead(BaseModel):
    booking_date: date
    day_idx: int
    resource_idx: int
    start_hour: int
    end_hour: int
    status: ReservationStatus

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "GridBookingRead":
        return cls(
            booking_date=reservation.booking_date,
            day_idx=day_index(reservation.booking_date),
            resource_idx=reservation.resource_idx,
            start_hour=reservation.start_hour,
            end_hour=reservation.end_hour,
            status=reservation.status,
        )

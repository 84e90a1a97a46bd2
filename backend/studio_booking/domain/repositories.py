from __future__ import annotations

from datetime import date
from typing import Protocol

from ..models import Reservation, ReservationStatus


class ReservationRepository(Protocol):
    async def booked_hours(
        self,
        booking_date: date,
        resource_idx: int,
        *,
        for_update: bool = False,
    ) -> set[int]: ...

    async def create(
        self,
        *,
        user_id: int,
        booking_date: date,
        resource_idx: int,
        start_hour: int,
        end_hour: int,
        status: ReservationStatus,
        notes: str | None,
    ) -> Reservation: ...

    async def get_for_user(self, reservation_id: int, user_id: int) -> Reservation | None: ...

    async def get_for_user_for_update(self, reservation_id: int, user_id: int) -> Reservation | None: ...

    async def list_for_grid(
        self,
        start_date: date,
        end_date: date,
        resource_idx: int | None = None,
    ) -> list[Reservation]: ...

    async def list_by_user(
        self,
        user_id: int,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]: ...

    async def cancel(self, reservation: Reservation) -> Reservation: ...

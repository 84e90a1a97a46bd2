from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import ReservationRepository
from ..models import Reservation, ReservationStatus
from ..utils.time import utc_now_naive


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def booked_hours(
        self,
        booking_date: date,
        resource_idx: int,
        *,
        for_update: bool = False,
    ) -> set[int]:
        stmt: Select[tuple[int, int]] = select(Reservation.start_hour, Reservation.end_hour).where(
            Reservation.booking_date == booking_date,
            Reservation.resource_idx == resource_idx,
            Reservation.status != ReservationStatus.CANCELLED,
        )
        if for_update:
            stmt = stmt.with_for_update()
        rows = await self.session.execute(stmt)
        hours: set[int] = set()
        for start_hour, end_hour in rows.all():
            hours.update(range(start_hour, end_hour + 1))
        return hours

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
    ) -> Reservation:
        now = utc_now_naive()
        reservation = Reservation(
            user_id=user_id,
            booking_date=booking_date,
            resource_idx=resource_idx,
            start_hour=start_hour,
            end_hour=end_hour,
            status=status,
            version=1,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def get_for_user(self, reservation_id: int, user_id: int) -> Optional[Reservation]:
        stmt = select(Reservation).where(Reservation.id == reservation_id, Reservation.user_id == user_id)
        result = await self.session.scalar(stmt)
        return result if isinstance(result, Reservation) else None

    async def get_for_user_for_update(self, reservation_id: int, user_id: int) -> Optional[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.id == reservation_id, Reservation.user_id == user_id)
            .with_for_update()
        )
        result = await self.session.scalar(stmt)
        return result if isinstance(result, Reservation) else None

    async def list_for_grid(
        self,
        start_date: date,
        end_date: date,
        resource_idx: int | None = None,
    ) -> List[Reservation]:
        """Live reservations of every user between two dates, inclusive."""
        stmt = (
            select(Reservation)
            .where(
                Reservation.booking_date >= start_date,
                Reservation.booking_date <= end_date,
                Reservation.status != ReservationStatus.CANCELLED,
            )
            .order_by(Reservation.booking_date, Reservation.resource_idx, Reservation.start_hour)
        )
        if resource_idx is not None:
            stmt = stmt.where(Reservation.resource_idx == resource_idx)
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_by_user(
        self,
        user_id: int,
        status: ReservationStatus | None = None,
    ) -> List[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.user_id == user_id)
            .order_by(Reservation.booking_date, Reservation.start_hour)
        )
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def cancel(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

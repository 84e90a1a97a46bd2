import logging
from datetime import date

from ..domain.engine import RuleEngine
from ..domain.errors import (
    CancelNotAllowedError,
    ReservationNotFoundError,
    SelectionRejectedError,
    SlotConflictError,
    VersionConflictError,
)
from ..domain.repositories import ReservationRepository
from ..domain.selection import Selection
from ..domain.services import validate_reservation
from ..models import Reservation, ReservationStatus
from ..utils.time import day_index, utc_now_naive
from .selection import load_snapshot

logger = logging.getLogger(__name__)


async def create_reservation(
    engine: RuleEngine,
    res_repo: ReservationRepository,
    *,
    user_id: int,
    booking_date: date,
    resource_idx: int,
    start_hour: int,
    end_hour: int,
    notes: str | None = None,
) -> Reservation:
    selection = Selection(day_index(booking_date), resource_idx, start_hour, end_hour)
    # Lock the day's reservations for this resource so the conflict check holds until commit.
    snapshot = await load_snapshot(res_repo, booking_date=booking_date, resource_idx=resource_idx, for_update=True)
    try:
        validate_reservation(engine, selection, snapshot)
    except (SelectionRejectedError, SlotConflictError) as exc:
        logger.warning("reservation rejected for user %s on %s: %s (%s)", user_id, booking_date, selection, exc)
        raise

    return await res_repo.create(
        user_id=user_id,
        booking_date=booking_date,
        resource_idx=resource_idx,
        start_hour=start_hour,
        end_hour=end_hour,
        status=ReservationStatus.BOOKED,
        notes=notes,
    )


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    user_id: int,
    version: int | None = None,
) -> tuple[Reservation, ReservationStatus]:
    """Cancel a reservation. Returns the reservation and its status before the call."""
    reservation = await res_repo.get_for_user_for_update(reservation_id, user_id)
    if reservation is None:
        raise ReservationNotFoundError("reservation not found")
    previous_status = reservation.status
    # Idempotent: already cancelled returns as-is
    if reservation.status == ReservationStatus.CANCELLED:
        return reservation, previous_status
    if version is not None and reservation.version != version:
        raise VersionConflictError("version mismatch")
    if reservation.booking_date < date.today():
        raise CancelNotAllowedError("reservation date has passed")

    reservation.status = ReservationStatus.CANCELLED
    reservation.version += 1
    reservation.updated_at = utc_now_naive()
    updated = await res_repo.cancel(reservation)
    return updated, previous_status


async def list_user_reservations(
    res_repo: ReservationRepository,
    *,
    user_id: int,
    status: ReservationStatus | None = None,
) -> list[Reservation]:
    return await res_repo.list_by_user(user_id, status)


async def get_user_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    user_id: int,
) -> Reservation | None:
    return await res_repo.get_for_user(reservation_id, user_id)

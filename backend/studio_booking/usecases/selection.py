from datetime import date
from typing import Optional

from ..domain.engine import RuleEngine
from ..domain.errors import SlotConflictError
from ..domain.repositories import ReservationRepository
from ..domain.selection import Selection
from ..domain.services import GridSnapshot
from ..models import Reservation
from ..utils.time import day_index


async def load_snapshot(
    res_repo: ReservationRepository,
    *,
    booking_date: date,
    resource_idx: int,
    for_update: bool = False,
) -> GridSnapshot:
    hours = await res_repo.booked_hours(booking_date, resource_idx, for_update=for_update)
    return GridSnapshot(
        day_idx=day_index(booking_date),
        resource_idx=resource_idx,
        booked_hours=frozenset(hours),
    )


async def propose_selection(
    engine: RuleEngine,
    res_repo: ReservationRepository,
    *,
    booking_date: date,
    hour_idx: int,
    resource_idx: int,
) -> Selection:
    snapshot = await load_snapshot(res_repo, booking_date=booking_date, resource_idx=resource_idx)
    if snapshot.is_booked(snapshot.day_idx, hour_idx, resource_idx):
        raise SlotConflictError("clicked hour is already booked")
    return engine.calculate_selection(snapshot.day_idx, hour_idx, resource_idx, snapshot.is_booked)


async def extend_selection(
    engine: RuleEngine,
    res_repo: ReservationRepository,
    *,
    booking_date: date,
    selection: Selection,
    new_hour_idx: int,
) -> Optional[Selection]:
    snapshot = await load_snapshot(res_repo, booking_date=booking_date, resource_idx=selection.resource_idx)
    return engine.extend_selection(selection, new_hour_idx, snapshot.is_booked)


def check_selection(engine: RuleEngine, selection: Selection) -> bool:
    return engine.validate_selection(selection)


async def list_grid_bookings(
    res_repo: ReservationRepository,
    *,
    start_date: date,
    end_date: date | None = None,
    resource_idx: int | None = None,
) -> list[Reservation]:
    """Reservations a grid client marks as booked; a single day when ``end_date`` is omitted."""
    return await res_repo.list_for_grid(start_date, end_date or start_date, resource_idx)

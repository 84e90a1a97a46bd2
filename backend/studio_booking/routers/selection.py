from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..config import Settings
from ..deps import ensure_known_resource, get_app_settings, get_reservation_repo, get_rule_engine
from ..domain.engine import RuleEngine
from ..domain.errors import SlotConflictError
from ..domain.repositories import ReservationRepository
from ..schemas import (
    GridBookingRead,
    SelectionExtend,
    SelectionPropose,
    SelectionRead,
    SelectionSpan,
    SelectionValidity,
)
from ..usecases import selection as selection_usecase

router = APIRouter(prefix="/grid", tags=["selection"])


@router.get("/bookings", response_model=List[GridBookingRead])
async def list_grid_bookings(
    start_date: date = Query(...),
    end_date: Optional[date] = Query(default=None),
    resource_idx: Optional[int] = Query(default=None, ge=0),
    res_repo: ReservationRepository = Depends(get_reservation_repo),
    settings: Settings = Depends(get_app_settings),
) -> list[GridBookingRead]:
    if end_date is not None and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_date must not be earlier than start_date",
        )
    if resource_idx is not None:
        ensure_known_resource(resource_idx, settings)
    rows = await selection_usecase.list_grid_bookings(
        res_repo,
        start_date=start_date,
        end_date=end_date,
        resource_idx=resource_idx,
    )
    return [GridBookingRead.from_db(reservation=reservation) for reservation in rows]


@router.post("/selection", response_model=SelectionRead)
async def propose_selection(
    payload: SelectionPropose,
    engine: RuleEngine = Depends(get_rule_engine),
    res_repo: ReservationRepository = Depends(get_reservation_repo),
    settings: Settings = Depends(get_app_settings),
) -> SelectionRead:
    ensure_known_resource(payload.resource_idx, settings)
    try:
        selection = await selection_usecase.propose_selection(
            engine,
            res_repo,
            booking_date=payload.booking_date,
            hour_idx=payload.hour,
            resource_idx=payload.resource_idx,
        )
    except SlotConflictError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="this time slot is already booked")
    return SelectionRead.from_selection(selection=selection, booking_date=payload.booking_date)


@router.post("/selection/extend", response_model=SelectionRead)
async def extend_selection(
    payload: SelectionExtend,
    engine: RuleEngine = Depends(get_rule_engine),
    res_repo: ReservationRepository = Depends(get_reservation_repo),
    settings: Settings = Depends(get_app_settings),
) -> SelectionRead:
    ensure_known_resource(payload.selection.resource_idx, settings)
    current = payload.selection.to_selection()
    extended = await selection_usecase.extend_selection(
        engine,
        res_repo,
        booking_date=payload.selection.booking_date,
        selection=current,
        new_hour_idx=payload.new_hour,
    )
    return SelectionRead.from_selection(selection=extended or current, booking_date=payload.selection.booking_date)


@router.post("/selection/validate", response_model=SelectionValidity)
async def validate_selection(
    payload: SelectionSpan,
    engine: RuleEngine = Depends(get_rule_engine),
    settings: Settings = Depends(get_app_settings),
) -> SelectionValidity:
    ensure_known_resource(payload.resource_idx, settings)
    return SelectionValidity(valid=selection_usecase.check_selection(engine, payload.to_selection()))

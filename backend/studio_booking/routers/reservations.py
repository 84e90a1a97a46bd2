from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..deps import ensure_known_resource, get_app_settings, get_current_user_id, get_rule_engine, get_session
from ..domain.engine import RuleEngine
from ..domain.errors import (
    CancelNotAllowedError,
    ReservationNotFoundError,
    SelectionRejectedError,
    SlotConflictError,
    VersionConflictError,
)
from ..infrastructure.repositories import SqlAlchemyReservationRepository
from ..models import ReservationStatus
from ..schemas import ReservationCancel, ReservationCreate, ReservationRead
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="", tags=["reservations"])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    engine: RuleEngine = Depends(get_rule_engine),
    settings: Settings = Depends(get_app_settings),
) -> ReservationRead:
    ensure_known_resource(payload.resource_idx, settings)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            reservation = await reservation_usecase.create_reservation(
                engine,
                res_repo,
                user_id=user_id,
                booking_date=payload.booking_date,
                resource_idx=payload.resource_idx,
                start_hour=payload.start_hour,
                end_hour=payload.end_hour,
                notes=payload.notes,
            )
        except SelectionRejectedError:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="selection violates booking rules",
            )
        except SlotConflictError:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="this time slot is already booked")

        try:
            emit_audit_log(
                action="reservation.created",
                initiator="user",
                reservation_id=reservation.id,
                user_id=user_id,
                booking_date=reservation.booking_date,
                resource_idx=reservation.resource_idx,
                start_hour=reservation.start_hour,
                end_hour=reservation.end_hour,
                status_from=None,
                status_to=reservation.status,
                version=reservation.version,
            )
        except RuntimeError:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    return ReservationRead.from_db(reservation=reservation)


@router.get("/me/reservations", response_model=List[ReservationRead])
async def list_my_reservations(
    status_filter: Optional[ReservationStatus] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.list_user_reservations(res_repo, user_id=user_id, status=status_filter)
    return [ReservationRead.from_db(reservation=reservation) for reservation in rows]


@router.get("/me/reservations/{reservation_id}", response_model=ReservationRead)
async def get_my_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    reservation = await reservation_usecase.get_user_reservation(
        res_repo,
        reservation_id=reservation_id,
        user_id=user_id,
    )
    if reservation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reservation not found")
    return ReservationRead.from_db(reservation=reservation)


@router.post("/me/reservations/{reservation_id}/cancel", response_model=ReservationRead)
async def cancel_reservation(
    payload: ReservationCancel,
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            updated, status_from = await reservation_usecase.cancel_reservation(
                res_repo,
                reservation_id=reservation_id,
                user_id=user_id,
                version=payload.version,
            )
        except ReservationNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reservation not found")
        except VersionConflictError:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="version mismatch")
        except CancelNotAllowedError:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="cancellation not allowed")

        if status_from != ReservationStatus.CANCELLED:
            try:
                emit_audit_log(
                    action="reservation.cancelled",
                    initiator="user",
                    reservation_id=updated.id,
                    user_id=user_id,
                    booking_date=updated.booking_date,
                    resource_idx=updated.resource_idx,
                    start_hour=updated.start_hour,
                    end_hour=updated.end_hour,
                    status_from=status_from,
                    status_to=updated.status,
                    version=updated.version,
                )
            except RuntimeError:
                raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    return ReservationRead.from_db(reservation=updated)

from datetime import date, timedelta
from typing import Any, cast

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from studio_booking.config import Settings
from studio_booking.domain.errors import SelectionRejectedError, SlotConflictError, VersionConflictError
from studio_booking.domain.policies import DEFAULT_POLICY, build_engine
from studio_booking.models import Reservation, ReservationStatus
from studio_booking.routers import reservations as router
from studio_booking.schemas import ReservationCancel, ReservationCreate, ReservationRead
from studio_booking.utils.time import utc_now_naive

ENGINE = build_engine(DEFAULT_POLICY)
SETTINGS = Settings(resource_count=5)


class DummySession:
    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> "DummySession":
        return self


def _reservation(status: ReservationStatus = ReservationStatus.BOOKED) -> Reservation:
    now = utc_now_naive()
    return Reservation(
        id=100,
        user_id=200,
        booking_date=date.today() + timedelta(days=2),
        resource_idx=0,
        start_hour=10,
        end_hour=13,
        status=status,
        version=1,
        notes=None,
        created_at=now,
        updated_at=now,
    )


def _payload(resource_idx: int = 0) -> ReservationCreate:
    return ReservationCreate(
        booking_date=date.today() + timedelta(days=2),
        resource_idx=resource_idx,
        start_hour=10,
        end_hour=13,
    )


async def _create(payload: ReservationCreate) -> ReservationRead:
    return await router.create_reservation(
        payload=payload,
        session=cast(AsyncSession, DummySession()),
        user_id=200,
        engine=ENGINE,
        settings=SETTINGS,
    )


@pytest.mark.asyncio
async def test_create_reservation_emits_audit(monkeypatch: pytest.MonkeyPatch) -> None:
    reservation = _reservation()

    async def fake_create_reservation(*args: object, **kwargs: object) -> Reservation:
        assert args[0] is ENGINE
        assert kwargs["start_hour"] == 10 and kwargs["end_hour"] == 13
        return reservation

    calls: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.reservation_usecase, "create_reservation", fake_create_reservation)
    monkeypatch.setattr(router, "emit_audit_log", fake_emit)

    result = await _create(_payload())

    assert result.reservation_id == reservation.id
    assert result.start_hour == 10 and result.end_hour == 13
    assert len(calls) == 1
    assert calls[0]["action"] == "reservation.created"
    assert calls[0]["reservation_id"] == reservation.id
    assert calls[0]["status_to"] == ReservationStatus.BOOKED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,status_code",
    [(SelectionRejectedError("rules"), 422), (SlotConflictError("taken"), 409)],
)
async def test_create_reservation_maps_domain_errors(
    monkeypatch: pytest.MonkeyPatch,
    error: Exception,
    status_code: int,
) -> None:
    async def fake_create_reservation(*args: object, **kwargs: object) -> Reservation:
        raise error

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.reservation_usecase, "create_reservation", fake_create_reservation)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    with pytest.raises(HTTPException) as excinfo:
        await _create(_payload())
    assert excinfo.value.status_code == status_code
    assert calls == []


@pytest.mark.asyncio
async def test_create_reservation_rejects_unknown_resource() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await _create(_payload(resource_idx=5))
    assert excinfo.value.status_code == 422


@pytest.mark.asyncio
async def test_cancel_reservation_log_failure_returns_500(monkeypatch: pytest.MonkeyPatch) -> None:
    reservation = _reservation(status=ReservationStatus.CANCELLED)

    async def fake_cancel(*args: object, **kwargs: object) -> tuple[Reservation, ReservationStatus]:
        return reservation, ReservationStatus.BOOKED

    def fake_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.reservation_usecase, "cancel_reservation", fake_cancel)
    monkeypatch.setattr(router, "emit_audit_log", fake_emit)

    with pytest.raises(HTTPException) as excinfo:
        await router.cancel_reservation(
            payload=ReservationCancel(version=1),
            reservation_id=reservation.id,
            session=cast(AsyncSession, DummySession()),
            user_id=reservation.user_id,
        )
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_cancel_already_cancelled_skips_audit(monkeypatch: pytest.MonkeyPatch) -> None:
    reservation = _reservation(status=ReservationStatus.CANCELLED)

    async def fake_cancel(*args: object, **kwargs: object) -> tuple[Reservation, ReservationStatus]:
        return reservation, ReservationStatus.CANCELLED

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.reservation_usecase, "cancel_reservation", fake_cancel)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await router.cancel_reservation(
        payload=ReservationCancel(),
        reservation_id=reservation.id,
        session=cast(AsyncSession, DummySession()),
        user_id=reservation.user_id,
    )
    assert result.status == ReservationStatus.CANCELLED
    assert calls == []


@pytest.mark.asyncio
async def test_cancel_version_conflict_returns_409(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_cancel(*args: object, **kwargs: object) -> tuple[Reservation, ReservationStatus]:
        raise VersionConflictError("version mismatch")

    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.reservation_usecase, "cancel_reservation", fake_cancel)

    with pytest.raises(HTTPException) as excinfo:
        await router.cancel_reservation(
            payload=ReservationCancel(version=3),
            reservation_id=100,
            session=cast(AsyncSession, DummySession()),
            user_id=200,
        )
    assert excinfo.value.status_code == 409

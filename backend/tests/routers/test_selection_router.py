from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient
from studio_booking.config import Settings
from studio_booking.deps import get_reservation_repo
from studio_booking.main import create_app
from studio_booking.models import Reservation, ReservationStatus

MONDAY = "2025-06-02"


class FakeResRepo:
    def __init__(
        self,
        booked: dict[int, set[int]] | None = None,
        reservations: list[Reservation] | None = None,
    ) -> None:
        self.booked = booked or {}
        self.reservations = reservations or []

    async def booked_hours(self, booking_date: date, resource_idx: int, *, for_update: bool = False) -> set[int]:
        return set(self.booked.get(resource_idx, set()))

    async def list_for_grid(
        self,
        start_date: date,
        end_date: date,
        resource_idx: int | None = None,
    ) -> list[Reservation]:
        return [
            r
            for r in self.reservations
            if start_date <= r.booking_date <= end_date and resource_idx in (None, r.resource_idx)
        ]


def _client(repo: FakeResRepo) -> AsyncClient:
    app = create_app(Settings(resource_count=4))
    app.dependency_overrides[get_reservation_repo] = lambda: repo
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_propose_selection_snaps_to_slot() -> None:
    async with _client(FakeResRepo()) as client:
        resp = await client.post("/grid/selection", json={"booking_date": MONDAY, "resource_idx": 0, "hour": 11})
    assert resp.status_code == 200
    body = resp.json()
    assert body["day_idx"] == 1
    assert (body["start_hour"], body["end_hour"], body["duration"]) == (10, 13, 4)
    assert resp.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_propose_selection_degrades_when_slot_partially_booked() -> None:
    async with _client(FakeResRepo({0: {12}})) as client:
        resp = await client.post("/grid/selection", json={"booking_date": MONDAY, "resource_idx": 0, "hour": 11})
    assert resp.status_code == 200
    assert (resp.json()["start_hour"], resp.json()["end_hour"]) == (11, 11)


@pytest.mark.asyncio
async def test_propose_selection_on_booked_hour_conflicts() -> None:
    async with _client(FakeResRepo({3: {12}})) as client:
        resp = await client.post("/grid/selection", json={"booking_date": MONDAY, "resource_idx": 3, "hour": 12})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_propose_selection_rejects_unknown_resource() -> None:
    async with _client(FakeResRepo()) as client:
        resp = await client.post("/grid/selection", json={"booking_date": MONDAY, "resource_idx": 4, "hour": 11})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_propose_selection_rejects_out_of_grid_hour() -> None:
    async with _client(FakeResRepo()) as client:
        resp = await client.post("/grid/selection", json={"booking_date": MONDAY, "resource_idx": 0, "hour": 24})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_extend_selection_adds_adjacent_slot() -> None:
    payload = {
        "selection": {"booking_date": MONDAY, "resource_idx": 0, "start_hour": 10, "end_hour": 13},
        "new_hour": 14,
    }
    async with _client(FakeResRepo()) as client:
        resp = await client.post("/grid/selection/extend", json=payload)
    assert resp.status_code == 200
    assert (resp.json()["start_hour"], resp.json()["end_hour"]) == (10, 17)


@pytest.mark.asyncio
async def test_extend_selection_into_booking_returns_unchanged() -> None:
    payload = {
        "selection": {"booking_date": MONDAY, "resource_idx": 0, "start_hour": 10, "end_hour": 13},
        "new_hour": 14,
    }
    async with _client(FakeResRepo({0: {17}})) as client:
        resp = await client.post("/grid/selection/extend", json=payload)
    assert resp.status_code == 200
    assert (resp.json()["start_hour"], resp.json()["end_hour"]) == (10, 13)


@pytest.mark.asyncio
async def test_validate_selection_applies_every_rule() -> None:
    async with _client(FakeResRepo()) as client:
        single_block = await client.post(
            "/grid/selection/validate",
            json={"booking_date": MONDAY, "resource_idx": 0, "start_hour": 10, "end_hour": 13},
        )
        two_blocks = await client.post(
            "/grid/selection/validate",
            json={"booking_date": MONDAY, "resource_idx": 0, "start_hour": 10, "end_hour": 17},
        )
    assert single_block.json() == {"valid": True}
    assert two_blocks.json() == {"valid": False}


@pytest.mark.asyncio
async def test_validate_selection_rejects_reversed_span() -> None:
    async with _client(FakeResRepo()) as client:
        resp = await client.post(
            "/grid/selection/validate",
            json={"booking_date": MONDAY, "resource_idx": 0, "start_hour": 13, "end_hour": 10},
        )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_health() -> None:
    async with _client(FakeResRepo()) as client:
        resp = await client.get("/health")
    assert resp.json() == {"status": "ok"}


def _booking(booking_date: date, resource_idx: int, start_hour: int, end_hour: int, user_id: int) -> Reservation:
    return Reservation(
        id=user_id * 10 + resource_idx,
        user_id=user_id,
        booking_date=booking_date,
        resource_idx=resource_idx,
        start_hour=start_hour,
        end_hour=end_hour,
        status=ReservationStatus.BOOKED,
        version=1,
        notes="private",
    )


@pytest.mark.asyncio
async def test_list_grid_bookings_shows_every_user() -> None:
    repo = FakeResRepo(
        reservations=[
            _booking(date(2025, 6, 2), 0, 10, 13, user_id=1),
            _booking(date(2025, 6, 2), 1, 14, 17, user_id=2),
            _booking(date(2025, 6, 4), 0, 18, 21, user_id=3),
        ]
    )
    async with _client(repo) as client:
        day = await client.get("/grid/bookings", params={"start_date": MONDAY})
        week = await client.get(
            "/grid/bookings",
            params={"start_date": MONDAY, "end_date": "2025-06-08", "resource_idx": 0},
        )
    assert day.status_code == 200
    assert [(b["resource_idx"], b["start_hour"], b["end_hour"]) for b in day.json()] == [(0, 10, 13), (1, 14, 17)]
    assert all(b["day_idx"] == 1 for b in day.json())
    assert "user_id" not in day.json()[0] and "notes" not in day.json()[0]
    assert [(b["booking_date"], b["start_hour"]) for b in week.json()] == [("2025-06-02", 10), ("2025-06-04", 18)]


@pytest.mark.asyncio
async def test_list_grid_bookings_rejects_bad_range() -> None:
    async with _client(FakeResRepo()) as client:
        reversed_range = await client.get("/grid/bookings", params={"start_date": MONDAY, "end_date": "2025-06-01"})
        unknown_resource = await client.get("/grid/bookings", params={"start_date": MONDAY, "resource_idx": 4})
    assert reversed_range.status_code == 422
    assert unknown_resource.status_code == 422

from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings
from .database import async_session
from .domain.engine import RuleEngine
from .infrastructure.repositories import SqlAlchemyReservationRepository


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-Id header required")
    try:
        return int(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid X-User-Id") from exc


async def get_reservation_repo(
    session: AsyncSession = Depends(get_session),
) -> SqlAlchemyReservationRepository:
    return SqlAlchemyReservationRepository(session)


def get_rule_engine(request: Request) -> RuleEngine:
    """The engine built at startup from the configured policy."""
    return request.app.state.rule_engine


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def ensure_known_resource(resource_idx: int, settings: Settings) -> None:
    if resource_idx >= settings.resource_count:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"unknown resource {resource_idx}",
        )

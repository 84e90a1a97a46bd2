import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response

from .config import Settings, get_settings
from .database import create_schema
from .domain.policies import load_rule_engine
from .routers import reservations, selection
from .utils.request_id import REQUEST_ID_HEADER, resolve_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await create_schema()
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Studio Booking API", lifespan=lifespan)
    app.state.settings = settings
    app.state.rule_engine = load_rule_engine(settings.rules_path)
    logger.info(
        "loaded %d booking rules from %s",
        len(app.state.rule_engine),
        settings.rules_path or "default policy",
    )

    app.middleware("http")(request_id_middleware)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(selection.router)
    app.include_router(reservations.router)
    return app


app = create_app()

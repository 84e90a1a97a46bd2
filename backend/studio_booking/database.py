from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings
from .models import Base

settings = get_settings()

db_engine = create_async_engine(
    settings.database_url,
    echo=settings.echo_sql,
    pool_pre_ping=True,
    pool_recycle=3600,
)

async_session = async_sessionmaker(db_engine, expire_on_commit=False, class_=AsyncSession)


async def create_schema() -> None:
    """Create missing tables; reservations are the only persisted state."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

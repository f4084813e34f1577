"""
Async engine, the per-request session and table management.

The URL comes from ``DATABASE_URL``; the lab inventory runs on SQLite through
aiosqlite unless told otherwise.
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.core import config

engine = create_async_engine(
    config.SQLALCHEMY_DATABASE_URL,
    # SQLite connections are cheap and must not outlive their event loop
    poolclass=NullPool if config.SQLALCHEMY_DATABASE_URL.startswith("sqlite") else None,
    echo=False,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request, committed once after the handler returns.
    Handlers only ``flush`` (e.g. to obtain generated ids); an exception
    anywhere in the request rolls everything back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def import_models() -> None:
    """Register every mapped class on ``Base.metadata``."""
    from app.features.users.models import User  # noqa: F401
    from app.features.groups.models import UserGroup  # noqa: F401
    from app.features.tracking.models import TrackRecord  # noqa: F401
    from app.features.item_details.models import (  # noqa: F401
        ItemDetail, Unit, ContainerType, PhysicalState, ItemDetailType
    )


async def init_db():
    """Create missing tables; run at startup and by the seed script."""
    from app.core.database.base import Base

    import_models()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    """Drop every table. Used by the test suite and the seed script's --reset flag."""
    from app.core.database.base import Base

    import_models()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

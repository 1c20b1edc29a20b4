from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from complaintdesk.core.config import Settings, get_settings
from complaintdesk.domain.models import Base


def engine_options(settings: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    if settings.database_url.startswith("sqlite"):
        # SQLite (local runs and tests) has no server-side pool or statement timeout.
        return options
    options["pool_size"] = max(1, settings.api_db_pool_size)
    options["max_overflow"] = max(0, settings.api_db_max_overflow)
    options["pool_timeout"] = 30
    options["pool_recycle"] = 1800
    if settings.api_db_statement_timeout_ms > 0:
        options["connect_args"] = {
            "server_settings": {"statement_timeout": str(settings.api_db_statement_timeout_ms)}
        }
    return options


settings = get_settings()
engine = create_async_engine(settings.database_url, **engine_options(settings))
# Rows stay readable after commit; handlers serialize them once the write has landed.
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


async def reset_schema() -> None:
    # Drop and recreate every table; used for throwaway databases only.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

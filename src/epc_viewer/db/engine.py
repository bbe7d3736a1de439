from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from epc_viewer.config import get_settings


def get_engine(database_url: str | None = None) -> AsyncEngine:
    db_url = database_url or get_settings().database_url
    return create_async_engine(db_url, future=True, pool_pre_ping=True)

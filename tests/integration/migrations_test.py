"""Schema migrations apply and roll back cleanly."""

import pytest
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import command
from alembic.config import Config


def test_upgrade_downgrade_cycle(alembic_config: Config) -> None:
    for _ in range(2):
        command.downgrade(alembic_config, "base")
        command.upgrade(alembic_config, "head")


@pytest.mark.asyncio
async def test_schema_matches_tables(_run_migrations: None, test_db_url: str) -> None:
    engine = create_async_engine(test_db_url)
    try:
        async with engine.connect() as conn:
            names = await conn.run_sync(lambda sync_conn: sa.inspect(sync_conn).get_table_names())
            indexes = await conn.run_sync(lambda sync_conn: sa.inspect(sync_conn).get_indexes("bom_items"))
    finally:
        await engine.dispose()
    assert {"assemblies", "parts", "bom_items"} <= set(names)
    assert "ix_bom_items_assembly_id" in {ix["name"] for ix in indexes}

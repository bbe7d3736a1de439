"""Session-scoped fixtures for integration tests."""

import shutil
import warnings
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs

from alembic import command
from alembic.config import Config

_REPO_ROOT = Path(__file__).parent.parent.parent
_IMAGE = "postgres:16-alpine"

if shutil.which("docker") is None:
    collect_ignore_glob = ["*_test.py"]


def _alembic_config(connection_url: str) -> Config:
    cfg = Config(str(_REPO_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_REPO_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", connection_url)
    return cfg


@pytest.fixture(scope="session")
def postgres_container() -> Generator[DockerContainer, None, None]:
    container = DockerContainer(_IMAGE).with_exposed_ports(5432).with_env("POSTGRES_PASSWORD", "postgres")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker is not usable: {exc}")
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        # The entrypoint restarts postgres once after initdb, so wait for the second message.
        wait_for_logs(container, lambda logs: logs.count("database system is ready to accept connections") >= 2, timeout=60)
    yield container
    container.stop()


@pytest.fixture(scope="session")
def test_db_url(postgres_container: DockerContainer) -> str:
    """Async connection URL for the test database."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    return f"postgresql+asyncpg://postgres:postgres@{host}:{port}/postgres"


@pytest.fixture(scope="session")
def alembic_config(test_db_url: str) -> Config:
    return _alembic_config(test_db_url)


@pytest.fixture(scope="session")
def _run_migrations(alembic_config: Config) -> Generator[None, None, None]:
    """Run migrations once per session, cleanup on teardown."""
    command.upgrade(alembic_config, "head")
    yield
    command.downgrade(alembic_config, "base")


@pytest_asyncio.fixture
async def engine(_run_migrations: None, test_db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test engine so each event loop gets its own connection pool."""
    engine = create_async_engine(test_db_url, future=True)
    yield engine
    async with engine.begin() as conn:
        for table in ("bom_items", "parts", "assemblies"):
            await conn.exec_driver_sql(f"DELETE FROM {table}")
    await engine.dispose()

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker

from tests.models import seed


@pytest.fixture()
async def async_session(tmp_path):
    # a file database, so the row and count queries get connections of their own
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cars.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(seed)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
def sync_session(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'cars_sync.db'}",
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        seed(conn)
    yield sessionmaker(engine, expire_on_commit=False)
    engine.dispose()

import asyncio
import os
import sys

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Honour any externally provided DATABASE_URL but fall back to an in-memory
# SQLite database so local runs remain isolated.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from league_core import db, models  # noqa: E402,F401
from league_core.locks import DivisionLocks  # noqa: E402


def _memory_engine():
    return create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def run_db():
    """Run ``scenario(session_maker)`` against a fresh in-memory schema.

    Everything happens inside one ``asyncio.run`` so the engine never
    crosses event loops.
    """

    def runner(scenario):
        async def main():
            engine = _memory_engine()
            try:
                await db.create_schema(engine)
                maker = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
                return await scenario(maker)
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return runner


@pytest.fixture
def locks():
    """Per-test division locks so tests never share lock state."""
    return DivisionLocks()


@pytest.fixture
def file_db(tmp_path):
    """A file-backed engine usable across event loops (HTTP tests)."""

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'league.db'}", poolclass=NullPool
    )
    asyncio.run(db.create_schema(engine))
    maker = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    yield maker
    asyncio.run(engine.dispose())

from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from pathlib import Path

from workforce_portal.infra.db.task_repo_sqlite import Base


def make_sqlite_url(db_path: str) -> str:
    # db_path like "./data/workforce.db"
    p = Path(db_path).resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{p.as_posix()}"

def make_engine(sqlite_url: str) -> AsyncEngine:
    return create_async_engine(sqlite_url)

def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)

async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

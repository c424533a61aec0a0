"""
Request-scoped database sessions.

`get_db` acquires the shared engine through the process ConnectionManager
and yields one AsyncSession per request. Services only flush; the session
is committed here when the handler returns, and rolled back if it raises.
Handlers that invalidate the listing cache commit themselves first; the
commit here is then a no-op.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devevent.db.connection import ConnectionManager


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


async def get_db(
    manager: ConnectionManager = Depends(get_connection_manager),
) -> AsyncGenerator[AsyncSession, None]:
    engine = await manager.acquire()
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

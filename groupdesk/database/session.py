from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.database.engine import async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a database session.

    Commits when the request handler returns, rolls back on any exception so a
    failed operation leaves no partial state behind.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

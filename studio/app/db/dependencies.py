"""Database dependencies for FastAPI dependency injection.

Usage:
    from studio.app.db.dependencies import SessionDep

    @router.get("/assets")
    async def list_all(session: SessionDep):
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio.app.db.async_session import get_db

SessionDep = Annotated[AsyncSession, Depends(get_db)]

__all__ = ["SessionDep"]

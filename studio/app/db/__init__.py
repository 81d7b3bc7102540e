"""Database package for the studio.

This package provides:
- The Asset model
- Asynchronous session management
- CRUD operations for assets
- FastAPI dependency injection support
"""

from studio.app.db.base import Base
from studio.app.db.models import Asset
from studio.app.db.async_session import (
    close_async_engine,
    get_async_engine,
    get_async_session,
    get_async_session_maker,
    get_db,
    init_async_db,
)
from studio.app.db.dependencies import SessionDep
from studio.app.db.crud import (
    delete_asset,
    get_asset,
    list_assets,
    list_grouped_assets,
    save_asset,
    update_asset_status,
)

__all__ = [
    "Base",
    "Asset",
    "get_async_engine",
    "get_async_session",
    "get_async_session_maker",
    "get_db",
    "init_async_db",
    "close_async_engine",
    "SessionDep",
    "save_asset",
    "get_asset",
    "list_assets",
    "list_grouped_assets",
    "update_asset_status",
    "delete_asset",
]

"""CRUD operations package."""

from studio.app.db.crud.asset import (
    delete_asset,
    get_asset,
    list_assets,
    list_grouped_assets,
    save_asset,
    update_asset_status,
)

__all__ = [
    "save_asset",
    "get_asset",
    "list_assets",
    "list_grouped_assets",
    "update_asset_status",
    "delete_asset",
]

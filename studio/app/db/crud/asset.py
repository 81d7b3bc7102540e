"""Asset CRUD operations."""

import json
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio.app.db.models import LEGACY_GROUP_ID, Asset
from studio.app.exceptions import AssetNotFoundError


async def save_asset(
    session: AsyncSession,
    asset_type: str,
    content: str,
    prompt: str,
    metadata: Optional[Dict[str, Any]] = None,
    group_id: Optional[str] = None,
    auto_commit: bool = True
) -> Asset:
    """Save a generated asset.

    Args:
        session: Database session from FastAPI dependency
        asset_type: image | social_post | article
        content: Base64 image data or text content
        prompt: The prompt that produced the asset
        metadata: Optional JSON-serialisable metadata
        group_id: Workflow session the asset belongs to
        auto_commit: Whether to commit the transaction

    Returns:
        The saved Asset object
    """
    asset = Asset(
        id=str(uuid.uuid4()),
        type=asset_type,
        content=content,
        prompt=prompt,
        metadata_json=json.dumps(metadata) if metadata is not None else None,
        status="draft",
        group_id=group_id or LEGACY_GROUP_ID,
    )
    session.add(asset)
    if auto_commit:
        await session.commit()
        await session.refresh(asset)
    return asset


async def get_asset(session: AsyncSession, asset_id: str) -> Optional[Asset]:
    return await session.get(Asset, asset_id)


async def list_assets(
    session: AsyncSession,
    asset_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0
) -> List[Asset]:
    """List assets, newest first, optionally filtered by type and status."""
    stmt = select(Asset)
    if asset_type is not None:
        stmt = stmt.where(Asset.type == asset_type)
    if status is not None:
        stmt = stmt.where(Asset.status == status)
    stmt = stmt.order_by(Asset.created_at.desc(), Asset.id).offset(offset).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_grouped_assets(session: AsyncSession) -> List[Dict[str, Any]]:
    """Group assets by workflow session.

    Groups are ordered by their most recent asset; assets within a group
    are newest first.

    Returns:
        List of {"group_id", "latest", "assets"} dicts
    """
    stmt = select(Asset).order_by(Asset.created_at.desc(), Asset.id)
    result = await session.execute(stmt)

    groups: Dict[str, Dict[str, Any]] = {}
    for asset in result.scalars().all():
        group = groups.get(asset.group_id)
        if group is None:
            group = {"group_id": asset.group_id, "latest": asset.created_at, "assets": []}
            groups[asset.group_id] = group
        group["assets"].append(asset)
    # dicts keep insertion order, so groups are already sorted by latest asset
    return list(groups.values())


async def update_asset_status(
    session: AsyncSession,
    asset_id: str,
    status: str,
    auto_commit: bool = True
) -> Asset:
    """Set an asset's review status.

    Raises:
        AssetNotFoundError: If no asset has this id
    """
    asset = await session.get(Asset, asset_id)
    if asset is None:
        raise AssetNotFoundError(asset_id)

    asset.status = status
    if auto_commit:
        await session.commit()
        await session.refresh(asset)
    return asset


async def delete_asset(
    session: AsyncSession,
    asset_id: str,
    auto_commit: bool = True
) -> bool:
    """Delete an asset.

    Returns:
        True if a row was deleted, False if it did not exist
    """
    result = await session.execute(delete(Asset).where(Asset.id == asset_id))
    if auto_commit:
        await session.commit()
    return result.rowcount > 0

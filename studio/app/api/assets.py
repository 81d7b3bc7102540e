"""Asset library endpoints: save, list, group, review and delete."""

import json
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from studio.app.core.logging import get_logger
from studio.app.db.crud import (
    delete_asset,
    list_assets,
    list_grouped_assets,
    save_asset,
    update_asset_status,
)
from studio.app.db.dependencies import SessionDep
from studio.app.db.models import Asset

router = APIRouter(prefix="/api/assets", tags=["assets"])
logger = get_logger(__name__)

AssetType = Literal["image", "social_post", "article"]
AssetStatus = Literal["draft", "published"]


class AssetCreate(BaseModel):
    """Schema for saving a generated asset."""

    type: AssetType
    content: str = Field(..., min_length=1)
    prompt: str = ""
    metadata: Optional[Dict[str, Any]] = None
    group_id: Optional[str] = Field(None, max_length=255)


class AssetStatusUpdate(BaseModel):
    status: AssetStatus


class AssetResponse(BaseModel):
    """Schema for asset response."""

    id: str
    type: str
    content: str
    prompt: str
    metadata: Optional[Dict[str, Any]]
    status: str
    group_id: str
    created_at: datetime

    @classmethod
    def from_asset(cls, asset: Asset) -> "AssetResponse":
        return cls(
            id=asset.id,
            type=asset.type,
            content=asset.content,
            prompt=asset.prompt,
            metadata=json.loads(asset.metadata_json) if asset.metadata_json else None,
            status=asset.status,
            group_id=asset.group_id,
            created_at=asset.created_at,
        )


class AssetGroupResponse(BaseModel):
    group_id: str
    latest: datetime
    assets: List[AssetResponse]


@router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def create_asset(body: AssetCreate, session: SessionDep) -> AssetResponse:
    """Save a generated asset as a draft."""
    asset = await save_asset(
        session,
        asset_type=body.type,
        content=body.content,
        prompt=body.prompt,
        metadata=body.metadata,
        group_id=body.group_id,
    )
    logger.info(f"Saved {asset.type} asset {asset.id} in group {asset.group_id}")
    return AssetResponse.from_asset(asset)


@router.get("", response_model=List[AssetResponse])
async def list_all_assets(
    session: SessionDep,
    type: Optional[AssetType] = None,
    status: Optional[AssetStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> List[AssetResponse]:
    """List assets, newest first."""
    assets = await list_assets(session, asset_type=type, status=status, limit=limit, offset=offset)
    return [AssetResponse.from_asset(a) for a in assets]


@router.get("/grouped", response_model=List[AssetGroupResponse])
async def list_assets_by_group(session: SessionDep) -> List[AssetGroupResponse]:
    """Assets grouped by workflow session, most recently active group first."""
    groups = await list_grouped_assets(session)
    return [
        AssetGroupResponse(
            group_id=g["group_id"],
            latest=g["latest"],
            assets=[AssetResponse.from_asset(a) for a in g["assets"]],
        )
        for g in groups
    ]


@router.patch("/{asset_id}/status", response_model=AssetResponse)
async def set_asset_status(
    asset_id: str,
    body: AssetStatusUpdate,
    session: SessionDep,
) -> AssetResponse:
    """Move an asset between draft and published."""
    asset = await update_asset_status(session, asset_id, body.status)
    return AssetResponse.from_asset(asset)


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_asset(asset_id: str, session: SessionDep) -> Response:
    """Delete an asset."""
    if not await delete_asset(session, asset_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Asset not found: {asset_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

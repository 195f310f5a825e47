"""
User favorites routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.responses import success_response
from api.schemas.engagement import FAVORITE_ITEM_TYPES, FavoriteCreateRequest
from infrastructure.database.connection import get_db
from infrastructure.database.models.engagement import FavoriteItemType, UserFavorite
from infrastructure.database.models.hospital import Hospital
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("")
async def list_favorites(
    item_type: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's favorites, newest first, with hospital details merged in."""
    query = select(UserFavorite).where(UserFavorite.user_id == current_user.id)
    if item_type:
        query = query.where(UserFavorite.item_type == item_type)
    result = await db.execute(query.order_by(UserFavorite.created_at.desc()))
    favorites = result.scalars().all()

    hospital_ids = [
        f.item_id for f in favorites if f.item_type == FavoriteItemType.HOSPITAL.value
    ]
    hospitals: dict[str, dict] = {}
    if hospital_ids:
        rows = await db.execute(select(Hospital).where(Hospital.id.in_(hospital_ids)))
        hospitals = {
            h.id: {
                "id": h.id,
                "hospital_name": h.hospital_name,
                "slug": h.slug,
                "location": h.location,
                "images": h.images or [],
            }
            for h in rows.scalars().all()
        }

    data = []
    for favorite in favorites:
        item = favorite.to_dict()
        if favorite.item_type == FavoriteItemType.HOSPITAL.value:
            item["hospital"] = hospitals.get(favorite.item_id)
        data.append(item)
    return success_response(data, count=len(data))


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_favorite(
    body: FavoriteCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(UserFavorite).where(
            UserFavorite.user_id == current_user.id,
            UserFavorite.item_type == body.item_type,
            UserFavorite.item_id == body.item_id,
        )
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        return success_response(existing.to_dict(), message="Already in favorites")

    favorite = UserFavorite(
        user_id=current_user.id,
        item_type=body.item_type,
        item_id=body.item_id,
    )
    db.add(favorite)
    await db.commit()
    return success_response(favorite.to_dict(), status_code=201, message="Added to favorites")


@router.delete("")
async def remove_favorite(
    item_type: str = Query(...),
    item_id: str = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if item_type not in FAVORITE_ITEM_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"item_type must be one of: {', '.join(FAVORITE_ITEM_TYPES)}",
        )

    result = await db.execute(
        select(UserFavorite).where(
            UserFavorite.user_id == current_user.id,
            UserFavorite.item_type == item_type,
            UserFavorite.item_id == item_id,
        )
    )
    favorite = result.scalar_one_or_none()
    if favorite is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Favorite not found",
        )

    await db.delete(favorite)
    await db.commit()
    return success_response(message="Removed from favorites")

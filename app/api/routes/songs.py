"""
TalkToJesus — Song Routes
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.song import Song
from app.models.user import User
from app.schemas.schemas import SongPage, SongResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/",
    response_model=SongPage,
    summary="List songs",
    description="Paginated song catalogue with optional title search.",
)
async def list_songs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Song)
    count_query = select(func.count(Song.id))
    if search:
        query = query.where(Song.title.ilike(f"%{search}%"))
        count_query = count_query.where(Song.title.ilike(f"%{search}%"))

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(Song.id).offset((page - 1) * limit).limit(limit)
    )
    songs = result.scalars().all()
    logger.info(f"Fetched {len(songs)} of {total} songs (page={page}, limit={limit})")
    return SongPage(data=[SongResponse.model_validate(s) for s in songs], count=total)

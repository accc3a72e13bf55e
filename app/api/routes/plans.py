"""
TalkToJesus — Plan Routes
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.models.plan import Plan
from app.schemas.schemas import PlanResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/",
    response_model=List[PlanResponse],
    summary="List plans",
    description="Plans for the running environment (production plans only in production).",
)
async def list_plans(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Plan).where(Plan.is_prod == settings.is_production).order_by(Plan.price)
    )
    plans = result.scalars().all()
    logger.info(f"Fetched {len(plans)} plans (is_prod={settings.is_production})")
    return [PlanResponse.model_validate(p) for p in plans]

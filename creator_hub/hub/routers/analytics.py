from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime

from hub import analytics
from hub.database import get_db
from hub.dependencies import require_admin
from hub.models import User
from hub.schemas import ClickInfo, DateCount, ReferrerCount, ClickSummary

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/clicks", response_model=List[ClickInfo])
async def get_click_stats(
    link_id: Optional[int] = None,
    referrer: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Список кликов с фильтрами"""
    return analytics.get_stats(db, link_id, referrer, start_date, end_date)


@router.get("/clicks/by-date", response_model=List[DateCount])
async def get_clicks_by_date(
    link_id: Optional[int] = None,
    days: int = Query(30, ge=1),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return analytics.get_clicks_by_date(db, link_id, days)


@router.get("/clicks/by-referrer", response_model=List[ReferrerCount])
async def get_clicks_by_referrer(
    link_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return analytics.get_clicks_by_referrer(db, link_id, start_date, end_date)


@router.get("/summary", response_model=ClickSummary)
async def get_summary(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Сводка по ссылкам и кликам для дашборда"""
    return analytics.get_summary(db)

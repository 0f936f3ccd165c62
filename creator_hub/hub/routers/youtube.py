import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status, Response
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime

import requests

from hub import youtube
from hub.database import get_db
from hub.dependencies import require_admin
from hub.models import User, YoutubeChannel, YoutubeVideo
from hub.schemas import (
    ChannelCreate, ChannelUpdate, ChannelResponse, ChannelListItem, ChannelStats,
    ChannelVideoCount, VideoResponse, VideoPage, SyncResult, ManualCleanupResult
)
from hub.utils import as_utc, build_channel_urls, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/youtube", tags=["youtube"])


def _get_channel_or_404(db: Session, channel_ref: int) -> YoutubeChannel:
    channel = db.get(YoutubeChannel, channel_ref)
    if not channel:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Канал не найден"
        )
    return channel

# Каналы

@router.get("/channels", response_model=List[ChannelResponse])
async def list_channels(active_only: bool = False, db: Session = Depends(get_db)):
    query = db.query(YoutubeChannel)
    if active_only:
        query = query.filter(YoutubeChannel.is_active.is_(True))
    return query.order_by(YoutubeChannel.channel_name).all()


@router.get("/channels/public", response_model=List[ChannelListItem])
async def list_public_channels(db: Session = Depends(get_db)):
    """Активные каналы, у которых есть видео"""
    channels = (
        db.query(YoutubeChannel)
        .filter(YoutubeChannel.is_active.is_(True), YoutubeChannel.video_count > 0)
        .order_by(YoutubeChannel.channel_name)
        .all()
    )
    return [
        ChannelListItem(
            id=c.id,
            channel_id=c.channel_id,
            channel_name=c.channel_name,
            video_count=c.video_count
        ) for c in channels
    ]


@router.get("/channels/stats", response_model=ChannelStats)
async def get_channel_stats(db: Session = Depends(get_db)):
    """Статистика каналов для админ-панели"""
    channels = db.query(YoutubeChannel).all()
    total_videos = db.query(YoutubeVideo).count()

    synced = [c for c in channels if c.last_synced_at]
    last_synced = max(synced, key=lambda c: as_utc(c.last_synced_at)) if synced else None

    return ChannelStats(
        total_channels=len(channels),
        active_channels=sum(1 for c in channels if c.is_active),
        total_videos=total_videos,
        videos_by_channel=[
            ChannelVideoCount(channel_name=c.channel_name, video_count=c.video_count)
            for c in channels
        ],
        last_synced_at=as_utc(last_synced.last_synced_at) if last_synced else None,
        last_sync_status=last_synced.last_sync_status if last_synced else None
    )


@router.get("/channels/by-channel-id/{channel_id}", response_model=Optional[ChannelResponse])
async def get_channel_by_youtube_id(channel_id: str, db: Session = Depends(get_db)):
    return db.query(YoutubeChannel).filter(YoutubeChannel.channel_id == channel_id).first()


@router.get("/channels/{channel_ref}", response_model=ChannelResponse)
async def get_channel(channel_ref: int, db: Session = Depends(get_db)):
    return _get_channel_or_404(db, channel_ref)


@router.post("/channels", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_channel(
    data: ChannelCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Добавляет канал для отслеживания"""
    existing = db.query(YoutubeChannel).filter(YoutubeChannel.channel_id == data.channel_id).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Channel already exists"
        )

    channel_url, feed_url = build_channel_urls(data.channel_id)
    now = utcnow()

    channel = YoutubeChannel(
        channel_id=data.channel_id,
        channel_name=data.channel_name,
        channel_url=channel_url,
        feed_url=feed_url,
        description=data.description,
        video_count=0,
        is_active=data.is_active,
        created_at=now,
        updated_at=now
    )
    db.add(channel)
    db.commit()
    db.refresh(channel)

    logger.info(f"Добавлен канал {channel.channel_name} ({channel.channel_id})")
    return channel


@router.put("/channels/{channel_ref}", response_model=ChannelResponse)
async def update_channel(
    channel_ref: int,
    data: ChannelUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    channel = _get_channel_or_404(db, channel_ref)

    if data.channel_name:
        channel.channel_name = data.channel_name
    if data.description is not None:
        channel.description = data.description
    if data.is_active is not None:
        channel.is_active = data.is_active
    channel.updated_at = utcnow()

    db.commit()
    db.refresh(channel)
    return channel


@router.delete("/channels/{channel_ref}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_channel(
    channel_ref: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Удаляет канал вместе со всеми его видео"""
    channel = _get_channel_or_404(db, channel_ref)

    videos = db.query(YoutubeVideo).filter(YoutubeVideo.channel_ref == channel_ref).all()
    for video in videos:
        db.delete(video)
    db.flush()

    db.delete(channel)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# Синхронизация и очистка

@router.post("/channels/{channel_ref}/sync", response_model=SyncResult)
def sync_channel(
    channel_ref: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Ручная синхронизация одного канала"""
    try:
        return youtube.sync_channel(db, channel_ref)
    except youtube.ChannelNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Канал не найден"
        )
    except requests.RequestException as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch feed: {e}"
        )


@router.post("/sync", response_model=List[SyncResult])
def sync_all_channels(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Ручная синхронизация всех активных каналов"""
    return youtube.sync_all_channels(db)


@router.post("/cleanup", response_model=ManualCleanupResult)
async def cleanup_videos(
    days_old: Optional[int] = None,
    dry_run: bool = False,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Ручная очистка устаревших видео"""
    try:
        return youtube.manual_cleanup(db, days_old=days_old, dry_run=dry_run)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

# Видео

@router.get("/videos", response_model=VideoPage)
async def list_videos(
    channel_ref: Optional[int] = None,
    channel_id: Optional[str] = None,
    published_after: Optional[datetime] = None,
    limit: int = Query(12, ge=1, le=100),
    cursor: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """Список видео, новые сначала, с постраничной выдачей по смещению"""
    query = db.query(YoutubeVideo)
    if channel_ref is not None:
        query = query.filter(YoutubeVideo.channel_ref == channel_ref)
    elif channel_id:
        query = query.filter(YoutubeVideo.channel_id == channel_id)

    videos = query.all()
    if published_after is not None:
        videos = [v for v in videos if as_utc(v.published_at) >= as_utc(published_after)]

    videos.sort(key=lambda v: as_utc(v.published_at), reverse=True)

    page = videos[cursor:cursor + limit]
    has_more = len(videos) > cursor + limit

    return VideoPage(
        videos=[VideoResponse.model_validate(v) for v in page],
        has_more=has_more,
        next_cursor=cursor + limit if has_more else None
    )


@router.get("/videos/{video_ref}", response_model=VideoResponse)
async def get_video(video_ref: int, db: Session = Depends(get_db)):
    video = db.get(YoutubeVideo, video_ref)
    if not video:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Видео не найдено"
        )
    return video

import logging
import time
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from hub.config import settings
from hub.feed import fetch_feed, parse_youtube_feed
from hub.models import YoutubeChannel, YoutubeVideo
from hub.schemas import CleanupResult, ManualCleanupResult, SyncResult
from hub.utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class ChannelNotFound(LookupError):
    pass


def count_channel_videos(db: Session, channel_ref: int) -> int:
    return db.query(YoutubeVideo).filter(YoutubeVideo.channel_ref == channel_ref).count()


def update_sync_status(
    db: Session,
    channel: YoutubeChannel,
    status: str,
    error: Optional[str] = None,
    video_count: Optional[int] = None
) -> None:
    """Записывает результат синхронизации в канал"""
    now = utcnow()
    channel.last_synced_at = now
    channel.last_sync_status = status
    if error:
        channel.last_sync_error = error
    if video_count is not None:
        channel.video_count = video_count
    channel.updated_at = now


def _reconcile(db: Session, channel: YoutubeChannel, feed_text: str) -> tuple:
    videos = parse_youtube_feed(feed_text)
    logger.info(f"Из ленты {channel.channel_name} получено {len(videos)} видео")

    unique = {video.video_id: video for video in videos}
    if len(unique) < len(videos):
        logger.info(f"Удалено {len(videos) - len(unique)} дубликатов из ленты")

    new_videos = 0
    updated_videos = 0

    for video in unique.values():
        now = utcnow()
        existing = db.query(YoutubeVideo).filter(YoutubeVideo.video_id == video.video_id).first()

        # Каждое совпадение считается обновлением, даже если поля не изменились
        if existing:
            existing.title = video.title
            existing.description = video.description
            existing.thumbnail_url = video.thumbnail_url
            existing.views = video.views
            existing.updated_at = video.updated_at
            existing.synced_at = now
            updated_videos += 1
        else:
            db.add(YoutubeVideo(
                video_id=video.video_id,
                channel_id=video.channel_id,
                channel_ref=channel.id,
                channel_name=video.channel_name,
                title=video.title,
                description=video.description,
                thumbnail_url=video.thumbnail_url,
                video_url=video.video_url,
                views=video.views,
                published_at=video.published_at,
                updated_at=video.updated_at,
                synced_at=now,
                created_at=now,
            ))
            new_videos += 1

    db.flush()
    return new_videos, updated_videos


def sync_channel(db: Session, channel_ref: int) -> SyncResult:
    """Синхронизирует видео одного канала из его RSS-ленты.

    Неактивный канал пропускается без ошибки. При сбое загрузки или разбора
    ленты статус канала помечается как failed, а исключение пробрасывается
    вызывающему.
    """
    channel = db.get(YoutubeChannel, channel_ref)
    if channel is None:
        raise ChannelNotFound(f"Channel {channel_ref} not found")

    channel_name = channel.channel_name

    if not channel.is_active:
        logger.info(f"Канал {channel_name} неактивен, пропускаем")
        return SyncResult(success=False, channel_name=channel_name, message="Channel is not active")

    try:
        logger.info(f"Запуск синхронизации канала {channel_name} ({channel.channel_id})")

        feed_text = fetch_feed(channel.feed_url)
        new_videos, updated_videos = _reconcile(db, channel, feed_text)

        total_videos = count_channel_videos(db, channel.id)
        update_sync_status(db, channel, "success", video_count=total_videos)
        db.commit()
    except Exception as e:
        db.rollback()
        error_message = str(e) or e.__class__.__name__
        logger.error(f"Ошибка синхронизации канала {channel_name}: {error_message}")

        channel = db.get(YoutubeChannel, channel_ref)
        if channel is not None:
            update_sync_status(db, channel, "failed", error=error_message)
            db.commit()
        raise

    logger.info(
        f"Синхронизация {channel_name} завершена: "
        f"{new_videos} новых, {updated_videos} обновлено, всего {total_videos}"
    )

    return SyncResult(
        success=True,
        channel_name=channel_name,
        new_videos=new_videos,
        updated_videos=updated_videos,
        total_videos=total_videos,
    )


def sync_all_channels(db: Session) -> List[SyncResult]:
    """Синхронизирует все активные каналы, ошибки изолируются по каналу"""
    channels = (
        db.query(YoutubeChannel)
        .filter(YoutubeChannel.is_active.is_(True))
        .order_by(YoutubeChannel.channel_name)
        .all()
    )
    targets = [(channel.id, channel.channel_name) for channel in channels]

    logger.info(f"Запуск синхронизации {len(targets)} активных каналов")
    start_time = time.time()

    results = []
    succeeded = 0
    failed = 0
    total_new = 0
    total_updated = 0

    for channel_ref, channel_name in targets:
        try:
            result = sync_channel(db, channel_ref)
            succeeded += 1
            total_new += result.new_videos or 0
            total_updated += result.updated_videos or 0
        except Exception as e:
            logger.error(f"Не удалось синхронизировать канал {channel_name}: {e}")
            failed += 1
            result = SyncResult(
                success=False,
                channel_name=channel_name,
                error=str(e) or e.__class__.__name__,
            )
        results.append(result)

    duration = time.time() - start_time
    logger.info(
        f"Синхронизация завершена за {round(duration)}с: "
        f"{succeeded} успешно, {failed} с ошибкой. "
        f"Всего {total_new} новых видео, {total_updated} обновлено"
    )

    return results


def _repair_channel_counts(db: Session, channel_refs) -> None:
    now = utcnow()
    for channel_ref in channel_refs:
        channel = db.get(YoutubeChannel, channel_ref)
        if channel is None:
            continue
        channel.video_count = count_channel_videos(db, channel_ref)
        channel.updated_at = now


def _old_videos_query(db: Session, cutoff):
    return (
        db.query(YoutubeVideo)
        .filter(YoutubeVideo.published_at < cutoff)
        .order_by(YoutubeVideo.published_at)
    )


def cleanup_old_videos(db: Session) -> CleanupResult:
    """Удаляет видео старше окна хранения и пересчитывает счетчики каналов"""
    cutoff = utcnow() - timedelta(days=settings.VIDEO_RETENTION_DAYS)

    old_videos = _old_videos_query(db, cutoff).all()
    if not old_videos:
        logger.info("Устаревших видео не найдено")
        return CleanupResult(removed=0, channels_affected=0)

    removed_by_channel: Dict[int, int] = {}
    for video in old_videos:
        db.delete(video)
        removed_by_channel[video.channel_ref] = removed_by_channel.get(video.channel_ref, 0) + 1

    db.flush()
    _repair_channel_counts(db, removed_by_channel)
    db.commit()

    logger.info(
        f"Удалено {len(old_videos)} видео старше {settings.VIDEO_RETENTION_DAYS} дней, "
        f"затронуто каналов: {len(removed_by_channel)}"
    )

    return CleanupResult(removed=len(old_videos), channels_affected=len(removed_by_channel))


def manual_cleanup(db: Session, days_old: Optional[int] = None, dry_run: bool = False) -> ManualCleanupResult:
    """Ручная очистка с произвольным сроком хранения и режимом предпросмотра"""
    if days_old is None:
        days_old = settings.VIDEO_RETENTION_DAYS

    if days_old < settings.MANUAL_CLEANUP_MIN_DAYS:
        raise ValueError(
            f"Нельзя удалять видео новее {settings.MANUAL_CLEANUP_MIN_DAYS} дней"
        )

    cutoff = utcnow() - timedelta(days=days_old)
    old_videos = _old_videos_query(db, cutoff).limit(settings.MANUAL_CLEANUP_LIMIT).all()

    if not old_videos:
        return ManualCleanupResult(
            removed=0,
            dry_run=dry_run,
            message=f"No videos found older than {days_old} days",
        )

    by_channel: Dict[str, int] = {}
    for video in old_videos:
        by_channel[video.channel_name] = by_channel.get(video.channel_name, 0) + 1

    if dry_run:
        return ManualCleanupResult(
            removed=0,
            dry_run=True,
            would_remove=len(old_videos),
            affected_channels=by_channel,
            oldest_video=as_utc(old_videos[0].published_at),
            message=f"Would delete {len(old_videos)} videos older than {days_old} days",
        )

    channel_refs = set()
    for video in old_videos:
        channel_refs.add(video.channel_ref)
        db.delete(video)

    db.flush()
    _repair_channel_counts(db, channel_refs)
    db.commit()

    for channel_name, count in by_channel.items():
        logger.info(f"Удалено {count} видео канала {channel_name}")

    return ManualCleanupResult(
        removed=len(old_videos),
        dry_run=False,
        affected_channels=by_channel,
        message=f"Successfully deleted {len(old_videos)} videos older than {days_old} days",
    )

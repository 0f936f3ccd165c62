import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from hub.config import settings
from hub.database import SessionLocal
from hub.youtube import cleanup_old_videos, sync_all_channels

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone="UTC")


def run_daily_sync():
    """Ежедневная синхронизация всех активных каналов"""
    try:
        with SessionLocal() as db:
            results = sync_all_channels(db)
        failed = sum(1 for r in results if not r.success)
        logger.info(f"Плановая синхронизация: {len(results)} каналов, {failed} с ошибкой")
    except Exception as e:
        logger.error(f"Ошибка плановой синхронизации: {e}", exc_info=True)


def run_daily_cleanup():
    """Ежедневное удаление видео старше окна хранения"""
    try:
        with SessionLocal() as db:
            result = cleanup_old_videos(db)
        logger.info(f"Плановая очистка: удалено {result.removed} видео")
    except Exception as e:
        logger.error(f"Ошибка плановой очистки: {e}", exc_info=True)


def start_scheduler():
    try:
        logger.info("Запуск планировщика...")
        # Синхронные задачи APScheduler выполняет в пуле потоков
        scheduler.add_job(
            run_daily_sync,
            trigger=CronTrigger(hour=settings.SYNC_HOUR_UTC, minute=0, timezone="UTC"),
            id="sync-youtube-videos",
            name="Sync YouTube videos daily",
            replace_existing=True,
        )
        scheduler.add_job(
            run_daily_cleanup,
            trigger=CronTrigger(hour=settings.CLEANUP_HOUR_UTC, minute=0, timezone="UTC"),
            id="cleanup-youtube-videos",
            name="Clean up stale YouTube videos daily",
            replace_existing=True,
        )
        scheduler.start()
        logger.info("Планировщик запущен")
    except Exception as e:
        logger.error(f"Не удалось запустить планировщик: {e}", exc_info=True)


def stop_scheduler():
    try:
        logger.info("Остановка планировщика...")
        scheduler.shutdown()
        logger.info("Планировщик остановлен")
    except Exception as e:
        logger.error(f"Не удалось остановить планировщик: {e}", exc_info=True)

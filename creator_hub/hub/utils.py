from datetime import datetime, timezone
from typing import Optional
from hub.config import settings

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
YOUTUBE_CHANNEL_URL = "https://www.youtube.com/channel/{channel_id}"
YOUTUBE_FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"

DIRECT_REFERRER = "Direct"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Приводит дату к UTC; наивные даты (SQLite) считаются UTC"""
    if value is None:
        return None

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)

    return value.astimezone(timezone.utc)

def build_video_url(video_id: str) -> str:
    """Канонический URL видео"""
    return YOUTUBE_WATCH_URL.format(video_id=video_id)

def build_channel_urls(channel_id: str) -> tuple:
    """Возвращает URL канала и URL его RSS-ленты"""
    return (
        YOUTUBE_CHANNEL_URL.format(channel_id=channel_id),
        YOUTUBE_FEED_URL.format(channel_id=channel_id),
    )

def build_redirect_url(slug: str) -> str:
    """Создает публичный URL перехода по партнерской ссылке"""
    return f"{settings.BASE_URL}/go/{slug}"

def extract_client_info(request) -> dict:
    """Извлекает информацию о клиенте из запроса"""
    return {
        "referrer": request.headers.get("referer"),
        "user_agent": request.headers.get("user-agent"),
    }

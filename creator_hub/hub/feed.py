import logging
from datetime import datetime, timezone
from typing import List

import feedparser
import requests

from hub.config import settings
from hub.schemas import FeedVideo
from hub.utils import build_video_url, utcnow

logger = logging.getLogger(__name__)


def _datetime_from_struct_or_now(parsed) -> datetime:
    if parsed:
        return datetime(*parsed[:6], tzinfo=timezone.utc)
    return utcnow()

def _parse_views(entry) -> int:
    statistics = entry.get("media_statistics") or {}
    try:
        return int(statistics.get("views", 0))
    except (TypeError, ValueError):
        return 0

def _media_description(entry) -> str:
    # media:description попадает в summary как text/html, atom:summary как text/plain
    detail = entry.get("summary_detail") or {}
    if detail.get("type") == "text/plain":
        return ""
    return entry.get("summary", "") or ""

def _thumbnail_url(entry) -> str:
    thumbnails = entry.get("media_thumbnail") or []
    for thumbnail in thumbnails:
        if isinstance(thumbnail, dict) and thumbnail.get("url"):
            return thumbnail["url"]
    return ""


def fetch_feed(feed_url: str) -> str:
    """Скачивает RSS-ленту канала. Ответ не 2xx считается ошибкой"""
    response = requests.get(feed_url, timeout=settings.FEED_TIMEOUT)
    response.raise_for_status()
    return response.text


def parse_youtube_feed(xml_text: str) -> List[FeedVideo]:
    """Разбирает Atom-ленту YouTube.

    Идентификатор и название канала берутся из заголовка ленты, а без него
    из первой записи (пустая строка, если их нет нигде). Описание видео
    читается только из media:description. Записи без идентификатора видео
    или заголовка пропускаются.
    """
    parsed = feedparser.parse(xml_text)
    if parsed.bozo:
        logger.warning(f"Лента разобрана с ошибками: {parsed.bozo_exception}")

    first_entry = parsed.entries[0] if parsed.entries else {}
    channel_id = parsed.feed.get("yt_channelid") or first_entry.get("yt_channelid") or ""
    channel_name = parsed.feed.get("author") or first_entry.get("author") or ""

    videos = []
    for entry in parsed.entries:
        video_id = entry.get("yt_videoid")
        title = entry.get("title")

        if not video_id or not title:
            logger.debug("Пропущена запись ленты без videoId или title")
            continue

        videos.append(FeedVideo(
            video_id=video_id,
            channel_id=channel_id,
            channel_name=channel_name,
            title=title,
            description=_media_description(entry),
            thumbnail_url=_thumbnail_url(entry),
            video_url=build_video_url(video_id),
            views=_parse_views(entry),
            published_at=_datetime_from_struct_or_now(entry.get("published_parsed")),
            updated_at=_datetime_from_struct_or_now(entry.get("updated_parsed")),
        ))

    return videos

import orjson
import redis
from typing import Optional
from hub.config import settings

redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    decode_responses=True
)

LINK_CACHE_PREFIX = "go:"  # slug -> {"id", "destination_url"} активной ссылки

def get_link_cache_key(slug: str) -> str:
    """Формирует ключ кеша для слага"""
    return f"{LINK_CACHE_PREFIX}{slug}"

def get_cached_link(slug: str) -> Optional[dict]:
    """Получает закешированную активную ссылку по слагу"""
    data = redis_client.get(get_link_cache_key(slug))
    if not data:
        return None
    try:
        return orjson.loads(data)
    except orjson.JSONDecodeError:
        redis_client.delete(get_link_cache_key(slug))
        return None

def cache_link(slug: str, link_id: int, destination_url: str, expire: Optional[int] = None) -> None:
    """Кеширует ссылку для быстрого редиректа"""
    payload = orjson.dumps({"id": link_id, "destination_url": destination_url}).decode("utf-8")
    redis_client.set(get_link_cache_key(slug), payload, ex=expire or settings.CACHE_EXPIRY)

def invalidate_link_cache(*slugs: str) -> None:
    """Инвалидирует кеш при изменении или удалении ссылки"""
    keys = [get_link_cache_key(slug) for slug in slugs if slug]

    if keys:
        redis_client.delete(*keys)

def is_popular(click_count: int) -> bool:
    return click_count >= settings.POPULAR_LINK_THRESHOLD

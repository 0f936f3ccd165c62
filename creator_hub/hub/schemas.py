from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime
import validators


def _validate_url(v):
    if v is not None and not validators.url(v):
        raise ValueError("Недействительный URL")
    return v


class UserResponse(BaseModel):
    id: int
    clerk_id: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)

# Категории ссылок

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None

class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

# Партнерские ссылки

class LinkCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=100, description="Уникальный слаг для /go/{slug}")
    destination_url: str = Field(..., description="URL, на который ведет ссылка")
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category_id: Optional[int] = None
    is_active: bool = True

    @field_validator('destination_url')
    def validate_url(cls, v):
        return _validate_url(v)

class LinkUpdate(BaseModel):
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    destination_url: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator('destination_url')
    def validate_url(cls, v):
        return _validate_url(v)

class LinkResponse(BaseModel):
    id: int
    slug: str
    destination_url: str
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    is_active: bool
    click_count: int
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class LinkWithCategory(LinkResponse):
    category: Optional[CategoryResponse] = None
    redirect_url: Optional[str] = None

class TrackClickRequest(BaseModel):
    slug: str
    referrer: Optional[str] = None
    user_agent: Optional[str] = None

class TrackClickResponse(BaseModel):
    destination_url: Optional[str] = None

# Аналитика кликов

class LinkRef(BaseModel):
    name: str
    slug: str

class ClickInfo(BaseModel):
    id: int
    link_id: int
    referrer: Optional[str] = None
    user_agent: Optional[str] = None
    clicked_at: datetime
    link: Optional[LinkRef] = None

class DateCount(BaseModel):
    date: str
    count: int

class ReferrerCount(BaseModel):
    referrer: str
    count: int

class ClickSummary(BaseModel):
    total_links: int
    active_links: int
    total_clicks: int
    clicks_last_24h: int
    top_links: List[LinkResponse] = []

# YouTube

class FeedVideo(BaseModel):
    """Запись из RSS-ленты канала"""
    video_id: str
    channel_id: str = ""
    channel_name: str = ""
    title: str
    description: str = ""
    thumbnail_url: str = ""
    video_url: str
    views: int = 0
    published_at: datetime
    updated_at: datetime

class ChannelCreate(BaseModel):
    channel_id: str = Field(..., min_length=1, max_length=64)
    channel_name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: bool = True

class ChannelUpdate(BaseModel):
    channel_name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None

class ChannelResponse(BaseModel):
    id: int
    channel_id: str
    channel_name: str
    channel_url: str
    feed_url: str
    description: Optional[str] = None
    video_count: int
    is_active: bool
    last_synced_at: Optional[datetime] = None
    last_sync_status: Optional[str] = None
    last_sync_error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class ChannelListItem(BaseModel):
    id: int
    channel_id: str
    channel_name: str
    video_count: int

class ChannelVideoCount(BaseModel):
    channel_name: str
    video_count: int

class ChannelStats(BaseModel):
    total_channels: int
    active_channels: int
    total_videos: int
    videos_by_channel: List[ChannelVideoCount] = []
    last_synced_at: Optional[datetime] = None
    last_sync_status: Optional[str] = None

class VideoResponse(BaseModel):
    id: int
    video_id: str
    channel_id: str
    channel_ref: int
    channel_name: str
    title: str
    description: str
    thumbnail_url: str
    video_url: str
    views: int
    published_at: datetime
    updated_at: datetime
    synced_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class VideoPage(BaseModel):
    videos: List[VideoResponse]
    has_more: bool
    next_cursor: Optional[int] = None

class SyncResult(BaseModel):
    success: bool
    channel_name: Optional[str] = None
    new_videos: Optional[int] = None
    updated_videos: Optional[int] = None
    total_videos: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None

class CleanupResult(BaseModel):
    removed: int
    channels_affected: int = 0

class ManualCleanupResult(BaseModel):
    removed: int
    dry_run: bool
    would_remove: Optional[int] = None
    affected_channels: Dict[str, int] = {}
    oldest_video: Optional[datetime] = None
    message: str

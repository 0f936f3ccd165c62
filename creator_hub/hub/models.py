from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from hub.database import Base


def _now():
    return datetime.now(timezone.utc)


class User(Base):
    """Пользователь, синхронизированный из внешнего провайдера идентификации"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    clerk_id = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), index=True, nullable=False)
    role = Column(String(20), default="user", index=True, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    links = relationship("AffiliateLink", back_populates="creator")


class LinkCategory(Base):
    __tablename__ = "link_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now)

    links = relationship("AffiliateLink", back_populates="category")


class AffiliateLink(Base):
    __tablename__ = "affiliate_links"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    destination_url = Column(Text, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("link_categories.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    click_count = Column(Integer, default=0, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now)

    creator = relationship("User", back_populates="links")
    category = relationship("LinkCategory", back_populates="links")
    clicks = relationship("LinkClick", back_populates="link", cascade="all, delete-orphan")


class LinkClick(Base):
    """Один переход по партнерской ссылке. Не изменяется после записи"""
    __tablename__ = "link_clicks"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(Integer, ForeignKey("affiliate_links.id"), nullable=False, index=True)
    referrer = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    clicked_at = Column(DateTime(timezone=True), default=_now, index=True, nullable=False)

    link = relationship("AffiliateLink", back_populates="clicks")


class YoutubeChannel(Base):
    __tablename__ = "youtube_channels"

    id = Column(Integer, primary_key=True, index=True)
    channel_id = Column(String(64), unique=True, index=True, nullable=False)
    channel_name = Column(String(200), nullable=False)
    channel_url = Column(Text, nullable=False)
    feed_url = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    video_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, index=True, nullable=False)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    last_sync_status = Column(String(20), nullable=True)
    last_sync_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now)

    videos = relationship("YoutubeVideo", back_populates="channel", cascade="all, delete-orphan")


class YoutubeVideo(Base):
    __tablename__ = "youtube_videos"

    id = Column(Integer, primary_key=True, index=True)
    video_id = Column(String(32), unique=True, index=True, nullable=False)
    channel_id = Column(String(64), index=True, nullable=False)
    channel_ref = Column(Integer, ForeignKey("youtube_channels.id"), nullable=False, index=True)
    channel_name = Column(String(200), nullable=False, default="")
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    thumbnail_url = Column(Text, nullable=False, default="")
    video_url = Column(Text, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    published_at = Column(DateTime(timezone=True), index=True, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    synced_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    channel = relationship("YoutubeChannel", back_populates="videos")

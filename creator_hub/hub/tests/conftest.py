import os

os.environ["TESTING"] = "True"
os.environ["SCHEDULER_ENABLED"] = "False"

import pytest
import fakeredis
from datetime import timedelta
from fastapi.testclient import TestClient

from hub.database import Base, get_db, SessionLocal, engine
from hub.main import app as fastapi_app
from hub.models import User, AffiliateLink, LinkClick, YoutubeChannel, YoutubeVideo
from hub.utils import build_channel_urls, build_video_url, utcnow
import hub.cache

ADMIN_CLERK_ID = "user_admin"
MEMBER_CLERK_ID = "user_member"

FEED_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns:media="http://search.yahoo.com/mrss/" xmlns="http://www.w3.org/2005/Atom">
 <link rel="self" href="http://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"/>
 <id>yt:channel:{channel_id}</id>
 <yt:channelId>{channel_id}</yt:channelId>
 <title>{channel_name}</title>
 <link rel="alternate" href="https://www.youtube.com/channel/{channel_id}"/>
 <author>
  <name>{channel_name}</name>
  <uri>https://www.youtube.com/channel/{channel_id}</uri>
 </author>
 <published>2015-03-01T10:00:00+00:00</published>
"""

FEED_ENTRY = """ <entry>
  <id>yt:video:{video_id}</id>
  <yt:videoId>{video_id}</yt:videoId>
  <yt:channelId>{channel_id}</yt:channelId>
  <title>{title}</title>
  <link rel="alternate" href="https://www.youtube.com/watch?v={video_id}"/>
  <author>
   <name>{channel_name}</name>
   <uri>https://www.youtube.com/channel/{channel_id}</uri>
  </author>
  <published>{published}</published>
  <updated>{updated}</updated>
  <media:group>
   <media:title>{title}</media:title>
   <media:content url="https://www.youtube.com/v/{video_id}?version=3" type="application/x-shockwave-flash" width="640" height="390"/>
   <media:thumbnail url="https://i1.ytimg.com/vi/{video_id}/hqdefault.jpg" width="480" height="360"/>
   <media:description>{description}</media:description>
   <media:community>
    <media:starRating count="12" average="5.00" min="1" max="5"/>
    <media:statistics views="{views}"/>
   </media:community>
  </media:group>
 </entry>
"""


def build_feed(entries, channel_id="UC_test_channel", channel_name="Test Channel"):
    """Собирает Atom-ленту YouTube из словарей с полями видео"""
    body = FEED_HEADER.format(channel_id=channel_id, channel_name=channel_name)
    for entry in entries:
        body += FEED_ENTRY.format(
            channel_id=channel_id,
            channel_name=channel_name,
            video_id=entry["video_id"],
            title=entry["title"],
            description=entry.get("description", ""),
            views=entry.get("views", 0),
            published=entry.get("published", "2024-05-01T12:00:00+00:00"),
            updated=entry.get("updated", "2024-05-02T12:00:00+00:00"),
        )
    return body + "</feed>\n"


# Mock Redis client
@pytest.fixture(scope="function")
def redis_mock():
    original_redis = hub.cache.redis_client

    fake_redis = fakeredis.FakeStrictRedis(decode_responses=True)

    hub.cache.redis_client = fake_redis

    yield fake_redis

    hub.cache.redis_client = original_redis

@pytest.fixture(scope="function")
def db(redis_mock):
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def admin_user(db):
    user = User(clerk_id=ADMIN_CLERK_ID, email="admin@example.com", role="admin", is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

@pytest.fixture
def member_user(db):
    user = User(clerk_id=MEMBER_CLERK_ID, email="member@example.com", role="user", is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

@pytest.fixture
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = override_get_db

    with TestClient(fastapi_app) as client:
        yield client

    fastapi_app.dependency_overrides = {}

@pytest.fixture
def admin_params(admin_user):
    return {"clerk_id": admin_user.clerk_id}

@pytest.fixture
def make_link(db):
    def _make_link(slug, click_count=0, is_active=True, name=None):
        link = AffiliateLink(
            slug=slug,
            destination_url=f"https://example.com/{slug}",
            name=name or slug.title(),
            is_active=is_active,
            click_count=click_count
        )
        db.add(link)
        db.commit()
        db.refresh(link)
        return link
    return _make_link

@pytest.fixture
def make_click(db):
    def _make_click(link, referrer=None, ago=timedelta(0), user_agent="Test Browser"):
        click = LinkClick(
            link_id=link.id,
            referrer=referrer,
            user_agent=user_agent,
            clicked_at=utcnow() - ago
        )
        db.add(click)
        db.commit()
        return click
    return _make_click

@pytest.fixture
def make_channel(db):
    def _make_channel(channel_id="UC_test_channel", channel_name="Test Channel", is_active=True, video_count=0):
        channel_url, feed_url = build_channel_urls(channel_id)
        channel = YoutubeChannel(
            channel_id=channel_id,
            channel_name=channel_name,
            channel_url=channel_url,
            feed_url=feed_url,
            is_active=is_active,
            video_count=video_count
        )
        db.add(channel)
        db.commit()
        db.refresh(channel)
        return channel
    return _make_channel

@pytest.fixture
def make_video(db):
    def _make_video(channel, video_id, age=timedelta(days=1), title=None):
        now = utcnow()
        video = YoutubeVideo(
            video_id=video_id,
            channel_id=channel.channel_id,
            channel_ref=channel.id,
            channel_name=channel.channel_name,
            title=title or f"Video {video_id}",
            description="",
            thumbnail_url="",
            video_url=build_video_url(video_id),
            views=0,
            published_at=now - age,
            updated_at=now - age,
            synced_at=now
        )
        db.add(video)
        db.commit()
        db.refresh(video)
        return video
    return _make_video

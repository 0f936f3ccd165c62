import pytest
from datetime import timedelta
from sqlalchemy.exc import IntegrityError
from hub.models import User, LinkCategory, AffiliateLink, LinkClick, YoutubeChannel, YoutubeVideo
from hub.utils import utcnow

def test_user_model(db):
    user = User(clerk_id="user_1", email="test@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)

    # Test primary key and defaults
    assert user.id is not None
    assert user.created_at is not None
    assert user.role == "user"
    assert user.is_active is True

    # Test uniqueness constraint
    db.add(User(clerk_id="user_1", email="another@example.com"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

def test_link_model(db):
    link = AffiliateLink(slug="summer-sale", destination_url="https://example.com", name="Summer sale")
    db.add(link)
    db.commit()
    db.refresh(link)

    assert link.id is not None
    assert link.created_at is not None
    assert link.click_count == 0
    assert link.is_active is True
    assert link.category_id is None
    assert link.created_by is None

    db.add(AffiliateLink(slug="summer-sale", destination_url="https://example.org", name="Copy"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

def test_relationships(db):
    user = User(clerk_id="user_admin", email="admin@example.com", role="admin")
    category = LinkCategory(name="Gear", slug="gear")
    db.add_all([user, category])
    db.commit()

    link = AffiliateLink(
        slug="camera",
        destination_url="https://example.com/camera",
        name="Camera",
        category_id=category.id,
        created_by=user.id
    )
    db.add(link)
    db.commit()

    click1 = LinkClick(link_id=link.id, referrer="https://youtube.com")
    click2 = LinkClick(link_id=link.id)
    db.add_all([click1, click2])
    db.commit()

    db.refresh(user)
    db.refresh(category)
    db.refresh(link)

    assert link in user.links
    assert link in category.links
    assert link.creator == user
    assert link.category == category
    assert len(link.clicks) == 2
    assert click1.link == link
    assert click2.clicked_at is not None

def test_link_cascade_delete(db):
    link = AffiliateLink(slug="camera", destination_url="https://example.com/camera", name="Camera")
    db.add(link)
    db.commit()

    link_id = link.id
    db.add(LinkClick(link_id=link_id))
    db.commit()

    db.delete(link)
    db.commit()

    assert db.query(LinkClick).filter(LinkClick.link_id == link_id).count() == 0

def test_channel_cascade_delete(db, make_channel, make_video):
    channel = make_channel()
    make_video(channel, "abc")
    make_video(channel, "def")

    db.refresh(channel)
    assert len(channel.videos) == 2
    assert channel.videos[0].channel == channel

    db.delete(channel)
    db.commit()

    assert db.query(YoutubeVideo).count() == 0

def test_video_id_unique(db, make_channel, make_video):
    channel = make_channel()
    make_video(channel, "abc")

    now = utcnow()
    db.add(YoutubeVideo(
        video_id="abc",
        channel_id=channel.channel_id,
        channel_ref=channel.id,
        title="Duplicate",
        video_url="https://www.youtube.com/watch?v=abc",
        published_at=now - timedelta(days=1),
        updated_at=now,
        synced_at=now
    ))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

def test_channel_defaults(db):
    channel = YoutubeChannel(
        channel_id="UC_defaults",
        channel_name="Defaults",
        channel_url="https://www.youtube.com/channel/UC_defaults",
        feed_url="https://www.youtube.com/feeds/videos.xml?channel_id=UC_defaults"
    )
    db.add(channel)
    db.commit()
    db.refresh(channel)

    assert channel.video_count == 0
    assert channel.is_active is True
    assert channel.last_synced_at is None
    assert channel.last_sync_status is None

"""Аналитика переходов по партнерским ссылкам для админ-панели.

Все выборки загружаются целиком и агрегируются в памяти: объемы кликов
небольшие, постраничной выдачи нет.
"""
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from hub.models import AffiliateLink, LinkClick
from hub.schemas import ClickInfo, ClickSummary, DateCount, LinkRef, LinkResponse, ReferrerCount
from hub.utils import DIRECT_REFERRER, as_utc, utcnow

TOP_LINKS_LIMIT = 5


def _load_clicks(db: Session, link_id: Optional[int] = None, newest_first: bool = True) -> List[LinkClick]:
    query = db.query(LinkClick)
    if link_id is not None:
        query = query.filter(LinkClick.link_id == link_id)
    if newest_first:
        query = query.order_by(LinkClick.clicked_at.desc(), LinkClick.id.desc())
    else:
        query = query.order_by(LinkClick.id)
    return query.all()

def _in_range(click: LinkClick, start_date: Optional[datetime], end_date: Optional[datetime]) -> bool:
    clicked_at = as_utc(click.clicked_at)
    if start_date is not None and clicked_at < as_utc(start_date):
        return False
    if end_date is not None and clicked_at > as_utc(end_date):
        return False
    return True


def get_stats(
    db: Session,
    link_id: Optional[int] = None,
    referrer: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None
) -> List[ClickInfo]:
    """Список кликов с фильтрами по рефереру и периоду (границы включительно)"""
    clicks = _load_clicks(db, link_id)

    if referrer:
        needle = referrer.lower()
        clicks = [c for c in clicks if c.referrer and needle in c.referrer.lower()]

    clicks = [c for c in clicks if _in_range(c, start_date, end_date)]

    links = {}
    result = []
    for click in clicks:
        if click.link_id not in links:
            links[click.link_id] = db.get(AffiliateLink, click.link_id)
        link = links[click.link_id]

        result.append(ClickInfo(
            id=click.id,
            link_id=click.link_id,
            referrer=click.referrer,
            user_agent=click.user_agent,
            clicked_at=as_utc(click.clicked_at),
            link=LinkRef(name=link.name, slug=link.slug) if link else None,
        ))

    return result


def get_clicks_by_date(db: Session, link_id: Optional[int] = None, days: int = 30) -> List[DateCount]:
    """Количество кликов по дням (UTC) за последние `days` дней"""
    cutoff = utcnow() - timedelta(days=days)

    counts = Counter(
        as_utc(click.clicked_at).strftime("%Y-%m-%d")
        for click in _load_clicks(db, link_id)
        if as_utc(click.clicked_at) >= cutoff
    )

    return [DateCount(date=date, count=count) for date, count in sorted(counts.items())]


def get_clicks_by_referrer(
    db: Session,
    link_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None
) -> List[ReferrerCount]:
    """Количество кликов по источникам, пустой реферер считается прямым заходом"""
    counts = Counter(
        click.referrer or DIRECT_REFERRER
        for click in _load_clicks(db, link_id, newest_first=False)
        if _in_range(click, start_date, end_date)
    )

    return [
        ReferrerCount(referrer=referrer, count=count)
        for referrer, count in sorted(counts.items(), key=lambda item: -item[1])
    ]


def get_summary(db: Session) -> ClickSummary:
    """Сводка для дашборда.

    total_clicks складывается из счетчиков ссылок, а не пересчитывается по
    событиям кликов.
    """
    links = db.query(AffiliateLink).all()
    one_day_ago = utcnow() - timedelta(days=1)

    clicks_last_24h = sum(
        1 for click in _load_clicks(db)
        if as_utc(click.clicked_at) >= one_day_ago
    )

    top_links = sorted(
        (link for link in links if link.click_count > 0),
        key=lambda link: -link.click_count
    )[:TOP_LINKS_LIMIT]

    return ClickSummary(
        total_links=len(links),
        active_links=sum(1 for link in links if link.is_active),
        total_clicks=sum(link.click_count for link in links),
        clicks_last_24h=clicks_last_24h,
        top_links=[LinkResponse.model_validate(link) for link in top_links],
    )

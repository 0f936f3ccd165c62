import logging
from fastapi import APIRouter, Depends, HTTPException, status, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from typing import Optional, List

from hub.database import get_db
from hub.models import AffiliateLink, LinkCategory, LinkClick, User
from hub.schemas import (
    LinkCreate, LinkUpdate, LinkResponse, LinkWithCategory, TrackClickRequest, TrackClickResponse
)
from hub.utils import build_redirect_url, utcnow
from hub.dependencies import require_admin, get_client_info
from hub.cache import cache_link, get_cached_link, invalidate_link_cache, is_popular

logger = logging.getLogger(__name__)

router = APIRouter(tags=["links"])


def track_click(db: Session, slug: str, referrer: Optional[str] = None, user_agent: Optional[str] = None) -> Optional[str]:
    """Записывает клик и возвращает URL назначения.

    Для несуществующей или неактивной ссылки возвращает None без ошибки.
    """
    cached = get_cached_link(slug)

    if cached:
        link_id = cached["id"]
        destination_url = cached["destination_url"]
    else:
        link = db.query(AffiliateLink).filter(AffiliateLink.slug == slug).first()
        if not link or not link.is_active:
            return None
        link_id = link.id
        destination_url = link.destination_url

    db.add(LinkClick(
        link_id=link_id,
        referrer=referrer,
        user_agent=user_agent,
        clicked_at=utcnow()
    ))
    # Атомарный инкремент на стороне БД
    db.query(AffiliateLink).filter(AffiliateLink.id == link_id).update(
        {AffiliateLink.click_count: AffiliateLink.click_count + 1},
        synchronize_session=False
    )
    db.commit()

    if not cached:
        click_count = db.query(AffiliateLink.click_count).filter(AffiliateLink.id == link_id).scalar()
        if click_count is not None and is_popular(click_count):
            cache_link(slug, link_id, destination_url)

    return destination_url


def _with_category(link: AffiliateLink) -> LinkWithCategory:
    response = LinkWithCategory.model_validate(link)
    response.redirect_url = build_redirect_url(link.slug)
    return response


def _get_link_or_404(db: Session, link_id: int) -> AffiliateLink:
    link = db.get(AffiliateLink, link_id)
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ссылка не найдена"
        )
    return link


def _ensure_unique_slug(db: Session, slug: str) -> None:
    existing = db.query(AffiliateLink).filter(AffiliateLink.slug == slug).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Link with slug "{slug}" already exists'
        )


def _ensure_category(db: Session, category_id: Optional[int]) -> None:
    if category_id and not db.get(LinkCategory, category_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Категория не найдена"
        )

# Переход по партнерской ссылке
@router.get("/go/{slug}", include_in_schema=False)
async def redirect_to_destination(
    slug: str,
    db: Session = Depends(get_db),
    client_info: dict = Depends(get_client_info)
):
    """Перенаправляет по партнерской ссылке с записью клика"""
    destination_url = track_click(
        db, slug,
        referrer=client_info.get("referrer"),
        user_agent=client_info.get("user_agent")
    )

    if destination_url is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ссылка не найдена"
        )

    return RedirectResponse(url=destination_url, status_code=status.HTTP_302_FOUND)

# Запись клика без редиректа (для фронтенда)
@router.post("/links/track", response_model=TrackClickResponse)
async def track_link_click(
    payload: TrackClickRequest,
    db: Session = Depends(get_db)
):
    destination_url = track_click(db, payload.slug, payload.referrer, payload.user_agent)
    return TrackClickResponse(destination_url=destination_url)

# Создание ссылки
@router.post("/links", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_data: LinkCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Создает партнерскую ссылку"""
    _ensure_unique_slug(db, link_data.slug)
    _ensure_category(db, link_data.category_id)

    now = utcnow()
    link = AffiliateLink(
        slug=link_data.slug,
        destination_url=link_data.destination_url,
        name=link_data.name,
        description=link_data.description,
        category_id=link_data.category_id,
        is_active=link_data.is_active,
        click_count=0,
        created_by=admin.id,
        created_at=now,
        updated_at=now
    )
    db.add(link)
    db.commit()
    db.refresh(link)

    logger.info(f"Создана ссылка {link.slug} -> {link.destination_url}")
    return link

# Список ссылок
@router.get("/links", response_model=List[LinkWithCategory])
async def list_links(
    category_id: Optional[int] = None,
    active_only: bool = False,
    db: Session = Depends(get_db)
):
    """Список ссылок с данными категории"""
    query = db.query(AffiliateLink)
    if category_id:
        query = query.filter(AffiliateLink.category_id == category_id)
    else:
        query = query.order_by(AffiliateLink.id.desc())

    links = query.all()
    if active_only:
        links = [link for link in links if link.is_active]

    return [_with_category(link) for link in links]

# Поиск по слагу
@router.get("/links/slug/{slug}", response_model=Optional[LinkResponse])
async def get_link_by_slug(slug: str, db: Session = Depends(get_db)):
    return db.query(AffiliateLink).filter(AffiliateLink.slug == slug).first()

# Информация о ссылке
@router.get("/links/{link_id}", response_model=Optional[LinkWithCategory])
async def get_link(link_id: int, db: Session = Depends(get_db)):
    link = db.get(AffiliateLink, link_id)
    if not link:
        return None
    return _with_category(link)

# Обновление ссылки
@router.put("/links/{link_id}", response_model=LinkResponse)
async def update_link(
    link_id: int,
    link_data: LinkUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Обновляет поля ссылки"""
    link = _get_link_or_404(db, link_id)
    old_slug = link.slug

    if link_data.slug is not None and link_data.slug != link.slug:
        _ensure_unique_slug(db, link_data.slug)
    _ensure_category(db, link_data.category_id)

    for field, value in link_data.model_dump(exclude_unset=True).items():
        setattr(link, field, value)
    link.updated_at = utcnow()

    db.commit()
    db.refresh(link)

    invalidate_link_cache(old_slug, link.slug)

    return link

# Удаление ссылки
@router.delete("/links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    link_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Удаляет ссылку вместе со всеми ее кликами"""
    link = _get_link_or_404(db, link_id)
    slug = link.slug

    clicks = db.query(LinkClick).filter(LinkClick.link_id == link.id).all()
    for click in clicks:
        db.delete(click)
    db.flush()

    db.delete(link)
    db.commit()

    invalidate_link_cache(slug)
    logger.info(f"Удалена ссылка {slug} и {len(clicks)} кликов")

    return Response(status_code=status.HTTP_204_NO_CONTENT)

from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.orm import Session
from typing import Optional, List

from hub.database import get_db
from hub.models import AffiliateLink, LinkCategory, User
from hub.schemas import CategoryCreate, CategoryUpdate, CategoryResponse
from hub.dependencies import require_admin
from hub.utils import utcnow

router = APIRouter(prefix="/categories", tags=["categories"])


def _get_category_or_404(db: Session, category_id: int) -> LinkCategory:
    category = db.get(LinkCategory, category_id)
    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Категория не найдена"
        )
    return category


def _ensure_unique_slug(db: Session, slug: str) -> None:
    if db.query(LinkCategory).filter(LinkCategory.slug == slug).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Category with slug "{slug}" already exists'
        )


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    _ensure_unique_slug(db, data.slug)

    now = utcnow()
    category = LinkCategory(
        name=data.name,
        slug=data.slug,
        description=data.description,
        created_at=now,
        updated_at=now
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.get("", response_model=List[CategoryResponse])
async def list_categories(db: Session = Depends(get_db)):
    return db.query(LinkCategory).order_by(LinkCategory.id).all()


@router.get("/{category_id}", response_model=Optional[CategoryResponse])
async def get_category(category_id: int, db: Session = Depends(get_db)):
    return db.get(LinkCategory, category_id)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    category = _get_category_or_404(db, category_id)

    if data.slug is not None and data.slug != category.slug:
        _ensure_unique_slug(db, data.slug)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(category, field, value)
    category.updated_at = utcnow()

    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Удаляет категорию, если в ней нет ссылок"""
    category = _get_category_or_404(db, category_id)

    if db.query(AffiliateLink).filter(AffiliateLink.category_id == category_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete category with existing links"
        )

    db.delete(category)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

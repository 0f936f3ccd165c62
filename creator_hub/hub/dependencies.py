from fastapi import Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session

from hub.database import get_db
from hub.models import User
from hub.utils import extract_client_info

ADMIN_ROLE = "admin"

async def require_admin(
    clerk_id: str = Query(..., description="Идентификатор пользователя у провайдера идентификации"),
    db: Session = Depends(get_db)
):
    """Проверяет, что вызывающий является администратором"""
    user = db.query(User).filter(User.clerk_id == clerk_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Пользователь не найден"
        )

    if user.role != ADMIN_ROLE or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Требуются права администратора"
        )

    return user

async def get_client_info(request: Request):
    """Получает информацию о клиенте из запроса"""
    return extract_client_info(request)

"""
用户管理路由（仅管理员）
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from nexus.database import get_db
from nexus.models.ontology import UserRole
from nexus.models.schemas import UserCreate, UserResponse
from nexus.services.user_service import UserService
from nexus.security.actor import Actor
from nexus.security.auth import require_admin

router = APIRouter(prefix="/users", tags=["用户管理"])


@router.get("", response_model=List[UserResponse])
def list_users(
    role: Optional[UserRole] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin)
):
    """获取用户列表"""
    return UserService(db).get_users(role)


@router.post("", response_model=UserResponse)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin)
):
    """创建用户"""
    try:
        return UserService(db).create_user(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{user_id}/toggle-access", response_model=UserResponse)
def toggle_user_access(
    user_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin)
):
    """启用/停用账号"""
    try:
        return UserService(db).toggle_access(user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

"""
认证与授权模块
JWT 令牌 + bcrypt 密码哈希，路由层据此构造 Actor 传入服务层
"""
import bcrypt
import logging
from datetime import datetime, timedelta, UTC
from typing import List
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from core.engine.audit import AuditSeverity, audit_engine
from nexus.config import settings
from nexus.database import get_db
from nexus.models.ontology import User, UserRole
from nexus.security.actor import Actor

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_password_hash(password: str) -> str:
    """密码哈希"""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def create_access_token(user_id: int, role: UserRole) -> str:
    """创建 JWT token"""
    expire = datetime.now(UTC) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, UserRole) else str(role),
        "exp": expire
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """解码 JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """获取当前登录用户"""
    payload = decode_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用户不存在"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="账号已停用"
        )

    return user


async def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    """当前用户 -> Actor"""
    return Actor.from_user(current_user)


def require_role(allowed_roles: List[UserRole]):
    """角色权限验证依赖"""
    async def role_checker(request: Request, actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed_roles:
            logger.info(f"Role check failed for {actor}: requires {[r.value for r in allowed_roles]}")
            audit_engine.record(
                "UNAUTHORIZED_ATTEMPT",
                f"User {actor.display_name} ({actor.role.value}) denied {request.method} {request.url.path}",
                AuditSeverity.CRITICAL,
                actor_id=actor.id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="权限不足"
            )
        return actor
    return role_checker


# 便捷的角色检查器
require_admin = require_role([UserRole.ADMIN])
require_front_desk = require_role([
    UserRole.ADMIN, UserRole.MANAGER, UserRole.RECEPTIONIST, UserRole.STAFF
])
require_any_staff = require_role([
    UserRole.ADMIN, UserRole.MANAGER, UserRole.RECEPTIONIST, UserRole.STAFF, UserRole.HOUSEKEEPING
])

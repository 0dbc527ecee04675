"""
用户服务 - 员工账号与客人账号管理
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from nexus.models.ontology import User, UserRole
from nexus.models.schemas import UserCreate
from nexus.security.auth import get_password_hash, verify_password

logger = logging.getLogger(__name__)


class UserService:
    """用户服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_users(self, role: Optional[UserRole] = None) -> List[User]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.id).all()

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """校验用户名密码，停用账号视为登录失败"""
        user = self.get_user_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            return None
        if not user.is_active:
            logger.info(f"Login refused for deactivated user {username}")
            return None
        return user

    def create_user(self, data: UserCreate) -> User:
        """创建用户"""
        if self.get_user_by_username(data.username):
            raise ValueError(f"用户名 '{data.username}' 已存在")

        user = User(
            username=data.username,
            password_hash=get_password_hash(data.password),
            full_name=data.full_name,
            role=data.role,
            is_active=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def toggle_access(self, user_id: int) -> User:
        """启用/停用账号；管理员账号不可停用"""
        user = self.get_user(user_id)
        if not user:
            raise ValueError("用户不存在")
        if user.role == UserRole.ADMIN:
            raise ValueError("不能停用管理员账号")

        user.is_active = not user.is_active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.username} is_active -> {user.is_active}")
        return user

"""
调用方身份

服务层不读取任何全局"当前用户"，每个写操作都显式接收 Actor。
"""
from dataclasses import dataclass
from typing import FrozenSet

from nexus.models.ontology import User, UserRole


# 可以审批/拒绝客人自助预订的角色
APPROVER_ROLES: FrozenSet[UserRole] = frozenset({
    UserRole.ADMIN, UserRole.MANAGER, UserRole.RECEPTIONIST, UserRole.STAFF
})

# 可以修改入住日期的角色
CHECK_IN_EDITOR_ROLES: FrozenSet[UserRole] = frozenset({UserRole.ADMIN, UserRole.MANAGER})

# 前台类员工（可办理入住/退房、收款、提交删除申请）
FRONT_DESK_ROLES: FrozenSet[UserRole] = frozenset({
    UserRole.ADMIN, UserRole.MANAGER, UserRole.RECEPTIONIST, UserRole.STAFF
})


@dataclass(frozen=True)
class Actor:
    """
    操作人

    Attributes:
        id: 用户ID
        role: 角色
        display_name: 显示名称（用于审计与支付记录）
    """

    id: int
    role: UserRole
    display_name: str

    @property
    def is_guest(self) -> bool:
        return self.role == UserRole.GUEST

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role, display_name=user.full_name)

    def __str__(self) -> str:
        return f"{self.display_name} ({self.role.value})"

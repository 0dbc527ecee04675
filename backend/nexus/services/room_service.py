"""
房间服务 - 本体操作层
管理 Room 对象：房间配置变更仅限管理员，房态可由员工（含客房）更新
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from core.engine.audit import AuditEngine, AuditSeverity, audit_engine
from nexus.errors import PermissionDenied, RoomNotFound
from nexus.models.ontology import Room, RoomStatus
from nexus.models.schemas import RoomCreate, RoomUpdate
from nexus.security.actor import Actor

logger = logging.getLogger(__name__)


class RoomService:
    """房间服务"""

    def __init__(self, db: Session, audit: Optional[AuditEngine] = None):
        self.db = db
        self.audit = audit or audit_engine

    def get_rooms(self, status: Optional[RoomStatus] = None) -> List[Room]:
        """获取房间列表"""
        query = self.db.query(Room)
        if status:
            query = query.filter(Room.status == status)
        return query.order_by(Room.number).all()

    def get_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise RoomNotFound(f"房间 {room_id} 不存在", {"room_id": room_id})
        return room

    def get_room_by_number(self, number: str) -> Optional[Room]:
        return self.db.query(Room).filter(Room.number == number).first()

    def create_room(self, data: RoomCreate, actor: Actor) -> Room:
        """新增房间（仅管理员）"""
        self._require_admin(actor, f"User {actor.display_name} attempted to add room {data.number}.")

        if self.get_room_by_number(data.number):
            raise ValueError(f"房间号 '{data.number}' 已存在")

        room = Room(**data.model_dump())
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)

        self._record_config_change(actor)
        return room

    def update_room(self, room_id: int, data: RoomUpdate, actor: Actor) -> Room:
        """修改房间配置（仅管理员）"""
        self._require_admin(actor, f"User {actor.display_name} attempted to modify room inventory.")
        room = self.get_room(room_id)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(room, key, value)

        self.db.commit()
        self.db.refresh(room)

        self._record_config_change(actor)
        return room

    def update_room_status(self, room_id: int, status: RoomStatus, actor: Actor) -> Room:
        """更新房态（清洁完成、维修等）"""
        room = self.get_room(room_id)
        old_status = room.status
        room.status = status
        self.db.commit()
        self.db.refresh(room)

        logger.info(f"Room {room.number} status {old_status.value} -> {status.value} by {actor}")
        return room

    def _require_admin(self, actor: Actor, detail: str) -> None:
        if not actor.is_admin:
            self.audit.record("UNAUTHORIZED_CONFIG_CHANGE", detail, AuditSeverity.CRITICAL, actor_id=actor.id)
            raise PermissionDenied("只有管理员可以修改酒店配置", {"role": actor.role.value})

    def _record_config_change(self, actor: Actor) -> None:
        total = self.db.query(Room).count()
        self.audit.record(
            "ROOM_CONFIG_UPDATE",
            f"Room inventory updated. Total rooms: {total}",
            AuditSeverity.WARNING,
            actor_id=actor.id,
        )

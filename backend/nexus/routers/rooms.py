"""
房间管理路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from nexus.database import get_db
from nexus.errors import BookingEngineError
from nexus.models.ontology import RoomStatus
from nexus.models.schemas import RoomCreate, RoomUpdate, RoomStatusUpdate, RoomResponse
from nexus.services.room_service import RoomService
from nexus.security.actor import Actor
from nexus.security.auth import get_current_actor, require_any_staff

router = APIRouter(prefix="/rooms", tags=["房间管理"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    status: Optional[RoomStatus] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """获取房间列表"""
    return RoomService(db).get_rooms(status)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """获取房间详情"""
    try:
        return RoomService(db).get_room(room_id)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("", response_model=RoomResponse)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_any_staff)
):
    """新增房间（服务层校验管理员身份并审计越权尝试）"""
    try:
        return RoomService(db).create_room(data, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_any_staff)
):
    """修改房间配置"""
    try:
        return RoomService(db).update_room(room_id, data, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/{room_id}/status", response_model=RoomResponse)
def update_room_status(
    room_id: int,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_any_staff)
):
    """更新房态"""
    try:
        return RoomService(db).update_room_status(room_id, data.status, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

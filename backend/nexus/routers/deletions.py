"""
删除申请路由
员工提交申请，管理员审批；审批权限在服务层校验以便审计越权尝试
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from nexus.database import get_db
from nexus.errors import BookingEngineError
from nexus.models.ontology import DeletionRequestStatus
from nexus.models.schemas import DeletionRequestCreate, DeletionDecision, DeletionRequestResponse
from nexus.services.deletion_service import DeletionService
from nexus.security.actor import Actor
from nexus.security.auth import get_current_actor, require_front_desk

router = APIRouter(prefix="/deletion-requests", tags=["删除申请"])


@router.get("", response_model=List[DeletionRequestResponse])
def list_deletion_requests(
    status: Optional[DeletionRequestStatus] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """获取删除申请列表"""
    return DeletionService(db).list_requests(status)


@router.post("", response_model=DeletionRequestResponse)
def create_deletion_request(
    data: DeletionRequestCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """提交删除申请"""
    try:
        return DeletionService(db).request(data.booking_id, data.reason, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{request_id}/decision", response_model=DeletionRequestResponse)
def decide_deletion_request(
    request_id: int,
    data: DeletionDecision,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """审批删除申请（仅管理员）"""
    try:
        return DeletionService(db).decide(request_id, data.approve, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

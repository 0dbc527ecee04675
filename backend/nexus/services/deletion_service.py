"""
删除申请服务 - 两阶段删除：员工提交申请 -> 管理员审批

批准后预订从有效集合中永久移除；分类账与付款记录保留。
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from core.engine.audit import AuditEngine, AuditSeverity, audit_engine
from nexus.errors import (
    BookingNotFound, DeletionRequestNotFound, DuplicatePendingRequest,
    InvalidTransition, PermissionDenied
)
from nexus.models.ontology import Booking, DeletionRequest, DeletionRequestStatus
from nexus.security.actor import Actor

logger = logging.getLogger(__name__)


class DeletionService:
    """删除申请服务"""

    def __init__(self, db: Session, audit: Optional[AuditEngine] = None):
        self.db = db
        self.audit = audit or audit_engine

    def request(self, booking_id: int, reason: str, actor: Actor) -> DeletionRequest:
        """提交删除申请；同一预订已有待处理申请时拒绝"""
        if not reason or not reason.strip():
            raise ValueError("请填写删除原因")

        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise BookingNotFound(f"预订 {booking_id} 不存在", {"booking_id": booking_id})

        if self.pending_for(booking_id):
            raise DuplicatePendingRequest(
                "该预订已有待处理的删除申请", {"booking_id": booking_id}
            )

        req = DeletionRequest(
            booking_id=booking_id,
            requested_by=actor.display_name,
            requested_by_id=actor.id,
            reason=reason.strip(),
            status=DeletionRequestStatus.PENDING,
        )
        self.db.add(req)
        try:
            self.db.commit()
        except IntegrityError:
            # 并发提交时由部分唯一索引兜底
            self.db.rollback()
            raise DuplicatePendingRequest(
                "该预订已有待处理的删除申请", {"booking_id": booking_id}
            )
        self.db.refresh(req)

        self.audit.record(
            "DELETION_REQUEST",
            f"Deletion requested for Booking {booking_id} by {actor.display_name}",
            AuditSeverity.WARNING,
            actor_id=actor.id,
        )
        return req

    def decide(self, request_id: int, approve: bool, actor: Actor) -> DeletionRequest:
        """管理员审批删除申请"""
        if not actor.is_admin:
            self.audit.record(
                "UNAUTHORIZED_ATTEMPT",
                f"Non-Admin {actor.display_name} attempted to process deletion request {request_id}",
                AuditSeverity.CRITICAL,
                actor_id=actor.id,
            )
            raise PermissionDenied("只有管理员可以删除数据", {"role": actor.role.value})

        req = self.db.query(DeletionRequest).filter(DeletionRequest.id == request_id).first()
        if not req:
            raise DeletionRequestNotFound(f"删除申请 {request_id} 不存在", {"request_id": request_id})

        if req.status != DeletionRequestStatus.PENDING:
            raise InvalidTransition(
                f"删除申请已处理（{req.status.value}）",
                {"request_id": request_id, "status": req.status.value}
            )

        deleted = False
        if approve:
            booking = self.db.query(Booking).filter(Booking.id == req.booking_id).first()
            if booking:
                self.db.delete(booking)
                deleted = True
            else:
                logger.warning(f"Booking {req.booking_id} already removed before request {request_id} was approved")

        req.status = DeletionRequestStatus.APPROVED if approve else DeletionRequestStatus.REJECTED
        req.decided_by = actor.display_name
        req.decided_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(req)

        if deleted:
            self.audit.record(
                "BOOKING_DELETED",
                f"Booking {req.booking_id} deleted by Admin {actor.display_name}",
                AuditSeverity.CRITICAL,
                actor_id=actor.id,
            )
        elif not approve:
            self.audit.record(
                "DELETION_REJECTED",
                f"Deletion request {request_id} for Booking {req.booking_id} rejected",
                AuditSeverity.INFO,
                actor_id=actor.id,
            )
        return req

    def pending_for(self, booking_id: int) -> Optional[DeletionRequest]:
        return self.db.query(DeletionRequest).filter(
            DeletionRequest.booking_id == booking_id,
            DeletionRequest.status == DeletionRequestStatus.PENDING
        ).first()

    def list_requests(self, status: Optional[DeletionRequestStatus] = None) -> List[DeletionRequest]:
        query = self.db.query(DeletionRequest)
        if status:
            query = query.filter(DeletionRequest.status == status)
        return query.order_by(DeletionRequest.requested_at.desc(), DeletionRequest.id.desc()).all()

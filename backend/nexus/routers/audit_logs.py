"""
审计日志路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from nexus.database import get_db
from nexus.models.ontology import AuditSeverityLevel
from nexus.models.schemas import AuditLogResponse
from nexus.services.audit_service import AuditLogService
from nexus.security.actor import Actor
from nexus.security.auth import require_admin

router = APIRouter(prefix="/audit-logs", tags=["审计日志"])


@router.get("", response_model=List[AuditLogResponse])
def list_audit_logs(
    action: Optional[str] = None,
    severity: Optional[AuditSeverityLevel] = None,
    actor_id: Optional[int] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin)
):
    """获取审计日志（按时间倒序）"""
    logs = AuditLogService(db).get_logs(action, severity, actor_id, limit, offset)
    return [
        AuditLogResponse(
            log_id=log.log_id,
            timestamp=log.created_at,
            actor_id=log.actor_id,
            action=log.action,
            detail=log.detail or "",
            severity=log.severity.value,
        )
        for log in logs
    ]

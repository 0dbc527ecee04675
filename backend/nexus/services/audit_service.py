"""
审计日志持久化与查询

审计引擎本身只保存在内存中；这里提供写入 audit_logs 表的 sink，
使用独立的会话，业务事务回滚不会带走已发出的审计记录。
"""
import logging
from typing import Callable, List, Optional
from sqlalchemy.orm import Session
from core.engine.audit import AuditLog, AuditSink
from nexus.models.ontology import AuditLogRecord, AuditSeverityLevel

logger = logging.getLogger(__name__)


def make_database_sink(session_factory: Callable[[], Session]) -> AuditSink:
    """构造写库 sink；异常交由审计引擎记录"""

    def database_sink(log: AuditLog) -> None:
        db = session_factory()
        try:
            db.add(AuditLogRecord(
                log_id=log.log_id,
                actor_id=log.actor_id,
                action=log.action,
                detail=log.detail,
                severity=AuditSeverityLevel(log.severity.value),
                created_at=log.timestamp,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    return database_sink


class AuditLogService:
    """审计日志查询"""

    def __init__(self, db: Session):
        self.db = db

    def get_logs(self, action: Optional[str] = None,
                 severity: Optional[AuditSeverityLevel] = None,
                 actor_id: Optional[int] = None,
                 limit: int = 100, offset: int = 0) -> List[AuditLogRecord]:
        """按时间倒序获取审计日志"""
        query = self.db.query(AuditLogRecord)
        if action:
            query = query.filter(AuditLogRecord.action == action)
        if severity:
            query = query.filter(AuditLogRecord.severity == severity)
        if actor_id is not None:
            query = query.filter(AuditLogRecord.actor_id == actor_id)
        return query.order_by(
            AuditLogRecord.created_at.desc(), AuditLogRecord.id.desc()
        ).offset(offset).limit(limit).all()

"""
core/engine/audit.py

审计日志引擎 - 记录系统关键操作

写入方式为"发出即忘"：任何持久化 sink 的异常都只记录到日志，
不会向主业务操作抛出。
"""
from typing import Dict, Any, Optional, List, Callable
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
from enum import Enum
import logging
import threading
import uuid

logger = logging.getLogger(__name__)


class AuditSeverity(str, Enum):
    """审计日志严重程度"""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class AuditLog:
    """
    审计日志条目

    Attributes:
        log_id: 日志唯一标识
        timestamp: 日志时间戳
        actor_id: 操作人ID（系统操作为 None）
        action: 操作类型，如 BOOKING_CREATED
        detail: 可读的详细说明
        severity: 严重程度
        extra: 额外信息
    """

    log_id: str
    timestamp: datetime
    actor_id: Optional[int]
    action: str
    detail: str
    severity: AuditSeverity
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "log_id": self.log_id,
            "timestamp": self.timestamp.isoformat(),
            "actor_id": self.actor_id,
            "action": self.action,
            "detail": self.detail,
            "severity": self.severity.value,
            "extra": self.extra,
        }


AuditSink = Callable[[AuditLog], None]


class AuditEngine:
    """
    审计日志引擎

    特性：
    - 内存环形缓冲（最近 max_logs 条）
    - 可挂载多个持久化 sink
    - sink 失败不影响调用方

    Example:
        >>> engine = AuditEngine()
        >>> engine.record("CHECK_IN", "Guest checked in for booking 12", "info", actor_id=1)
        >>> engine.get_by_action("CHECK_IN")
    """

    def __init__(self, max_logs: int = 10000):
        """
        初始化审计引擎

        Args:
            max_logs: 最大日志条数（内存存储）
        """
        self._logs: deque = deque(maxlen=max_logs)
        self._sinks: List[AuditSink] = []
        self._lock = threading.Lock()

    def add_sink(self, sink: AuditSink) -> None:
        """挂载持久化 sink"""
        with self._lock:
            if sink not in self._sinks:
                self._sinks.append(sink)

    def clear_sinks(self) -> None:
        with self._lock:
            self._sinks.clear()

    def record(
        self,
        action: str,
        detail: str = "",
        severity: AuditSeverity = AuditSeverity.INFO,
        actor_id: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        记录审计日志

        Args:
            action: 操作类型
            detail: 详细说明
            severity: 严重程度（也接受 "info" / "warning" / "critical" 字符串）
            actor_id: 操作人ID
            extra: 额外信息

        Returns:
            创建的审计日志；构造失败时返回 None
        """
        try:
            log = AuditLog(
                log_id=str(uuid.uuid4()),
                timestamp=datetime.utcnow(),
                actor_id=actor_id,
                action=action,
                detail=detail,
                severity=AuditSeverity(severity),
                extra=extra or {},
            )
        except ValueError as e:
            logger.error(f"Invalid audit record {action!r}: {e}")
            return None

        with self._lock:
            self._logs.append(log)
            sinks = list(self._sinks)

        for sink in sinks:
            try:
                sink(log)
            except Exception as e:
                logger.error(f"Audit sink {getattr(sink, '__name__', sink)!r} failed: {e}")

        log_method = logger.warning if log.severity == AuditSeverity.CRITICAL else logger.info
        log_method(f"Audit log: {action} [{log.severity.value}] by {actor_id}: {detail}")
        return log

    def get_by_action(self, action: str, limit: int = 100) -> List[AuditLog]:
        """获取指定操作的日志"""
        return [log for log in self._logs if log.action == action][:limit]

    def get_by_actor(self, actor_id: int, limit: int = 100) -> List[AuditLog]:
        """获取操作人的日志"""
        return [log for log in self._logs if log.actor_id == actor_id][:limit]

    def get_all(
        self,
        limit: int = 100,
        offset: int = 0,
        severity: Optional[AuditSeverity] = None,
    ) -> List[AuditLog]:
        """
        获取所有日志（按时间倒序分页）

        Args:
            limit: 返回数量限制
            offset: 偏移量
            severity: 筛选严重程度

        Returns:
            日志列表
        """
        logs = list(reversed(self._logs))

        if severity is not None:
            logs = [log for log in logs if log.severity == severity]

        return logs[offset : offset + limit]

    def get_statistics(self) -> Dict[str, Any]:
        """获取审计统计"""
        counts: Dict[str, int] = {}
        for log in self._logs:
            counts[log.action] = counts.get(log.action, 0) + 1
        return {
            "total_logs": len(self._logs),
            "by_severity": {
                severity.value: len([log for log in self._logs if log.severity == severity])
                for severity in AuditSeverity
            },
            "by_action": counts,
        }


# 全局审计引擎实例
audit_engine = AuditEngine()


# 导出
__all__ = [
    "AuditSeverity",
    "AuditLog",
    "AuditSink",
    "AuditEngine",
    "audit_engine",
]

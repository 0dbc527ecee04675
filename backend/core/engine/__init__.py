"""
core/engine - 核心引擎模块

包含框架的核心引擎组件：
- state_machine: 状态机引擎（状态转换校验）
- audit: 审计日志引擎（操作记录）
- locks: 按键互斥锁（按房间串行化写入）

使用方式:
    >>> from core.engine import audit_engine, room_locks
    >>> from core.engine import StateMachine, StateMachineConfig, StateTransition
"""

# 状态机引擎
from core.engine.state_machine import (
    StateTransition,
    StateMachineConfig,
    StateMachine,
)

# 审计日志引擎
from core.engine.audit import (
    AuditSeverity,
    AuditLog,
    AuditSink,
    AuditEngine,
    audit_engine,
)

# 按键锁
from core.engine.locks import KeyedLock, room_locks

__all__ = [
    # 状态机
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
    # 审计
    "AuditSeverity",
    "AuditLog",
    "AuditSink",
    "AuditEngine",
    "audit_engine",
    # 锁
    "KeyedLock",
    "room_locks",
]

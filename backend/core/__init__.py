"""
core - 领域无关的运行时组件

- engine: 核心引擎（状态机, 审计日志, 按键锁）

使用方式:
    >>> from core.engine import audit_engine, room_locks
"""

__version__ = "0.1.0"

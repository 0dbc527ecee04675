"""
业务异常定义

所有异常均可由调用方恢复（在界面上提示即可），不会导致进程退出。
status_code 供路由层映射为 HTTP 状态码。
"""
from typing import Any, Dict, Optional


class BookingEngineError(Exception):
    """预订引擎异常基类"""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def error_code(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message, "details": self.details}


class PermissionDenied(BookingEngineError):
    """角色权限校验失败"""
    status_code = 403


class RoomUnavailable(BookingEngineError):
    """房间在请求时段已被占用"""
    status_code = 409


class BookingNotFound(BookingEngineError):
    status_code = 404


class RoomNotFound(BookingEngineError):
    status_code = 404


class DeletionRequestNotFound(BookingEngineError):
    status_code = 404


class OutstandingBalance(BookingEngineError):
    """存在未结清余额，拒绝退房"""
    status_code = 409


class DuplicatePendingRequest(BookingEngineError):
    """同一预订已有待处理的删除申请"""
    status_code = 409


class InvalidAmount(BookingEngineError):
    """金额必须为正数"""
    status_code = 400


class InvalidTransition(BookingEngineError):
    """当前状态不允许该操作"""
    status_code = 409


class StaleRoomVersion(BookingEngineError):
    """房间版本号已被并发请求修改，需要重试"""
    status_code = 409

"""
core/engine/locks.py

按键加锁 - 同一进程内对同一资源（如房间）的写操作串行化

跨进程的互斥由调用方在数据库层用版本号比较交换（CAS）保证，
这里只负责减少同一进程内的无谓冲突重试。
"""
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator
import logging
import threading

logger = logging.getLogger(__name__)


class KeyedLock:
    """
    键控互斥锁（线程安全）

    使用方式：
        >>> room_locks = KeyedLock("room")
        >>> with room_locks.hold(room_id):
        ...     # 可用性检查 + 写入
    """

    def __init__(self, name: str):
        self._name = name
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._refcounts: Dict[Hashable, int] = {}
        self._registry_lock = threading.Lock()

    def _acquire_entry(self, key: Hashable) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._refcounts[key] = self._refcounts.get(key, 0) + 1
            return lock

    def _release_entry(self, key: Hashable) -> None:
        with self._registry_lock:
            self._refcounts[key] -= 1
            # 无人等待时回收，避免字典无限增长
            if self._refcounts[key] == 0:
                del self._refcounts[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """在 with 块内独占 key"""
        lock = self._acquire_entry(key)
        lock.acquire()
        logger.debug(f"[{self._name}] lock acquired: {key}")
        try:
            yield
        finally:
            lock.release()
            self._release_entry(key)
            logger.debug(f"[{self._name}] lock released: {key}")

    def active_keys(self) -> int:
        """当前持有或等待中的键数量（用于测试）"""
        with self._registry_lock:
            return len(self._locks)


# 全局房间锁
room_locks = KeyedLock("room")


__all__ = ["KeyedLock", "room_locks"]

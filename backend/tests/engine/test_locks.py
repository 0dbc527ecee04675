"""
测试 core.engine.locks - 按键互斥
"""
import threading
import time

from core.engine.locks import KeyedLock


class TestKeyedLock:

    def test_same_key_is_serialized(self):
        locks = KeyedLock("test")
        inside = []
        overlaps = []

        def worker():
            with locks.hold(1):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []

    def test_different_keys_do_not_block(self):
        locks = KeyedLock("test")
        entered = threading.Event()

        def other():
            with locks.hold(2):
                entered.set()

        with locks.hold(1):
            t = threading.Thread(target=other)
            t.start()
            assert entered.wait(timeout=2)
            t.join()

    def test_entries_released(self):
        locks = KeyedLock("test")
        with locks.hold("a"):
            assert locks.active_keys() == 1
        assert locks.active_keys() == 0

    def test_released_on_error(self):
        locks = KeyedLock("test")
        try:
            with locks.hold("a"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert locks.active_keys() == 0
        with locks.hold("a"):
            pass

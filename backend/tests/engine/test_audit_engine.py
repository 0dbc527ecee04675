"""
测试 core.engine.audit - 审计日志引擎
"""
from core.engine.audit import AuditEngine, AuditLog, AuditSeverity


class TestAuditEngine:

    def test_record_and_query(self):
        engine = AuditEngine()
        engine.record("CHECK_IN", "Guest checked in for booking 1", AuditSeverity.INFO, actor_id=3)
        engine.record("REVENUE_LEAKAGE", "balance due", "critical", actor_id=4)

        assert engine.get_by_action("CHECK_IN")[0].actor_id == 3
        assert engine.get_by_actor(4)[0].severity == AuditSeverity.CRITICAL

    def test_get_all_newest_first(self):
        engine = AuditEngine()
        for i in range(3):
            engine.record(f"A{i}")
        assert [log.action for log in engine.get_all()] == ["A2", "A1", "A0"]
        assert [log.action for log in engine.get_all(limit=1, offset=1)] == ["A1"]

    def test_filter_by_severity(self):
        engine = AuditEngine()
        engine.record("A", severity=AuditSeverity.INFO)
        engine.record("B", severity=AuditSeverity.CRITICAL)
        assert [log.action for log in engine.get_all(severity=AuditSeverity.CRITICAL)] == ["B"]

    def test_buffer_bounded(self):
        engine = AuditEngine(max_logs=2)
        for i in range(5):
            engine.record(f"A{i}")
        assert engine.get_statistics()["total_logs"] == 2

    def test_sink_receives_logs(self):
        engine = AuditEngine()
        received = []
        engine.add_sink(received.append)
        engine.record("BOOKING_CREATED", "Booking 1 created")

        assert len(received) == 1
        assert isinstance(received[0], AuditLog)
        assert received[0].to_dict()["severity"] == "info"

    def test_failing_sink_is_swallowed(self):
        engine = AuditEngine()

        def broken(log):
            raise RuntimeError("disk full")

        engine.add_sink(broken)
        log = engine.record("BOOKING_DELETED", "Booking 1 deleted", AuditSeverity.CRITICAL)
        assert log is not None
        assert engine.get_by_action("BOOKING_DELETED")

    def test_invalid_severity(self):
        assert AuditEngine().record("X", severity="loud") is None

    def test_statistics(self):
        engine = AuditEngine()
        engine.record("A")
        engine.record("A", severity=AuditSeverity.WARNING)
        stats = engine.get_statistics()
        assert stats["by_action"] == {"A": 2}
        assert stats["by_severity"]["warning"] == 1

# tests/transport/test_bus_log.py
"""
cpu_cycle_tracer.transport.bus モジュールの単体テスト。
"""
import pytest

from cpu_cycle_tracer.common.types import BusType
from cpu_cycle_tracer.core.scheduler import DeferredScheduler, ManualClock
from cpu_cycle_tracer.transport.bus import BusLog, transfer_lifetime

# @intent:test_suite バス転送ログの記録、自動非アクティブ化、クリアを検証します。


class TestBusLog:
    @pytest.fixture
    def setup_log(self):
        clock = ManualClock(1000.0)
        scheduler = DeferredScheduler(clock=clock)
        return BusLog(scheduler, lifetime_ms=500), scheduler, clock

    # @intent:test_case_lifetime 表示時間は max(500, ステップ時間 + 500) であることを検証します。
    def test_transfer_lifetime(self):
        assert transfer_lifetime(1000) == 1500
        assert transfer_lifetime(0) == 500
        assert transfer_lifetime(-2000) == 500

    # @intent:test_case_add 転送が連番IDとスケジューラ時刻で記録されることを検証します。
    def test_add_transfer(self, setup_log):
        log, _, _ = setup_log
        first = log.add_transfer(BusType.ADDRESS, "PC", "Memory", 1)
        second = log.add_transfer(BusType.DATA, "Memory", "IR", 0)

        assert first.id == "transfer-1"
        assert second.id == "transfer-2"
        assert first.active and first.timestamp == 1000.0
        assert [t.source for t in log.get_transfers()] == ["PC", "Memory"]
        assert len(log) == 2

    # @intent:test_case_deactivate 表示時間経過後のpollで転送が非アクティブになることを検証します。
    def test_deactivates_after_lifetime(self, setup_log):
        log, scheduler, clock = setup_log
        log.add_transfer(BusType.DATA, "R1", "ALU", 5)
        log.add_transfer(BusType.CONTROL, "ControlUnit", "ALU", 0, lifetime_ms=2000)

        clock.advance(500)
        assert scheduler.poll() == 1
        assert [t.active for t in log.get_transfers()] == [False, True]
        assert len(log.active_transfers()) == 1

        clock.advance(1500)
        scheduler.poll()
        assert log.active_transfers() == []

    # @intent:test_case_clear ログのクリアでID採番も初期化され、古い非アクティブ化予約は無害であることを検証します。
    def test_get_and_clear(self, setup_log):
        log, scheduler, clock = setup_log
        log.add_transfer(BusType.DATA, "R1", "ALU", 5)
        drained = log.get_and_clear_activity_log()
        assert len(drained) == 1
        assert log.get_transfers() == []

        log.clear()
        assert log.add_transfer(BusType.DATA, "R2", "ALU", 1).id == "transfer-1"
        clock.advance(500)
        scheduler.poll()
        assert log.get_transfers()[0].active is False

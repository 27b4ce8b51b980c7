# tests/arch/teaching/test_teaching_cpu.py
"""
cpu_cycle_tracer.arch.teaching.cpu モジュールの単体テスト。
サイクル・ステートマシンのフェーズ進行、スナップショット、リセット、遅延処理を検証します。
"""
import pytest

from cpu_cycle_tracer.arch.teaching.cpu import TeachingCpu
from cpu_cycle_tracer.common.types import BusType, CacheLevel, MemoryChange, Phase, RegisterChange
from cpu_cycle_tracer.core.scheduler import DeferredScheduler, ManualClock
from cpu_cycle_tracer.isa.programs import generate_calculator_instructions, generate_traffic_light_instructions

# @intent:test_suite 教材用CPUの命令サイクル全体の振る舞いを検証します。


@pytest.fixture
def setup_cpu():
    clock = ManualClock()
    cpu = TeachingCpu(scheduler=DeferredScheduler(clock=clock))
    return cpu, clock


def run_to_end(cpu):
    steps = 0
    while cpu.step():
        steps += 1
    return steps


class TestPhaseSequencing:
    # @intent:test_case_step_count N命令のプログラムで4N回Trueを返し、その後はFalseでIDLEに戻ることを検証します。
    def test_four_phases_per_instruction(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))

        phases = []
        for _ in range(16):
            assert cpu.step() is True
            phases.append(cpu.current_phase)
        assert phases == [Phase.FETCH, Phase.DECODE, Phase.EXECUTE, Phase.STORE] * 4

        assert cpu.step() is False
        assert cpu.current_phase == Phase.IDLE
        assert cpu.step() is False
        assert cpu.get_state().clock_cycle == 16

    def test_empty_program(self, setup_cpu):
        cpu, _ = setup_cpu
        assert cpu.is_finished()
        assert cpu.next_phase() == Phase.IDLE
        assert cpu.step() is False

    # @intent:test_case_next_phase 次に実行されるフェーズと命令番号が追跡できることを検証します。
    def test_next_phase_and_instruction_index(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(1, 1, "+"))
        assert cpu.next_phase() == Phase.FETCH
        for _ in range(3):
            cpu.step()
        assert cpu.next_phase() == Phase.STORE
        assert cpu.get_instruction_index() == 0
        cpu.step()
        assert cpu.get_instruction_index() == 1
        assert cpu.next_phase() == Phase.FETCH


class TestCalculatorScenario:
    # @intent:test_case_calculator 5 + 3 を16ステップ実行すると R3=8、メモリ[0x100]=8 になることを検証します。
    def test_add_five_and_three(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        for _ in range(16):
            cpu.step()

        state = cpu.get_state()
        assert state.register_value("R1") == 5
        assert state.register_value("R2") == 3
        assert state.register_value("R3") == 8
        assert state.register_value("PC") == 4
        assert state.program_counter == 4
        assert state.memory_value(0x100) == 8
        assert state.memory[0x100].used

    @pytest.mark.parametrize("a, b, op, expected", [
        (10, 3, "-", 7), (5, 4, "*", 20), (10, 3, "/", 3), (10, 0, "/", 0),
    ])
    def test_other_operations(self, setup_cpu, a, b, op, expected):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(a, b, op))
        run_to_end(cpu)
        assert cpu.get_state().memory_value(0x100) == expected

    # @intent:test_case_write_through STOREの直後にメモリとキャッシュラインの値が一致することを検証します。
    def test_store_is_write_through(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        run_to_end(cpu)

        state = cpu.get_state()
        l1 = state.cache[0]
        line = l1.find_line(0x100)
        assert line is not None
        assert line.value == state.memory_value(0x100) == 8
        assert line.dirty
        assert (l1.hits, l1.misses) == (0, 1)

    # @intent:test_case_history 各フェーズの差分が履歴に記録されることを検証します。
    def test_history_records_changes(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        run_to_end(cpu)

        history = cpu.get_history()
        assert len(history) == 16
        assert [step.cycle for step in history] == list(range(1, 17))
        assert history[0].register_changes == (RegisterChange("PC", 0, 1),)
        assert history[1].register_changes == ()
        assert history[2].register_changes == (RegisterChange("R1", 0, 5),)
        assert history[10].register_changes == (RegisterChange("R3", 0, 8),)
        assert history[14].memory_changes == (MemoryChange(0x100, 0, 8),)
        assert history[14].instruction.id == "store"


class TestTrafficLightScenario:
    @pytest.mark.parametrize("state, sensor, expected", [
        ("RED", True, 2), ("GREEN", False, 1), ("YELLOW", True, 0), ("RED", False, 0),
    ])
    def test_output_signal(self, setup_cpu, state, sensor, expected):
        cpu, _ = setup_cpu
        program = generate_traffic_light_instructions(state, sensor)
        cpu.load_program(program)
        assert run_to_end(cpu) == 4 * len(program)
        snapshot = cpu.get_state()
        assert snapshot.memory_value(0x200) == expected
        assert snapshot.register_value("R1") == (1 if sensor else 0)


class TestBusAndFlags:
    # @intent:test_case_fetch_bus FETCHでアドレスバスとデータバスの転送が記録されることを検証します。
    def test_fetch_transfers(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        cpu.step()

        transfers = cpu.get_state().bus_transfers
        assert [(t.bus_type, t.source, t.destination, t.value) for t in transfers] == [
            (BusType.ADDRESS, "PC", "Memory", 1),
            (BusType.DATA, "Memory", "IR", 0),
        ]
        assert all(t.active for t in transfers)

    # @intent:test_case_alu_bus 算術命令で2つのオペランド、制御信号、結果の転送が記録されることを検証します。
    def test_alu_transfers(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        for _ in range(10):
            cpu.step()
        before = len(cpu.get_state().bus_transfers)
        cpu.step()  # compute: EXECUTE

        new = cpu.get_state().bus_transfers[before:]
        assert [(t.bus_type, t.source, t.destination, t.value) for t in new] == [
            (BusType.DATA, "R1", "ALU", 5),
            (BusType.DATA, "R2", "ALU", 3),
            (BusType.CONTROL, "ControlUnit", "ALU", 0),
            (BusType.DATA, "ALU", "R3", 8),
        ]

    # @intent:test_case_store_bus STOREでアドレス転送、キャッシュへの書き込み、ミス時のメモリへの転送が記録されることを検証します。
    def test_store_transfers(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        for _ in range(14):
            cpu.step()
        before = len(cpu.get_state().bus_transfers)
        cpu.step()

        new = cpu.get_state().bus_transfers[before:]
        assert [(t.bus_type, t.source, t.destination, t.value) for t in new] == [
            (BusType.ADDRESS, "CPU", "Memory", 0x100),
            (BusType.DATA, "R3", "L1", 8),
            (BusType.DATA, "L1", "Memory", 8),
        ]

    # @intent:test_case_active_flags STOREフェーズで汎用レジスタとメモリが非アクティブになり、PC/IRは残ることを検証します。
    def test_store_phase_clears_activity(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        for _ in range(3):
            cpu.step()
        state = cpu.get_state()
        assert state.register("R1").active
        assert state.register("IR").active

        for _ in range(12):
            cpu.step()
        assert cpu.get_state().memory[0x100].active

        cpu.step()
        state = cpu.get_state()
        active = {r.name for r in state.registers if r.active}
        assert active == {"PC", "IR"}
        assert not state.memory[0x100].active
        assert state.memory[0x100].used

    # @intent:test_case_deferred キャッシュ表示状態とバス転送が、時間経過後のpoll_timersで非アクティブになることを検証します。
    def test_deferred_clears(self, setup_cpu):
        cpu, clock = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        run_to_end(cpu)

        l1 = cpu.get_state().cache[0]
        assert l1.active_address == 0x100 and l1.is_hit is False

        clock.advance(1000)
        cpu.poll_timers()
        state = cpu.get_state()
        assert state.cache[0].active_address is None
        assert state.cache[0].is_hit is None
        assert any(t.active for t in state.bus_transfers)

        clock.advance(500)
        cpu.poll_timers()
        assert not any(t.active for t in cpu.get_state().bus_transfers)

    # @intent:test_case_step_duration ステップ時間の変更が以後の遅延処理に反映されることを検証します。
    def test_set_step_duration(self, setup_cpu):
        cpu, clock = setup_cpu
        cpu.set_step_duration(200)
        assert cpu.step_duration_ms == 200
        assert cpu.get_state().step_duration_ms == 200

        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        cpu.step()
        clock.advance(699)
        cpu.poll_timers()
        assert all(t.active for t in cpu.get_state().bus_transfers)
        clock.advance(1)
        cpu.poll_timers()
        assert not any(t.active for t in cpu.get_state().bus_transfers)

        with pytest.raises(ValueError):
            cpu.set_step_duration(-1)

    # @intent:test_case_negative_duration 生成時にも負のステップ時間は拒否されることを検証します。
    def test_negative_step_duration_rejected_at_construction(self):
        with pytest.raises(ValueError, match="Step duration must not be negative."):
            TeachingCpu(step_duration_ms=-5)


class TestResetAndReload:
    # @intent:test_case_reset リセット後の状態が新規生成したCPUの状態と一致することを検証します。
    def test_reset_matches_fresh_cpu(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        for _ in range(15):
            cpu.step()

        cpu.reset()
        fresh = TeachingCpu(scheduler=DeferredScheduler(clock=ManualClock()))
        assert cpu.get_state() == fresh.get_state()
        assert cpu.get_instructions() == []
        assert cpu.get_history() == []

    # @intent:test_case_stale_timers リセット前に予約された遅延処理がリセット後の状態を変更しないことを検証します。
    def test_reset_discards_pending_timers(self, setup_cpu):
        cpu, clock = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        run_to_end(cpu)
        cpu.reset()

        clock.advance(5000)
        assert cpu.poll_timers() == 0

    def test_reload_discards_pending_timers(self, setup_cpu):
        cpu, clock = setup_cpu
        program = generate_calculator_instructions(5, 3, "+")
        cpu.load_program(program)
        for _ in range(4):
            cpu.step()

        cpu.load_program(program)
        cpu.step()
        clock.advance(5000)
        assert cpu.poll_timers() == 2
        assert not any(t.active for t in cpu.get_state().bus_transfers)

    # @intent:test_case_load_program プログラムの差し替えで進行状態は初期化され、レジスタ値・メモリ値・キャッシュは保持されることを検証します。
    def test_load_program_keeps_machine_contents(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        run_to_end(cpu)

        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        state = cpu.get_state()
        assert state.phase == Phase.IDLE
        assert state.clock_cycle == 0
        assert state.program_counter == 0
        assert state.instruction_register is None
        assert state.bus_transfers == ()
        assert state.history == ()
        assert state.register_value("PC") == 4
        assert not state.register("PC").active
        assert state.register_value("R3") == 8
        assert state.memory_value(0x100) == 8
        assert not state.memory[0x100].used
        assert state.cache[0].find_line(0x100) is not None

        run_to_end(cpu)
        assert cpu.get_history()[0].register_changes == (RegisterChange("PC", 4, 1),)
        l1 = cpu.get_state().cache[0]
        assert (l1.hits, l1.misses) == (1, 1)


class TestDeterminismAndIsolation:
    # @intent:test_case_determinism 同じ初期状態と命令列からは同じスナップショット列が得られることを検証します。
    def test_same_program_same_snapshots(self):
        program = generate_calculator_instructions(7, 6, "*")
        snapshots = []
        for _ in range(2):
            cpu = TeachingCpu(scheduler=DeferredScheduler(clock=ManualClock()))
            cpu.load_program(program)
            run = []
            while cpu.step():
                run.append(cpu.get_state())
            snapshots.append(run)
        assert snapshots[0] == snapshots[1]
        assert snapshots[0][-1].memory_value(0x100) == 42

    # @intent:test_case_snapshot_copy スナップショットは以後のstep()の影響を受けないことを検証します。
    def test_snapshot_is_detached(self, setup_cpu):
        cpu, _ = setup_cpu
        cpu.load_program(generate_calculator_instructions(5, 3, "+"))
        before = cpu.get_state()
        run_to_end(cpu)
        assert before.register_value("R3") == 0
        assert before.memory_value(0x100) == 0
        assert before.cache[0].misses == 0

    def test_instances_do_not_share_state(self):
        a = TeachingCpu()
        b = TeachingCpu()
        a.load_program(generate_calculator_instructions(5, 3, "+"))
        run_to_end(a)
        assert b.get_state().register_value("R3") == 0
        assert b.get_state().memory_value(0x100) == 0

    # @intent:test_case_configuration レジスタ構成・メモリサイズ・キャッシュサイズを指定して生成できることを検証します。
    def test_custom_configuration(self):
        cpu = TeachingCpu(
            registers=[("A", ""), ("B", ""), ("R3", ""), ("PC", ""), ("IR", "")],
            memory_size=0x200,
            cache_sizes=[2, 4, 8],
        )
        state = cpu.get_state()
        assert [r.name for r in state.registers] == ["A", "B", "R3", "PC", "IR"]
        assert len(state.memory) == 0x200
        assert [level.size for level in state.cache] == [2, 4, 8]
        assert state.cache[0].level == CacheLevel.L1

        with pytest.raises(ValueError):
            TeachingCpu(registers=[("R1", ""), ("IR", "")])

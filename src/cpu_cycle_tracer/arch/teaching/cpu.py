# cpu_cycle_tracer/arch/teaching/cpu.py
"""
教材用CPUエミュレーションの中心モジュール（サイクル・ステートマシン）。
"""
import copy
import logging
from typing import Optional, Sequence, Tuple

from cpu_cycle_tracer.arch.teaching.instructions import ExecutionContext, execute_instruction
from cpu_cycle_tracer.arch.teaching.state import TeachingCpuState
from cpu_cycle_tracer.common.types import BusType, RegisterMap
from cpu_cycle_tracer.core.cache import CacheHierarchy
from cpu_cycle_tracer.core.cpu import DEFAULT_STEP_DURATION_MS, AbstractCpu
from cpu_cycle_tracer.core.scheduler import DeferredScheduler
from cpu_cycle_tracer.core.snapshot import Snapshot, StepRecorder
from cpu_cycle_tracer.core.storage import DEFAULT_MEMORY_SIZE, DEFAULT_REGISTERS, Memory, RegisterBank
from cpu_cycle_tracer.isa.instruction import Instruction

logger = logging.getLogger(__name__)


# @intent:responsibility 教材用CPUの各フェーズ（フェッチ、デコード、実行、ストア）の振る舞いを提供します。
class TeachingCpu(AbstractCpu):
    """
    FETCH → DECODE → EXECUTE → STORE を1フェーズずつ進める教材用CPU。

    レジスタ構成・メモリサイズ・キャッシュサイズは生成時に指定でき、
    インスタンス間で状態を共有しません。
    """
    # @intent:responsibility マシン構成を保持し、初期状態を生成します。
    def __init__(
        self,
        registers: Sequence[Tuple[str, str]] = DEFAULT_REGISTERS,
        memory_size: int = DEFAULT_MEMORY_SIZE,
        cache_sizes: Optional[Sequence[int]] = None,
        demote_victims: bool = False,
        strict: bool = False,
        scheduler: Optional[DeferredScheduler] = None,
        step_duration_ms: float = DEFAULT_STEP_DURATION_MS,
    ):
        self._register_specs = tuple(registers)
        for required in ("PC", "IR"):
            if required not in {name for name, _ in self._register_specs}:
                raise ValueError(f"Register set must include {required}.")
        self._memory_size = memory_size
        self._cache_sizes = None if cache_sizes is None else tuple(cache_sizes)
        self._demote_victims = demote_victims
        self.strict = strict
        super().__init__(scheduler=scheduler, step_duration_ms=step_duration_ms)

    # @intent:responsibility 全レジスタ0、全メモリ0・未使用、全キャッシュライン無効の初期状態を生成します。
    def _create_initial_state(self) -> TeachingCpuState:
        return TeachingCpuState(
            registers=RegisterBank(self._register_specs),
            memory=Memory(self._memory_size),
            cache=CacheHierarchy(self._cache_sizes, demote_victims=self._demote_victims),
        )

    # @intent:responsibility プログラム差し替え時にメモリの表示フラグ（used/active）をクリアします。
    # @intent:post-condition レジスタ値（PCレジスタを含む）は保持され、次のFETCHで上書きされます。
    def _on_program_loaded(self) -> None:
        self._state.memory.clear_flags()
        self._state.registers.get("PC").active = False
        self._state.registers.get("IR").active = False

    # @intent:responsibility 命令を命令レジスタに取り込み、PCをインクリメントします。
    def _fetch(self, instruction: Instruction, recorder: StepRecorder) -> None:
        state = self._state
        state.instruction_register = instruction
        state.pc += 1

        pc_register = state.registers.get("PC")
        recorder.record_register("PC", pc_register.value, state.pc)
        pc_register.value = state.pc
        pc_register.active = True

        self._bus_log.add_transfer(BusType.ADDRESS, "PC", "Memory", state.pc)
        self._bus_log.add_transfer(BusType.DATA, "Memory", "IR", 0)

    # @intent:responsibility 命令レジスタをアクティブにします（教材上のフェーズで状態は変えません）。
    def _decode(self, instruction: Instruction, recorder: StepRecorder) -> None:
        self._state.registers.get("IR").active = True

    # @intent:responsibility 実行カーネルに命令を渡します。レジスタ・メモリ・キャッシュを変更する唯一のフェーズです。
    def _execute(self, instruction: Instruction, recorder: StepRecorder) -> None:
        ctx = ExecutionContext(state=self._state, bus_log=self._bus_log, recorder=recorder)
        execute_instruction(instruction, ctx, strict=self.strict)

    # @intent:responsibility 汎用レジスタとメモリを非アクティブにし、キャッシュの表示状態のクリアを予約します。
    def _store(self, instruction: Instruction, recorder: StepRecorder) -> None:
        self._state.registers.deactivate_general()
        self._state.memory.deactivate_all()
        self._scheduler.schedule(self._step_duration_ms, self._state.cache.clear_active)

    # @intent:responsibility 現在の状態のコピーを不変スナップショットとして返します。
    def get_state(self) -> Snapshot:
        state = self._state
        return Snapshot(
            registers=tuple(copy.copy(register) for register in state.registers),
            memory=tuple(copy.copy(cell) for cell in state.memory),
            cache=tuple(copy.deepcopy(level) for level in state.cache),
            program_counter=state.pc,
            instruction_register=state.instruction_register,
            phase=state.phase,
            clock_cycle=state.clock_cycle,
            bus_transfers=tuple(self._bus_log.get_transfers()),
            history=tuple(self._history),
            step_duration_ms=self._step_duration_ms,
        )

    # @intent:responsibility UI表示用に、現在のレジスタ値を辞書形式で提供します。
    def get_register_map(self) -> RegisterMap:
        return self._state.registers.to_map()

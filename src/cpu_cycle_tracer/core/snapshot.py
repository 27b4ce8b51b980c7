# cpu_cycle_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1フェーズごとの実行履歴と、ある時点でのマシン全体の状態を
記録した不変のデータ構造を定義します。UIへの情報提供とテストでの比較に用います。
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cpu_cycle_tracer.common.types import MemoryChange, Phase, RegisterChange
from cpu_cycle_tracer.core.cache import CacheLevelState
from cpu_cycle_tracer.core.storage import MemoryCell, Register
from cpu_cycle_tracer.isa.instruction import Instruction
from cpu_cycle_tracer.transport.bus import BusTransfer


# @intent:responsibility 1回の step() で起きた変化を記録します。作成後は変更されません。
@dataclass(frozen=True)
class CycleStep:
    cycle: int
    phase: Phase
    instruction: Optional[Instruction]
    register_changes: Tuple[RegisterChange, ...] = ()
    memory_changes: Tuple[MemoryChange, ...] = ()


# @intent:responsibility ある一時点におけるマシン全体の状態を不変に記録します。
# @intent:rationale 可変なレジスタ・セル・キャッシュはコピーを保持し、以後のstep()の影響を受けないようにします。
@dataclass(frozen=True)
class Snapshot:
    """
    get_state() が返す読み取り専用のスナップショット。
    """
    registers: Tuple[Register, ...]
    memory: Tuple[MemoryCell, ...]
    cache: Tuple[CacheLevelState, ...]
    program_counter: int
    instruction_register: Optional[Instruction]
    phase: Phase
    clock_cycle: int
    bus_transfers: Tuple[BusTransfer, ...] = ()
    history: Tuple[CycleStep, ...] = ()
    step_duration_ms: float = 1000.0

    # @intent:responsibility 名前でレジスタを引きます。存在しなければKeyError。
    def register(self, name: str) -> Register:
        for register in self.registers:
            if register.name == name:
                return register
        raise KeyError(name)

    def register_value(self, name: str) -> int:
        return self.register(name).value

    # @intent:responsibility アドレスのメモリ値を返します。範囲外はIndexError。
    def memory_value(self, address: int) -> int:
        if not 0 <= address < len(self.memory):
            raise IndexError(f"Address {address} out of bounds for memory of size {len(self.memory)}.")
        return self.memory[address].value


# @intent:responsibility 1フェーズ実行中に発生した変化を集め、最後にCycleStepへ固定します。
class StepRecorder:
    def __init__(self, cycle: int, phase: Phase, instruction: Optional[Instruction]):
        self.cycle = cycle
        self.phase = phase
        self.instruction = instruction
        self.register_changes: List[RegisterChange] = []
        self.memory_changes: List[MemoryChange] = []

    def record_register(self, name: str, old_value: int, new_value: int) -> None:
        self.register_changes.append(RegisterChange(name, old_value, new_value))

    def record_memory(self, address: int, old_value: int, new_value: int) -> None:
        self.memory_changes.append(MemoryChange(address, old_value, new_value))

    def freeze(self) -> CycleStep:
        return CycleStep(
            cycle=self.cycle,
            phase=self.phase,
            instruction=self.instruction,
            register_changes=tuple(self.register_changes),
            memory_changes=tuple(self.memory_changes),
        )

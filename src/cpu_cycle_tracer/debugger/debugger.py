# cpu_cycle_tracer/debugger/debugger.py
"""
デバッガモジュール。

サイクル・ステートマシンの実行を制御し、ユーザーが指定した条件（ブレークポイント）で
実行を中断させる責務を負います。
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from cpu_cycle_tracer.common.types import Phase, RegisterMap
from cpu_cycle_tracer.core.cpu import AbstractCpu
from cpu_cycle_tracer.core.snapshot import CycleStep
from cpu_cycle_tracer.isa.opcodes import Opcode

logger = logging.getLogger(__name__)


# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PHASE_MATCH = "PHASE_MATCH"              # 特定のフェーズを実行した
    OPCODE_MATCH = "OPCODE_MATCH"            # 特定のオペコードのEXECUTEフェーズを実行した
    INSTRUCTION_INDEX = "INSTRUCTION_INDEX"  # 特定の番号の命令をフェッチしようとしている
    MEMORY_WRITE = "MEMORY_WRITE"            # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"        # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE"      # 特定のレジスタの値が変化した


# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # INSTRUCTION_INDEX, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用
    phase: Optional[Phase] = None         # PHASE_MATCHで使用
    opcode: Optional[Opcode] = None       # OPCODE_MATCHで使用
    enabled: bool = True                  # 有効/無効状態

    # @intent:rationale ブレークポイント条件は、一度設定したら変更されないため、不変にします（frozen=True）。


# @intent:responsibility 実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    """
    def __init__(self, cpu: AbstractCpu):
        self._cpu = cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_registers: RegisterMap = cpu.get_register_map()
        self._last_step: Optional[CycleStep] = None

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        if old_condition in self._breakpoints:
            idx = self._breakpoints.index(old_condition)
            self._breakpoints[idx] = new_condition

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_last_step(self) -> Optional[CycleStep]:
        return self._last_step

    @property
    def is_running(self) -> bool:
        return self._running

    # @intent:responsibility 次のフェッチ前に判定するブレークポイント（命令番号）を検査します。
    def _check_pre_step_breakpoints(self) -> bool:
        if self._cpu.next_phase() != Phase.FETCH:
            return False
        index = self._cpu.get_instruction_index()
        return any(
            bp.enabled and bp.condition_type == BreakpointConditionType.INSTRUCTION_INDEX and bp.value == index
            for bp in self._breakpoints
        )

    # @intent:responsibility 実行したフェーズの記録に基づいてブレークポイントを検査します。
    def _check_step_breakpoints(self, step: CycleStep) -> bool:
        registers = self._cpu.get_register_map()

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.PHASE_MATCH:
                if step.phase == bp.phase:
                    return True
            elif bp.condition_type == BreakpointConditionType.OPCODE_MATCH:
                if step.phase == Phase.EXECUTE and step.instruction is not None and step.instruction.opcode == bp.opcode:
                    return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                if any(change.address == bp.address for change in step.memory_changes):
                    return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name in registers and registers[bp.register_name] == bp.value:
                    return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                if bp.register_name in registers and bp.register_name in self._previous_registers:
                    if registers[bp.register_name] != self._previous_registers[bp.register_name]:
                        return True
        return False

    # @intent:responsibility CPUを1フェーズ進めます。フェーズを実行した場合はその記録を返します。
    def step_phase(self) -> Optional[CycleStep]:
        self._previous_registers = self._cpu.get_register_map()
        if not self._cpu.step():
            return None
        self._last_step = self._cpu.get_history()[-1]
        return self._last_step

    # @intent:responsibility 現在の命令の残りフェーズを全て実行し、実行したフェーズの記録を返します。
    def step_instruction(self) -> List[CycleStep]:
        steps: List[CycleStep] = []
        while True:
            step = self.step_phase()
            if step is None:
                break
            steps.append(step)
            if step.phase == Phase.STORE:
                break
        return steps

    # @intent:responsibility ブレークポイントにヒットするか、プログラムが終了するまで実行を継続します。
    # @intent:post-condition 実行したフェーズ数を返します。max_stepsを指定した場合はその数で停止します。
    def run(self, max_steps: Optional[int] = None) -> int:
        self._running = True
        executed = 0
        first = True

        while self._running:
            if max_steps is not None and executed >= max_steps:
                break

            # 停止直後の再開では、同じ位置のブレークポイントで止まり続けないようにする
            if not first and self._check_pre_step_breakpoints():
                logger.info("Breakpoint hit before instruction %d", self._cpu.get_instruction_index())
                break
            first = False

            step = self.step_phase()
            if step is None:
                logger.info("Program finished after %d phase(s)", executed)
                break
            executed += 1

            if self._check_step_breakpoints(step):
                logger.info("Breakpoint hit at cycle %d (%s)", step.cycle, step.phase.value)
                break

        self._running = False
        return executed

    def stop(self) -> None:
        self._running = False

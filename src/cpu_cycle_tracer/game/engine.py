# cpu_cycle_tracer/game/engine.py
"""
資源制約付きドライバ（ゲーム版）のエンジン。

プレイヤーが投入した命令をルールに従って課金し、成功した場合のみレジスタへ反映します。
タスク生成や得点計算はこのパッケージの範囲外です。
"""
import logging
import random
from typing import List, Optional

from cpu_cycle_tracer.arch.teaching.instructions import compute_arithmetic
from cpu_cycle_tracer.core.storage import Register, RegisterBank
from cpu_cycle_tracer.game.rules import ExecutionResult, execute_instruction
from cpu_cycle_tracer.isa.instruction import Instruction, Literal, Operand
from cpu_cycle_tracer.isa.opcodes import ARITHMETIC_OPCODES, Opcode

logger = logging.getLogger(__name__)

# @intent:constant ゲーム用のレジスタ構成。
GAME_REGISTERS = (
    ("R1", "Register 1"),
    ("R2", "Register 2"),
    ("R3", "Register 3 (Accumulator)"),
)
MAX_ENERGY = 100.0


# @intent:responsibility ゲームの進行状態（レベル、エネルギー、クロック）とレジスタを管理します。
class GameEngine:
    def __init__(self, rng: Optional[random.Random] = None, max_energy: float = MAX_ENERGY):
        self._rng = rng or random.Random()
        self.max_energy = max_energy
        self.registers = RegisterBank(GAME_REGISTERS)
        self.level = 1
        self.energy = max_energy
        self.clock_cycle = 0
        self.is_playing = False

    # @intent:responsibility ゲームを開始状態に戻します。
    def start_game(self, level: int = 1) -> None:
        self.level = level
        self.energy = self.max_energy
        self.clock_cycle = 0
        self.registers.reset()
        self.is_playing = True

    def get_registers(self) -> List[Register]:
        return list(self.registers)

    # @intent:responsibility プレイヤーの命令を処理し、成功時はレジスタ・クロック・エネルギーを更新します。
    # @intent:post-condition エネルギーが0以下になるとゲームは終了します。
    def process_player_action(self, instruction: Instruction) -> ExecutionResult:
        result = execute_instruction(instruction, self.get_registers(), self.level, self._rng)
        if not result.success:
            logger.info("Action rejected: %s", result.error)
            return result

        self._apply(instruction)
        self.clock_cycle += result.cycles_used
        self.energy = max(0.0, self.energy - result.energy_cost)
        if self.energy <= 0:
            self.is_playing = False
            logger.info("Energy depleted at cycle %d", self.clock_cycle)
        return result

    def _value_of(self, operand: Optional[Operand]) -> Optional[int]:
        if operand is None:
            return None
        if isinstance(operand, Literal):
            return operand.value
        register = self.registers.find(operand.name)
        return register.value if register is not None else None

    # @intent:responsibility 命令の効果をレジスタへ反映します。参照先が無い場合は何もしません。
    def _apply(self, instruction: Instruction) -> None:
        destination = self.registers.find(instruction.destination) if instruction.destination else None
        if destination is None:
            return

        if instruction.opcode in (Opcode.LOAD, Opcode.MOV):
            if isinstance(instruction.operand1, Literal):
                self.registers.write(destination.name, instruction.operand1.value)
        elif instruction.opcode in ARITHMETIC_OPCODES:
            value1 = self._value_of(instruction.operand1)
            value2 = self._value_of(instruction.operand2)
            if value1 is None or value2 is None:
                return
            self.registers.write(destination.name, compute_arithmetic(instruction.opcode, value1, value2))

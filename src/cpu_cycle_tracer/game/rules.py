# cpu_cycle_tracer/game/rules.py
"""
資源制約付きドライバ（ゲーム版）の実行ルール。

フェーズ制御の代わりに、命令ごとのサイクル数とエネルギーを課金し、
レベルに応じてレジスタの利用可否を検査します。
演算そのものは実行カーネルの演算表 (compute_arithmetic) をそのまま使います。
"""
import random
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional

from cpu_cycle_tracer.core.storage import Register
from cpu_cycle_tracer.isa.instruction import Instruction, RegisterRef
from cpu_cycle_tracer.isa.opcodes import ARITHMETIC_OPCODES, Opcode, get_instruction_cycles

# @intent:constant 0でないレジスタ1本あたりのエネルギー加算。
REGISTER_ENERGY_PENALTY = 0.5
# @intent:constant このレベルを超えるとレジスタ管理が必須になります。
REGISTER_MANAGEMENT_LEVEL = 1
# @intent:constant このレベルを超えるとキャッシュミスのペナルティが発生し得ます。
CACHE_PENALTY_LEVEL = 2
CACHE_MISS_PROBABILITY_THRESHOLD = 0.7
CACHE_MISS_EXTRA_CYCLES = 2
CACHE_MISS_EXTRA_ENERGY = 1.0
# @intent:constant 失敗した試行で消費されるエネルギーの割合。
FAILED_ATTEMPT_ENERGY_RATIO = 0.5


# @intent:responsibility 1命令の実行結果（成否・消費サイクル・消費エネルギー）を記録します。
@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    cycles_used: int
    energy_cost: float
    error: Optional[str] = None


# @intent:data_structure レジスタ利用可否の検査結果。
class Availability(NamedTuple):
    available: bool
    missing: List[str]


# @intent:responsibility 命令のエネルギーコスト（サイクル数 + 0.5 × 値が0でないレジスタ数）を返します。
def get_energy_cost(opcode: Opcode, register_count: int) -> float:
    return get_instruction_cycles(opcode) + register_count * REGISTER_ENERGY_PENALTY


# @intent:responsibility 必要なレジスタが利用可能かを検査します。
# @intent:rationale 現行の判定は「その名前のレジスタがバンクに存在するか」だけを見ており、
#                  値が使用中かどうか（占有）は見ていません。ゲーム側の挙動をテストで固定するため、このまま維持します。
def check_register_availability(registers: Iterable[Register], required: Iterable[str]) -> Availability:
    names = {register.name for register in registers}
    missing = [name for name in required if name not in names]
    return Availability(available=not missing, missing=missing)


# @intent:utility_function 算術命令が参照するレジスタ名（オペランドのレジスタ参照とデスティネーション）を列挙します。
def required_registers(instruction: Instruction) -> List[str]:
    required = [
        operand.name for operand in (instruction.operand1, instruction.operand2)
        if isinstance(operand, RegisterRef)
    ]
    if instruction.destination:
        required.append(instruction.destination)
    return required


# @intent:responsibility 1命令を課金し、成否とコストを返します。レジスタの値は変更しません。
def execute_instruction(
    instruction: Instruction,
    registers: List[Register],
    level: int,
    rng: Optional[random.Random] = None,
) -> ExecutionResult:
    """
    レベル2以上では算術命令のレジスタ利用可否を検査し、不可なら半分のエネルギーで失敗とします。
    レベル3以上では一定確率でキャッシュミスのペナルティ（+2サイクル, +1エネルギー）を加えます。
    乱数源は決定的なテストのために差し替え可能です。
    """
    cycles = get_instruction_cycles(instruction.opcode)
    register_count = sum(1 for register in registers if register.value != 0)
    energy_cost = get_energy_cost(instruction.opcode, register_count)

    if instruction.opcode in ARITHMETIC_OPCODES:
        availability = check_register_availability(registers, required_registers(instruction))
        if not availability.available and level > REGISTER_MANAGEMENT_LEVEL:
            return ExecutionResult(
                success=False,
                cycles_used=cycles,
                energy_cost=energy_cost * FAILED_ATTEMPT_ENERGY_RATIO,
                error=f"Registers not available: {', '.join(availability.missing)}",
            )

    if level > CACHE_PENALTY_LEVEL:
        rng = rng or random.Random()
        if rng.random() > CACHE_MISS_PROBABILITY_THRESHOLD:
            cycles += CACHE_MISS_EXTRA_CYCLES
            energy_cost += CACHE_MISS_EXTRA_ENERGY

    return ExecutionResult(success=True, cycles_used=cycles, energy_cost=energy_cost)

# cpu_cycle_tracer/arch/teaching/instructions/alu.py
"""
算術演算命令 (ADD / SUB / MUL / DIV) の実装。
"""
from cpu_cycle_tracer.common.types import BusType
from cpu_cycle_tracer.isa.instruction import Instruction, RegisterRef
from cpu_cycle_tracer.isa.opcodes import Opcode
from .base import ExecutionContext, operand_source, require_register, resolve_operand, write_register


# @intent:utility_function 2つの整数に算術演算を適用します。ゲーム用ドライバとも共有する唯一の演算表です。
# @intent:rationale 除算は床除算（負の数でも結果が決定的）で、0除算は例外ではなく0を返します。
def compute_arithmetic(opcode: Opcode, value1: int, value2: int) -> int:
    if opcode == Opcode.ADD:
        return value1 + value2
    if opcode == Opcode.SUB:
        return value1 - value2
    if opcode == Opcode.MUL:
        return value1 * value2
    if opcode == Opcode.DIV:
        if value2 == 0:
            return 0
        return value1 // value2
    raise ValueError(f"{opcode.value} is not an arithmetic opcode.")


# @intent:responsibility 算術命令を実行し、結果を `destination` に格納します。
def execute_arithmetic(instruction: Instruction, ctx: ExecutionContext) -> None:
    destination = instruction.destination
    require_register(instruction, ctx, destination, "destination")
    value1 = resolve_operand(instruction, ctx, instruction.operand1, "operand1")
    value2 = resolve_operand(instruction, ctx, instruction.operand2, "operand2")

    result = compute_arithmetic(instruction.opcode, value1, value2)
    write_register(ctx, destination, result)
    for operand in (instruction.operand1, instruction.operand2):
        if isinstance(operand, RegisterRef):
            ctx.state.registers.get(operand.name).active = True

    ctx.bus_log.add_transfer(BusType.DATA, operand_source(instruction.operand1), "ALU", value1)
    ctx.bus_log.add_transfer(BusType.DATA, operand_source(instruction.operand2), "ALU", value2)
    ctx.bus_log.add_transfer(BusType.CONTROL, "ControlUnit", "ALU", 0)
    ctx.bus_log.add_transfer(BusType.DATA, "ALU", destination, result)

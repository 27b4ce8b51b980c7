# cpu_cycle_tracer/arch/teaching/instructions/load.py
"""
転送命令 (LOAD / STORE / MOV) の実装。
"""
from cpu_cycle_tracer.common.types import BusType
from cpu_cycle_tracer.isa.instruction import Instruction
from .base import (
    ExecutionContext,
    operand_source,
    require_cell,
    require_register,
    resolve_operand,
    write_register,
)


# --- LOAD ---
# @intent:responsibility LOAD命令を実行します。
# @intent:rationale アドレス付きはキャッシュの読み出し経路を通してメモリから、アドレスなしはリテラルを直接ロードします。
def execute_load(instruction: Instruction, ctx: ExecutionContext) -> None:
    destination = instruction.destination
    require_register(instruction, ctx, destination, "destination")

    if instruction.address is None:
        value = resolve_operand(instruction, ctx, instruction.operand1, "operand1")
        write_register(ctx, destination, value)
        ctx.bus_log.add_transfer(BusType.DATA, operand_source(instruction.operand1), destination, value)
        return

    address = instruction.address
    require_cell(instruction, ctx)
    state = ctx.state
    result = state.cache.check_cache(address, state.memory, state.clock_cycle)
    state.memory.read(address)  # used フラグの維持
    write_register(ctx, destination, result.value)

    level = result.level.value
    if result.is_hit:
        ctx.bus_log.add_transfer(BusType.DATA, level, destination, result.value)
    else:
        ctx.bus_log.add_transfer(BusType.DATA, "Memory", level, result.value)
        ctx.bus_log.add_transfer(BusType.DATA, level, destination, result.value)


# --- STORE ---
# @intent:responsibility STORE命令を実行し、`destination` のレジスタ値をメモリへ書き込みます。
# @intent:rationale ライトスルー: メモリとキャッシュの両方を同じ操作の中で更新します。
def execute_store(instruction: Instruction, ctx: ExecutionContext) -> None:
    source = instruction.destination
    register = require_register(instruction, ctx, source, "destination")
    cell = require_cell(instruction, ctx)

    state = ctx.state
    value = register.value
    old_value = state.memory.write(cell.address, value)
    ctx.recorder.record_memory(cell.address, old_value, value)

    result = state.cache.update_cache(cell.address, value, state.clock_cycle)

    level = result.level.value
    ctx.bus_log.add_transfer(BusType.ADDRESS, "CPU", "Memory", cell.address)
    ctx.bus_log.add_transfer(BusType.DATA, source, level, value)
    if not result.is_hit:
        ctx.bus_log.add_transfer(BusType.DATA, level, "Memory", value)


# --- MOV ---
# @intent:responsibility MOV命令を実行し、operand1 の値を `destination` へ設定します。
def execute_mov(instruction: Instruction, ctx: ExecutionContext) -> None:
    destination = instruction.destination
    require_register(instruction, ctx, destination, "destination")
    value = resolve_operand(instruction, ctx, instruction.operand1, "operand1")
    write_register(ctx, destination, value)
    ctx.bus_log.add_transfer(BusType.DATA, operand_source(instruction.operand1), destination, value)

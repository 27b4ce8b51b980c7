# cpu_cycle_tracer/arch/teaching/instructions/base.py
"""
命令実装用の共通ユーティリティ。

オペランドの解決、必須フィールドの検査、レジスタ書き込みと差分記録をまとめます。
必須要素が欠けている場合は MalformedInstructionError を送出し、
スキップするか呼び出し元へ伝えるかはディスパッチャが決めます。
"""
from dataclasses import dataclass
from typing import Optional

from cpu_cycle_tracer.arch.teaching.state import TeachingCpuState
from cpu_cycle_tracer.core.errors import MalformedInstructionError, RegisterNotFoundError
from cpu_cycle_tracer.core.snapshot import StepRecorder
from cpu_cycle_tracer.core.storage import MemoryCell, Register
from cpu_cycle_tracer.isa.instruction import Instruction, Literal, Operand
from cpu_cycle_tracer.transport.bus import BusLog


# @intent:responsibility EXECUTEフェーズで命令実装に渡す実行コンテキストです。
@dataclass
class ExecutionContext:
    state: TeachingCpuState
    bus_log: BusLog
    recorder: StepRecorder


# @intent:utility_function 命令に関するMalformedInstructionErrorを生成します。
def malformed(instruction: Instruction, reason: str, field: Optional[str] = None) -> MalformedInstructionError:
    return MalformedInstructionError(instruction.id or "?", instruction.opcode.value, reason, field)


# @intent:utility_function 名前でレジスタを取得します。存在しなければ不正命令として扱います。
def require_register(instruction: Instruction, ctx: ExecutionContext, name: Optional[str], field: str) -> Register:
    if name is None:
        raise malformed(instruction, f"missing {field}", field)
    try:
        return ctx.state.registers.get(name)
    except RegisterNotFoundError:
        raise malformed(instruction, f"unknown register '{name}' in {field}", field) from None


# @intent:utility_function アドレスに対応するメモリセルを取得します。
def require_cell(instruction: Instruction, ctx: ExecutionContext) -> MemoryCell:
    if instruction.address is None:
        raise malformed(instruction, "missing address", "address")
    cell = ctx.state.memory.find(instruction.address)
    if cell is None:
        raise malformed(instruction, f"address 0x{instruction.address:04X} is outside memory", "address")
    return cell


# @intent:utility_function オペランドを整数値に解決します（リテラルはその値、レジスタ参照は現在値）。
def resolve_operand(instruction: Instruction, ctx: ExecutionContext, operand: Optional[Operand], field: str) -> int:
    if operand is None:
        raise malformed(instruction, f"missing {field}", field)
    if isinstance(operand, Literal):
        return operand.value
    return require_register(instruction, ctx, operand.name, field).value


# @intent:utility_function オペランドの転送元として表示する部品名を返します。
def operand_source(operand: Optional[Operand]) -> str:
    if operand is None or isinstance(operand, Literal):
        return "CPU"
    return operand.name


# @intent:utility_function レジスタへ書き込み、差分を履歴に記録します。
def write_register(ctx: ExecutionContext, name: str, value: int) -> None:
    old_value = ctx.state.registers.write(name, value)
    ctx.recorder.record_register(name, old_value, value)

# cpu_cycle_tracer/arch/teaching/instructions/__init__.py
"""
教材用命令セット実装パッケージ（実行カーネル）。
"""
import logging

from cpu_cycle_tracer.core.errors import MalformedInstructionError
from cpu_cycle_tracer.isa.instruction import Instruction
from .alu import compute_arithmetic
from .base import ExecutionContext
from .maps import EXECUTE_MAP

logger = logging.getLogger(__name__)


# @intent:responsibility 命令を実行し、CPUの状態を変更します。実行できた場合にTrueを返します。
# @intent:rationale 教材用途のため不正な命令は既定でスキップし（fail-soft）、警告ログのみ残します。
#                  strict=True の場合は MalformedInstructionError を呼び出し元へ送出します。
def execute_instruction(instruction: Instruction, ctx: ExecutionContext, strict: bool = False) -> bool:
    executor = EXECUTE_MAP[instruction.opcode]
    try:
        executor(instruction, ctx)
    except MalformedInstructionError as e:
        if strict:
            raise
        logger.warning("Skipped instruction: %s", e)
        return False
    return True

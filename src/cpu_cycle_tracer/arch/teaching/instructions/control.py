# cpu_cycle_tracer/arch/teaching/instructions/control.py
"""
制御命令 (JMP / JZ / JNZ / HALT) の実装。

命令セットの完全性のために定義されていますが、実行フェーズでは何もしません。
"""
import logging

from cpu_cycle_tracer.isa.instruction import Instruction
from .base import ExecutionContext

logger = logging.getLogger(__name__)


# @intent:responsibility 制御命令を何もしない命令として扱います。
def execute_control(instruction: Instruction, ctx: ExecutionContext) -> None:
    logger.debug("%s has no execute semantics; treated as no-op", instruction.opcode.value)

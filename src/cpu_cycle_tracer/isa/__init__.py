# cpu_cycle_tracer/isa/__init__.py
"""
教材用命令セット (Instruction Set) パッケージ
"""
from .opcodes import Opcode, INSTRUCTIONS, get_instruction_cycles
from .instruction import Instruction, Literal, RegisterRef, Operand, parse_operand
from .encoding import encode_instruction, disassemble

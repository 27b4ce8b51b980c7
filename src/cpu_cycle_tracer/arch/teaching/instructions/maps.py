# cpu_cycle_tracer/arch/teaching/instructions/maps.py
"""
オペコードと命令実装のマッピング定義。
"""
from cpu_cycle_tracer.isa.opcodes import Opcode
from . import alu
from . import control
from . import load

# @intent:map オペコードから実行関数へのマッピングテーブル。
EXECUTE_MAP = {
    # Load/Store
    Opcode.LOAD: load.execute_load,
    Opcode.STORE: load.execute_store,
    Opcode.MOV: load.execute_mov,

    # ALU
    Opcode.ADD: alu.execute_arithmetic,
    Opcode.SUB: alu.execute_arithmetic,
    Opcode.MUL: alu.execute_arithmetic,
    Opcode.DIV: alu.execute_arithmetic,

    # Control
    Opcode.JMP: control.execute_control,
    Opcode.JZ: control.execute_control,
    Opcode.JNZ: control.execute_control,
    Opcode.HALT: control.execute_control,
}

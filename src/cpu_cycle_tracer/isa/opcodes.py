# cpu_cycle_tracer/isa/opcodes.py
"""
教材用命令セットのオペコード定義。

11種類のオペコード、その1バイトのエンコーディング、説明文、
および命令ごとのサイクルコストを静的なテーブルとして保持します。
オペコード集合は閉じているため、テーブルに存在しないキーの参照はプログラミングエラーです。
"""
from enum import Enum
from typing import Dict, NamedTuple


# @intent:responsibility 教材用ISAのオペコードを列挙します。
class Opcode(Enum):
    LOAD = "LOAD"
    STORE = "STORE"
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    JMP = "JMP"
    JZ = "JZ"
    JNZ = "JNZ"
    HALT = "HALT"
    MOV = "MOV"


# @intent:data_structure オペコードごとのエンコーディングと説明。
class InstructionInfo(NamedTuple):
    encoding: int
    description: str


# @intent:map オペコードから1バイトのエンコーディング(0x01..0x0B)と説明へのテーブル。
INSTRUCTIONS: Dict[Opcode, InstructionInfo] = {
    Opcode.LOAD: InstructionInfo(0x01, "Load value from memory into register"),
    Opcode.STORE: InstructionInfo(0x02, "Store register value to memory"),
    Opcode.ADD: InstructionInfo(0x03, "Add two values"),
    Opcode.SUB: InstructionInfo(0x04, "Subtract two values"),
    Opcode.MUL: InstructionInfo(0x05, "Multiply two values"),
    Opcode.DIV: InstructionInfo(0x06, "Divide two values"),
    Opcode.JMP: InstructionInfo(0x07, "Jump to address"),
    Opcode.JZ: InstructionInfo(0x08, "Jump if zero"),
    Opcode.JNZ: InstructionInfo(0x09, "Jump if not zero"),
    Opcode.HALT: InstructionInfo(0x0A, "Halt execution"),
    Opcode.MOV: InstructionInfo(0x0B, "Move value between registers"),
}

# @intent:map オペコードごとの実行サイクル数。メモリアクセスと乗除算は3サイクル。
CYCLE_COSTS: Dict[Opcode, int] = {
    Opcode.LOAD: 3,
    Opcode.STORE: 3,
    Opcode.ADD: 1,
    Opcode.SUB: 1,
    Opcode.MUL: 3,
    Opcode.DIV: 3,
    Opcode.MOV: 1,
    Opcode.JMP: 2,
    Opcode.JZ: 2,
    Opcode.JNZ: 2,
    Opcode.HALT: 1,
}

# @intent:constant 算術演算（ALUを経由する）オペコードの集合。
ARITHMETIC_OPCODES = frozenset({Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV})


# @intent:responsibility 命令の実行に必要なサイクル数を返します。
def get_instruction_cycles(opcode: Opcode) -> int:
    return CYCLE_COSTS[opcode]


# @intent:responsibility オペコードの1バイトエンコーディングを返します。
# @intent:post-condition 未知のオペコードの場合はKeyErrorを送出します（フェイルファスト）。
def get_encoding(opcode: Opcode) -> int:
    return INSTRUCTIONS[opcode].encoding

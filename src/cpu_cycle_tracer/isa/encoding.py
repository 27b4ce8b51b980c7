# cpu_cycle_tracer/isa/encoding.py
"""
命令のエンコードと一覧表示

命令を機械語風の16進トークンに変換し、コードビュー（アセンブリ/機械語）向けの
一覧を生成します。
"""
from typing import List, Sequence, Tuple

from cpu_cycle_tracer.isa.instruction import Instruction, Literal
from cpu_cycle_tracer.isa.opcodes import get_encoding


# @intent:utility_function オペランドを1バイトの16進表記に変換します。レジスタ参照は "00"。
def _encode_operand(operand) -> str:
    if isinstance(operand, Literal):
        return f"{operand.value & 0xFF:02X}"
    return "00"


# @intent:responsibility 命令を2〜6文字の16進トークンにエンコードします。
# @intent:post-condition 未知のオペコードはKeyErrorで即座に失敗します。
def encode_instruction(instruction: Instruction) -> str:
    """
    オペコード1バイトに続けて、アドレスがあれば2バイトのアドレスフィールドを、
    なければ両オペランドが揃っている場合に限り1バイトずつのオペランドフィールドを付加します。

    例: LOAD [0x0100] -> "010100", ADD #5, #10 -> "03050A", HALT -> "0A"
    """
    token = f"{get_encoding(instruction.opcode):02X}"
    if instruction.address is not None:
        return token + f"{instruction.address & 0xFFFF:04X}"
    if instruction.operand1 is not None and instruction.operand2 is not None:
        return token + _encode_operand(instruction.operand1) + _encode_operand(instruction.operand2)
    return token


# @intent:utility_function エンコード結果を1バイトごとに空白で区切ります。
def split_bytes(token: str) -> str:
    return " ".join(token[i:i + 2] for i in range(0, len(token), 2))


# @intent:responsibility 命令列を (index, hex_bytes, mnemonic) のタプルリストに変換します。
def disassemble(instructions: Sequence[Instruction]) -> List[Tuple[int, str, str]]:
    """
    プログラム全体の一覧を生成します。hex_bytes は "01 01 00" のように空白区切りです。
    """
    return [
        (index, split_bytes(encode_instruction(instruction)), instruction.to_assembly())
        for index, instruction in enumerate(instructions)
    ]

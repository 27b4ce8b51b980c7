# cpu_cycle_tracer/isa/instruction.py
"""
命令レコードとオペランドの定義。

オペランドは「整数リテラル」か「レジスタ参照」のどちらかであり、
タグ付きの値オブジェクトとして表現します。
実行フェーズの入口で一度だけ解決されます。
"""
from dataclasses import dataclass
from typing import Optional, Union

from cpu_cycle_tracer.isa.opcodes import Opcode


# @intent:responsibility 符号付き整数リテラルのオペランドです。
@dataclass(frozen=True)
class Literal:
    value: int

    def __str__(self) -> str:
        return f"#{self.value}"


# @intent:responsibility レジスタ名によるオペランド参照です。
@dataclass(frozen=True)
class RegisterRef:
    name: str

    def __str__(self) -> str:
        return self.name


Operand = Union[Literal, RegisterRef]


# @intent:responsibility 生の値（int または文字列）をタグ付きオペランドへ変換します。
# @intent:rationale 設定ファイルやテストからは素の値で命令を書きたいため、変換をここに集約します。
def parse_operand(value) -> Optional[Operand]:
    """
    int、"0x"/10進数表記の文字列はLiteralに、それ以外の文字列はRegisterRefに変換します。
    既にOperandであればそのまま返し、Noneは"オペランドなし"としてNoneを返します。
    """
    if value is None or isinstance(value, (Literal, RegisterRef)):
        return value
    if isinstance(value, bool):
        return Literal(int(value))
    if isinstance(value, int):
        return Literal(value)
    if isinstance(value, str):
        text = value.strip()
        body = text[1:] if text[:1] in "+-" else text
        if body.lower().startswith("0x"):
            return Literal(int(text, 16))
        if body.isdigit():
            return Literal(int(text))
        if not text:
            raise ValueError("Empty operand string.")
        return RegisterRef(text)
    raise TypeError(f"Unsupported operand type: {type(value).__name__}")


# @intent:responsibility 1命令分のレコードを保持します。生成後は変更されません。
@dataclass(frozen=True)
class Instruction:
    """
    教材用ISAの命令。

    STOREでは `destination` が格納元レジスタを指します（メモリ側は `address`）。
    """
    opcode: Opcode
    operand1: Optional[Operand] = None
    operand2: Optional[Operand] = None
    destination: Optional[str] = None
    address: Optional[int] = None
    description: str = ""
    id: str = ""

    def __post_init__(self):
        # 文字列で渡されたオペコードもここで列挙型に正規化する（未知ならValueError）
        if not isinstance(self.opcode, Opcode):
            object.__setattr__(self, "opcode", Opcode(self.opcode))
        object.__setattr__(self, "operand1", parse_operand(self.operand1))
        object.__setattr__(self, "operand2", parse_operand(self.operand2))

    # @intent:responsibility ニーモニックとオペランドを人間が読める形式で返します。
    def to_assembly(self) -> str:
        parts = []
        if self.destination is not None:
            parts.append(self.destination)
        for operand in (self.operand1, self.operand2):
            if operand is not None:
                parts.append(str(operand))
        if self.address is not None:
            parts.append(f"[0x{self.address:04X}]")
        text = self.opcode.value
        if parts:
            text += " " + ", ".join(parts)
        return text

# cpu_cycle_tracer/core/storage.py
"""
Core Layer (レジスタバンクとメモリ)

名前で引けるレジスタ群と、アドレスで引ける固定長メモリを提供します。
書き込み時に active / used フラグを自動的に維持します。
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from cpu_cycle_tracer.core.errors import RegisterNotFoundError

# @intent:constant PCとIRはSTOREフェーズで非アクティブ化されない制御用レジスタです。
CONTROL_REGISTERS = ("PC", "IR")

# @intent:constant 既定のレジスタ構成（名前, 説明）。
DEFAULT_REGISTERS: Tuple[Tuple[str, str], ...] = (
    ("R1", "General purpose register 1"),
    ("R2", "General purpose register 2"),
    ("R3", "General purpose register 3 (accumulator)"),
    ("PC", "Program counter"),
    ("IR", "Instruction register"),
)

# @intent:constant 既定のメモリセル数。サンプルプログラムの格納先 0x100 / 0x200 を含む大きさ。
DEFAULT_MEMORY_SIZE = 0x400


# @intent:responsibility 1本のレジスタの値と表示用フラグを保持します。
@dataclass
class Register:
    name: str
    value: int = 0
    active: bool = False
    description: str = ""


# @intent:responsibility 1つのメモリセルの値と表示用フラグを保持します。
# @intent:invariant address は生成後に変更されず、メモリ内で一意です。
@dataclass
class MemoryCell:
    address: int
    value: int = 0
    active: bool = False
    used: bool = False  # 一度でも読み書きされたらTrue（リセットまで保持）


# @intent:responsibility レジスタ群を名前でO(1)に管理します。
class RegisterBank:
    """
    名前付きレジスタの集合。登録順を保持します。
    """
    def __init__(self, specs: Iterable[Tuple[str, str]] = DEFAULT_REGISTERS):
        self._registers: Dict[str, Register] = {}
        for name, description in specs:
            if name in self._registers:
                raise ValueError(f"Duplicate register name: {name}")
            self._registers[name] = Register(name=name, description=description)

    def __iter__(self) -> Iterator[Register]:
        return iter(self._registers.values())

    def __len__(self) -> int:
        return len(self._registers)

    def __contains__(self, name: str) -> bool:
        return name in self._registers

    def names(self) -> List[str]:
        return list(self._registers)

    # @intent:responsibility 名前でレジスタを取得します。
    # @intent:post-condition 存在しない場合はRegisterNotFoundErrorを送出します（呼び出し側で回復可能）。
    def get(self, name: str) -> Register:
        try:
            return self._registers[name]
        except KeyError:
            raise RegisterNotFoundError(name) from None

    # @intent:responsibility 名前でレジスタを検索します。存在しない場合はNone。
    def find(self, name: str) -> Optional[Register]:
        return self._registers.get(name)

    # @intent:responsibility レジスタに値を書き込み、アクティブにします。書き込み前の値を返します。
    def write(self, name: str, value: int) -> int:
        register = self.get(name)
        old_value = register.value
        register.value = value
        register.active = True
        return old_value

    # @intent:responsibility 制御用レジスタ以外を非アクティブにします。
    def deactivate_general(self) -> None:
        for register in self._registers.values():
            if register.name not in CONTROL_REGISTERS:
                register.active = False

    # @intent:responsibility 全レジスタを0・非アクティブに戻します。
    def reset(self) -> None:
        for register in self._registers.values():
            register.value = 0
            register.active = False

    def to_map(self) -> Dict[str, int]:
        return {name: register.value for name, register in self._registers.items()}


# @intent:responsibility アドレスで索引される固定長メモリを提供します。
class Memory:
    """
    固定サイズのメモリ。セルはアドレス順のリストで保持し、添字アクセスでO(1)に参照します。
    """
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int = DEFAULT_MEMORY_SIZE):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("Memory size must be a positive integer.")
        self._size = size
        self._cells: List[MemoryCell] = [MemoryCell(address=i) for i in range(size)]

    def __iter__(self) -> Iterator[MemoryCell]:
        return iter(self._cells)

    def __len__(self) -> int:
        return self._size

    # @intent:responsibility アドレスに対応するセルを返します。範囲外ならNone。
    def find(self, address: int) -> Optional[MemoryCell]:
        if 0 <= address < self._size:
            return self._cells[address]
        return None

    def _cell(self, address: int) -> MemoryCell:
        cell = self.find(address)
        if cell is None:
            raise IndexError(f"Address {address} out of bounds for memory of size {self._size}.")
        return cell

    # @intent:responsibility ログやフラグ更新なしで値を読み出します。範囲外は0を返します。
    def peek(self, address: int) -> int:
        cell = self.find(address)
        return cell.value if cell is not None else 0

    # @intent:responsibility 値を読み出し、セルを使用済みにします。
    def read(self, address: int) -> int:
        cell = self._cell(address)
        cell.used = True
        return cell.value

    # @intent:responsibility 値を書き込み、セルを使用済み・アクティブにします。書き込み前の値を返します。
    def write(self, address: int, value: int) -> int:
        cell = self._cell(address)
        old_value = cell.value
        cell.value = value
        cell.active = True
        cell.used = True
        return old_value

    def deactivate_all(self) -> None:
        for cell in self._cells:
            cell.active = False

    # @intent:responsibility used/activeフラグのみをクリアします。値は保持します。
    def clear_flags(self) -> None:
        for cell in self._cells:
            cell.active = False
            cell.used = False

    def reset(self) -> None:
        for cell in self._cells:
            cell.value = 0
            cell.active = False
            cell.used = False

    # @intent:responsibility 使用済みセルのみを返します（表示・CLI向け）。
    def used_cells(self) -> List[MemoryCell]:
        return [cell for cell in self._cells if cell.used]

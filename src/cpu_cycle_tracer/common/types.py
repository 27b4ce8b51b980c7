"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される列挙型や小さな値オブジェクトを定義します。
"""
from enum import Enum
from typing import Dict, NamedTuple


# @intent:data_structure 命令サイクルのフェーズ。IDLEはプログラム間の待機状態です。
class Phase(Enum):
    FETCH = "FETCH"
    DECODE = "DECODE"
    EXECUTE = "EXECUTE"
    STORE = "STORE"
    IDLE = "IDLE"


# @intent:data_structure 1命令あたりに巡回するフェーズの順序。
PHASE_SEQUENCE = (Phase.FETCH, Phase.DECODE, Phase.EXECUTE, Phase.STORE)


# @intent:data_structure バス転送の種別。
class BusType(Enum):
    DATA = "DATA"
    ADDRESS = "ADDRESS"
    CONTROL = "CONTROL"


# @intent:data_structure キャッシュ階層のレベル。探索順はL1 -> L2 -> L3。
class CacheLevel(Enum):
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"


# @intent:data_structure 1回のフェーズで発生したレジスタ値の変化。
class RegisterChange(NamedTuple):
    name: str
    old_value: int
    new_value: int


# @intent:data_structure 1回のフェーズで発生したメモリ値の変化。
class MemoryChange(NamedTuple):
    address: int
    old_value: int
    new_value: int


# UIやCLIがCPU内部構造を知らずにレジスタを表示するための型エイリアス。
RegisterMap = Dict[str, int]

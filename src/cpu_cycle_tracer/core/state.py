# cpu_cycle_tracer/core/state.py
"""
Core Layer (CPU状態)

このモジュールは、CPUの基本的な状態（PC・命令レジスタ・フェーズ・クロック）を保持するデータ構造を定義します。
"""
from dataclasses import dataclass
from typing import Optional

from cpu_cycle_tracer.common.types import Phase
from cpu_cycle_tracer.isa.instruction import Instruction


# @intent:responsibility 命令サイクルの進行状態を保持します。レジスタやメモリはサブクラスで追加します。
@dataclass
class CpuState:
    """
    CPUの進行状態を保持するデータクラス。
    """
    pc: int = 0  # Program Counter（実行済みフェッチ数）
    instruction_register: Optional[Instruction] = None
    phase: Phase = Phase.IDLE
    clock_cycle: int = 0  # step() のたびに1増える

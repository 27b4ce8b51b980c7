# cpu_cycle_tracer/arch/teaching/state.py
"""
教材用CPU固有の状態定義。
"""
from dataclasses import dataclass, field

from cpu_cycle_tracer.core.cache import CacheHierarchy
from cpu_cycle_tracer.core.state import CpuState
from cpu_cycle_tracer.core.storage import Memory, RegisterBank


# @intent:responsibility レジスタバンク・メモリ・キャッシュ階層を含む教材用CPUの全状態を保持します。
@dataclass
class TeachingCpuState(CpuState):
    registers: RegisterBank = field(default_factory=RegisterBank)
    memory: Memory = field(default_factory=Memory)
    cache: CacheHierarchy = field(default_factory=CacheHierarchy)

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cpu_cycle_tracer.core.cache import DEFAULT_CACHE_SIZES
from cpu_cycle_tracer.core.cpu import DEFAULT_STEP_DURATION_MS
from cpu_cycle_tracer.core.storage import DEFAULT_MEMORY_SIZE, DEFAULT_REGISTERS


@dataclass
class RegisterSpec:
    name: str
    description: str = ""


@dataclass
class CacheLevelSpec:
    level: str  # "L1", "L2", "L3"
    size: int


def _default_registers() -> List[RegisterSpec]:
    return [RegisterSpec(name, description) for name, description in DEFAULT_REGISTERS]


def _default_cache() -> List[CacheLevelSpec]:
    return [CacheLevelSpec(level.value, size) for level, size in DEFAULT_CACHE_SIZES.items()]


@dataclass
class MachineConfig:
    memory_size: int = DEFAULT_MEMORY_SIZE
    registers: List[RegisterSpec] = field(default_factory=_default_registers)
    cache: List[CacheLevelSpec] = field(default_factory=_default_cache)
    demote_victims: bool = False
    step_duration_ms: float = DEFAULT_STEP_DURATION_MS
    strict: bool = False


@dataclass
class ProgramConfig:
    example: Optional[str] = None  # "calculator", "traffic_light"
    parameters: Dict[str, Any] = field(default_factory=dict)
    instructions: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class SystemConfig:
    machine: MachineConfig = field(default_factory=MachineConfig)
    program: Optional[ProgramConfig] = None

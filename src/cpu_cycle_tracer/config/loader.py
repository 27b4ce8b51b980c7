import yaml
from typing import Any, Dict, List

from cpu_cycle_tracer.common.types import CacheLevel
from cpu_cycle_tracer.core.errors import ConfigError
from .models import CacheLevelSpec, MachineConfig, ProgramConfig, RegisterSpec, SystemConfig

INSTRUCTION_KEYS = {"opcode", "operand1", "operand2", "destination", "address", "description", "id"}


class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self._parse_config(data or {})

    def load_from_string(self, text: str) -> SystemConfig:
        return self._parse_config(yaml.safe_load(text) or {})

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        if not isinstance(data, dict):
            raise ConfigError("Top-level configuration must be a mapping.")

        machine = self._parse_machine(data.get("machine", {}) or {})
        program_data = data.get("program")
        program = self._parse_program(program_data) if program_data else None
        return SystemConfig(machine=machine, program=program)

    def _parse_machine(self, data: Dict[str, Any]) -> MachineConfig:
        machine = MachineConfig()

        if "memory_size" in data:
            machine.memory_size = self._parse_int(data["memory_size"])

        if "registers" in data:
            registers = []
            for reg_data in data["registers"]:
                if isinstance(reg_data, str):
                    registers.append(RegisterSpec(reg_data))
                elif isinstance(reg_data, dict) and "name" in reg_data:
                    registers.append(RegisterSpec(str(reg_data["name"]), str(reg_data.get("description", ""))))
                else:
                    raise ConfigError(f"Invalid register entry: {reg_data!r}")
            machine.registers = registers

        if "cache" in data:
            cache = []
            for level_data in data["cache"]:
                level = str(level_data.get("level", "")).upper()
                if level not in CacheLevel.__members__:
                    raise ConfigError(f"Unknown cache level: {level_data.get('level')!r}")
                cache.append(CacheLevelSpec(level, self._parse_int(level_data.get("size"))))
            order = [spec.level for spec in cache]
            if order != [level.value for level in CacheLevel]:
                raise ConfigError(f"Cache levels must be listed as L1, L2, L3 (got {order}).")
            machine.cache = cache

        machine.demote_victims = bool(data.get("demote_victims", machine.demote_victims))
        try:
            machine.step_duration_ms = float(data.get("step_duration_ms", machine.step_duration_ms))
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid step duration: {data.get('step_duration_ms')!r}") from None
        machine.strict = bool(data.get("strict", machine.strict))
        return machine

    def _parse_program(self, data: Dict[str, Any]) -> ProgramConfig:
        if not isinstance(data, dict):
            raise ConfigError("'program' must be a mapping.")
        example = data.get("example")
        instructions: List[Dict[str, Any]] = data.get("instructions", []) or []
        if example is None and not instructions:
            raise ConfigError("'program' needs either 'example' or 'instructions'.")
        if example is not None and instructions:
            raise ConfigError("'program' cannot define both 'example' and 'instructions'.")

        for index, entry in enumerate(instructions):
            if not isinstance(entry, dict) or "opcode" not in entry:
                raise ConfigError(f"Instruction #{index} must be a mapping with an 'opcode'.")
            unknown = set(entry) - INSTRUCTION_KEYS
            if unknown:
                raise ConfigError(f"Instruction #{index} has unknown keys: {sorted(unknown)}")
            if "address" in entry:
                entry["address"] = self._parse_int(entry["address"])

        parameters = {k: v for k, v in data.items() if k not in ("example", "instructions")}
        return ProgramConfig(example=example, parameters=parameters, instructions=instructions)

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            if value.lower().startswith("0x"):
                return int(value, 16)
            try:
                return int(value)
            except ValueError:
                pass
        raise ConfigError(f"Invalid integer format: {value}")

import logging
from typing import List, Optional

from cpu_cycle_tracer.arch.teaching.cpu import TeachingCpu
from cpu_cycle_tracer.core.errors import ConfigError
from cpu_cycle_tracer.core.scheduler import DeferredScheduler
from cpu_cycle_tracer.isa.instruction import Instruction
from cpu_cycle_tracer.isa.programs import (
    generate_calculator_instructions,
    generate_traffic_light_instructions,
)
from .models import MachineConfig, ProgramConfig, SystemConfig

logger = logging.getLogger(__name__)


# @intent:responsibility システム構成（Config）に基づいて、CPUを生成し、プログラムをロードします。
class SystemBuilder:
    def build_system(self, config: SystemConfig, scheduler: Optional[DeferredScheduler] = None) -> TeachingCpu:
        cpu = self.build_cpu(config.machine, scheduler)
        if config.program is not None:
            cpu.load_program(self.build_program(config.program))
        return cpu

    def build_cpu(self, machine: MachineConfig, scheduler: Optional[DeferredScheduler] = None) -> TeachingCpu:
        try:
            return TeachingCpu(
                registers=[(spec.name, spec.description) for spec in machine.registers],
                memory_size=machine.memory_size,
                cache_sizes=[spec.size for spec in machine.cache],
                demote_victims=machine.demote_victims,
                strict=machine.strict,
                scheduler=scheduler,
                step_duration_ms=machine.step_duration_ms,
            )
        except ValueError as e:
            raise ConfigError(f"Invalid machine configuration: {e}") from e

    # @intent:responsibility サンプル名またはYAMLの命令リストから命令列を生成します。
    def build_program(self, program: ProgramConfig) -> List[Instruction]:
        params = program.parameters
        try:
            if program.example == "calculator":
                return generate_calculator_instructions(
                    int(params.get("operand1", 5)),
                    int(params.get("operand2", 3)),
                    str(params.get("operation", "+")),
                )
            if program.example == "traffic_light":
                return generate_traffic_light_instructions(
                    str(params.get("state", "RED")).upper(),
                    bool(params.get("sensor", False)),
                )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid parameters for {program.example}: {e}") from e
        if program.example is not None:
            raise ConfigError(f"Unknown example program: {program.example!r}")

        instructions = []
        for index, entry in enumerate(program.instructions):
            fields = dict(entry)
            fields.setdefault("id", f"i{index}")
            fields["opcode"] = str(fields["opcode"]).upper()
            try:
                instructions.append(Instruction(**fields))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid instruction #{index}: {e}") from e
        logger.debug("Built program with %d instruction(s)", len(instructions))
        return instructions

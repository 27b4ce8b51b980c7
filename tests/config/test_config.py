# tests/config/test_config.py
"""
cpu_cycle_tracer.config パッケージ（ローダーとビルダー）の単体テスト。
"""
import pytest

from cpu_cycle_tracer.core.errors import ConfigError
from cpu_cycle_tracer.config.builder import SystemBuilder
from cpu_cycle_tracer.config.loader import ConfigLoader
from cpu_cycle_tracer.config.models import MachineConfig, ProgramConfig, SystemConfig
from cpu_cycle_tracer.isa.instruction import Literal, RegisterRef
from cpu_cycle_tracer.isa.opcodes import Opcode

# @intent:test_suite YAML設定の解析と、設定からのシステム構築を検証します。

FULL_CONFIG = """
machine:
  memory_size: "0x200"
  step_duration_ms: 250
  demote_victims: true
  strict: true
  registers:
    - {name: R1, description: first}
    - R2
    - R3
    - PC
    - IR
  cache:
    - {level: L1, size: 2}
    - {level: l2, size: "0x4"}
    - {level: L3, size: 8}
program:
  instructions:
    - {opcode: mov, operand1: 7, destination: R1}
    - {opcode: STORE, destination: R1, address: "0x10", id: keep}
    - {opcode: LOAD, destination: R2, address: 16}
    - {opcode: ADD, operand1: R1, operand2: R2, destination: R3}
"""


class TestConfigLoader:
    # @intent:test_case_parse_full 全項目を指定した設定が正しく解析されることを検証します。
    def test_parse_full_config(self):
        config = ConfigLoader().load_from_string(FULL_CONFIG)
        machine = config.machine
        assert machine.memory_size == 0x200
        assert machine.step_duration_ms == 250.0
        assert machine.demote_victims is True
        assert machine.strict is True
        assert [r.name for r in machine.registers] == ["R1", "R2", "R3", "PC", "IR"]
        assert machine.registers[0].description == "first"
        assert [(c.level, c.size) for c in machine.cache] == [("L1", 2), ("L2", 4), ("L3", 8)]
        assert len(config.program.instructions) == 4
        assert config.program.instructions[1]["address"] == 0x10

    # @intent:test_case_defaults 空の設定では既定のマシン構成になり、プログラムはないことを検証します。
    def test_defaults(self):
        config = ConfigLoader().load_from_string("")
        assert config.machine == MachineConfig()
        assert config.program is None

    def test_example_parameters(self):
        config = ConfigLoader().load_from_string(
            "program:\n  example: calculator\n  operand1: 10\n  operand2: 4\n  operation: '-'\n"
        )
        assert config.program.example == "calculator"
        assert config.program.parameters == {"operand1": 10, "operand2": 4, "operation": "-"}

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "system.yaml"
        path.write_text(FULL_CONFIG)
        assert ConfigLoader().load_from_file(str(path)).machine.memory_size == 0x200

    # @intent:test_case_invalid 不正な設定はConfigErrorになることを検証します。
    @pytest.mark.parametrize("text", [
        "- just\n- a list\n",
        "machine:\n  memory_size: lots\n",
        "machine:\n  memory_size: true\n",
        "machine:\n  cache:\n    - {level: L4, size: 1}\n",
        "machine:\n  cache:\n    - {level: L2, size: 1}\n    - {level: L1, size: 1}\n    - {level: L3, size: 1}\n",
        "program:\n  operand1: 1\n",
        "program:\n  example: calculator\n  instructions:\n    - {opcode: HALT}\n",
        "program:\n  instructions:\n    - {destination: R1}\n",
        "program:\n  instructions:\n    - {opcode: HALT, target: 3}\n",
        "machine:\n  registers:\n    - 5\n",
        "machine:\n  registers:\n    - {description: no name}\n",
        "machine:\n  step_duration_ms: slow\n",
    ])
    def test_invalid_configs(self, text):
        with pytest.raises(ConfigError):
            ConfigLoader().load_from_string(text)


class TestSystemBuilder:
    # @intent:test_case_build 設定からCPUが構築され、命令がロードされることを検証します。
    def test_build_from_instructions(self):
        cpu = SystemBuilder().build_system(ConfigLoader().load_from_string(FULL_CONFIG))
        assert cpu.strict is True
        assert cpu.step_duration_ms == 250.0

        program = cpu.get_instructions()
        assert [i.opcode for i in program] == [Opcode.MOV, Opcode.STORE, Opcode.LOAD, Opcode.ADD]
        assert [i.id for i in program] == ["i0", "keep", "i2", "i3"]
        assert program[0].operand1 == Literal(7)
        assert program[3].operand2 == RegisterRef("R2")

        while cpu.step():
            pass
        state = cpu.get_state()
        assert len(state.memory) == 0x200
        assert [level.size for level in state.cache] == [2, 4, 8]
        assert state.register_value("R3") == 14
        assert state.memory_value(0x10) == 7

    # @intent:test_case_examples サンプル名と既定パラメータからプログラムが生成されることを検証します。
    def test_build_examples(self):
        builder = SystemBuilder()
        calculator = builder.build_program(ProgramConfig(example="calculator"))
        assert calculator[0].operand1 == Literal(5)
        assert calculator[1].operand1 == Literal(3)
        assert calculator[2].opcode == Opcode.ADD

        traffic = builder.build_program(ProgramConfig(example="traffic_light", parameters={"state": "green"}))
        assert [i.id for i in traffic] == ["load_sensor", "load_state", "set_yellow", "store_output"]

    @pytest.mark.parametrize("program", [
        ProgramConfig(example="tetris"),
        ProgramConfig(example="calculator", parameters={"operation": "%"}),
        ProgramConfig(example="traffic_light", parameters={"state": "blue"}),
        ProgramConfig(example="calculator", parameters={"operand1": None}),
        ProgramConfig(instructions=[{"opcode": "NOP"}]),
        ProgramConfig(instructions=[{"opcode": "MOV", "operand1": ""}]),
    ])
    def test_invalid_programs(self, program):
        with pytest.raises(ConfigError):
            SystemBuilder().build_program(program)

    # @intent:test_case_invalid_machine CPUが生成できない構成はConfigErrorになることを検証します。
    def test_invalid_machine(self):
        machine = MachineConfig(memory_size=0)
        with pytest.raises(ConfigError):
            SystemBuilder().build_system(SystemConfig(machine=machine))

    # @intent:test_case_negative_duration 負のステップ時間はCPU生成時にConfigErrorになることを検証します。
    def test_negative_step_duration(self):
        config = ConfigLoader().load_from_string("machine:\n  step_duration_ms: -5\n")
        with pytest.raises(ConfigError, match="Step duration must not be negative"):
            SystemBuilder().build_system(config)

# cpu_cycle_tracer/isa/programs.py
"""
サンプルプログラムの生成。

電卓（2オペランドの四則演算）と信号機コントローラの2種類の教材プログラムを生成します。
"""
from typing import List

from cpu_cycle_tracer.isa.instruction import Instruction, Literal, RegisterRef
from cpu_cycle_tracer.isa.opcodes import Opcode

# @intent:constant 電卓の結果を格納するメモリアドレス。
CALCULATOR_RESULT_ADDRESS = 0x100
# @intent:constant 信号機の出力を格納するメモリアドレス。
TRAFFIC_LIGHT_OUTPUT_ADDRESS = 0x200

# @intent:map 演算子記号からオペコードへの対応表。
OPERATOR_OPCODES = {
    "+": Opcode.ADD,
    "-": Opcode.SUB,
    "*": Opcode.MUL,
    "/": Opcode.DIV,
}

# @intent:map 信号の状態とその数値表現。
TRAFFIC_LIGHT_VALUES = {"RED": 0, "YELLOW": 1, "GREEN": 2}


# @intent:responsibility 電卓プログラム（LOAD, LOAD, 演算, STORE）を生成します。
# @intent:pre-condition operation は "+", "-", "*", "/" のいずれかである必要があります。
def generate_calculator_instructions(operand1: int, operand2: int, operation: str) -> List[Instruction]:
    try:
        opcode = OPERATOR_OPCODES[operation]
    except KeyError:
        raise ValueError(f"Unsupported calculator operation: {operation!r}") from None

    return [
        Instruction(
            Opcode.LOAD, operand1=Literal(operand1), destination="R1",
            description=f"Load {operand1} into register R1", id="load1",
        ),
        Instruction(
            Opcode.LOAD, operand1=Literal(operand2), destination="R2",
            description=f"Load {operand2} into register R2", id="load2",
        ),
        Instruction(
            opcode, operand1=RegisterRef("R1"), operand2=RegisterRef("R2"), destination="R3",
            description=f"Compute {operand1} {operation} {operand2}", id="compute",
        ),
        Instruction(
            Opcode.STORE, destination="R3", address=CALCULATOR_RESULT_ADDRESS,
            description="Store result to memory", id="store",
        ),
    ]


# @intent:responsibility 信号機の状態遷移を1回分計算するプログラムを生成します。
# @intent:rationale RED→GREEN（車両検知時のみ）、GREEN→YELLOW、YELLOW→RED の簡易ステートマシン。
#                  遷移しない場合（REDかつ車両なし）は出力レジスタを設定する命令を生成しません。
def generate_traffic_light_instructions(current_state: str, sensor_input: bool) -> List[Instruction]:
    if current_state not in TRAFFIC_LIGHT_VALUES:
        raise ValueError(f"Unknown traffic light state: {current_state!r}")

    instructions = [
        Instruction(
            Opcode.LOAD, operand1=Literal(1 if sensor_input else 0), destination="R1",
            description=f"Load sensor input: {'Car detected' if sensor_input else 'No car'}",
            id="load_sensor",
        ),
        Instruction(
            Opcode.LOAD, operand1=Literal(TRAFFIC_LIGHT_VALUES[current_state]), destination="R2",
            description=f"Load current state: {current_state}", id="load_state",
        ),
    ]

    next_state = None
    if current_state == "RED" and sensor_input:
        next_state = "GREEN"
    elif current_state == "GREEN":
        next_state = "YELLOW"
    elif current_state == "YELLOW":
        next_state = "RED"

    if next_state is not None:
        instructions.append(Instruction(
            Opcode.MOV, operand1=Literal(TRAFFIC_LIGHT_VALUES[next_state]), destination="R3",
            description=f"Set output to {next_state}", id=f"set_{next_state.lower()}",
        ))

    instructions.append(Instruction(
        Opcode.STORE, destination="R3", address=TRAFFIC_LIGHT_OUTPUT_ADDRESS,
        description="Store output signal", id="store_output",
    ))
    return instructions

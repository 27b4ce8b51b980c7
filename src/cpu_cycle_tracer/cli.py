# cpu_cycle_tracer/cli.py
"""
コマンドラインのトレーサ。

設定ファイル(YAML)からマシンとプログラムを構築し、1フェーズごとの実行結果を表示します。
"""
import argparse
import logging
import sys
from typing import List, Optional, TextIO

from cpu_cycle_tracer.arch.teaching.cpu import TeachingCpu
from cpu_cycle_tracer.config.builder import SystemBuilder
from cpu_cycle_tracer.config.loader import ConfigLoader
from cpu_cycle_tracer.core.cache import format_statistics
from cpu_cycle_tracer.core.errors import CpuCycleTracerError
from cpu_cycle_tracer.core.snapshot import CycleStep
from cpu_cycle_tracer.isa.encoding import disassemble


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpu-cycle-tracer",
        description="Step a teaching CPU through FETCH/DECODE/EXECUTE/STORE and print each phase.",
    )
    parser.add_argument("config", help="YAML system configuration")
    parser.add_argument("--steps", type=int, default=None, help="stop after N phases")
    parser.add_argument("--listing", choices=("assembly", "machine"), default="assembly",
                        help="code view mode for the program listing")
    parser.add_argument("--strict", action="store_true", help="fail on malformed instructions")
    parser.add_argument("--log-level", default="WARNING",
                        choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    return parser


# @intent:utility_function 1フェーズ分の記録を1行に整形します。
def format_step(step: CycleStep) -> str:
    text = f"{step.cycle:4d} {step.phase.value:<7} {step.instruction.to_assembly() if step.instruction else '-'}"
    changes = [f"{c.name}: {c.old_value} -> {c.new_value}" for c in step.register_changes]
    changes += [f"[0x{c.address:04X}]: {c.old_value} -> {c.new_value}" for c in step.memory_changes]
    if changes:
        text += "  (" + ", ".join(changes) + ")"
    return text


def print_listing(cpu: TeachingCpu, mode: str, out: TextIO) -> None:
    for index, hex_bytes, mnemonic in disassemble(cpu.get_instructions()):
        shown = hex_bytes if mode == "machine" else mnemonic
        print(f"{index:3d}: {shown}", file=out)


def print_summary(cpu: TeachingCpu, out: TextIO) -> None:
    state = cpu.get_state()
    print("registers: " + ", ".join(f"{r.name}={r.value}" for r in state.registers), file=out)
    used = [cell for cell in state.memory if cell.used]
    if used:
        print("memory: " + ", ".join(f"[0x{c.address:04X}]={c.value}" for c in used), file=out)
    for line in format_statistics(state.cache):
        print(f"cache {line}", file=out)


def run(cpu: TeachingCpu, steps: Optional[int], out: TextIO) -> int:
    executed = 0
    while steps is None or executed < steps:
        if not cpu.step():
            break
        executed += 1
        print(format_step(cpu.get_history()[-1]), file=out)
    return executed


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        config = ConfigLoader().load_from_file(args.config)
        if args.strict:
            config.machine.strict = True
        cpu = SystemBuilder().build_system(config)
    except (OSError, CpuCycleTracerError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if not cpu.get_instructions():
        print("error: configuration does not define a program", file=sys.stderr)
        return 2

    print_listing(cpu, args.listing, sys.stdout)
    print(file=sys.stdout)
    try:
        run(cpu, args.steps, sys.stdout)
    except CpuCycleTracerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(file=sys.stdout)
    print_summary(cpu, sys.stdout)
    return 0


if __name__ == '__main__':
    sys.exit(main())

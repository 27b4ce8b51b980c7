# cpu_cycle_tracer/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、命令サイクル（FETCH → DECODE → EXECUTE → STORE）を1フェーズずつ駆動する
抽象化を提供します。各フェーズの具体的な振る舞いはサブクラスに移譲されます。
"""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from cpu_cycle_tracer.common.types import PHASE_SEQUENCE, Phase, RegisterMap
from cpu_cycle_tracer.core.scheduler import DeferredScheduler
from cpu_cycle_tracer.core.snapshot import CycleStep, Snapshot, StepRecorder
from cpu_cycle_tracer.core.state import CpuState
from cpu_cycle_tracer.isa.instruction import Instruction
from cpu_cycle_tracer.transport.bus import BusLog, transfer_lifetime

logger = logging.getLogger(__name__)

# @intent:constant 既定の1ステップあたりの表示時間（ミリ秒）。
DEFAULT_STEP_DURATION_MS = 1000.0


# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUシミュレーションの基底となる抽象クラス。
    プログラムの保持、フェーズの順序制御、実行履歴の記録を提供します。
    """
    # @intent:responsibility CPUの状態、バスログ、遅延スケジューラを初期化します。
    def __init__(self, scheduler: Optional[DeferredScheduler] = None,
                 step_duration_ms: float = DEFAULT_STEP_DURATION_MS):
        if step_duration_ms < 0:
            raise ValueError("Step duration must not be negative.")
        self._scheduler = scheduler or DeferredScheduler()
        self._step_duration_ms = step_duration_ms
        self._bus_log = BusLog(self._scheduler, transfer_lifetime(step_duration_ms))
        self._state: CpuState = self._create_initial_state()
        self._instructions: List[Instruction] = []
        self._instruction_index = 0
        self._phase_index = 0
        self._history: List[CycleStep] = []
        # @intent:rationale Stateオブジェクトの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からのアクセスは`get_state()`メソッド（スナップショット）を介して行う。

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        pass

    # @intent:responsibility CPUを完全にリセットし、初期状態に戻します。
    # @intent:rationale エポックを進めることで、リセット前に予約された遅延処理が新しい状態を変更しないようにします。
    def reset(self) -> None:
        self._scheduler.advance_epoch()
        self._state = self._create_initial_state()
        self._bus_log.clear()
        self._history = []
        self._instructions = []
        self._instruction_index = 0
        self._phase_index = 0

    # @intent:responsibility 実行する命令列を差し替え、先頭から実行できるようにします。
    # @intent:post-condition PC・命令レジスタ・フェーズ・クロック・バスログ・履歴は初期化されますが、
    #                        レジスタ値・メモリ値・キャッシュは保持されます。
    def load_program(self, instructions: Sequence[Instruction]) -> None:
        self._scheduler.advance_epoch()
        self._instructions = list(instructions)
        self._instruction_index = 0
        self._phase_index = 0
        self._state.pc = 0
        self._state.instruction_register = None
        self._state.phase = Phase.IDLE
        self._state.clock_cycle = 0
        self._bus_log.clear()
        self._history = []
        self._on_program_loaded()
        logger.debug("Loaded program with %d instruction(s)", len(self._instructions))

    # @intent:responsibility プログラム差し替え時の追加処理（フック）。
    def _on_program_loaded(self) -> None:
        pass

    def get_instructions(self) -> List[Instruction]:
        return list(self._instructions)

    def get_instruction_index(self) -> int:
        return self._instruction_index

    def get_history(self) -> List[CycleStep]:
        return list(self._history)

    @property
    def current_phase(self) -> Phase:
        return self._state.phase

    # @intent:responsibility 次のstep()で実行されるフェーズを返します。プログラム終了後はIDLE。
    def next_phase(self) -> Phase:
        if self.is_finished():
            return Phase.IDLE
        return PHASE_SEQUENCE[self._phase_index]

    def is_finished(self) -> bool:
        return self._instruction_index >= len(self._instructions)

    @property
    def step_duration_ms(self) -> float:
        return self._step_duration_ms

    # @intent:responsibility 1ステップの表示時間を変更します。以後に予約される遅延処理に反映されます。
    def set_step_duration(self, milliseconds: float) -> None:
        if milliseconds < 0:
            raise ValueError("Step duration must not be negative.")
        self._step_duration_ms = milliseconds
        self._bus_log.lifetime_ms = transfer_lifetime(milliseconds)

    # @intent:responsibility 期限を迎えた遅延処理（表示フラグのクリア）を実行します。
    def poll_timers(self) -> int:
        return self._scheduler.poll()

    # @intent:responsibility CPUを1フェーズ進め、フェーズを実行した場合にTrueを返します。
    # @intent:rationale Template Methodパターンを採用し、共通の流れ（フェーズ決定→クロック加算→フェーズ処理→履歴記録→次フェーズ）を定義します。
    #                  N命令のプログラムでは4N回Trueを返し、その次の呼び出しでIDLEに戻りFalseを返します。
    def step(self) -> bool:
        if self.is_finished():
            self._state.phase = Phase.IDLE
            return False

        instruction = self._instructions[self._instruction_index]
        phase = PHASE_SEQUENCE[self._phase_index]

        self._state.phase = phase
        self._state.clock_cycle += 1
        recorder = StepRecorder(self._state.clock_cycle, phase, instruction)

        handlers: Dict[Phase, Callable[[Instruction, StepRecorder], None]] = {
            Phase.FETCH: self._fetch,
            Phase.DECODE: self._decode,
            Phase.EXECUTE: self._execute,
            Phase.STORE: self._store,
        }
        handlers[phase](instruction, recorder)
        self._history.append(recorder.freeze())
        logger.debug("cycle %d: %s %s", self._state.clock_cycle, phase.value, instruction.to_assembly())

        self._phase_index += 1
        if self._phase_index >= len(PHASE_SEQUENCE):
            self._phase_index = 0
            self._instruction_index += 1
        return True

    # @intent:responsibility 命令を命令レジスタに取り込み、PCを進めます。
    @abstractmethod
    def _fetch(self, instruction: Instruction, recorder: StepRecorder) -> None:
        pass

    # @intent:responsibility 命令を解釈します（教材上のフェーズ）。
    @abstractmethod
    def _decode(self, instruction: Instruction, recorder: StepRecorder) -> None:
        pass

    # @intent:responsibility 命令を実行し、レジスタ・メモリ・キャッシュを更新します。
    @abstractmethod
    def _execute(self, instruction: Instruction, recorder: StepRecorder) -> None:
        pass

    # @intent:responsibility 実行結果を確定し、表示用フラグを落とします。
    @abstractmethod
    def _store(self, instruction: Instruction, recorder: StepRecorder) -> None:
        pass

    # @intent:responsibility 現在の状態の読み取り専用スナップショットを返します。
    @abstractmethod
    def get_state(self) -> Snapshot:
        pass

    @abstractmethod
    def get_register_map(self) -> RegisterMap:
        """
        現在のレジスタ値を辞書形式で返す。
        UIがCPUの内部構造を知らなくても値を表示できるようにするために使用される。
        """
        pass

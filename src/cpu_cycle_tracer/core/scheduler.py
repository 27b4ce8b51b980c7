# cpu_cycle_tracer/core/scheduler.py
"""
Core Layer (遅延コールバック)

バス転送の非アクティブ化やキャッシュ表示状態のクリアなど、
「一定時間後に表示用フラグを落とす」ための遅延処理を管理します。

コア自身はスレッドもイベントループも持ちません。登録されたコールバックは
ホスト（UIタイマーやテスト）が `poll()` を呼んだときに、期限を過ぎたものだけ実行されます。
各コールバックは登録時のエポックで印付けされ、`advance_epoch()`（リセット時など）以降は
実行されずに破棄されます。
"""
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


# @intent:utility_function 単調増加するミリ秒単位の時計を返します。
def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


# @intent:data_structure 登録済みの遅延コールバック。期限と登録順で並べます。
@dataclass(order=True)
class ScheduledTask:
    due: float
    seq: int
    epoch: int = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    # @intent:responsibility このタスクを取り消します。既に実行済みなら何も起きません。
    def cancel(self) -> None:
        self.cancelled = True


# @intent:responsibility エポックで保護された遅延コールバックのキューを提供します。
class DeferredScheduler:
    """
    時計は差し替え可能です（テストでは手動で進める時計を渡します）。
    """
    def __init__(self, clock: Optional[Clock] = None):
        self._clock: Clock = clock or monotonic_ms
        self._queue: List[ScheduledTask] = []
        self._counter = itertools.count()
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    def now(self) -> float:
        return self._clock()

    # @intent:responsibility delay_ms 後に実行するコールバックを登録します。
    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(
            due=self._clock() + max(0.0, delay_ms),
            seq=next(self._counter),
            epoch=self._epoch,
            callback=callback,
        )
        heapq.heappush(self._queue, task)
        return task

    # @intent:responsibility エポックを進め、保留中の全コールバックを無効化します。
    # @intent:rationale リセットと古いタイマーの競合を避けるため、既存タスクはキューから捨てます。
    def advance_epoch(self) -> int:
        self._epoch += 1
        dropped = len(self._queue)
        self._queue.clear()
        if dropped:
            logger.debug("Dropped %d pending deferred task(s) at epoch %d", dropped, self._epoch)
        return self._epoch

    # @intent:responsibility 期限を過ぎたコールバックを登録順に実行し、実行数を返します。
    def poll(self) -> int:
        now = self._clock()
        executed = 0
        while self._queue and self._queue[0].due <= now:
            task = heapq.heappop(self._queue)
            if task.cancelled or task.epoch != self._epoch:
                continue
            task.callback()
            executed += 1
        return executed

    def pending(self) -> int:
        return sum(1 for task in self._queue if not task.cancelled and task.epoch == self._epoch)


# @intent:utility_class テスト・CLI向けの手動で進める時計です。
class ManualClock:
    def __init__(self, start: float = 0.0):
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, ms: float) -> float:
        self._now += ms
        return self._now

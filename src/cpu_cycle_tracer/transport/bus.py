# cpu_cycle_tracer/transport/bus.py
"""
Transport Layer (バス転送ログ)

CPU内部の部品間（PC→メモリ、レジスタ→ALUなど）で値が移動したことを記録する、
追記専用のイベントログです。記録は観測（可視化）専用であり、
シミュレーション結果には影響しません。
"""
import itertools
import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from cpu_cycle_tracer.common.types import BusType
from cpu_cycle_tracer.core.scheduler import DeferredScheduler

logger = logging.getLogger(__name__)

# @intent:constant 転送がアクティブ表示される最短時間（ミリ秒）。
MIN_TRANSFER_LIFETIME_MS = 500.0
# @intent:constant 1ステップの表示時間に上乗せする余裕（ミリ秒）。
TRANSFER_LIFETIME_MARGIN_MS = 500.0


# @intent:utility_function ステップ表示時間から転送の表示時間を求めます。
def transfer_lifetime(step_duration_ms: float) -> float:
    return max(MIN_TRANSFER_LIFETIME_MS, step_duration_ms + TRANSFER_LIFETIME_MARGIN_MS)


# @intent:responsibility 個々のバス転送を記録します。
@dataclass(frozen=True)  # 不変データ構造
class BusTransfer:
    """
    部品間の単一の値の移動を記録するデータクラス。
    active の遷移は新しいインスタンスへの置き換えで表現します。
    """
    id: str
    bus_type: BusType
    source: str
    destination: str
    value: int
    active: bool
    timestamp: float  # スケジューラの時計によるミリ秒


# @intent:responsibility バス転送を追記・参照し、一定時間後に非アクティブ化します。
# @intent:rationale 全ての転送を記録し、スナップショットに含めることで観測可能性を高めます。
class BusLog:
    def __init__(self, scheduler: DeferredScheduler, lifetime_ms: float = transfer_lifetime(1000.0)):
        self._scheduler = scheduler
        self._transfers: List[BusTransfer] = []
        self._ids = itertools.count(1)
        self.lifetime_ms = lifetime_ms

    def __len__(self) -> int:
        return len(self._transfers)

    # @intent:responsibility 転送を記録し、表示時間経過後の非アクティブ化を予約します。
    def add_transfer(
        self,
        bus_type: BusType,
        source: str,
        destination: str,
        value: int,
        lifetime_ms: Optional[float] = None,
    ) -> BusTransfer:
        transfer = BusTransfer(
            id=f"transfer-{next(self._ids)}",
            bus_type=bus_type,
            source=source,
            destination=destination,
            value=value,
            active=True,
            timestamp=self._scheduler.now(),
        )
        self._transfers.append(transfer)
        logger.debug("%s bus: %s -> %s (%d)", bus_type.value, source, destination, value)

        delay = self.lifetime_ms if lifetime_ms is None else lifetime_ms
        self._scheduler.schedule(delay, lambda: self._deactivate(transfer.id))
        return transfer

    # @intent:responsibility 指定IDの転送を非アクティブにします。既に消えていれば何もしません。
    def _deactivate(self, transfer_id: str) -> None:
        for index, transfer in enumerate(self._transfers):
            if transfer.id == transfer_id:
                self._transfers[index] = replace(transfer, active=False)
                return

    def get_transfers(self) -> List[BusTransfer]:
        return list(self._transfers)

    def active_transfers(self) -> List[BusTransfer]:
        return [transfer for transfer in self._transfers if transfer.active]

    # @intent:responsibility 記録されたログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusTransfer]:
        log = self._transfers
        self._transfers = []
        return log

    # @intent:responsibility ログを空にし、ID採番を初期化します。
    def clear(self) -> None:
        self._transfers = []
        self._ids = itertools.count(1)

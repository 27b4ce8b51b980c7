# cpu_cycle_tracer/core/cache.py
"""
Core Layer (キャッシュ階層)

L1/L2/L3 の3段キャッシュを模擬し、ヒット/ミスの判定とLRU風の置き換えを行います。
ミス時の割り当ては常にL1に対して行います。
置き換え対象の選び方（未使用スロット優先、次に最終アクセスが最も古いライン、同値なら配列順）は
テストで固定された挙動であり、変更しないでください。
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence

from cpu_cycle_tracer.common.types import CacheLevel
from cpu_cycle_tracer.core.storage import Memory

logger = logging.getLogger(__name__)

# @intent:constant 既定のレベルごとのライン数。
DEFAULT_CACHE_SIZES = {CacheLevel.L1: 8, CacheLevel.L2: 16, CacheLevel.L3: 32}


# @intent:responsibility 1本のキャッシュラインを保持します。
@dataclass
class CacheLine:
    address: int = 0
    value: int = 0
    valid: bool = False
    dirty: bool = False
    last_accessed: int = 0  # LRU比較に使うサイクル番号

    def invalidate(self) -> None:
        self.address = 0
        self.value = 0
        self.valid = False
        self.dirty = False
        self.last_accessed = 0


# @intent:responsibility 1レベル分のキャッシュラインとヒット/ミス統計を保持します。
# @intent:invariant 同一レベル内で同じアドレスを持つ有効ラインは高々1本です。
@dataclass
class CacheLevelState:
    level: CacheLevel
    lines: List[CacheLine] = field(default_factory=list)
    hits: int = 0
    misses: int = 0
    # 以下は観測（表示）専用の一時状態
    active_address: Optional[int] = None
    is_hit: Optional[bool] = None

    @property
    def size(self) -> int:
        return len(self.lines)

    # @intent:responsibility 指定アドレスの有効ラインを返します。無ければNone。
    def find_line(self, address: int) -> Optional[CacheLine]:
        for line in self.lines:
            if line.valid and line.address == address:
                return line
        return None

    # @intent:responsibility 置き換え対象のラインを選択します。
    # @intent:rationale 未使用スロットを先に埋め、埋まっていれば last_accessed 最小のラインを選ぶ。
    #                  同値の場合は配列上で先にあるラインを選ぶ（min は最初の最小要素を返す）。
    def select_victim(self) -> CacheLine:
        for line in self.lines:
            if not line.valid:
                return line
        return min(self.lines, key=lambda line: line.last_accessed)

    def mark(self, address: int, is_hit: bool) -> None:
        self.active_address = address
        self.is_hit = is_hit

    def clear_active(self) -> None:
        self.active_address = None
        self.is_hit = None

    def reset(self) -> None:
        for line in self.lines:
            line.invalidate()
        self.hits = 0
        self.misses = 0
        self.clear_active()


# @intent:data_structure キャッシュアクセスの結果。valueは読み出し（書き込み）後のライン値です。
class CacheAccessResult(NamedTuple):
    level: CacheLevel
    is_hit: bool
    value: int


# @intent:responsibility 3段のキャッシュ階層を管理し、読み出し/書き込み経路を提供します。
class CacheHierarchy:
    """
    L1 -> L2 -> L3 の順に探索するキャッシュ階層。

    `demote_victims` を有効にすると、L1から追い出された有効ラインを下位レベルへ移します。
    既定では追い出されたラインは単に上書きされます。
    """
    def __init__(self, sizes: Optional[Sequence[int]] = None, demote_victims: bool = False):
        if sizes is None:
            sizes = [DEFAULT_CACHE_SIZES[level] for level in CacheLevel]
        if len(sizes) != len(CacheLevel):
            raise ValueError(f"Expected {len(CacheLevel)} cache sizes, got {len(sizes)}.")
        for size in sizes:
            if not isinstance(size, int) or size <= 0:
                raise ValueError("Cache size must be a positive integer.")
        self._levels: List[CacheLevelState] = [
            CacheLevelState(level=level, lines=[CacheLine() for _ in range(size)])
            for level, size in zip(CacheLevel, sizes)
        ]
        self._demote_victims = demote_victims

    def __iter__(self) -> Iterator[CacheLevelState]:
        return iter(self._levels)

    def get_level(self, level: CacheLevel) -> CacheLevelState:
        for state in self._levels:
            if state.level == level:
                return state
        raise KeyError(level)

    # @intent:responsibility 全レベルの一時的な active/hit 状態をクリアします。
    def clear_active(self) -> None:
        for state in self._levels:
            state.clear_active()

    # @intent:responsibility 全ラインを無効化し、統計をゼロに戻します。
    def reset(self) -> None:
        for state in self._levels:
            state.reset()

    def _find_hit(self, address: int):
        for state in self._levels:
            line = state.find_line(address)
            if line is not None:
                return state, line
        return None, None

    # @intent:responsibility L1に新しいラインを割り当てます（必要に応じて追い出し）。
    def _allocate_l1(self, address: int, value: int, dirty: bool, cycle: int) -> CacheLine:
        l1 = self._levels[0]
        victim = l1.select_victim()
        if victim.valid:
            logger.debug("L1 evicts 0x%04X (last accessed at cycle %d)", victim.address, victim.last_accessed)
            if self._demote_victims:
                self._demote(1, victim)
        victim.address = address
        victim.value = value
        victim.valid = True
        victim.dirty = dirty
        victim.last_accessed = cycle
        return victim

    # @intent:responsibility 追い出されたラインを下位レベルへ移します。最下位から溢れたラインは破棄されます。
    def _demote(self, index: int, evicted: CacheLine) -> None:
        if index >= len(self._levels):
            return
        state = self._levels[index]
        target = state.select_victim()
        if target.valid:
            self._demote(index + 1, target)
        target.address = evicted.address
        target.value = evicted.value
        target.valid = True
        target.dirty = evicted.dirty
        target.last_accessed = evicted.last_accessed

    # @intent:responsibility 読み出し経路。ヒットしたレベルを返し、全レベルでミスならL1へ割り当てます。
    # @intent:post-condition 戻り値のvalueはキャッシュが保持する（ミス時はメモリから取得した）値です。
    def check_cache(self, address: int, memory: Memory, cycle: int) -> CacheAccessResult:
        """
        L1 -> L2 -> L3 の順に有効ラインを探し、最初に見つかったレベルでヒットとします。
        見つからなければL1のミスとして数え、LRUで選んだラインにメモリの値を読み込みます
        （メモリ範囲外のアドレスは値0として扱います）。
        """
        self.clear_active()

        state, line = self._find_hit(address)
        if line is not None:
            state.hits += 1
            state.mark(address, True)
            line.last_accessed = cycle
            return CacheAccessResult(state.level, True, line.value)

        l1 = self._levels[0]
        l1.misses += 1
        l1.mark(address, False)
        line = self._allocate_l1(address, memory.peek(address), False, cycle)
        return CacheAccessResult(l1.level, False, line.value)

    # @intent:responsibility 書き込み経路。ヒットしたラインを更新し、ミスならL1へダーティラインを割り当てます。
    # @intent:rationale ライトスルーのため、メモリへの書き込みは呼び出し側が別途行います。
    def update_cache(self, address: int, value: int, cycle: int) -> CacheAccessResult:
        self.clear_active()

        state, line = self._find_hit(address)
        if line is not None:
            state.hits += 1
            state.mark(address, True)
            line.value = value
            line.dirty = True
            line.last_accessed = cycle
            return CacheAccessResult(state.level, True, value)

        l1 = self._levels[0]
        l1.misses += 1
        l1.mark(address, False)
        self._allocate_l1(address, value, True, cycle)
        return CacheAccessResult(l1.level, False, value)

    # @intent:responsibility 各レベルで有効ラインのアドレスが重複していないか検査します。
    def check_invariant(self) -> bool:
        for state in self._levels:
            addresses = [line.address for line in state.lines if line.valid]
            if len(addresses) != len(set(addresses)):
                return False
        return True


# @intent:utility_function レベルごとのヒット/ミス統計を1行ずつ整形します（CLI向け）。
def format_statistics(levels: Iterable[CacheLevelState]) -> List[str]:
    return [f"{state.level.value}: hits={state.hits} misses={state.misses}" for state in levels]

# cpu_cycle_tracer/core/errors.py
"""
例外階層

シミュレータ全体で送出される例外を定義します。
教材用途のため、多くの異常はCPU側で握りつぶされ（fail-soft）ログ出力に留まりますが、
呼び出し側が区別できるように型は用意しておきます。
"""
from typing import Optional


# @intent:responsibility このパッケージが送出する全ての例外の基底クラスです。
class CpuCycleTracerError(Exception):
    pass


# @intent:responsibility 名前で引いたレジスタが存在しないことを通知します。
# @intent:rationale dictの参照失敗と同じ扱いができるよう、KeyErrorも継承します。
class RegisterNotFoundError(CpuCycleTracerError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Register '{self.name}' not found."


# @intent:responsibility 必須フィールドが欠けた命令を検出したことを通知します。
# @intent:pre-condition strictモードのときのみ送出されます。通常モードではスキップされます。
class MalformedInstructionError(CpuCycleTracerError, ValueError):
    """
    命令に必要なオペランド・デスティネーション・アドレスが欠けている、
    あるいは参照先が存在しない場合の例外。
    """
    def __init__(self, instruction_id: str, opcode: str, reason: str, field: Optional[str] = None):
        super().__init__(f"Malformed {opcode} instruction '{instruction_id}': {reason}")
        self.instruction_id = instruction_id
        self.opcode = opcode
        self.reason = reason
        self.field = field


# @intent:responsibility 設定ファイルの内容が不正であることを通知します。
class ConfigError(CpuCycleTracerError, ValueError):
    pass

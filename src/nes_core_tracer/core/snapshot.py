# nes_core_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1命令（または1回の割り込み処理）の実行結果を記録した不変のデータ構造を定義します。
トレーサ・ランナーなどの外部コラボレータへの情報提供に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from nes_core_tracer.core.state import CpuState
from nes_core_tracer.transport.bus import BusAccess


# @intent:responsibility 実行された命令の詳細を記録します。
@dataclass(frozen=True) # 不変データ構造
class Operation:
    """
    実行された命令の詳細（オペコード、ニーモニック、生のオペランド、実効アドレス、サイクル数）を記録するデータクラス。
    表示用の文字列は持たない。逆アセンブル表記はトレーサ側でオペランドバイトから組み立てる。
    """
    opcode: Optional[int] # 例: 0xBD。割り込み受付のstepではNone
    mnemonic: str # 例: "LDA"
    operand_bytes: List[int] = field(default_factory=list) # 生のオペランドバイト
    cycle_count: int = 0 # 基本サイクル + ページ境界/分岐ペナルティ
    length: int = 1 # 命令のバイト長
    addressing_mode: str = "" # 例: "AbsoluteX"
    effective_address: Optional[int] = None # Implied/Accumulatorの場合はNone
    page_crossed: bool = False


# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True) # 不変データ構造
class Metadata:
    """
    実行に関するメタデータ（累計サイクル数）を記録するデータクラス。
    """
    cycle_count: int


# @intent:responsibility 1ステップ実行後のCPUとバスの状態を不変に記録します。
@dataclass(frozen=True) # 不変データ構造
class Snapshot:
    """
    ある一時点における、CPUとバスの状態を記録した不変のデータ構造。
    state は実行後レジスタのコピーであり、以降の実行で変化しません。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)

# nes_core_tracer/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの基本的な状態管理と命令サイクルの駆動に関する抽象化を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.snapshot import Snapshot, Operation, Metadata
from nes_core_tracer.core.state import CpuState
from nes_core_tracer.common.types import DisassemblyListing


# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUエミュレーションの基底となる抽象クラス。
    Busとのインターフェース、基本的な状態管理、命令サイクルの抽象化を提供します。
    """
    # @intent:pre-condition `bus`は有効なBusオブジェクトである必要があります。
    # @intent:rationale Busはコンストラクタで注入する。グローバルなバス参照は持たないため、
    #                  複数のCPUインスタンスを同一プロセス内で独立に動かせる。
    def __init__(self, bus: Bus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._cycle_count: int = 0

    @property
    def bus(self) -> Bus:
        return self._bus

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        """
        CPUの電源投入時の状態を生成して返します。
        """
        pass

    # @intent:responsibility CPUをリセットします。
    def reset(self) -> None:
        """
        状態を初期値に戻します。アーキテクチャ固有のリセットシーケンスはサブクラスで上書きします。
        """
        self._state = self._create_initial_state()

    # @intent:responsibility 現在のCPU状態のコピーを返します。
    # @intent:rationale 呼び出し側が返り値を変更しても実行中の状態に影響しない。
    def get_state(self) -> CpuState:
        return self._state.copy()

    # @intent:responsibility 外部から与えた状態でCPUを上書きします（テスト・ランナー用）。
    def restore_state(self, state: CpuState) -> None:
        self._state = state.copy()

    @property
    def cycle_count(self) -> int:
        """リセット以降の累計サイクル数。"""
        return self._cycle_count

    # @intent:responsibility メモリから次の命令（オペコード）をフェッチします。
    @abstractmethod
    def _fetch(self) -> int:
        pass

    # @intent:responsibility フェッチしたオペコードを解析し、Operationオブジェクトに変換します。
    @abstractmethod
    def _decode(self, opcode: int) -> Operation:
        pass

    # @intent:responsibility デコードされた命令を実行し、CPUの状態を更新します。
    # @intent:post-condition 実行時に確定したサイクル数を反映したOperationを返します。
    @abstractmethod
    def _execute(self, operation: Operation) -> Operation:
        pass

    # @intent:responsibility CPUを1ステップ進め、その結果のスナップショットを返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー（ログクリア→割り込み判定→フェッチ→デコード→PC更新→実行→Snapshot生成）を定義します。
    def step(self) -> Snapshot:
        """
        CPUを1命令（または1回の割り込み受付）進め、その時点でのCPUとバスの状態を含むSnapshotオブジェクトを返します。
        """
        # 1. 前処理: 前サイクルまでの残存ログを破棄
        self._bus.get_and_clear_activity_log()

        # 2. 割り込み判定 (Hook)
        interrupt_snapshot = self._handle_interrupts()
        if interrupt_snapshot:
            return interrupt_snapshot

        # 3. フェッチ
        opcode = self._fetch()

        # 4. デコード
        operation = self._decode(opcode)

        # 5. PC更新 (Hook)
        self._update_pc(operation)

        # 6. 実行
        operation = self._execute(operation)

        # 7. 後処理 & Snapshot生成
        return self._create_snapshot(operation)

    # @intent:responsibility 1命令を実行し、消費したサイクル数を返します。
    def tick(self) -> int:
        return self.step().operation.cycle_count

    # @intent:return 割り込みを受け付けた場合はそのSnapshot、そうでなければNone。
    def _handle_interrupts(self) -> Optional[Snapshot]:
        return None

    # @intent:responsibility 命令実行前にPCを命令長分進めます。
    def _update_pc(self, operation: Operation) -> None:
        self._state.pc = (self._state.pc + operation.length) & 0xFFFF

    # @intent:responsibility スナップショットを生成します。
    def _create_snapshot(self, operation: Operation) -> Snapshot:
        bus_activity = self._bus.get_and_clear_activity_log()
        self._cycle_count += operation.cycle_count

        return Snapshot(
            state=self._state.copy(), # 以降の実行で変化しないようコピーを保持
            operation=operation,
            metadata=Metadata(cycle_count=self._cycle_count),
            bus_activity=bus_activity
        )

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        """
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        """
        現在のフラグ（ステータスレジスタ）の各ビットの状態を辞書形式で返す。
        """
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> DisassemblyListing:
        """
        指定されたメモリ範囲を逆アセンブルし、(address, hex_bytes, text) のタプルリストを返す。
        """
        pass

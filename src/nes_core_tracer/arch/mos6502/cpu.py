# nes_core_tracer/arch/mos6502/cpu.py
"""
MOS 6502 (NES 2A03) CPUエミュレーションの中心モジュール。
"""
from typing import Dict, Optional

from nes_core_tracer.core.snapshot import Operation, Snapshot
from nes_core_tracer.core.cpu import AbstractCpu
from nes_core_tracer.common.types import DisassemblyListing
from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.arch.mos6502.state import Mos6502CpuState, Mos6502Registers
from nes_core_tracer.arch.mos6502.instructions import decode_opcode, execute_instruction
from nes_core_tracer.arch.mos6502.interrupts import (
    InterruptController, reset_sequence, service_interrupt, RESET_CYCLES,
)
from nes_core_tracer.arch.mos6502 import disassembler


# @intent:responsibility MOS 6502 CPUの具体的なエミュレーションロジックを提供する。
class Mos6502Cpu(AbstractCpu):
    """
    MOS 6502 CPUをエミュレートするクラス。

    外部ドライバは tick() を繰り返し呼び、返ってきたサイクル数に応じてPPUなど他のデバイスを進める。
    nmi() / irq() は tick() の合間に呼ぶこと。
    """
    def __init__(self, bus: Bus):
        self._interrupts = InterruptController()
        super().__init__(bus)

    # @intent:responsibility 電源投入時の状態 (SP=$FD, P=$24, PC=0)。
    # @intent:note PCはリセットベクタから読むため、バス接続後の reset() で初めて確定する。
    def _create_initial_state(self) -> Mos6502CpuState:
        return Mos6502CpuState()

    # @intent:responsibility RESETシーケンスを実行する。レジスタ全体の初期化は行わない（SPは現在値から3減る）。
    def reset(self) -> None:
        self._interrupts.clear()
        self._cycle_count += reset_sequence(self._state, self._bus)
        self._bus.get_and_clear_activity_log()

    # @intent:responsibility 電源を入れ直した状態に戻す（累計サイクルも0から）。
    def power_on(self) -> None:
        self._state = self._create_initial_state()
        self._cycle_count = 0
        self._interrupts.clear()
        self.reset()

    # @intent:responsibility NMIを要求する（次のstepで受付）。
    def nmi(self) -> None:
        self._interrupts.request_nmi()

    # @intent:responsibility IRQを要求する（Iフラグがクリアされ次第受付）。
    def irq(self) -> None:
        self._interrupts.request_irq()

    @property
    def interrupts(self) -> InterruptController:
        return self._interrupts

    # @intent:responsibility デバッガ・トレーサ向けの読み取り専用レジスタスナップショット。
    def get_registers(self) -> Mos6502Registers:
        return self._state.to_registers()

    # @intent:responsibility 保留中の割り込みを受け付ける。受け付けた場合、そのstepでは命令を実行しない。
    def _handle_interrupts(self) -> Optional[Snapshot]:
        kind = self._interrupts.poll(self._state)
        if kind is None:
            return None
        cycles = service_interrupt(self._state, self._bus, kind)
        operation = Operation(
            opcode=None,
            mnemonic=kind.value,
            cycle_count=cycles,
            length=0,
            effective_address=self._state.pc,
        )
        return self._create_snapshot(operation)

    def _fetch(self) -> int:
        return self._bus.read(self._state.pc)

    # @intent:note アドレッシングはここで一度だけ解決し、結果はOperationに載せてハンドラへ渡す。
    def _decode(self, opcode: int) -> Operation:
        return decode_opcode(opcode, self._bus, self._state.pc, self._state)

    def _execute(self, operation: Operation) -> Operation:
        return execute_instruction(operation, self._state, self._bus)

    def get_register_map(self) -> Dict[str, int]:
        return self.get_registers().as_dict()

    def get_flag_state(self) -> Dict[str, bool]:
        regs = self.get_registers()
        return {
            "N": regs.flag_n,
            "V": regs.flag_v,
            "U": regs.flag_u,
            "B": regs.flag_b,
            "D": regs.flag_d,
            "I": regs.flag_i,
            "Z": regs.flag_z,
            "C": regs.flag_c
        }

    # @intent:responsibility 指定範囲の逆アセンブル結果を返す。
    def disassemble(self, start_addr: int, length: int) -> DisassemblyListing:
        return disassembler.disassemble(self._bus, start_addr, length)

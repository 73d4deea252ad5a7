# nes_core_tracer/arch/mos6502/interrupts.py
"""
MOS 6502 割り込みコントローラ (RESET / NMI / IRQ)。

nmi() / irq() は要求をラッチするだけで、実際の受付は次の Cpu.step() の冒頭で行います。
受付処理（スタック退避・ベクタ読み出し・ジャンプ）は1回のstep内で完結し、途中状態は外から見えません。
"""
import logging
from enum import Enum
from typing import Optional

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.arch.mos6502.state import (
    Mos6502CpuState, B_FLAG, U_FLAG, NMI_VECTOR, RESET_VECTOR, IRQ_VECTOR,
)
from nes_core_tracer.arch.mos6502.instructions.base import push, push_word, read_vector

logger = logging.getLogger(__name__)

INTERRUPT_CYCLES = 7
RESET_CYCLES = 7


class InterruptType(Enum):
    NMI = "NMI"
    IRQ = "IRQ"


_VECTORS = {
    InterruptType.NMI: NMI_VECTOR,
    InterruptType.IRQ: IRQ_VECTOR,
}


# @intent:responsibility 外部からの割り込み要求を保持し、受付可能なものを優先順位に従って返す。
class InterruptController:
    """
    NMIはマスク不可で常に優先。IRQはIフラグがクリアされている場合のみ受け付け、
    マスク中の要求は取り下げられるまで保留されたままになる。
    """
    def __init__(self):
        self._nmi_pending = False
        self._irq_pending = False

    @property
    def nmi_pending(self) -> bool:
        return self._nmi_pending

    @property
    def irq_pending(self) -> bool:
        return self._irq_pending

    def request_nmi(self) -> None:
        self._nmi_pending = True

    def request_irq(self) -> None:
        self._irq_pending = True

    # @intent:responsibility 保留中のIRQ要求を取り下げる（割り込み元デバイスが要求を解除した場合）。
    def acknowledge_irq(self) -> None:
        self._irq_pending = False

    def clear(self) -> None:
        self._nmi_pending = False
        self._irq_pending = False

    # @intent:responsibility 今受け付けるべき割り込みを返し、そのラッチを解除する。
    def poll(self, state: Mos6502CpuState) -> Optional[InterruptType]:
        if self._nmi_pending:
            self._nmi_pending = False
            return InterruptType.NMI
        if self._irq_pending:
            if state.flag_i:
                logger.debug("IRQ held pending: interrupt disable flag is set")
                return None
            self._irq_pending = False
            return InterruptType.IRQ
        return None


# @intent:responsibility NMI/IRQの受付シーケンス。PC上位→下位→P(B=0)の順に退避し、Iを立ててベクタへ飛ぶ。
def service_interrupt(state: Mos6502CpuState, bus: Bus, kind: InterruptType) -> int:
    push_word(state, bus, state.pc)
    push(state, bus, (state.p & ~B_FLAG & 0xFF) | U_FLAG)
    state.update_flags(i=True)
    state.pc = read_vector(bus, _VECTORS[kind])
    return INTERRUPT_CYCLES


# @intent:responsibility RESETシーケンス。スタックへの書き込みは行わず、SPだけを3つ減らす。
def reset_sequence(state: Mos6502CpuState, bus: Bus) -> int:
    state.sp = (state.sp - 3) & 0xFF
    state.update_flags(i=True)
    state.pc = read_vector(bus, RESET_VECTOR)
    logger.info("Reset vector -> $%04X", state.pc)
    return RESET_CYCLES

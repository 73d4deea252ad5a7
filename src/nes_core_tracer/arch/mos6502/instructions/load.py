# nes_core_tracer/arch/mos6502/instructions/load.py
"""
MOS 6502 転送系命令 (Load/Store/Transfer)。

ハンドラは (state, bus, op) を受け取り、stateをその場で更新します。
オペランドは op.effective_address から読み出します（Immediateも PC+1 を指すアドレス）。
"""
from typing import Optional

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.snapshot import Operation
from nes_core_tracer.arch.mos6502.state import Mos6502CpuState
from nes_core_tracer.arch.mos6502.instructions.base import read_operand


# --- LDA / LDX / LDY ---
# @intent:responsibility メモリからレジスタへロードし、N, Zフラグを更新。
def lda(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.a = read_operand(bus, op)
    state.set_nz(state.a)
    return None


def ldx(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.x = read_operand(bus, op)
    state.set_nz(state.x)
    return None


def ldy(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.y = read_operand(bus, op)
    state.set_nz(state.y)
    return None


# --- STA / STX / STY ---
# @intent:responsibility レジスタの内容をメモリへストア。フラグ変化なし。
def sta(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    bus.write(op.effective_address, state.a)
    return None


def stx(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    bus.write(op.effective_address, state.x)
    return None


def sty(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    bus.write(op.effective_address, state.y)
    return None


# --- Register Transfers (TAX, TAY, TXA, TYA, TSX, TXS) ---

def tax(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.x = state.a
    state.set_nz(state.x)
    return None


def tay(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.y = state.a
    state.set_nz(state.y)
    return None


def txa(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.a = state.x
    state.set_nz(state.a)
    return None


def tya(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.a = state.y
    state.set_nz(state.a)
    return None


# @intent:note TSXはSPからXへ転送。N, Z更新あり。
def tsx(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.x = state.sp
    state.set_nz(state.x)
    return None


# @intent:note TXSはXからSPへ転送。N, Zフラグは更新 *されない*。
def txs(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.sp = state.x
    return None

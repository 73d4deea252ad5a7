# nes_core_tracer/arch/mos6502/instructions/illegal.py
"""
MOS 6502 非公式（illegal/undocumented）命令。

いずれも同じ実効アドレスに対して公式命令2つを続けて行う合成命令として実装します。
フラグは2段目の演算結果で上書きされます（1段目のN, Zは残らない）。
ただしRLA/RRA/SLO/SREの C は1段目のシフト結果がそのまま2段目に引き継がれます。
"""
from typing import Optional

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.snapshot import Operation
from nes_core_tracer.arch.mos6502.state import Mos6502CpuState
from nes_core_tracer.arch.mos6502.instructions.base import read_operand
from nes_core_tracer.arch.mos6502.instructions.alu import (
    add_with_carry, subtract_with_carry, compare,
    shift_left, shift_right, rotate_left, rotate_right,
    increment, decrement, read_modify_write,
)


# @intent:responsibility LAX = LDA + LDX
def lax(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    val = read_operand(bus, op)
    state.a = val
    state.x = val
    state.set_nz(val)
    return None


# @intent:responsibility SAX = A & X をストア。フラグ変化なし。
def sax(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    bus.write(op.effective_address, state.a & state.x)
    return None


# @intent:responsibility SLO = ASL(メモリ) + ORA
def slo(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    shifted = read_modify_write(state, bus, op, shift_left)
    state.a |= shifted
    state.set_nz(state.a)
    return None


# @intent:responsibility RLA = ROL(メモリ) + AND
def rla(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    rotated = read_modify_write(state, bus, op, rotate_left)
    state.a &= rotated
    state.set_nz(state.a)
    return None


# @intent:responsibility SRE = LSR(メモリ) + EOR
def sre(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    shifted = read_modify_write(state, bus, op, shift_right)
    state.a ^= shifted
    state.set_nz(state.a)
    return None


# @intent:responsibility RRA = ROR(メモリ) + ADC。RORで押し出されたビットがADCのキャリー入力になる。
def rra(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    rotated = read_modify_write(state, bus, op, rotate_right)
    add_with_carry(state, rotated)
    return None


# @intent:responsibility DCP = DEC(メモリ) + CMP
def dcp(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    decremented = read_modify_write(state, bus, op, decrement)
    compare(state, state.a, decremented)
    return None


# @intent:responsibility ISB (ISC) = INC(メモリ) + SBC
def isb(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    incremented = read_modify_write(state, bus, op, increment)
    subtract_with_carry(state, incremented)
    return None

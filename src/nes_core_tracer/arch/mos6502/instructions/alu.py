# nes_core_tracer/arch/mos6502/instructions/alu.py
"""
MOS 6502 算術論理演算命令 (ALU)。

NESの2A03はデシマルモードの回路を持たないため、ADC/SBCは常に2進演算です。
Dフラグは SED/CLD で保持・変更されますが、演算結果には影響しません。
"""
from typing import Optional

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.snapshot import Operation
from nes_core_tracer.arch.mos6502.state import Mos6502CpuState
from nes_core_tracer.arch.mos6502.instructions.base import read_operand


# --- Core operations ---
# 非公式命令 (illegal.py) からも再利用されるため、値を受け取る形で切り出している。

# @intent:responsibility A + value + C を計算し、A と N, Z, C, V を更新する。
def add_with_carry(state: Mos6502CpuState, value: int) -> None:
    a = state.a
    total = a + value + (1 if state.flag_c else 0)
    result = total & 0xFF
    state.update_flags(
        c=total > 0xFF,
        v=((result ^ a) & (result ^ value) & 0x80) != 0,
    )
    state.a = result
    state.set_nz(result)


# @intent:responsibility SBC は A + ~value + C として計算する（借りは反転したキャリー）。
def subtract_with_carry(state: Mos6502CpuState, value: int) -> None:
    add_with_carry(state, value ^ 0xFF)


# @intent:responsibility 比較（結果は保存しない）。C = reg >= value, Z = 等値, N = 差のbit7。
def compare(state: Mos6502CpuState, register: int, value: int) -> None:
    diff = (register - value) & 0xFF
    state.update_flags(c=register >= value)
    state.set_nz(diff)


def shift_left(state: Mos6502CpuState, value: int) -> int:
    state.update_flags(c=bool(value & 0x80))
    result = (value << 1) & 0xFF
    state.set_nz(result)
    return result


def shift_right(state: Mos6502CpuState, value: int) -> int:
    state.update_flags(c=bool(value & 0x01))
    result = value >> 1
    state.set_nz(result)
    return result


# @intent:note 直前のキャリーを空いたビットに入れる。
def rotate_left(state: Mos6502CpuState, value: int) -> int:
    carry_in = 1 if state.flag_c else 0
    state.update_flags(c=bool(value & 0x80))
    result = ((value << 1) | carry_in) & 0xFF
    state.set_nz(result)
    return result


def rotate_right(state: Mos6502CpuState, value: int) -> int:
    carry_in = 0x80 if state.flag_c else 0
    state.update_flags(c=bool(value & 0x01))
    result = (value >> 1) | carry_in
    state.set_nz(result)
    return result


# @intent:responsibility 読み出し→変換→書き戻しを行い、変換後の値を返す。
# @intent:note Accumulatorモード(effective_address is None)ではAを対象にする。
def read_modify_write(state: Mos6502CpuState, bus: Bus, op: Operation, func) -> int:
    if op.effective_address is None:
        state.a = func(state, state.a)
        return state.a
    result = func(state, bus.read(op.effective_address))
    bus.write(op.effective_address, result)
    return result


def increment(state: Mos6502CpuState, value: int) -> int:
    result = (value + 1) & 0xFF
    state.set_nz(result)
    return result


def decrement(state: Mos6502CpuState, value: int) -> int:
    result = (value - 1) & 0xFF
    state.set_nz(result)
    return result


# --- Logical Operations (AND, ORA, EOR, BIT) ---

def and_(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.a &= read_operand(bus, op)
    state.set_nz(state.a)
    return None


def ora(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.a |= read_operand(bus, op)
    state.set_nz(state.a)
    return None


def eor(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.a ^= read_operand(bus, op)
    state.set_nz(state.a)
    return None


# @intent:note BIT命令はオペランドのビット7をN、ビット6をVにコピーし、A & M の結果でZフラグを設定する。
#              Vはビット6単独で判定する（ビット5を含むマスクは使わない）。
def bit(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    val = read_operand(bus, op)
    state.update_flags(
        z=(state.a & val) == 0,
        v=(val & 0x40) != 0,
        n=(val & 0x80) != 0,
    )
    return None


# --- Arithmetic Operations (ADC, SBC) ---

def adc(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    add_with_carry(state, read_operand(bus, op))
    return None


def sbc(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    subtract_with_carry(state, read_operand(bus, op))
    return None


# --- Compare (CMP, CPX, CPY) ---

def cmp(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    compare(state, state.a, read_operand(bus, op))
    return None


def cpx(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    compare(state, state.x, read_operand(bus, op))
    return None


def cpy(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    compare(state, state.y, read_operand(bus, op))
    return None


# --- Shift / Rotate (ASL, LSR, ROL, ROR) ---

def asl(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    read_modify_write(state, bus, op, shift_left)
    return None


def lsr(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    read_modify_write(state, bus, op, shift_right)
    return None


def rol(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    read_modify_write(state, bus, op, rotate_left)
    return None


def ror(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    read_modify_write(state, bus, op, rotate_right)
    return None


# --- Increment / Decrement ---

def inc(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    read_modify_write(state, bus, op, increment)
    return None


def dec(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    read_modify_write(state, bus, op, decrement)
    return None


def inx(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.x = increment(state, state.x)
    return None


def dex(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.x = decrement(state, state.x)
    return None


def iny(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.y = increment(state, state.y)
    return None


def dey(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.y = decrement(state, state.y)
    return None

# nes_core_tracer/arch/mos6502/instructions/control.py
"""
MOS 6502 制御系命令 (Branch, Jump, Stack, Flags, BRK/RTI, NOP)。
"""
from typing import Optional

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.snapshot import Operation
from nes_core_tracer.arch.mos6502.state import Mos6502CpuState, B_FLAG, U_FLAG, IRQ_VECTOR
from nes_core_tracer.arch.mos6502.instructions.base import (
    push, pull, push_word, pull_word, read_vector,
)


# --- Branch Instructions ---

# @intent:note 分岐命令の実装について
# AbstractCpu.step() のフロー: Fetch -> Decode -> Update PC (PC += 2) -> Execute。
# 不成立時は何もしなくて良い（PC+=2 済み）。成立時は PC = 分岐先 とし、
# 1サイクル、さらにページを跨げばもう1サイクルを追加サイクルとして返す。
def _branch(state: Mos6502CpuState, op: Operation, condition: bool) -> Optional[int]:
    if not condition:
        return None
    state.pc = op.effective_address
    return 2 if op.page_crossed else 1


def bcc(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, not state.flag_c)

def bcs(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, state.flag_c)

def beq(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, state.flag_z)

def bne(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, not state.flag_z)

def bmi(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, state.flag_n)

def bpl(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, not state.flag_n)

def bvc(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, not state.flag_v)

def bvs(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return _branch(state, op, state.flag_v)


# --- Jump Instructions ---

def jmp(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.pc = op.effective_address
    return None


# @intent:note 実行時点の state.pc は JSR の次の命令を指している。
#              スタックに積むのは「JSR命令の最後のバイトのアドレス」= PC - 1。
def jsr(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    push_word(state, bus, (state.pc - 1) & 0xFFFF)
    state.pc = op.effective_address
    return None


# @intent:note 取り出したアドレスはJSRの最終バイトなので +1 して次の命令へ戻る。
def rts(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.pc = (pull_word(state, bus) + 1) & 0xFFFF
    return None


# --- Stack Operations (PHA, PHP, PLA, PLP) ---

def pha(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    push(state, bus, state.a)
    return None


# PHP pushes status with Break(B) and Unused(U) set to 1.
def php(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    push(state, bus, state.p | B_FLAG | U_FLAG)
    return None


def pla(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.a = pull(state, bus)
    state.set_nz(state.a)
    return None


# @intent:responsibility スタックから取り出したPで現在のPを置き換える（PLP/RTI共通）。
# @intent:note Bはハードウェア上のラッチではないため、取り出した値のBは捨てて現在のBを維持する。
def restore_status(state: Mos6502CpuState, pulled: int) -> None:
    state.p = (pulled & ~B_FLAG & 0xFF) | (state.p & B_FLAG) | U_FLAG


def plp(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    restore_status(state, pull(state, bus))
    return None


# --- Flag Operations (CLC, SEC, etc) ---

def clc(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.update_flags(c=False)
    return None

def sec(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.update_flags(c=True)
    return None

def cli(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.update_flags(i=False)
    return None

def sei(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.update_flags(i=True)
    return None

def clv(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.update_flags(v=False)
    return None

def cld(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.update_flags(d=False)
    return None

def sed(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    state.update_flags(d=True)
    return None


# --- System / Other ---

# @intent:note 非公式NOPも同じハンドラを使う。アドレス解決はデコード時に済んでいるため、
#              AbsoluteX版のページ交差ペナルティはオペコード表の設定で加算される。
def nop(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    return None


# @intent:note BRKは2バイト命令として扱う（パディングバイトを読み飛ばす）。
#              デコード後の state.pc は既に BRK + 2 を指しているので、そのまま積む。
def brk(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    push_word(state, bus, state.pc)
    push(state, bus, state.p | B_FLAG | U_FLAG)
    state.update_flags(i=True)
    state.pc = read_vector(bus, IRQ_VECTOR)
    return None


# @intent:note RTSと異なり、取り出したPCに +1 はしない。
def rti(state: Mos6502CpuState, bus: Bus, op: Operation) -> Optional[int]:
    restore_status(state, pull(state, bus))
    state.pc = pull_word(state, bus)
    return None

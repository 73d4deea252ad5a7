# nes_core_tracer/arch/mos6502/instructions/base.py
"""
MOS 6502 アドレッシングモード解決ロジックと、命令ハンドラ共通のヘルパー。

各解決関数は (pc, bus, state) を受け取り、実効アドレスとページ境界交差の有無を返します。
レジスタは一切変更せず、バスへの書き込みも行いません（間接モードでのポインタ読み出しのみ）。
"""
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.snapshot import Operation
from nes_core_tracer.arch.mos6502.state import Mos6502CpuState, STACK_BASE


# @intent:responsibility 13種類のアドレッシングモード。
class AddressingMode(Enum):
    IMPLIED = "Implied"
    ACCUMULATOR = "Accumulator"
    IMMEDIATE = "Immediate"
    ZERO_PAGE = "ZeroPage"
    ZERO_PAGE_X = "ZeroPageX"
    ZERO_PAGE_Y = "ZeroPageY"
    RELATIVE = "Relative"
    ABSOLUTE = "Absolute"
    ABSOLUTE_X = "AbsoluteX"
    ABSOLUTE_Y = "AbsoluteY"
    INDIRECT = "Indirect"
    INDIRECT_X = "IndirectX"
    INDIRECT_Y = "IndirectY"


# @intent:constant オペコードを含む命令のバイト長。
MODE_SIZES: Dict[AddressingMode, int] = {
    AddressingMode.IMPLIED: 1,
    AddressingMode.ACCUMULATOR: 1,
    AddressingMode.IMMEDIATE: 2,
    AddressingMode.ZERO_PAGE: 2,
    AddressingMode.ZERO_PAGE_X: 2,
    AddressingMode.ZERO_PAGE_Y: 2,
    AddressingMode.RELATIVE: 2,
    AddressingMode.ABSOLUTE: 3,
    AddressingMode.ABSOLUTE_X: 3,
    AddressingMode.ABSOLUTE_Y: 3,
    AddressingMode.INDIRECT: 3,
    AddressingMode.INDIRECT_X: 2,
    AddressingMode.INDIRECT_Y: 2,
}


# @intent:responsibility アドレッシングモードの解決結果。
# address: 解決された実効アドレス (Implied/Accumulatorの場合はNone、Immediateの場合はPC+1)
# page_crossed: インデックス加算・分岐でページ境界を跨いだか
# operand_bytes: オペランドとしてフェッチされたバイト列
class AddressingResult(NamedTuple):
    address: Optional[int]
    page_crossed: bool
    operand_bytes: List[int]


# @intent:responsibility ページ境界交差判定。
def is_page_crossed(addr1: int, addr2: int) -> bool:
    return (addr1 & 0xFF00) != (addr2 & 0xFF00)


def _signed8(value: int) -> int:
    return value - 0x100 if value >= 0x80 else value


# @intent:responsibility オペランドバイトからアセンブリ表記を組み立てる。
# @intent:note 逆アセンブラ専用。Relativeは分岐先の絶対アドレスで表示する。
def format_operand(mode: AddressingMode, operand_bytes: List[int], pc: int) -> str:
    if mode is AddressingMode.ACCUMULATOR:
        return "A"
    if mode is AddressingMode.IMPLIED or not operand_bytes:
        return ""
    lo = operand_bytes[0]
    word = lo | (operand_bytes[1] << 8) if len(operand_bytes) > 1 else lo
    if mode is AddressingMode.IMMEDIATE:
        return f"#${lo:02X}"
    if mode is AddressingMode.ZERO_PAGE:
        return f"${lo:02X}"
    if mode is AddressingMode.ZERO_PAGE_X:
        return f"${lo:02X},X"
    if mode is AddressingMode.ZERO_PAGE_Y:
        return f"${lo:02X},Y"
    if mode is AddressingMode.RELATIVE:
        return f"${(pc + 2 + _signed8(lo)) & 0xFFFF:04X}"
    if mode is AddressingMode.ABSOLUTE:
        return f"${word:04X}"
    if mode is AddressingMode.ABSOLUTE_X:
        return f"${word:04X},X"
    if mode is AddressingMode.ABSOLUTE_Y:
        return f"${word:04X},Y"
    if mode is AddressingMode.INDIRECT:
        return f"(${word:04X})"
    if mode is AddressingMode.INDIRECT_X:
        return f"(${lo:02X},X)"
    return f"(${lo:02X}),Y"


def _read_word_at_operand(pc: int, bus: Bus) -> List[int]:
    return [bus.read((pc + 1) & 0xFFFF), bus.read((pc + 2) & 0xFFFF)]


# --- Addressing Modes ---

# @intent:responsibility Implied Mode
def addr_implied(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    return AddressingResult(None, False, [])


# @intent:responsibility Accumulator Mode (ASL A など)
def addr_accumulator(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    return AddressingResult(None, False, [])


# @intent:responsibility Immediate Mode (#$xx)
# @intent:note 実効アドレスはオペランドバイト自身の位置 (PC+1)。
def addr_immediate(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    address = (pc + 1) & 0xFFFF
    val = bus.read(address)
    return AddressingResult(address, False, [val])


# @intent:responsibility Zero Page Mode ($xx)
def addr_zeropage(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    addr = bus.read((pc + 1) & 0xFFFF)
    return AddressingResult(addr, False, [addr])


# @intent:responsibility Zero Page, X Mode ($xx,X)
# @intent:note ラップアラウンドあり (0xFF + 1 -> 0x00)。ページ1には決して出ない。
def addr_zeropage_x(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    base = bus.read((pc + 1) & 0xFFFF)
    addr = (base + state.x) & 0xFF
    return AddressingResult(addr, False, [base])


# @intent:responsibility Zero Page, Y Mode ($xx,Y) - LDX, STX, LAX, SAX
def addr_zeropage_y(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    base = bus.read((pc + 1) & 0xFFFF)
    addr = (base + state.y) & 0xFF
    return AddressingResult(addr, False, [base])


# @intent:responsibility Absolute Mode ($xxxx)
def addr_absolute(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    lo, hi = _read_word_at_operand(pc, bus)
    addr = (hi << 8) | lo
    return AddressingResult(addr, False, [lo, hi])


def _absolute_indexed(pc: int, bus: Bus, index: int) -> AddressingResult:
    lo, hi = _read_word_at_operand(pc, bus)
    base_addr = (hi << 8) | lo
    addr = (base_addr + index) & 0xFFFF
    # サイクル加算の要否は命令側（オペコード表）で決める。ここでは交差の有無だけを返す。
    return AddressingResult(addr, is_page_crossed(base_addr, addr), [lo, hi])


# @intent:responsibility Absolute, X Mode ($xxxx,X)
def addr_absolute_x(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    return _absolute_indexed(pc, bus, state.x)


# @intent:responsibility Absolute, Y Mode ($xxxx,Y)
def addr_absolute_y(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    return _absolute_indexed(pc, bus, state.y)


# @intent:responsibility Indirect Mode ($xxxx) - JMP only
# @intent:note ポインタ下位が$FFの場合、上位バイトは同じページの先頭($xx00)から読まれる（実機のバグを再現）。
def addr_indirect(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    ptr_lo, ptr_hi = _read_word_at_operand(pc, bus)
    ptr = (ptr_hi << 8) | ptr_lo

    eff_lo = bus.read(ptr)
    if (ptr & 0xFF) == 0xFF:
        eff_hi = bus.read(ptr & 0xFF00)
    else:
        eff_hi = bus.read(ptr + 1)

    addr = (eff_hi << 8) | eff_lo
    return AddressingResult(addr, False, [ptr_lo, ptr_hi])


# @intent:responsibility Indexed Indirect Mode ($xx,X) - "Pre-indexed"
# @intent:note ゼロページ内でXを加算(ラップアラウンド)し、そこにあるポインタを読む。
def addr_indexed_indirect(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    base = bus.read((pc + 1) & 0xFFFF)
    ptr_addr = (base + state.x) & 0xFF

    lo = bus.read(ptr_addr)
    hi = bus.read((ptr_addr + 1) & 0xFF) # Zero page wrap for pointer high byte

    addr = (hi << 8) | lo
    return AddressingResult(addr, False, [base])


# @intent:responsibility Indirect Indexed Mode ($xx),Y - "Post-indexed"
# @intent:note ゼロページのポインタを読み、ベースアドレスを得てからYを加算。
def addr_indirect_indexed(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    ptr_addr = bus.read((pc + 1) & 0xFFFF)

    lo = bus.read(ptr_addr)
    hi = bus.read((ptr_addr + 1) & 0xFF) # Zero page wrap
    base_addr = (hi << 8) | lo

    addr = (base_addr + state.y) & 0xFFFF
    return AddressingResult(addr, is_page_crossed(base_addr, addr), [ptr_addr])


# @intent:responsibility Relative Mode (Branch)
# @intent:note 戻り値のアドレスは分岐先の絶対アドレス。ページ交差は命令直後のアドレス(PC+2)と比較する。
def addr_relative(pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    offset = bus.read((pc + 1) & 0xFFFF)
    next_pc = (pc + 2) & 0xFFFF
    dest_addr = (next_pc + _signed8(offset)) & 0xFFFF
    return AddressingResult(dest_addr, is_page_crossed(next_pc, dest_addr), [offset])


AddrFunc = Callable[[int, Bus, Mos6502CpuState], AddressingResult]

# @intent:constant アドレッシングモードから解決関数への対応表。
RESOLVERS: Dict[AddressingMode, AddrFunc] = {
    AddressingMode.IMPLIED: addr_implied,
    AddressingMode.ACCUMULATOR: addr_accumulator,
    AddressingMode.IMMEDIATE: addr_immediate,
    AddressingMode.ZERO_PAGE: addr_zeropage,
    AddressingMode.ZERO_PAGE_X: addr_zeropage_x,
    AddressingMode.ZERO_PAGE_Y: addr_zeropage_y,
    AddressingMode.RELATIVE: addr_relative,
    AddressingMode.ABSOLUTE: addr_absolute,
    AddressingMode.ABSOLUTE_X: addr_absolute_x,
    AddressingMode.ABSOLUTE_Y: addr_absolute_y,
    AddressingMode.INDIRECT: addr_indirect,
    AddressingMode.INDIRECT_X: addr_indexed_indirect,
    AddressingMode.INDIRECT_Y: addr_indirect_indexed,
}


# @intent:responsibility 指定モードで実効アドレスを解決する。
def resolve(mode: AddressingMode, pc: int, bus: Bus, state: Mos6502CpuState) -> AddressingResult:
    return RESOLVERS[mode](pc, bus, state)


# --- Handler helpers ---

# @intent:responsibility 実効アドレスからオペランド値を読む。
def read_operand(bus: Bus, op: Operation) -> int:
    return bus.read(op.effective_address)


# @intent:responsibility スタックへ1バイト積む。SPは8bitでラップし、オーバーフロー検出はしない。
def push(state: Mos6502CpuState, bus: Bus, value: int) -> None:
    bus.write(STACK_BASE | state.sp, value & 0xFF)
    state.sp = (state.sp - 1) & 0xFF


def pull(state: Mos6502CpuState, bus: Bus) -> int:
    state.sp = (state.sp + 1) & 0xFF
    return bus.read(STACK_BASE | state.sp)


# @intent:responsibility 16bit値を上位→下位の順で積む。
def push_word(state: Mos6502CpuState, bus: Bus, value: int) -> None:
    push(state, bus, (value >> 8) & 0xFF)
    push(state, bus, value & 0xFF)


def pull_word(state: Mos6502CpuState, bus: Bus) -> int:
    lo = pull(state, bus)
    hi = pull(state, bus)
    return (hi << 8) | lo


# @intent:responsibility ベクタ表からリトルエンディアンのアドレスを読む。
def read_vector(bus: Bus, address: int) -> int:
    return bus.read(address) | (bus.read(address + 1) << 8)

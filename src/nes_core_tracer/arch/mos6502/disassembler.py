# nes_core_tracer/arch/mos6502/disassembler.py
"""
MOS 6502 逆アセンブラ。

バスへのアクセスは peek のみで行い、アクセスログやデバイスの状態には影響しません。
"""
from typing import List

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.common.types import DisassemblyLine, DisassemblyListing
from nes_core_tracer.arch.mos6502.instructions.maps import OPCODE_TABLE
from nes_core_tracer.arch.mos6502.instructions.base import AddressingMode, format_operand

_NO_OPERAND = (AddressingMode.IMPLIED, AddressingMode.ACCUMULATOR)


def _peek_bytes(bus: Bus, addr: int, count: int) -> List[int]:
    return [bus.peek((addr + i) & 0xFFFF) for i in range(count)]


# @intent:responsibility 1命令分を逆アセンブルし、(アドレス, HEX, テキスト) を返す。
# @intent:note トラップ対象のオペコードは実行できないため `.DB $xx` として1バイトで表示する。
def disassemble_one(bus: Bus, addr: int) -> DisassemblyLine:
    addr &= 0xFFFF
    opcode = bus.peek(addr)
    entry = OPCODE_TABLE[opcode]
    if entry.is_trap:
        return addr, f"{opcode:02X}", f".DB ${opcode:02X}"

    raw = _peek_bytes(bus, addr, entry.size)
    # BRKのパディングバイトはオペランドとして表示しない
    operand_bytes = [] if entry.mode in _NO_OPERAND else raw[1:]
    operand_str = format_operand(entry.mode, operand_bytes, addr)
    hex_str = " ".join(f"{b:02X}" for b in raw)
    text = f"{entry.display_name} {operand_str}".strip()
    return addr, hex_str, text


# @intent:responsibility 指定されたメモリ範囲を逆アセンブルする。
def disassemble(bus: Bus, start_addr: int, length: int) -> DisassemblyListing:
    """
    メモリを解析し、(アドレス, HEX, ニーモニック) のリストを返す。
    """
    results = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr:
        line = disassemble_one(bus, current_addr)
        results.append(line)
        current_addr += len(line[1].split())

    return results

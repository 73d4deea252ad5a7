# nes_core_tracer/arch/mos6502/instructions/maps.py
"""
MOS 6502 命令マップとデコード/実行ロジック。

256個すべてのオペコードについて (ニーモニック, アドレッシングモード, ハンドラ, 基本サイクル,
ページ交差ペナルティの有無, 非公式命令か, バイト長) を静的に定義します。
ハンドラが None のエントリは「トラップ」扱いで、デコード時に UnsupportedOpcodeError を送出します。
この方針は表に固定されており、実行時に切り替えることはできません。
"""
from dataclasses import replace
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.errors import UnsupportedOpcodeError
from nes_core_tracer.core.snapshot import Operation
from nes_core_tracer.arch.mos6502.state import Mos6502CpuState
from nes_core_tracer.arch.mos6502.instructions import base, load, alu, control, illegal
from nes_core_tracer.arch.mos6502.instructions.base import AddressingMode, MODE_SIZES

# Execution Function Type: 追加サイクル（分岐成立時のみ）を返す。
ExecFunc = Callable[[Mos6502CpuState, Bus, Operation], Optional[int]]


# @intent:data_structure オペコード1つ分の静的な記述子。
class OpcodeEntry(NamedTuple):
    mnemonic: str
    mode: AddressingMode
    handler: Optional[ExecFunc]
    cycles: int
    page_penalty: bool
    illegal: bool
    size: int

    @property
    def is_trap(self) -> bool:
        return self.handler is None

    # @intent:responsibility 逆アセンブル・トレース用の表示名（非公式命令は '*' 付き）。
    @property
    def display_name(self) -> str:
        return f"*{self.mnemonic}" if self.illegal else self.mnemonic


IMP = AddressingMode.IMPLIED
ACC = AddressingMode.ACCUMULATOR
IMM = AddressingMode.IMMEDIATE
ZP = AddressingMode.ZERO_PAGE
ZPX = AddressingMode.ZERO_PAGE_X
ZPY = AddressingMode.ZERO_PAGE_Y
REL = AddressingMode.RELATIVE
ABS = AddressingMode.ABSOLUTE
ABX = AddressingMode.ABSOLUTE_X
ABY = AddressingMode.ABSOLUTE_Y
IND = AddressingMode.INDIRECT
IZX = AddressingMode.INDIRECT_X
IZY = AddressingMode.INDIRECT_Y


def _op(mnemonic: str, mode: AddressingMode, handler: Optional[ExecFunc], cycles: int,
        page_penalty: bool = False, illegal: bool = False, size: Optional[int] = None) -> OpcodeEntry:
    return OpcodeEntry(mnemonic, mode, handler, cycles, page_penalty, illegal,
                       MODE_SIZES[mode] if size is None else size)


def _x(mnemonic: str, mode: AddressingMode, handler: Optional[ExecFunc], cycles: int,
       page_penalty: bool = False) -> OpcodeEntry:
    return _op(mnemonic, mode, handler, cycles, page_penalty, illegal=True)


OPCODE_MAP: Dict[int, OpcodeEntry] = {
    # --- Load/Store/Transfer ---
    0xA9: _op("LDA", IMM, load.lda, 2),
    0xA5: _op("LDA", ZP, load.lda, 3),
    0xB5: _op("LDA", ZPX, load.lda, 4),
    0xAD: _op("LDA", ABS, load.lda, 4),
    0xBD: _op("LDA", ABX, load.lda, 4, True),
    0xB9: _op("LDA", ABY, load.lda, 4, True),
    0xA1: _op("LDA", IZX, load.lda, 6),
    0xB1: _op("LDA", IZY, load.lda, 5, True),

    0xA2: _op("LDX", IMM, load.ldx, 2),
    0xA6: _op("LDX", ZP, load.ldx, 3),
    0xB6: _op("LDX", ZPY, load.ldx, 4),
    0xAE: _op("LDX", ABS, load.ldx, 4),
    0xBE: _op("LDX", ABY, load.ldx, 4, True),

    0xA0: _op("LDY", IMM, load.ldy, 2),
    0xA4: _op("LDY", ZP, load.ldy, 3),
    0xB4: _op("LDY", ZPX, load.ldy, 4),
    0xAC: _op("LDY", ABS, load.ldy, 4),
    0xBC: _op("LDY", ABX, load.ldy, 4, True),

    # ストア命令はページ交差に関わらず固定サイクル（交差分は基本サイクルに含む）
    0x85: _op("STA", ZP, load.sta, 3),
    0x95: _op("STA", ZPX, load.sta, 4),
    0x8D: _op("STA", ABS, load.sta, 4),
    0x9D: _op("STA", ABX, load.sta, 5),
    0x99: _op("STA", ABY, load.sta, 5),
    0x81: _op("STA", IZX, load.sta, 6),
    0x91: _op("STA", IZY, load.sta, 6),

    0x86: _op("STX", ZP, load.stx, 3),
    0x96: _op("STX", ZPY, load.stx, 4),
    0x8E: _op("STX", ABS, load.stx, 4),

    0x84: _op("STY", ZP, load.sty, 3),
    0x94: _op("STY", ZPX, load.sty, 4),
    0x8C: _op("STY", ABS, load.sty, 4),

    0xAA: _op("TAX", IMP, load.tax, 2),
    0xA8: _op("TAY", IMP, load.tay, 2),
    0x8A: _op("TXA", IMP, load.txa, 2),
    0x98: _op("TYA", IMP, load.tya, 2),
    0xBA: _op("TSX", IMP, load.tsx, 2),
    0x9A: _op("TXS", IMP, load.txs, 2),

    # --- Arithmetic / Logical ---
    0x69: _op("ADC", IMM, alu.adc, 2),
    0x65: _op("ADC", ZP, alu.adc, 3),
    0x75: _op("ADC", ZPX, alu.adc, 4),
    0x6D: _op("ADC", ABS, alu.adc, 4),
    0x7D: _op("ADC", ABX, alu.adc, 4, True),
    0x79: _op("ADC", ABY, alu.adc, 4, True),
    0x61: _op("ADC", IZX, alu.adc, 6),
    0x71: _op("ADC", IZY, alu.adc, 5, True),

    0xE9: _op("SBC", IMM, alu.sbc, 2),
    0xE5: _op("SBC", ZP, alu.sbc, 3),
    0xF5: _op("SBC", ZPX, alu.sbc, 4),
    0xED: _op("SBC", ABS, alu.sbc, 4),
    0xFD: _op("SBC", ABX, alu.sbc, 4, True),
    0xF9: _op("SBC", ABY, alu.sbc, 4, True),
    0xE1: _op("SBC", IZX, alu.sbc, 6),
    0xF1: _op("SBC", IZY, alu.sbc, 5, True),

    0x29: _op("AND", IMM, alu.and_, 2),
    0x25: _op("AND", ZP, alu.and_, 3),
    0x35: _op("AND", ZPX, alu.and_, 4),
    0x2D: _op("AND", ABS, alu.and_, 4),
    0x3D: _op("AND", ABX, alu.and_, 4, True),
    0x39: _op("AND", ABY, alu.and_, 4, True),
    0x21: _op("AND", IZX, alu.and_, 6),
    0x31: _op("AND", IZY, alu.and_, 5, True),

    0x09: _op("ORA", IMM, alu.ora, 2),
    0x05: _op("ORA", ZP, alu.ora, 3),
    0x15: _op("ORA", ZPX, alu.ora, 4),
    0x0D: _op("ORA", ABS, alu.ora, 4),
    0x1D: _op("ORA", ABX, alu.ora, 4, True),
    0x19: _op("ORA", ABY, alu.ora, 4, True),
    0x01: _op("ORA", IZX, alu.ora, 6),
    0x11: _op("ORA", IZY, alu.ora, 5, True),

    0x49: _op("EOR", IMM, alu.eor, 2),
    0x45: _op("EOR", ZP, alu.eor, 3),
    0x55: _op("EOR", ZPX, alu.eor, 4),
    0x4D: _op("EOR", ABS, alu.eor, 4),
    0x5D: _op("EOR", ABX, alu.eor, 4, True),
    0x59: _op("EOR", ABY, alu.eor, 4, True),
    0x41: _op("EOR", IZX, alu.eor, 6),
    0x51: _op("EOR", IZY, alu.eor, 5, True),

    0x24: _op("BIT", ZP, alu.bit, 3),
    0x2C: _op("BIT", ABS, alu.bit, 4),

    0xC9: _op("CMP", IMM, alu.cmp, 2),
    0xC5: _op("CMP", ZP, alu.cmp, 3),
    0xD5: _op("CMP", ZPX, alu.cmp, 4),
    0xCD: _op("CMP", ABS, alu.cmp, 4),
    0xDD: _op("CMP", ABX, alu.cmp, 4, True),
    0xD9: _op("CMP", ABY, alu.cmp, 4, True),
    0xC1: _op("CMP", IZX, alu.cmp, 6),
    0xD1: _op("CMP", IZY, alu.cmp, 5, True),

    0xE0: _op("CPX", IMM, alu.cpx, 2),
    0xE4: _op("CPX", ZP, alu.cpx, 3),
    0xEC: _op("CPX", ABS, alu.cpx, 4),

    0xC0: _op("CPY", IMM, alu.cpy, 2),
    0xC4: _op("CPY", ZP, alu.cpy, 3),
    0xCC: _op("CPY", ABS, alu.cpy, 4),

    # --- Shift / Rotate / Increment (read-modify-write) ---
    0x0A: _op("ASL", ACC, alu.asl, 2),
    0x06: _op("ASL", ZP, alu.asl, 5),
    0x16: _op("ASL", ZPX, alu.asl, 6),
    0x0E: _op("ASL", ABS, alu.asl, 6),
    0x1E: _op("ASL", ABX, alu.asl, 7),

    0x4A: _op("LSR", ACC, alu.lsr, 2),
    0x46: _op("LSR", ZP, alu.lsr, 5),
    0x56: _op("LSR", ZPX, alu.lsr, 6),
    0x4E: _op("LSR", ABS, alu.lsr, 6),
    0x5E: _op("LSR", ABX, alu.lsr, 7),

    0x2A: _op("ROL", ACC, alu.rol, 2),
    0x26: _op("ROL", ZP, alu.rol, 5),
    0x36: _op("ROL", ZPX, alu.rol, 6),
    0x2E: _op("ROL", ABS, alu.rol, 6),
    0x3E: _op("ROL", ABX, alu.rol, 7),

    0x6A: _op("ROR", ACC, alu.ror, 2),
    0x66: _op("ROR", ZP, alu.ror, 5),
    0x76: _op("ROR", ZPX, alu.ror, 6),
    0x6E: _op("ROR", ABS, alu.ror, 6),
    0x7E: _op("ROR", ABX, alu.ror, 7),

    0xE6: _op("INC", ZP, alu.inc, 5),
    0xF6: _op("INC", ZPX, alu.inc, 6),
    0xEE: _op("INC", ABS, alu.inc, 6),
    0xFE: _op("INC", ABX, alu.inc, 7),

    0xC6: _op("DEC", ZP, alu.dec, 5),
    0xD6: _op("DEC", ZPX, alu.dec, 6),
    0xCE: _op("DEC", ABS, alu.dec, 6),
    0xDE: _op("DEC", ABX, alu.dec, 7),

    0xE8: _op("INX", IMP, alu.inx, 2),
    0xCA: _op("DEX", IMP, alu.dex, 2),
    0xC8: _op("INY", IMP, alu.iny, 2),
    0x88: _op("DEY", IMP, alu.dey, 2),

    # --- Control Flow ---
    0x90: _op("BCC", REL, control.bcc, 2),
    0xB0: _op("BCS", REL, control.bcs, 2),
    0xF0: _op("BEQ", REL, control.beq, 2),
    0xD0: _op("BNE", REL, control.bne, 2),
    0x30: _op("BMI", REL, control.bmi, 2),
    0x10: _op("BPL", REL, control.bpl, 2),
    0x50: _op("BVC", REL, control.bvc, 2),
    0x70: _op("BVS", REL, control.bvs, 2),

    0x4C: _op("JMP", ABS, control.jmp, 3),
    0x6C: _op("JMP", IND, control.jmp, 5),
    0x20: _op("JSR", ABS, control.jsr, 6),
    0x60: _op("RTS", IMP, control.rts, 6),

    # Stack
    0x48: _op("PHA", IMP, control.pha, 3),
    0x08: _op("PHP", IMP, control.php, 3),
    0x68: _op("PLA", IMP, control.pla, 4),
    0x28: _op("PLP", IMP, control.plp, 4),

    # Flags
    0x18: _op("CLC", IMP, control.clc, 2),
    0x38: _op("SEC", IMP, control.sec, 2),
    0x58: _op("CLI", IMP, control.cli, 2),
    0x78: _op("SEI", IMP, control.sei, 2),
    0xB8: _op("CLV", IMP, control.clv, 2),
    0xD8: _op("CLD", IMP, control.cld, 2),
    0xF8: _op("SED", IMP, control.sed, 2),

    # System
    0xEA: _op("NOP", IMP, control.nop, 2),
    0x00: _op("BRK", IMP, control.brk, 7, size=2),
    0x40: _op("RTI", IMP, control.rti, 6),

    # --- Undocumented: NOP family ---
    0x1A: _x("NOP", IMP, control.nop, 2),
    0x3A: _x("NOP", IMP, control.nop, 2),
    0x5A: _x("NOP", IMP, control.nop, 2),
    0x7A: _x("NOP", IMP, control.nop, 2),
    0xDA: _x("NOP", IMP, control.nop, 2),
    0xFA: _x("NOP", IMP, control.nop, 2),
    0x80: _x("NOP", IMM, control.nop, 2),
    0x82: _x("NOP", IMM, control.nop, 2),
    0x89: _x("NOP", IMM, control.nop, 2),
    0xC2: _x("NOP", IMM, control.nop, 2),
    0xE2: _x("NOP", IMM, control.nop, 2),
    0x04: _x("NOP", ZP, control.nop, 3),
    0x44: _x("NOP", ZP, control.nop, 3),
    0x64: _x("NOP", ZP, control.nop, 3),
    0x14: _x("NOP", ZPX, control.nop, 4),
    0x34: _x("NOP", ZPX, control.nop, 4),
    0x54: _x("NOP", ZPX, control.nop, 4),
    0x74: _x("NOP", ZPX, control.nop, 4),
    0xD4: _x("NOP", ZPX, control.nop, 4),
    0xF4: _x("NOP", ZPX, control.nop, 4),
    0x0C: _x("NOP", ABS, control.nop, 4),
    0x1C: _x("NOP", ABX, control.nop, 4, True),
    0x3C: _x("NOP", ABX, control.nop, 4, True),
    0x5C: _x("NOP", ABX, control.nop, 4, True),
    0x7C: _x("NOP", ABX, control.nop, 4, True),
    0xDC: _x("NOP", ABX, control.nop, 4, True),
    0xFC: _x("NOP", ABX, control.nop, 4, True),

    # --- Undocumented: load/store combos ---
    0xA7: _x("LAX", ZP, illegal.lax, 3),
    0xB7: _x("LAX", ZPY, illegal.lax, 4),
    0xAF: _x("LAX", ABS, illegal.lax, 4),
    0xBF: _x("LAX", ABY, illegal.lax, 4, True),
    0xA3: _x("LAX", IZX, illegal.lax, 6),
    0xB3: _x("LAX", IZY, illegal.lax, 5, True),

    0x87: _x("SAX", ZP, illegal.sax, 3),
    0x97: _x("SAX", ZPY, illegal.sax, 4),
    0x8F: _x("SAX", ABS, illegal.sax, 4),
    0x83: _x("SAX", IZX, illegal.sax, 6),

    0xEB: _x("SBC", IMM, alu.sbc, 2),

    # --- Undocumented: read-modify-write combos (ページ交差ペナルティなし) ---
    0x07: _x("SLO", ZP, illegal.slo, 5),
    0x17: _x("SLO", ZPX, illegal.slo, 6),
    0x0F: _x("SLO", ABS, illegal.slo, 6),
    0x1F: _x("SLO", ABX, illegal.slo, 7),
    0x1B: _x("SLO", ABY, illegal.slo, 7),
    0x03: _x("SLO", IZX, illegal.slo, 8),
    0x13: _x("SLO", IZY, illegal.slo, 8),

    0x27: _x("RLA", ZP, illegal.rla, 5),
    0x37: _x("RLA", ZPX, illegal.rla, 6),
    0x2F: _x("RLA", ABS, illegal.rla, 6),
    0x3F: _x("RLA", ABX, illegal.rla, 7),
    0x3B: _x("RLA", ABY, illegal.rla, 7),
    0x23: _x("RLA", IZX, illegal.rla, 8),
    0x33: _x("RLA", IZY, illegal.rla, 8),

    0x47: _x("SRE", ZP, illegal.sre, 5),
    0x57: _x("SRE", ZPX, illegal.sre, 6),
    0x4F: _x("SRE", ABS, illegal.sre, 6),
    0x5F: _x("SRE", ABX, illegal.sre, 7),
    0x5B: _x("SRE", ABY, illegal.sre, 7),
    0x43: _x("SRE", IZX, illegal.sre, 8),
    0x53: _x("SRE", IZY, illegal.sre, 8),

    0x67: _x("RRA", ZP, illegal.rra, 5),
    0x77: _x("RRA", ZPX, illegal.rra, 6),
    0x6F: _x("RRA", ABS, illegal.rra, 6),
    0x7F: _x("RRA", ABX, illegal.rra, 7),
    0x7B: _x("RRA", ABY, illegal.rra, 7),
    0x63: _x("RRA", IZX, illegal.rra, 8),
    0x73: _x("RRA", IZY, illegal.rra, 8),

    0xC7: _x("DCP", ZP, illegal.dcp, 5),
    0xD7: _x("DCP", ZPX, illegal.dcp, 6),
    0xCF: _x("DCP", ABS, illegal.dcp, 6),
    0xDF: _x("DCP", ABX, illegal.dcp, 7),
    0xDB: _x("DCP", ABY, illegal.dcp, 7),
    0xC3: _x("DCP", IZX, illegal.dcp, 8),
    0xD3: _x("DCP", IZY, illegal.dcp, 8),

    0xE7: _x("ISB", ZP, illegal.isb, 5),
    0xF7: _x("ISB", ZPX, illegal.isb, 6),
    0xEF: _x("ISB", ABS, illegal.isb, 6),
    0xFF: _x("ISB", ABX, illegal.isb, 7),
    0xFB: _x("ISB", ABY, illegal.isb, 7),
    0xE3: _x("ISB", IZX, illegal.isb, 8),
    0xF3: _x("ISB", IZY, illegal.isb, 8),

    # --- Trap: 挙動が不安定、またはCPUを停止させるオペコード ---
    0x0B: _x("ANC", IMM, None, 2),
    0x2B: _x("ANC", IMM, None, 2),
    0x4B: _x("ALR", IMM, None, 2),
    0x6B: _x("ARR", IMM, None, 2),
    0x8B: _x("XAA", IMM, None, 2),
    0xAB: _x("LXA", IMM, None, 2),
    0xCB: _x("AXS", IMM, None, 2),
    0x93: _x("SHA", IZY, None, 6),
    0x9F: _x("SHA", ABY, None, 5),
    0x9B: _x("TAS", ABY, None, 5),
    0x9C: _x("SHY", ABX, None, 5),
    0x9E: _x("SHX", ABY, None, 5),
    0xBB: _x("LAS", ABY, None, 4),
}

# KIL (JAM): CPUを停止させる12個のオペコード
for _opcode in (0x02, 0x12, 0x22, 0x32, 0x42, 0x52, 0x62, 0x72, 0x92, 0xB2, 0xD2, 0xF2):
    OPCODE_MAP[_opcode] = _x("KIL", IMP, None, 2)

# @intent:constant オペコード値で直接引ける256要素の表。
OPCODE_TABLE: Tuple[OpcodeEntry, ...] = tuple(OPCODE_MAP[opcode] for opcode in range(0x100))


# @intent:responsibility オペコードとオペランドを解析し、実効アドレス解決済みのOperationを返す。
# @intent:post-condition トラップ対象のオペコードでは UnsupportedOpcodeError を送出する。
def decode_opcode(opcode: int, bus: Bus, pc: int, state: Mos6502CpuState) -> Operation:
    entry = OPCODE_TABLE[opcode]
    if entry.is_trap:
        raise UnsupportedOpcodeError(opcode, pc, state.to_registers().as_dict())

    addr_res = base.resolve(entry.mode, pc, bus, state)

    cycles = entry.cycles
    if entry.page_penalty and addr_res.page_crossed:
        cycles += 1

    return Operation(
        opcode=opcode,
        mnemonic=entry.mnemonic,
        operand_bytes=addr_res.operand_bytes,
        cycle_count=cycles,
        length=entry.size,
        addressing_mode=entry.mode.value,
        effective_address=addr_res.address,
        page_crossed=addr_res.page_crossed,
    )


# @intent:responsibility デコード済みの命令を実行し、分岐ペナルティを反映したOperationを返す。
def execute_instruction(operation: Operation, state: Mos6502CpuState, bus: Bus) -> Operation:
    extra_cycles = OPCODE_TABLE[operation.opcode].handler(state, bus, operation) or 0
    if extra_cycles:
        return replace(operation, cycle_count=operation.cycle_count + extra_cycles)
    return operation

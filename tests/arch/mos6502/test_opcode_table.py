# tests/arch/mos6502/test_opcode_table.py
"""
nes_core_tracer.arch.mos6502.instructions.mapsのオペコード表の整合性テスト。
"""
from nes_core_tracer.arch.mos6502.instructions import OPCODE_TABLE
from nes_core_tracer.arch.mos6502.instructions.base import AddressingMode, MODE_SIZES

# @intent:test_suite 256エントリのオペコード表が公式/非公式/トラップを正しく分類していることを検証します。

TRAP_OPCODES = {
    0x02, 0x12, 0x22, 0x32, 0x42, 0x52, 0x62, 0x72, 0x92, 0xB2, 0xD2, 0xF2,
    0x0B, 0x2B, 0x4B, 0x6B, 0x8B, 0xAB, 0xCB,
    0x93, 0x9B, 0x9C, 0x9E, 0x9F, 0xBB,
}


def test_table_covers_every_opcode():
    assert len(OPCODE_TABLE) == 256


def test_trap_set():
    traps = {opcode for opcode, entry in enumerate(OPCODE_TABLE) if entry.is_trap}
    assert traps == TRAP_OPCODES


def test_legal_and_illegal_counts():
    legal = [e for e in OPCODE_TABLE if not e.illegal]
    handled_illegal = [e for e in OPCODE_TABLE if e.illegal and not e.is_trap]
    assert len(legal) == 151
    assert len(handled_illegal) == 80
    assert all(not e.is_trap for e in legal)


def test_sizes_follow_addressing_mode():
    for opcode, entry in enumerate(OPCODE_TABLE):
        if opcode == 0x00:
            continue
        assert entry.size == MODE_SIZES[entry.mode], f"${opcode:02X}"


def test_brk_reads_padding_byte():
    brk = OPCODE_TABLE[0x00]
    assert brk.mnemonic == "BRK"
    assert brk.size == 2
    assert brk.cycles == 7


def test_display_name_marks_illegal():
    assert OPCODE_TABLE[0xA9].display_name == "LDA"
    assert OPCODE_TABLE[0xA7].display_name == "*LAX"
    assert OPCODE_TABLE[0xEB].display_name == "*SBC"


def test_page_penalty_only_on_indexed_or_relative_reads():
    penalised_modes = {
        AddressingMode.ABSOLUTE_X, AddressingMode.ABSOLUTE_Y,
        AddressingMode.INDIRECT_Y, AddressingMode.RELATIVE,
    }
    for entry in OPCODE_TABLE:
        if entry.page_penalty:
            assert entry.mode in penalised_modes
    # Stores never pay the penalty
    for opcode in (0x9D, 0x99, 0x91):
        assert not OPCODE_TABLE[opcode].page_penalty
    for opcode in (0xBD, 0xB9, 0xB1, 0x1C):
        assert OPCODE_TABLE[opcode].page_penalty


def test_all_branches_use_relative_mode():
    for opcode in (0x10, 0x30, 0x50, 0x70, 0x90, 0xB0, 0xD0, 0xF0):
        entry = OPCODE_TABLE[opcode]
        assert entry.mode is AddressingMode.RELATIVE
        assert entry.cycles == 2

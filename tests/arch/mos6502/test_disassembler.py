# tests/arch/mos6502/test_disassembler.py
import pytest
from nes_core_tracer.transport.bus import Bus, RAM
from nes_core_tracer.arch.mos6502.cpu import Mos6502Cpu
from nes_core_tracer.arch.mos6502.disassembler import disassemble, disassemble_one

# @intent:test_suite 逆アセンブラの出力形式と、バスへ副作用を与えないことを検証します。

@pytest.fixture
def bus():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return bus


def test_disassemble_range(bus):
    bus.load(0x8000, bytes([0xA9, 0x01, 0x8D, 0x00, 0x02, 0x4C, 0x00, 0x80, 0x02]))
    assert disassemble(bus, 0x8000, 9) == [
        (0x8000, "A9 01", "LDA #$01"),
        (0x8002, "8D 00 02", "STA $0200"),
        (0x8005, "4C 00 80", "JMP $8000"),
        (0x8008, "02", ".DB $02"),
    ]


@pytest.mark.parametrize("program, text", [
    ([0x0A], "ASL A"),
    ([0xEA], "NOP"),
    ([0xA7, 0x10], "*LAX $10"),
    ([0xD0, 0xFE], "BNE $8000"),
    ([0xB6, 0x10], "LDX $10,Y"),
    ([0x6C, 0xFF, 0x30], "JMP ($30FF)"),
    ([0x81, 0x20], "STA ($20,X)"),
    ([0xB1, 0x20], "LDA ($20),Y"),
    ([0x1C, 0x00, 0x30], "*NOP $3000,X"),
])
def test_disassemble_one_formats(bus, program, text):
    bus.load(0x8000, bytes(program))
    addr, hex_str, result = disassemble_one(bus, 0x8000)
    assert addr == 0x8000
    assert result == text
    assert hex_str == " ".join(f"{b:02X}" for b in program)


def test_disassembly_is_side_effect_free(bus):
    bus.load(0x8000, bytes([0xAD, 0x00, 0x20]))
    bus.get_and_clear_activity_log()
    disassemble(bus, 0x8000, 3)
    assert bus.get_and_clear_activity_log() == []


def test_cpu_disassemble_delegates(bus):
    bus.load(0x0400, bytes([0xE8, 0xC8]))
    cpu = Mos6502Cpu(bus)
    assert cpu.disassemble(0x0400, 2) == [(0x0400, "E8", "INX"), (0x0401, "C8", "INY")]

# tests/arch/mos6502/test_illegal_opcodes.py
"""
非公式（undocumented）命令の単体テスト。
"""
import pytest
from nes_core_tracer.transport.bus import Bus, RAM
from nes_core_tracer.core.errors import UnsupportedOpcodeError
from nes_core_tracer.arch.mos6502.cpu import Mos6502Cpu
from nes_core_tracer.arch.mos6502.state import C_FLAG

# @intent:test_suite nestestで使われる安定した非公式命令と、トラップ対象オペコードの扱いを検証します。

@pytest.fixture
def cpu():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return Mos6502Cpu(bus)


def run(cpu, program, memory=None, **registers):
    cpu.bus.load(0x0200, bytes(program))
    if memory is not None:
        cpu.bus.write(0x0010, memory)
    cpu._state = cpu._state.replace(pc=0x0200, **registers)
    return cpu.step()


def test_lax_loads_a_and_x(cpu):
    snapshot = run(cpu, [0xA7, 0x10], memory=0x80)
    state = cpu.get_state()
    assert state.a == state.x == 0x80
    assert state.flag_n
    assert snapshot.operation.mnemonic == "LAX"


def test_sax_stores_a_and_x_without_flags(cpu):
    run(cpu, [0x87, 0x10], a=0xF0, x=0x3C, p=0x26)
    assert cpu.bus.read(0x0010) == 0x30
    assert cpu.get_state().p == 0x26


def test_dcp_decrements_then_compares(cpu):
    run(cpu, [0xC7, 0x10], memory=0x05, a=0x04)
    state = cpu.get_state()
    assert cpu.bus.read(0x0010) == 0x04
    assert state.flag_z
    assert state.flag_c


def test_isb_increments_then_subtracts(cpu):
    run(cpu, [0xE7, 0x10], memory=0x0F, a=0x20, p=0x20 | C_FLAG)
    state = cpu.get_state()
    assert cpu.bus.read(0x0010) == 0x10
    assert state.a == 0x10
    assert state.flag_c


def test_slo_shifts_then_ors(cpu):
    run(cpu, [0x07, 0x10], memory=0x81, a=0x02)
    state = cpu.get_state()
    assert cpu.bus.read(0x0010) == 0x02
    assert state.a == 0x02
    assert state.flag_c
    assert not state.flag_n


def test_rla_rotates_then_ands(cpu):
    run(cpu, [0x27, 0x10], memory=0x80, a=0xFF, p=0x20 | C_FLAG)
    state = cpu.get_state()
    assert cpu.bus.read(0x0010) == 0x01
    assert state.a == 0x01
    assert state.flag_c


def test_sre_shifts_then_eors(cpu):
    run(cpu, [0x47, 0x10], memory=0x03, a=0x01)
    state = cpu.get_state()
    assert cpu.bus.read(0x0010) == 0x01
    assert state.a == 0x00
    assert state.flag_z
    assert state.flag_c


# @intent:test_case_rra RORで押し出されたビットがADCのキャリー入力になることを検証します。
def test_rra_feeds_rotated_carry_into_adc(cpu):
    run(cpu, [0x67, 0x10], memory=0x03, a=0x10, p=0x20)
    state = cpu.get_state()
    assert cpu.bus.read(0x0010) == 0x01
    assert state.a == 0x12
    assert not state.flag_c


def test_illegal_sbc_immediate(cpu):
    run(cpu, [0xEB, 0x01], a=0x05, p=0x20 | C_FLAG)
    assert cpu.get_state().a == 0x04


def test_rmw_indirect_x_cycles(cpu):
    cpu.bus.load(0x0020, bytes([0x00, 0x03]))
    snapshot = run(cpu, [0xC3, 0x20], a=0x00)
    assert snapshot.operation.cycle_count == 8
    assert cpu.bus.read(0x0300) == 0xFF


# @intent:test_case_nop 非公式NOPはオペランド長ぶんPCを進め、AbsoluteXではページ交差ペナルティを受けることを検証します。
@pytest.mark.parametrize("x, cycles", [(0x00, 4), (0x01, 5)])
def test_nop_absolute_x(cpu, x, cycles):
    snapshot = run(cpu, [0x1C, 0xFF, 0x30], x=x, a=0x11)
    state = cpu.get_state()
    assert state.pc == 0x0203
    assert state.a == 0x11
    assert snapshot.operation.cycle_count == cycles


@pytest.mark.parametrize("program, length", [
    ([0x1A], 1),
    ([0x80, 0x00], 2),
    ([0x04, 0x10], 2),
    ([0x0C, 0x00, 0x30], 3),
])
def test_nop_variants_advance_pc(cpu, program, length):
    run(cpu, program)
    assert cpu.get_state().pc == 0x0200 + length


# @intent:test_case_trap 不安定な非公式命令・KILは例外で停止し、状態を変更しないことを検証します。
@pytest.mark.parametrize("opcode", [0x02, 0x0B, 0x8B, 0x9C, 0xBB, 0xF2])
def test_trap_opcode_raises(cpu, opcode):
    cpu.bus.write(0x0200, opcode)
    cpu._state = cpu._state.replace(pc=0x0200, a=0x12)

    with pytest.raises(UnsupportedOpcodeError) as excinfo:
        cpu.step()

    err = excinfo.value
    assert err.opcode == opcode
    assert err.pc == 0x0200
    assert err.registers["A"] == 0x12
    assert f"${opcode:02X}" in str(err)
    assert "$0200" in str(err)
    assert cpu.get_state().pc == 0x0200
    assert cpu.cycle_count == 0

# tests/arch/mos6502/test_control_flow.py
"""
分岐・ジャンプ・サブルーチン・BRK/RTI の単体テスト。
"""
import pytest
from nes_core_tracer.transport.bus import Bus, RAM
from nes_core_tracer.arch.mos6502.cpu import Mos6502Cpu

# @intent:test_suite PCを書き換える命令の戻り先・スタック内容・サイクル数を検証します。

@pytest.fixture
def cpu():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return Mos6502Cpu(bus)


# @intent:test_case_jsr_rts JSR/RTSで呼び出し元の次の命令へ戻ることを検証します。
def test_jsr_rts_round_trip(cpu):
    cpu.bus.load(0x0600, bytes([0x20, 0x34, 0x12]))
    cpu.bus.write(0x1234, 0x60)
    cpu._state = cpu._state.replace(pc=0x0600, sp=0xFD)

    jsr = cpu.step()
    state = cpu.get_state()
    assert state.pc == 0x1234
    assert state.sp == 0xFB
    # JSRは命令の最終バイトのアドレス ($0602) を上位→下位で積む
    assert cpu.bus.read(0x01FD) == 0x06
    assert cpu.bus.read(0x01FC) == 0x02
    assert jsr.operation.cycle_count == 6

    rts = cpu.step()
    state = cpu.get_state()
    assert state.pc == 0x0603
    assert state.sp == 0xFD
    assert rts.operation.cycle_count == 6


# @intent:test_case_jmp 絶対・間接ジャンプを検証します。
def test_jmp_absolute(cpu):
    cpu.bus.load(0x0200, bytes([0x4C, 0x00, 0xC0]))
    cpu._state = cpu._state.replace(pc=0x0200)
    snapshot = cpu.step()
    assert cpu.get_state().pc == 0xC000
    assert snapshot.operation.cycle_count == 3


def test_jmp_indirect_page_wrap(cpu):
    cpu.bus.load(0x0200, bytes([0x6C, 0xFF, 0x30]))
    cpu.bus.write(0x30FF, 0x80)
    cpu.bus.write(0x3000, 0x50)
    cpu.bus.write(0x3100, 0x60)
    cpu._state = cpu._state.replace(pc=0x0200)
    snapshot = cpu.step()
    assert cpu.get_state().pc == 0x5080
    assert snapshot.operation.cycle_count == 5


# @intent:test_case_branch_cycles 分岐不成立2、成立3、ページ交差付き成立4サイクルを検証します。
@pytest.mark.parametrize("pc, offset, p, expected_pc, cycles", [
    (0x0200, 0x02, 0x22, 0x0202, 2),  # Z=1: BNE not taken
    (0x0200, 0x02, 0x20, 0x0204, 3),  # taken, same page
    (0x02F0, 0x20, 0x20, 0x0312, 4),  # taken, crosses to $03xx
    (0x0200, 0xFC, 0x20, 0x01FE, 4),  # taken backwards, crosses to $01xx
])
def test_bne_cycles(cpu, pc, offset, p, expected_pc, cycles):
    cpu.bus.load(pc, bytes([0xD0, offset]))
    cpu._state = cpu._state.replace(pc=pc, p=p)
    snapshot = cpu.step()
    assert cpu.get_state().pc == expected_pc
    assert snapshot.operation.cycle_count == cycles
    assert cpu.cycle_count == cycles


@pytest.mark.parametrize("opcode, p, taken", [
    (0x90, 0x20, True),   # BCC
    (0xB0, 0x20, False),  # BCS
    (0xF0, 0x22, True),   # BEQ
    (0x30, 0xA0, True),   # BMI
    (0x10, 0xA0, False),  # BPL
    (0x50, 0x60, False),  # BVC
    (0x70, 0x60, True),   # BVS
])
def test_branch_conditions(cpu, opcode, p, taken):
    cpu.bus.load(0x0200, bytes([opcode, 0x10]))
    cpu._state = cpu._state.replace(pc=0x0200, p=p)
    cpu.step()
    assert cpu.get_state().pc == (0x0212 if taken else 0x0202)


# @intent:test_case_brk_rti BRKがB付きでPを退避し、RTIで元の状態に戻ることを検証します。
def test_brk_and_rti(cpu):
    cpu.bus.load(0x0200, bytes([0x00, 0xEA]))
    cpu.bus.load(0xFFFE, bytes([0x00, 0x90]))
    cpu.bus.write(0x9000, 0x40)
    cpu._state = cpu._state.replace(pc=0x0200, sp=0xFD, p=0x21)

    brk = cpu.step()
    state = cpu.get_state()
    assert state.pc == 0x9000
    assert state.flag_i
    assert state.sp == 0xFA
    assert brk.operation.cycle_count == 7
    # 戻り先はBRK+2、Pにはビット4,5が立つ
    assert cpu.bus.read(0x01FD) == 0x02
    assert cpu.bus.read(0x01FC) == 0x02
    assert cpu.bus.read(0x01FB) == 0x31

    rti = cpu.step()
    state = cpu.get_state()
    assert state.pc == 0x0202
    assert state.p == 0x21
    assert state.sp == 0xFD
    assert rti.operation.cycle_count == 6


def test_rti_does_not_increment_pulled_pc(cpu):
    cpu.bus.write(0x0200, 0x40)
    cpu.bus.load(0x01FB, bytes([0xA5, 0x34, 0x12]))
    cpu._state = cpu._state.replace(pc=0x0200, sp=0xFA, p=0x24)
    cpu.step()
    state = cpu.get_state()
    assert state.pc == 0x1234
    assert state.p == 0xA5

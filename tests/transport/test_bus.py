# tests/transport/test_bus.py
"""
nes_core_tracer.transport.busモジュールの単体テスト。
"""
import logging

import pytest
from nes_core_tracer.transport.bus import (
    Bus, RAM, ROM, MirroredDevice, BusAccessType, OPEN_BUS_VALUE,
)

# @intent:test_suite CPUバスとデバイスの基本的な機能とエラーハンドリングを検証します。

class TestRAM:
    """
    RAMデバイスの単体テスト。
    """
    # @intent:test_case_init RAMクラスが正しいサイズで初期化されることを検証します。
    def test_ram_init_valid_size(self):
        ram = RAM(16)
        assert ram.get_size() == 16
        assert all(ram.read(i) == 0 for i in range(16))

    # @intent:test_case_init 無効なサイズでRAMを初期化するとValueErrorが発生することを検証します。
    def test_ram_init_invalid_size(self):
        with pytest.raises(ValueError, match="RAM size must be a positive integer."):
            RAM(0)
        with pytest.raises(ValueError, match="RAM size must be a positive integer."):
            RAM(1.5)

    # @intent:test_case_oob 境界外オフセットへのアクセス時にIndexErrorが発生することを検証します。
    def test_ram_read_write_out_of_bounds(self):
        ram = RAM(4)
        with pytest.raises(IndexError, match="Address 4 out of bounds for RAM of size 4."):
            ram.read(4)
        with pytest.raises(IndexError):
            ram.write(-1, 0x00)

    # @intent:test_case_data 8bitを超える値の書き込みはValueErrorになることを検証します。
    def test_ram_write_invalid_data(self):
        ram = RAM(1)
        with pytest.raises(ValueError, match="Data 256 is not an 8-bit value."):
            ram.write(0, 0x100)


class TestROM:
    # @intent:test_case_rom CPUからの書き込みは無視され、load_dataでのみ書き込めることを検証します。
    def test_rom_ignores_writes_but_accepts_load(self):
        rom = ROM(4)
        rom.write(0, 0x12)
        assert rom.read(0) == 0x00
        rom.load_data(0, 0x34)
        assert rom.read(0) == 0x34

    def test_rom_load_bytes(self):
        rom = ROM(4)
        rom.load_bytes(b"\x01\x02", offset=2)
        assert [rom.read(i) for i in range(4)] == [0, 0, 1, 2]
        with pytest.raises(ValueError):
            rom.load_bytes(b"\x00" * 5)


class TestMirroredDevice:
    # @intent:test_case_mirror 2KBのRAMが8KBの窓で反復して見えることを検証します。
    def test_internal_ram_mirroring(self):
        bus = Bus()
        bus.register_device(0x0000, 0x1FFF, MirroredDevice(RAM(0x0800), 0x2000))
        bus.write(0x0001, 0x5A)
        assert bus.read(0x0801) == 0x5A
        assert bus.read(0x1001) == 0x5A
        assert bus.read(0x1801) == 0x5A
        bus.write(0x1FFF, 0x77)
        assert bus.read(0x07FF) == 0x77

    def test_invalid_mirror_window(self):
        with pytest.raises(ValueError):
            MirroredDevice(RAM(0x0800), 0x0900)


class TestBus:
    """
    Busの単体テスト。
    """
    # @intent:test_case_register デバイスがバスに正しく登録され、オフセット計算されることを検証します。
    def test_bus_register_and_access_device(self):
        bus = Bus()
        ram1 = RAM(16)
        ram2 = RAM(16)
        bus.register_device(0x0000, 0x000F, ram1)
        bus.register_device(0x0010, 0x001F, ram2)

        bus.write(0x0005, 0xAA)
        assert bus.read(0x0005) == 0xAA
        assert ram1.read(5) == 0xAA

        bus.write(0x001A, 0xBB)
        assert ram2.read(0x0A) == 0xBB

    # @intent:test_case_unmapped 未割り当てアドレスの読み出しはオープンバス値を返し、例外にならないことを検証します。
    def test_unmapped_read_returns_open_bus(self, caplog):
        bus = Bus()
        bus.register_device(0x0100, 0x010F, RAM(16))
        with caplog.at_level(logging.DEBUG, logger="nes_core_tracer.transport.bus"):
            assert bus.read(0x4016) == OPEN_BUS_VALUE
        assert "Open bus read at $4016" in caplog.text

    # @intent:test_case_unmapped 未割り当てアドレスへの書き込みは無視されることを検証します。
    def test_unmapped_write_is_ignored(self):
        bus = Bus()
        bus.write(0x2000, 0x80)
        assert bus.peek(0x2000) == OPEN_BUS_VALUE

    # @intent:test_case_rom バス経由のROM書き込みは無視され、loadでは書き込めることを検証します。
    def test_rom_write_through_bus(self):
        bus = Bus()
        bus.register_device(0x8000, 0x8003, ROM(4))
        bus.write(0x8000, 0xEA)
        assert bus.read(0x8000) == 0x00
        bus.load(0x8000, b"\xEA\x4C")
        assert bus.read(0x8001) == 0x4C

    def test_load_into_unmapped_space_raises(self):
        bus = Bus()
        with pytest.raises(IndexError, match="not mapped"):
            bus.load(0x5000, b"\x00")

    # @intent:test_case_invalid_range 無効なアドレス範囲でデバイスを登録しようとするとValueErrorが発生することを検証します。
    def test_bus_register_invalid_address_range(self):
        bus = Bus()
        with pytest.raises(ValueError, match="Invalid address range"):
            bus.register_device(0x0010, 0x000F, RAM(16))
        with pytest.raises(ValueError, match="Invalid address range"):
            bus.register_device(0xFFF0, 0x1000F, RAM(32))

    # @intent:test_case_mismatch_size デバイスのサイズが登録範囲と一致しない場合にValueErrorが発生することを検証します。
    def test_bus_register_size_mismatch(self):
        bus = Bus()
        with pytest.raises(ValueError, match=r"Registered RAM device size \(10 bytes\)"):
            bus.register_device(0x0000, 0x000F, RAM(10))

    def test_bus_register_invalid_device_type(self):
        bus = Bus()
        class MyClass: pass
        with pytest.raises(TypeError, match="Device must be an instance of a class derived from Device."):
            bus.register_device(0x0000, 0x000F, MyClass())

    # @intent:test_case_activity_log 読み書きが記録され、書き込みには直前の値が残ることを検証します。
    def test_activity_log_records_previous_data(self):
        bus = Bus()
        bus.register_device(0x0000, 0x00FF, RAM(0x100))
        bus.write(0x0010, 0x11)
        bus.get_and_clear_activity_log()

        bus.write(0x0010, 0x22)
        bus.read(0x0010)
        bus.peek(0x0010)
        log = bus.get_and_clear_activity_log()

        assert len(log) == 2
        assert log[0].access_type == BusAccessType.WRITE
        assert log[0].previous_data == 0x11
        assert log[0].data == 0x22
        assert log[1].access_type == BusAccessType.READ
        assert bus.get_and_clear_activity_log() == []

# tests/loader/test_ines.py
"""
nes_core_tracer.loader.inesモジュールの単体テスト。
"""
import logging

import pytest
from nes_core_tracer.loader.ines import (
    parse_ines, load_ines, MirrorMode, PRG_BANK_SIZE, CHR_BANK_SIZE, TRAINER_SIZE,
)

# @intent:test_suite iNESヘッダの解析とPRG/CHRイメージの切り出しを検証します。


def _make_image(prg_banks=1, chr_banks=1, flags6=0x00, flags7=0x00, trainer=False):
    header = bytes([0x4E, 0x45, 0x53, 0x1A, prg_banks, chr_banks, flags6 | (0x04 if trainer else 0), flags7])
    header += bytes(8)
    body = b""
    if trainer:
        body += b"\xEE" * TRAINER_SIZE
    body += b"\x11" * (prg_banks * PRG_BANK_SIZE)
    body += b"\x22" * (chr_banks * CHR_BANK_SIZE)
    return header + body


# @intent:test_case_parse 標準的なNROMイメージを解析できることを検証します。
def test_parse_nrom_image():
    cart = parse_ines(_make_image(prg_banks=2, chr_banks=1, flags6=0x01))
    assert cart.prg_banks == 2
    assert cart.chr_banks == 1
    assert len(cart.prg_rom) == 2 * PRG_BANK_SIZE
    assert set(cart.prg_rom) == {0x11}
    assert set(cart.chr_rom) == {0x22}
    assert cart.mapper_id == 0
    assert cart.mirroring is MirrorMode.VERTICAL
    assert cart.vertical_mirroring
    assert not cart.has_battery


def test_mapper_number_combines_both_nibbles():
    cart = parse_ines(_make_image(flags6=0x32, flags7=0x40))
    assert cart.mapper_id == 0x43
    assert cart.has_battery
    assert cart.mirroring is MirrorMode.HORIZONTAL


def test_trainer_is_skipped():
    cart = parse_ines(_make_image(trainer=True))
    assert cart.has_trainer
    assert set(cart.prg_rom) == {0x11}


def test_chr_ram_cartridge():
    cart = parse_ines(_make_image(chr_banks=0))
    assert cart.chr_rom == b""
    assert cart.chr_banks == 0


# @intent:test_case_invalid 不正なイメージはValueErrorで拒否されることを検証します。
def test_bad_magic():
    data = bytearray(_make_image())
    data[3] = 0x00
    with pytest.raises(ValueError, match="Invalid iNES magic"):
        parse_ines(bytes(data))


def test_too_short():
    with pytest.raises(ValueError, match="too short"):
        parse_ines(b"NES\x1a")


def test_truncated_body():
    with pytest.raises(ValueError, match="truncated"):
        parse_ines(_make_image()[:-1])


def test_no_prg_rom():
    with pytest.raises(ValueError, match="no PRG-ROM"):
        parse_ines(_make_image(prg_banks=0))


# @intent:test_case_file ファイルからの読み込みと、未対応マッパーの警告を検証します。
def test_load_ines_from_file(tmp_path, caplog):
    path = tmp_path / "mmc1.nes"
    path.write_bytes(_make_image(flags6=0x10))
    with caplog.at_level(logging.INFO, logger="nes_core_tracer.loader.ines"):
        cart = load_ines(str(path))
    assert cart.mapper_id == 1
    assert "Mapper 1 is not supported" in caplog.text


def test_load_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_ines(str(tmp_path / "missing.nes"))

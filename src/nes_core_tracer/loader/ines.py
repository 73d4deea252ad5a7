# nes_core_tracer/loader/ines.py
"""
iNES (.nes) カートリッジローダーモジュール。

16バイトのヘッダを解析し、PRG-ROM / CHR-ROM イメージを取り出します。
マッパーの実装はここでは行いません（平坦なPRGウィンドウのみ。配置は config.builder が担当）。
"""
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

INES_MAGIC = b"NES\x1a"
HEADER_SIZE = 16
TRAINER_SIZE = 512
PRG_BANK_SIZE = 16 * 1024
CHR_BANK_SIZE = 8 * 1024


class MirrorMode(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


# @intent:data_structure 読み込んだカートリッジの内容。
@dataclass(frozen=True)
class Cartridge:
    prg_rom: bytes
    chr_rom: bytes
    mapper_id: int = 0
    mirroring: MirrorMode = MirrorMode.HORIZONTAL
    has_battery: bool = False
    has_trainer: bool = False

    @property
    def prg_banks(self) -> int:
        return len(self.prg_rom) // PRG_BANK_SIZE

    @property
    def chr_banks(self) -> int:
        return len(self.chr_rom) // CHR_BANK_SIZE

    @property
    def vertical_mirroring(self) -> bool:
        return self.mirroring is MirrorMode.VERTICAL


# @intent:responsibility iNESイメージのバイト列を解析する。
# @intent:post-condition ヘッダ不正・サイズ不足の場合は ValueError を送出する。
def parse_ines(data: bytes) -> Cartridge:
    """
    Header layout:
        0-3  "NES" + $1A
        4    PRG-ROM size (16KB units)
        5    CHR-ROM size (8KB units)
        6    flags 6: bit0 mirroring, bit1 battery, bit2 trainer, bits4-7 mapper low nibble
        7    flags 7: bits4-7 mapper high nibble
    """
    if len(data) < HEADER_SIZE:
        raise ValueError(f"iNES image too short: {len(data)} bytes (header needs {HEADER_SIZE}).")
    if data[0:4] != INES_MAGIC:
        raise ValueError(f"Invalid iNES magic: {bytes(data[0:4])!r}")

    prg_size = data[4] * PRG_BANK_SIZE
    chr_size = data[5] * CHR_BANK_SIZE
    flags6 = data[6]
    flags7 = data[7]

    if prg_size == 0:
        raise ValueError("iNES image declares no PRG-ROM.")

    has_trainer = bool(flags6 & 0x04)
    prg_start = HEADER_SIZE + (TRAINER_SIZE if has_trainer else 0)
    chr_start = prg_start + prg_size
    expected = chr_start + chr_size
    if len(data) < expected:
        raise ValueError(
            f"iNES image truncated: header declares {expected} bytes, file has {len(data)}."
        )

    return Cartridge(
        prg_rom=bytes(data[prg_start:chr_start]),
        chr_rom=bytes(data[chr_start:expected]),
        mapper_id=(flags6 >> 4) | (flags7 & 0xF0),
        mirroring=MirrorMode.VERTICAL if flags6 & 0x01 else MirrorMode.HORIZONTAL,
        has_battery=bool(flags6 & 0x02),
        has_trainer=has_trainer,
    )


# @intent:responsibility ファイルからiNESイメージを読み込む。
def load_ines(file_path: str) -> Cartridge:
    with open(file_path, "rb") as f:
        data = f.read()
    cartridge = parse_ines(data)
    logger.info(
        "Loaded %s: PRG %d x 16KB, CHR %d x 8KB, mapper %d, %s mirroring",
        file_path, cartridge.prg_banks, cartridge.chr_banks,
        cartridge.mapper_id, cartridge.mirroring.value,
    )
    if cartridge.mapper_id != 0:
        logger.warning(
            "Mapper %d is not supported; PRG-ROM is mapped as a flat NROM window", cartridge.mapper_id
        )
    return cartridge

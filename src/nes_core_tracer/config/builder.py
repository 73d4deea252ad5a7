import logging
from typing import Optional, Tuple

from nes_core_tracer.transport.bus import Bus, Device, RAM, ROM, MirroredDevice
from nes_core_tracer.arch.mos6502.cpu import Mos6502Cpu
from nes_core_tracer.loader.ines import Cartridge, PRG_BANK_SIZE, load_ines
from .models import SystemConfig, CpuInitialState, MemoryRegion

logger = logging.getLogger(__name__)

# NES CPU メモリマップ
INTERNAL_RAM_SIZE = 0x0800
INTERNAL_RAM_END = 0x1FFF
PRG_RAM_START = 0x6000
PRG_RAM_END = 0x7FFF
PRG_ROM_START = 0x8000
PRG_ROM_END = 0xFFFF
PRG_WINDOW_SIZE = PRG_ROM_END - PRG_ROM_START + 1


# @intent:responsibility 16KB単位のPRGイメージを$8000-$FFFFの32KB窓に収まる形へ整える。
# @intent:note 16KBは反復、32KBはそのまま、それ以上は先頭バンクと最終バンクを固定で見せる（バンク切り替えなし）。
def _prg_window(prg_rom: bytes) -> Device:
    if len(prg_rom) == PRG_BANK_SIZE:
        rom = ROM(PRG_BANK_SIZE)
        rom.load_bytes(prg_rom)
        return MirroredDevice(rom, PRG_WINDOW_SIZE)
    if len(prg_rom) > PRG_WINDOW_SIZE:
        logger.warning("PRG-ROM is %d bytes; only the first and last 16KB banks are visible", len(prg_rom))
        prg_rom = prg_rom[:PRG_BANK_SIZE] + prg_rom[-PRG_BANK_SIZE:]
    rom = ROM(PRG_WINDOW_SIZE)
    rom.load_bytes(prg_rom)
    return rom


# @intent:responsibility システム構成（Config）に基づいて、Bus、Device、CPUを生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Tuple[Mos6502Cpu, Bus]:
        cartridge = load_ines(config.cartridge) if config.cartridge else None

        if config.memory_map:
            bus = self.build_bus(config, cartridge)
        elif cartridge is not None:
            bus = self.build_nes_bus(cartridge)
        else:
            raise ValueError("Configuration needs either a memory_map or a cartridge.")

        cpu = Mos6502Cpu(bus)
        self.apply_initial_state(cpu, config.initial_state)
        return cpu, bus

    # @intent:responsibility YAMLで記述されたメモリマップからBusを組み立てる。
    # @intent:note カートリッジ指定がある場合、最初のROM領域にPRG-ROMを配置する。
    # @intent:pre-condition PRG-ROMはROM領域の実体（mirror指定時はその大きさ）に収まること。収まらなければValueError。
    def build_bus(self, config: SystemConfig, cartridge: Optional[Cartridge] = None) -> Bus:
        bus = Bus()
        prg_pending = cartridge.prg_rom if cartridge is not None else None

        for region in config.memory_map:
            device = self._create_device(region)
            if region.type == "ROM" and prg_pending is not None:
                capacity = region.mirror or device.get_size()
                if len(prg_pending) > capacity:
                    raise ValueError(
                        f"PRG-ROM ({len(prg_pending)} bytes) does not fit ROM region "
                        f"${region.start:04X}-${region.end:04X} ({capacity} bytes of backing storage)."
                    )
                for offset in range(len(prg_pending)):
                    device.load_data(offset, prg_pending[offset])
                prg_pending = None
            bus.register_device(region.start, region.end, device)

        if prg_pending is not None:
            logger.warning("Cartridge given but memory_map has no ROM region; PRG-ROM not mapped")
        return bus

    def _create_device(self, region: MemoryRegion) -> Device:
        size = region.end - region.start + 1
        backing = region.mirror or size
        if region.type == "ROM":
            device: Device = ROM(backing)
        else:
            device = RAM(backing)
        if backing != size:
            device = MirroredDevice(device, size)
        return device

    # @intent:responsibility 標準的なNESのCPUメモリマップを組み立てる。
    # $0000-$1FFF: 2KB内部RAM(ミラー) / $2000-$5FFF: PPU・APU・I/O（未接続、オープンバス）
    # $6000-$7FFF: PRG-RAM / $8000-$FFFF: PRG-ROM
    def build_nes_bus(self, cartridge: Cartridge) -> Bus:
        bus = Bus()
        bus.register_device(0x0000, INTERNAL_RAM_END, MirroredDevice(RAM(INTERNAL_RAM_SIZE), INTERNAL_RAM_END + 1))
        bus.register_device(PRG_RAM_START, PRG_RAM_END, RAM(PRG_RAM_END - PRG_RAM_START + 1))
        bus.register_device(PRG_ROM_START, PRG_ROM_END, _prg_window(cartridge.prg_rom))
        return bus

    # @intent:responsibility カートリッジからNESのCPUとバスを組み立て、リセットまで行う。
    def build_nes(self, cartridge: Cartridge) -> Tuple[Mos6502Cpu, Bus]:
        bus = self.build_nes_bus(cartridge)
        cpu = Mos6502Cpu(bus)
        cpu.reset()
        return cpu, bus

    # @intent:responsibility Configで定義された初期状態をCPUに適用します。
    def apply_initial_state(self, cpu: Mos6502Cpu, config_state: CpuInitialState) -> None:
        """
        CPUをリセットし（PCはリセットベクタから）、Configで指定された値で上書きします。
        use_reset_vector が false で pc が指定されている場合のみ PC を上書きします。
        """
        cpu.reset()

        state = cpu.get_state()
        if not config_state.use_reset_vector and config_state.pc is not None:
            state.pc = config_state.pc & 0xFFFF
        if config_state.sp is not None:
            state.sp = config_state.sp & 0xFF
        for reg_name, value in config_state.registers.items():
            if reg_name in ("a", "x", "y", "p"):
                setattr(state, reg_name, value & 0xFF)
            else:
                logger.warning("Ignoring unknown register '%s' in initial_state", reg_name)
        cpu.restore_state(state)

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class MemoryRegion:
    start: int
    end: int
    type: str  # "RAM" または "ROM"
    label: str = ""
    mirror: Optional[int] = None  # 実体のサイズ。指定時は範囲内で反復する


@dataclass
class CpuInitialState:
    pc: Optional[int] = None  # None の場合はリセットベクタのみで決める
    sp: Optional[int] = None
    use_reset_vector: bool = True
    registers: dict = field(default_factory=dict)


@dataclass
class SystemConfig:
    memory_map: List[MemoryRegion] = field(default_factory=list)
    cartridge: Optional[str] = None  # iNESファイルへのパス
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)

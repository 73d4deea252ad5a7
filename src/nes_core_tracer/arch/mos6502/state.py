# nes_core_tracer/arch/mos6502/state.py
"""
MOS 6502 (NES 2A03) CPUの状態定義。
"""
from dataclasses import dataclass, replace

from nes_core_tracer.core.state import CpuState

# ステータスレジスタ (P) ビットマスク
# @intent:constant Pレジスタ内の各フラグビットの位置を定義します。
C_FLAG = 0x01  # Carry
Z_FLAG = 0x02  # Zero
I_FLAG = 0x04  # Interrupt Disable
D_FLAG = 0x08  # Decimal Mode (NESでは演算に影響しない)
B_FLAG = 0x10  # Break (スタック上でのみ意味を持つ)
U_FLAG = 0x20  # Unused (常に1として読める)
V_FLAG = 0x40  # Overflow
N_FLAG = 0x80  # Negative

_FLAG_MASKS = {
    "c": C_FLAG, "z": Z_FLAG, "i": I_FLAG, "d": D_FLAG,
    "b": B_FLAG, "u": U_FLAG, "v": V_FLAG, "n": N_FLAG,
}

STACK_BASE = 0x0100

# @intent:constant 割り込みベクタ表（リトルエンディアン、固定）。
NMI_VECTOR = 0xFFFA
RESET_VECTOR = 0xFFFC
IRQ_VECTOR = 0xFFFE  # BRKと共用

POWER_ON_SP = 0xFD
POWER_ON_P = I_FLAG | U_FLAG  # 0x24


# @intent:responsibility Pレジスタ値 `p` を持つクラスに、読み取り専用のフラグプロパティを与えます。
class FlagView:
    p: int

    @property
    def flag_c(self) -> bool: return bool(self.p & C_FLAG)
    @property
    def flag_z(self) -> bool: return bool(self.p & Z_FLAG)
    @property
    def flag_i(self) -> bool: return bool(self.p & I_FLAG)
    @property
    def flag_d(self) -> bool: return bool(self.p & D_FLAG)
    @property
    def flag_b(self) -> bool: return bool(self.p & B_FLAG)
    @property
    def flag_u(self) -> bool: return bool(self.p & U_FLAG)
    @property
    def flag_v(self) -> bool: return bool(self.p & V_FLAG)
    @property
    def flag_n(self) -> bool: return bool(self.p & N_FLAG)


# @intent:responsibility MOS 6502 CPUの状態（レジスタ、フラグ）を保持する。
# @intent:note 命令ハンドラはこのオブジェクトを直接書き換える。
@dataclass
class Mos6502CpuState(FlagView, CpuState):
    """
    MOS 6502 CPUのレジスタ状態。sp はスタックページ($0100-$01FF)内の8bitオフセット。
    """
    sp: int = POWER_ON_SP
    a: int = 0
    x: int = 0
    y: int = 0
    p: int = POWER_ON_P

    # @intent:responsibility キーワード引数で指定したフラグをその場で更新する。
    # 例: state.update_flags(c=True, z=False)
    def update_flags(self, **kwargs: bool) -> None:
        for flag_name, value in kwargs.items():
            mask = _FLAG_MASKS[flag_name.lower()]
            if value:
                self.p |= mask
            else:
                self.p &= ~mask & 0xFF
        # Unusedビットは常に1
        self.p |= U_FLAG

    # @intent:responsibility 結果バイトからN, Zフラグを設定する。
    def set_nz(self, value: int) -> None:
        value &= 0xFF
        self.update_flags(n=bool(value & 0x80), z=(value == 0))

    # @intent:responsibility dataclasses.replaceのラッパー。
    def replace(self, **changes) -> "Mos6502CpuState":
        return replace(self, **changes)

    def to_registers(self) -> "Mos6502Registers":
        return Mos6502Registers(pc=self.pc, sp=self.sp, a=self.a, x=self.x, y=self.y, p=self.p | U_FLAG)


# @intent:responsibility デバッガ・トレーサ向けのレジスタ読み取り専用スナップショット。
@dataclass(frozen=True)
class Mos6502Registers(FlagView):
    pc: int
    sp: int
    a: int
    x: int
    y: int
    p: int

    def as_dict(self) -> dict:
        return {"A": self.a, "X": self.x, "Y": self.y, "P": self.p, "SP": self.sp, "PC": self.pc}

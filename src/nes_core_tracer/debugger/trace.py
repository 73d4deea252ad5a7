# nes_core_tracer/debugger/trace.py
"""
トレース出力モジュール。

CPUコアは文字列を一切組み立てないため、実行トレース（nestest.log 形式）はここで生成します。
入力は実行前のレジスタスナップショットとバスの peek のみで、エミュレート状態には影響しません。
"""
from typing import Iterator, List, Optional, Tuple

from nes_core_tracer.transport.bus import Bus
from nes_core_tracer.core.snapshot import Snapshot
from nes_core_tracer.arch.mos6502.cpu import Mos6502Cpu
from nes_core_tracer.arch.mos6502.state import Mos6502Registers
from nes_core_tracer.arch.mos6502.disassembler import disassemble_one


# @intent:responsibility 実行直前の1命令分のトレース行を組み立てる。
# 例: "C000  4C F5 C5  JMP $C5F5                       A:00 X:00 Y:00 P:24 SP:FD CYC:7"
# @intent:note 非公式命令は '*' がニーモニック直前の空白を置き換える（nestest.log と同じ桁位置）。
def format_trace_line(registers: Mos6502Registers, bus: Bus, cycles: int) -> str:
    _, hex_bytes, text = disassemble_one(bus, registers.pc)
    if not text.startswith("*"):
        text = " " + text
    return (
        f"{registers.pc:04X}  {hex_bytes:<8} {text:<33}"
        f"A:{registers.a:02X} X:{registers.x:02X} Y:{registers.y:02X} "
        f"P:{registers.p:02X} SP:{registers.sp:02X} CYC:{cycles}"
    )


# @intent:responsibility CPUを1命令ずつ進めながら、実行前の状態でトレース行を生成する。
class InstructionTracer:
    def __init__(self, cpu: Mos6502Cpu):
        self._cpu = cpu
        self._lines: List[str] = []

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    # @intent:responsibility 次に実行される命令のトレース行（副作用なし）。
    def current_line(self) -> str:
        return format_trace_line(self._cpu.get_registers(), self._cpu.bus, self._cpu.cycle_count)

    def step(self) -> Tuple[str, Snapshot]:
        line = self.current_line()
        snapshot = self._cpu.step()
        self._lines.append(line)
        return line, snapshot

    # @intent:responsibility count命令ぶん実行し、各命令のトレース行を順に返す。
    # @intent:note 割り込み受付のstepはトレース行を出さずに通過させる。
    def run(self, count: int, stop_at: Optional[int] = None) -> Iterator[str]:
        executed = 0
        while executed < count:
            if stop_at is not None and self._cpu.get_registers().pc == stop_at:
                return
            line, snapshot = self.step()
            if snapshot.operation.length == 0:
                self._lines.pop()
                continue
            executed += 1
            yield line

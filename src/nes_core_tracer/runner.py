# nes_core_tracer/runner.py
"""
ヘッドレス実行ランナー。

iNESイメージ（またはYAML構成）からシステムを組み立て、指定命令数だけ実行してトレースを出力します。
例 (nestest の自動モード):
    python -m nes_core_tracer.runner nestest.nes --start 0xC000 --steps 8991 --trace
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

from nes_core_tracer.arch.mos6502.cpu import Mos6502Cpu
from nes_core_tracer.config.builder import SystemBuilder
from nes_core_tracer.config.loader import ConfigLoader
from nes_core_tracer.core.errors import UnsupportedOpcodeError
from nes_core_tracer.debugger.trace import InstructionTracer
from nes_core_tracer.loader.ines import load_ines

logger = logging.getLogger("nes_core_tracer.runner")

DEFAULT_STEPS = 10_000
ADDRESS_MASK = 0xFFFF
# @intent:constant --start 指定時のSP。nestest.log の先頭行 (SP:FD) と一致させる。
START_SP = 0xFD


def _parse_hex(value: str) -> int:
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    elif text.startswith("$"):
        text = text[1:]
    if not text:
        raise ValueError("empty hexadecimal value")
    result = int(text, 16)
    if not (0 <= result <= ADDRESS_MASK):
        raise ValueError("hex value out of range")
    return result


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nes-core-tracer",
        description="Headless NES CPU runner with nestest-style instruction tracing.",
    )
    parser.add_argument("rom", nargs="?", default=None, help="Path to an iNES (.nes) image")
    parser.add_argument("--config", type=str, default=None, help="YAML system configuration")
    parser.add_argument("--start", type=str, default=None,
                        help="Hex address to force into PC after reset; SP is set to $FD (e.g. 0xC000 for nestest)")
    parser.add_argument("--steps", type=int, default=DEFAULT_STEPS, help="Number of instructions to execute")
    parser.add_argument("--stop-at", type=str, default=None, help="Stop when PC reaches this hex address")
    parser.add_argument("--trace", action="store_true", help="Print one trace line per instruction")
    parser.add_argument("--log-level", default="WARNING",
                        choices=("DEBUG", "INFO", "WARNING", "ERROR"), help="Logging verbosity")
    return parser


def _build_cpu(args: argparse.Namespace) -> Mos6502Cpu:
    builder = SystemBuilder()
    if args.config:
        config = ConfigLoader().load_from_file(args.config)
        if args.rom:
            config.cartridge = args.rom
        cpu, _ = builder.build_system(config)
        return cpu
    cpu, _ = builder.build_nes(load_ines(args.rom))
    return cpu


def _format_registers(cpu: Mos6502Cpu) -> str:
    regs = cpu.get_registers()
    return (
        f"PC:{regs.pc:04X} A:{regs.a:02X} X:{regs.x:02X} Y:{regs.y:02X} "
        f"P:{regs.p:02X} SP:{regs.sp:02X} CYC:{cpu.cycle_count}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if not args.rom and not args.config:
        parser.error("either a ROM image or --config is required")

    start_address = stop_at = None
    try:
        if args.start is not None:
            start_address = _parse_hex(args.start)
        if args.stop_at is not None:
            stop_at = _parse_hex(args.stop_at)
    except ValueError as exc:
        parser.error(f"invalid address: {exc}")

    try:
        cpu = _build_cpu(args)
    except (OSError, ValueError) as exc:
        print(f"Failed to load system: {exc}", file=sys.stderr)
        return 1

    if start_address is not None:
        state = cpu.get_state()
        state.pc = start_address
        state.sp = START_SP
        cpu.restore_state(state)

    tracer = InstructionTracer(cpu)
    try:
        for line in tracer.run(args.steps, stop_at=stop_at):
            if args.trace:
                print(line)
    except UnsupportedOpcodeError as exc:
        logger.critical("Execution halted: %s", exc)
        print(_format_registers(cpu), file=sys.stderr)
        return 1

    print(_format_registers(cpu))
    return 0


if __name__ == "__main__":
    sys.exit(main())

# nes_core_tracer/arch/mos6502/instructions/__init__.py
"""
MOS 6502命令セット実装パッケージ。
"""
from .maps import OPCODE_TABLE, OpcodeEntry, decode_opcode, execute_instruction

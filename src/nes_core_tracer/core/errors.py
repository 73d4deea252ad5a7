# nes_core_tracer/core/errors.py
"""
Core Layer (例外定義)

エミュレーション継続が不可能な状態を呼び出し元へ通知するための例外群。
命令実行中のバスアクセス異常はBus側で吸収されるため、ここに現れるのは
「これ以上実行を進めるとエミュレート状態が破綻する」致命的な条件のみです。
"""
from typing import Any, Mapping, Optional


# @intent:responsibility エミュレーション関連の例外の基底クラス。
class EmulationError(RuntimeError):
    pass


# @intent:responsibility 動作定義のないオペコードに遭遇したことを通知します。
# @intent:rationale 未定義オペコードを黙ってNOP扱いにすると以降の状態がすべて狂うため、
#                  オペコード・PC・レジスタ内容を添えて即座に停止させます。
class UnsupportedOpcodeError(EmulationError):
    """
    オペコード表で「トラップ」に分類されたオペコードを実行しようとした際に送出されます。
    """
    def __init__(self, opcode: int, pc: int, registers: Optional[Mapping[str, Any]] = None):
        self.opcode = opcode
        self.pc = pc
        self.registers = dict(registers or {})
        detail = " ".join(f"{name}:{value:02X}" for name, value in self.registers.items())
        message = f"Unsupported opcode ${opcode:02X} at ${pc:04X}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)

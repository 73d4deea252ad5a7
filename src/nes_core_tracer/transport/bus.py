# nes_core_tracer/transport/bus.py
"""
Transport Layer (CPUバス)

このモジュールは、CPUから見た16bitアドレス空間を抽象化し、
読み書きアクセスを適切なデバイスに委譲する責務を負います。
未割り当て領域へのアクセスはCPUコアに例外として伝播させず、
オープンバス値(0xFF)の返却または書き込みの破棄として吸収します。
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

# @intent:constant 未割り当てアドレスを読み出した際に返すプレースホルダ値。
OPEN_BUS_VALUE = 0xFF

ADDRESS_MASK = 0xFFFF


# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"


# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True) # 不変データ構造
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    書き込みの場合、previous_data に書き込み前の値が入ります。
    """
    address: int
    data: int # 8bit value
    access_type: BusAccessType
    previous_data: Optional[int] = None


# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    全てのデバイスはreadとwriteのインターフェースを実装する必要があります。
    """
    # @intent:responsibility 指定されたオフセットから8bitのデータを読み出す責務を負います。
    # @intent:pre-condition オフセットはデバイスの有効範囲内である必要があります。
    @abstractmethod
    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 指定されたオフセットに8bitのデータを書き込みます。
    @abstractmethod
    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility デバイスが占有するバイト数を返します。
    @abstractmethod
    def get_size(self) -> int:
        pass

    # @intent:responsibility ローダー用の書き込み口。通常はwriteと同じ。
    def load_data(self, address: int, data: int) -> None:
        self.write(address, data)


# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    """
    内部RAM・PRG-RAM・テスト用フラットメモリとして使うRAMデバイス。
    """
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = bytearray(size)
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    def get_size(self) -> int:
        return self._size


# @intent:responsibility 読み込み専用メモリ(PRG-ROM)の機能を提供します。
class ROM(RAM):
    """
    読み込み専用メモリデバイス。
    CPUからの書き込み操作は無視されます。初期化は load_data / load_bytes 経由で行います。
    """
    # @intent:rationale 実機のROMは書き込みを受け付けないだけで、CPUは停止しない。
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for ROM of size {self._size}.")
        logger.debug("Ignored write of $%02X to ROM offset $%04X", data, address)

    # @intent:responsibility ROMの内容を初期化するためのバックドアメソッドです。
    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)

    # @intent:responsibility イメージ全体を先頭から一括で書き込みます。
    def load_bytes(self, data: bytes, offset: int = 0) -> None:
        if offset < 0 or offset + len(data) > self._size:
            raise ValueError(
                f"Image of {len(data)} bytes at offset {offset} does not fit ROM of size {self._size}."
            )
        self._memory[offset:offset + len(data)] = data


# @intent:responsibility 小さなデバイスを広いアドレス窓に繰り返し写像します。
# @intent:note NESでは2KBの内部RAMが$0000-$1FFFに、16KBのPRG-ROMが$8000-$FFFFに反復して見える。
class MirroredDevice(Device):
    """
    window バイトの窓に対して、内側のデバイスを (offset % inner_size) で反復させるラッパー。
    """
    def __init__(self, inner: Device, window: int):
        inner_size = inner.get_size()
        if window <= 0 or window % inner_size != 0:
            raise ValueError(
                f"Mirror window ({window} bytes) must be a positive multiple of the device size ({inner_size} bytes)."
            )
        self._inner = inner
        self._window = window

    @property
    def inner(self) -> Device:
        return self._inner

    def read(self, address: int) -> int:
        return self._inner.read(address % self._inner.get_size())

    def write(self, address: int, data: int) -> None:
        self._inner.write(address % self._inner.get_size(), data)

    def load_data(self, address: int, data: int) -> None:
        self._inner.load_data(address % self._inner.get_size(), data)

    def get_size(self) -> int:
        return self._window


# @intent:responsibility アドレス空間を管理し、デバイスへのアクセスをディスパッチするCPUバス。
# @intent:rationale バスの全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus:
    """
    メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
    バス上で行われた全てのメモリアクセスを記録する機能を提供します。

    CPUコアが使うのは read / write のみです。peek と load はデバッガ・ローダー向けで、
    アクセスログに残りません。
    """
    def __init__(self, open_bus_value: int = OPEN_BUS_VALUE):
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = []
        self._open_bus_value = open_bus_value

    def _log_access(self, address: int, data: int, access_type: BusAccessType,
                    previous_data: Optional[int] = None) -> None:
        self._bus_activity_log.append(
            BusAccess(address=address, data=data, access_type=access_type, previous_data=previous_data)
        )

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition start_address <= end_address <= 0xFFFF であり、deviceはDeviceのインスタンスである必要があります。
    # @intent:rationale アドレス範囲の重複チェックは行いません。先に登録されたデバイスが優先されます。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        """
        指定されたアドレス範囲にデバイスを登録します。
        デバイスのサイズは範囲の大きさと一致している必要があります。
        """
        if not (0 <= start_address <= end_address <= ADDRESS_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address and within $0000-$FFFF.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        expected_size = end_address - start_address + 1
        if device.get_size() != expected_size:
            raise ValueError(
                f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                f"the specified address range size ({expected_size} bytes)."
            )

        self._memory_map.append((start_address, end_address, device))

    # @intent:post-condition 見つからない場合は (None, 0) を返す。
    def _find_device(self, address: int) -> Tuple[Optional[Device], int]:
        for start, end, device in self._memory_map:
            if start <= address <= end:
                return device, address - start
        return None, 0

    # @intent:responsibility 指定されたアドレスから8bitのデータを読み出します。
    # @intent:post-condition 全65536アドレスで値を返す（未割り当てはオープンバス値）。
    def read(self, address: int) -> int:
        address &= ADDRESS_MASK
        device, offset = self._find_device(address)
        if device is None:
            logger.debug("Open bus read at $%04X", address)
            data = self._open_bus_value
        else:
            data = device.read(offset)
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せずに指定されたアドレスからデータを読み出します。
    def peek(self, address: int) -> int:
        """
        副作用なしの読み出し（デバッガ・逆アセンブラ・トレーサ用）。
        """
        device, offset = self._find_device(address & ADDRESS_MASK)
        if device is None:
            return self._open_bus_value
        return device.read(offset)

    # @intent:responsibility 指定されたアドレスに8bitのデータを書き込みます。
    # @intent:note ROMや未割り当て領域への書き込みは破棄される（CPUは停止しない）。
    def write(self, address: int, data: int) -> None:
        address &= ADDRESS_MASK
        data &= 0xFF
        device, offset = self._find_device(address)
        if device is None:
            logger.debug("Ignored write of $%02X to unmapped address $%04X", data, address)
            self._log_access(address, data, BusAccessType.WRITE, previous_data=None)
            return
        previous = device.read(offset)
        device.write(offset, data)
        self._log_access(address, data, BusAccessType.WRITE, previous_data=previous)

    # @intent:responsibility ローダー・テスト用の書き込み口。ROMにも書き込め、ログに残らない。
    def load(self, address: int, data: bytes) -> None:
        """
        address から data を順に配置します。ROMであっても書き込まれます。
        """
        for i, value in enumerate(data):
            target = (address + i) & ADDRESS_MASK
            device, offset = self._find_device(target)
            if device is None:
                raise IndexError(f"Address {target:#06x} not mapped to any device.")
            device.load_data(offset, value)

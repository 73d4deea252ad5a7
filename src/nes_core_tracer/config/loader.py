import yaml
from typing import Dict, Any, Optional
from .models import SystemConfig, MemoryRegion, CpuInitialState

_DEVICE_TYPES = ("RAM", "ROM")


class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self._parse_config(data or {})

    def load_from_string(self, text: str) -> SystemConfig:
        return self._parse_config(yaml.safe_load(text) or {})

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        memory_map = []
        for region_data in data.get("memory_map", []):
            rtype = str(region_data.get("type", "RAM")).upper()
            if rtype not in _DEVICE_TYPES:
                raise ValueError(f"Unknown device type '{rtype}' (expected one of {', '.join(_DEVICE_TYPES)})")
            memory_map.append(MemoryRegion(
                start=self._parse_int(region_data.get("start")),
                end=self._parse_int(region_data.get("end")),
                type=rtype,
                label=region_data.get("label", ""),
                mirror=self._parse_optional_int(region_data.get("mirror")),
            ))

        # Parse Initial State
        initial_state_data = data.get("initial_state", {}) or {}
        registers = {
            str(name).lower(): self._parse_int(value)
            for name, value in (initial_state_data.get("registers", {}) or {}).items()
        }
        initial_state = CpuInitialState(
            pc=self._parse_optional_int(initial_state_data.get("pc")),
            sp=self._parse_optional_int(initial_state_data.get("sp")),
            use_reset_vector=bool(initial_state_data.get("use_reset_vector", True)),
            registers=registers,
        )

        return SystemConfig(
            memory_map=memory_map,
            cartridge=data.get("cartridge"),
            initial_state=initial_state,
        )

    def _parse_optional_int(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        return self._parse_int(value)

    # 整数・"0x..."・"$..." を受け付ける
    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            if text.lower().startswith("0x"):
                return int(text, 16)
            if text.startswith("$"):
                return int(text[1:], 16)
            return int(text)
        raise ValueError(f"Invalid integer format: {value}")

"""A target that accepts every operation without a real device behind it."""

from __future__ import annotations

import logging

from .target import Target

_log = logging.getLogger(__name__)

_FILL = 0x55


class TargetDummy(Target):
    """Sink for all operations when no real target exists."""

    def __init__(self) -> None:
        super().__init__()
        self._connected = False

    def connect(self) -> bool:
        self._connected = True
        return self._connected

    def disconnect(self) -> bool:
        self._connected = False
        return self._connected

    def is_connected(self) -> bool:
        return self._connected

    def port(self) -> str:
        return "<sink>"

    def set_port(self, port: str) -> bool:
        return False

    def target_name(self) -> str:
        return "<none>"

    def target_descr(self) -> str:
        return "Command sink, this is not a real target"

    def device(self) -> str:
        return "sink"

    def max_breakpoints(self) -> int:
        return 4

    def reset(self) -> None:
        print("Resetting target.")

    def step(self) -> int:
        return 0

    def add_breakpoint(self, addr: int) -> bool:
        _log.debug("adding breakpoint at %#06x to sink device", addr)
        return True

    def del_breakpoint(self, addr: int) -> bool:
        _log.debug("removing breakpoint at %#06x from sink device", addr)
        return True

    def clear_all_breakpoints(self) -> None:
        _log.debug("clearing all breakpoints on sink device")

    def run_to_bp(self, ignore_cnt: int = 0) -> None:
        _log.debug("run to breakpoint on sink device, ignoring %d", ignore_cnt)

    def is_running(self) -> bool:
        return False

    def stop(self) -> None:
        super().stop()
        print("Stopping.....")

    def read_data(self, addr: int, length: int) -> bytes:
        return bytes([_FILL]) * length

    def read_sfr(self, addr: int, length: int, page: int | None = None) -> bytes:
        return bytes([_FILL]) * length

    def read_xdata(self, addr: int, length: int) -> bytes:
        return bytes([_FILL]) * length

    def read_code(self, addr: int, length: int) -> bytes:
        return bytes([_FILL]) * length

    def read_pc(self) -> int:
        return 0x1234

    def write_data(self, addr: int, data: bytes) -> None:
        """Discard the data."""

    def write_sfr(self, addr: int, data: bytes, page: int | None = None) -> None:
        """Discard the data."""

    def write_xdata(self, addr: int, data: bytes) -> None:
        """Discard the data."""

    def write_code(self, addr: int, data: bytes) -> None:
        """Discard the data."""

    def write_pc(self, addr: int) -> None:
        """Discard the new PC."""
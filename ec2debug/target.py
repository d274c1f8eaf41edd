"""Base class for debug targets, with SFR page caching."""

from __future__ import annotations

from abc import ABC, abstractmethod

SFR_BASE = 0x80
SFR_PAGE_SIZE = 128
_BYTES_PER_LINE = 16


def buf_dump(data) -> str:
    """Render bytes as a hex and ASCII dump, 16 bytes per line."""
    lines = []
    for offset in range(0, len(data), _BYTES_PER_LINE):
        row = bytes(data[offset:offset + _BYTES_PER_LINE])
        hex_part = "".join(f"{b:02x} " for b in row).ljust(3 * _BYTES_PER_LINE)
        text = "".join(chr(b) if 0x30 <= b <= 0x7A else "." for b in row)
        lines.append(f"{offset:05x}\t{hex_part}\t{text}\n")
    return "".join(lines)


def _sfr_offset(addr: int, length: int) -> int:
    start = addr - SFR_BASE
    if start < 0 or length < 0 or start + length > SFR_PAGE_SIZE:
        raise ValueError(f"SFR range {addr:#x}+{length} outside 0x80..0xff")
    return start


class Target(ABC):
    """A device that can be debugged: connection, execution control and memory."""

    def __init__(self) -> None:
        self.force_stop = False
        self._sfr_cache: dict[int, bytearray] = {}

    # connection ----------------------------------------------------------

    @abstractmethod
    def connect(self) -> bool:
        """Connect to the target."""

    @abstractmethod
    def disconnect(self) -> bool:
        """Disconnect from the target."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the target is connected."""

    def command(self, cmd: str) -> bool:
        """Run a target specific command; returns whether it was understood."""
        return False

    @abstractmethod
    def port(self) -> str:
        """Port the target is reached through."""

    @abstractmethod
    def set_port(self, port: str) -> bool:
        """Select the port; returns whether the target accepts one."""

    @abstractmethod
    def target_name(self) -> str:
        """Short name of the target."""

    @abstractmethod
    def target_descr(self) -> str:
        """Description of the target."""

    @abstractmethod
    def device(self) -> str:
        """Name of the device being debugged."""

    @abstractmethod
    def max_breakpoints(self) -> int:
        """Maximum number of breakpoints the target supports."""

    # execution control ---------------------------------------------------

    @abstractmethod
    def reset(self) -> None:
        """Reset the target device."""

    @abstractmethod
    def step(self) -> int:
        """Step one instruction and return the new PC."""

    @abstractmethod
    def add_breakpoint(self, addr: int) -> bool:
        """Place a breakpoint at addr."""

    @abstractmethod
    def del_breakpoint(self, addr: int) -> bool:
        """Remove the breakpoint at addr."""

    @abstractmethod
    def clear_all_breakpoints(self) -> None:
        """Remove every breakpoint set in the target."""

    @abstractmethod
    def run_to_bp(self, ignore_cnt: int = 0) -> None:
        """Run until a breakpoint, passing ignore_cnt breakpoints first."""

    @abstractmethod
    def is_running(self) -> bool:
        """Whether the target is currently running."""

    def stop(self) -> None:
        """Request that the running target or operation stop."""
        self.force_stop = True

    def stop2(self) -> None:
        """Stop the target; targets may halt without waiting."""
        self.stop()

    def go(self) -> None:
        """Start the target running without waiting for it to halt."""

    def poll_for_halt(self) -> bool:
        """Whether a running target has halted."""
        return False

    def check_stop_forced(self) -> bool:
        """Return True once if a stop was requested, clearing the request."""
        if self.force_stop:
            self.force_stop = False
            return True
        return False

    # memory reads --------------------------------------------------------

    @abstractmethod
    def read_data(self, addr: int, length: int) -> bytes:
        """Read internal data RAM."""

    @abstractmethod
    def read_sfr(self, addr: int, length: int, page: int | None = None) -> bytes:
        """Read special function registers, optionally from a given page."""

    @abstractmethod
    def read_xdata(self, addr: int, length: int) -> bytes:
        """Read external data RAM."""

    @abstractmethod
    def read_code(self, addr: int, length: int) -> bytes:
        """Read code memory."""

    @abstractmethod
    def read_pc(self) -> int:
        """Read the program counter."""

    # memory writes -------------------------------------------------------

    @abstractmethod
    def write_data(self, addr: int, data: bytes) -> None:
        """Write internal data RAM."""

    def write_sfr(self, addr: int, data: bytes, page: int | None = None) -> None:
        """Keep the SFR cache current; paged writes in subclasses call this."""
        if page is None:
            return
        cached = self._sfr_cache.get(page)
        if cached is not None:
            start = _sfr_offset(addr, len(data))
            cached[start:start + len(data)] = data

    @abstractmethod
    def write_xdata(self, addr: int, data: bytes) -> None:
        """Write external data RAM."""

    @abstractmethod
    def write_code(self, addr: int, data: bytes) -> None:
        """Write code memory."""

    @abstractmethod
    def write_pc(self, addr: int) -> None:
        """Set the program counter."""

    # SFR cache -----------------------------------------------------------

    def invalidate_cache(self) -> None:
        """Forget every cached SFR page."""
        self._sfr_cache.clear()

    def read_sfr_cache(self, addr: int, page: int, length: int) -> bytes:
        """Read SFRs through the cache, loading the whole page on a miss."""
        start = _sfr_offset(addr, length)
        cached = self._sfr_cache.get(page)
        if cached is None:
            cached = bytearray(self.read_sfr(SFR_BASE, SFR_PAGE_SIZE, page))
            self._sfr_cache[page] = cached
        return bytes(cached[start:start + length])
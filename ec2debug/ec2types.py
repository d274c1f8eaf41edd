"""Shared value types for the EC2/EC3 debug adapters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

_NAME_CAPACITY = 32


@dataclass(frozen=True)
class SfrReg:
    """A special function register identified by page and address."""

    page: int
    addr: int

    def __post_init__(self) -> None:
        if not 0 <= self.page <= 0xFF:
            raise ValueError(f"SFR page out of range: {self.page:#x}")
        if not 0x80 <= self.addr <= 0xFF:
            raise ValueError(f"SFR address out of range: {self.addr:#x}")


class Ec2Mode(IntEnum):
    """Debug interface used to talk to the target device."""

    AUTO = 0
    JTAG = 1
    C2 = 2


class FlashLockType(IntEnum):
    """How a device family stores its flash lock bytes."""

    SINGLE = 0
    """Single lock byte, as on the F310."""
    SINGLE_ALT = 1
    """Single lock byte with an alternate location."""
    RW = 2
    """Separate read and write locks, as on the F020."""
    RW_ALT = 3
    """Read and write locks plus an alternate read lock location, as on the F040."""


@dataclass(frozen=True)
class DebugAdapterInfo:
    """USB identity and firmware range of a debug adapter model."""

    usb_vendor_id: int
    usb_product_id: int
    usb_out_endpoint: int
    usb_in_endpoint: int
    has_bootloader: bool
    name: str
    min_ver: int
    max_ver: int

    def __post_init__(self) -> None:
        for label in ("usb_vendor_id", "usb_product_id", "usb_out_endpoint",
                      "usb_in_endpoint", "min_ver", "max_ver"):
            value = getattr(self, label)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"{label} out of range: {value}")
        if len(self.name) >= _NAME_CAPACITY:
            raise ValueError(f"adapter name too long: {self.name!r}")
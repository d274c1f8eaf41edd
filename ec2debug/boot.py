"""Bootloader commands of the EC2/EC3 debug adapters.

These only work right after connecting, before the main application has
been started with run_app.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

PAGE_SIZE = 512
_XOR_KEY = 0x55
_EC3_CHUNK = 63
_ACK = b"\x00"


class BootError(Exception):
    """The adapter gave an unexpected or missing reply."""


class Adapter(Enum):
    """Debug adapter model, which decides how pages are sent."""

    EC2 = "EC2"
    EC3 = "EC3"


class Port(Protocol):
    def write(self, data: bytes) -> object: ...

    def read(self, size: int) -> bytes: ...


def local_page_checksum(data) -> int:
    """Checksum of a 512 byte page as the adapter computes it."""
    if len(data) != PAGE_SIZE:
        raise ValueError(f"page must be {PAGE_SIZE} bytes, got {len(data)}")
    cksum = 0
    for byte in bytes(data):
        cksum ^= byte << 8
        for _ in range(8):
            cksum = (cksum << 1) & 0xFFFF
            if cksum & 0x8000:
                cksum ^= 0x1021
    return cksum


def _xor(data: bytes) -> bytes:
    return bytes(b ^ _XOR_KEY for b in data)


class BootLoader:
    """Talks to the bootloader of a debug adapter over a byte port."""

    def __init__(self, port: Port, adapter: Adapter = Adapter.EC2) -> None:
        self.port = port
        self.adapter = adapter
        self.boot_version: int | None = None

    def _read_exact(self, size: int) -> bytes:
        data = self.port.read(size)
        if len(data) != size:
            raise BootError(f"expected {size} bytes, got {len(data)}")
        return bytes(data)

    def _trx(self, tx: bytes, expected: bytes) -> None:
        self.port.write(tx)
        reply = bytes(self.port.read(len(expected)))
        if reply != expected:
            raise BootError(f"unexpected reply {reply.hex()} to {tx.hex()}")

    def run_app(self) -> int:
        """Start the debugger application; returns its firmware version."""
        self.port.write(b"\x06\x00\x00")
        return self._read_exact(1)[0]

    def get_version(self) -> int:
        """Read and remember the bootloader version."""
        self.port.write(b"\x00\x00\x00")
        self.boot_version = self._read_exact(1)[0]
        return self.boot_version

    def erase_flash_page(self) -> None:
        """Erase the currently selected page."""
        self._trx(b"\x02\x00\x00", _ACK)

    def select_flash_page(self, page_num: int) -> None:
        """Select the page that later erase and write commands act on."""
        if not 0 <= page_num <= 0xFF:
            raise ValueError(f"page number out of range: {page_num}")
        self._trx(bytes([0x01, page_num, 0x00]), _ACK)

    def write_flash_page(self, data, do_xor: bool) -> bool:
        """Write a full page to the selected page; returns whether checksums match.

        With do_xor the data is raw and is scrambled before sending; otherwise
        it is already scrambled and is sent as is.
        """
        data = bytes(data)
        if len(data) != PAGE_SIZE:
            raise ValueError(f"page must be {PAGE_SIZE} bytes, got {len(data)}")
        self._trx(b"\x03\x02\x00", _ACK)
        if do_xor:
            out = _xor(data)
            expected = local_page_checksum(data)
        else:
            out = data
            expected = local_page_checksum(_xor(data))

        if self.adapter is Adapter.EC3:
            full = 8 * _EC3_CHUNK
            for offset in range(0, full, _EC3_CHUNK):
                self.port.write(out[offset:offset + _EC3_CHUNK])
            self.port.write(out[full:])
        else:
            self.port.write(out)
        self._read_exact(1)
        return self.page_checksum() == expected

    def read_byte(self, addr: int) -> int:
        """Read one byte of the adapter's own code memory, resending until answered."""
        if not 0 <= addr <= 0xFFFF:
            raise ValueError(f"address out of range: {addr:#x}")
        cmd = bytes([0x05, (addr >> 8) & 0xFF, addr & 0xFF])
        self.port.write(cmd)
        while True:
            reply = self.port.read(1)
            if len(reply) == 1:
                return reply[0]
            self.port.write(cmd)

    def page_checksum(self) -> int:
        """Ask the adapter for the checksum of the selected page."""
        self.port.write(b"\x04\x00\x00")
        reply = self._read_exact(2)
        return int.from_bytes(reply, "big")
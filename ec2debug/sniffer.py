"""Serial line sniffer sitting between a master and a slave port.

Bytes and handshake lines are passed from each port to the other and the
traffic is printed as ``T`` (from the master) and ``R`` (from the slave)
runs of hex bytes, the format the playback tool reads.
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import TextIO

import serial

USAGE = ("Usage : Master Slave speed format\n"
         "with speed in bps and format like [5-8][NOE][1-2]")

SPEEDS = frozenset({0, 300, 600, 1200, 2400, 4800, 9600, 19200, 38400,
                    57600, 115200, 230400})
_BYTE_SIZES = {"5": serial.FIVEBITS, "6": serial.SIXBITS,
               "7": serial.SEVENBITS, "8": serial.EIGHTBITS}
_PARITIES = {"N": serial.PARITY_NONE, "E": serial.PARITY_EVEN,
             "O": serial.PARITY_ODD}
_STOP_BITS = {"1": serial.STOPBITS_ONE, "2": serial.STOPBITS_TWO}
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class PortSettingsError(ValueError):
    """Bad speed or format; exit_code tells which part was wrong."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


@dataclass(frozen=True)
class PortSettings:
    """Line settings applied to both ports."""

    speed: int
    bytesize: int
    parity: str
    stopbits: float


def parse_port_settings(speed: str, fmt: str) -> PortSettings:
    """Parse a speed in bps and a format such as ``8N1``."""
    match = _LEADING_INT.match(speed)
    baud = int(match.group(1)) if match else 0
    if baud not in SPEEDS:
        raise PortSettingsError(f"unsupported speed {speed!r}", 1)
    bits, parity, stops = fmt[0:1], fmt[1:2], fmt[2:3]
    if bits not in _BYTE_SIZES:
        raise PortSettingsError(f"bad number of data bits in {fmt!r}", 2)
    if parity not in _PARITIES:
        raise PortSettingsError(f"bad parity in {fmt!r}", 3)
    if stops not in _STOP_BITS:
        raise PortSettingsError(f"bad number of stop bits in {fmt!r}", 4)
    return PortSettings(baud, _BYTE_SIZES[bits], _PARITIES[parity],
                        _STOP_BITS[stops])


@dataclass
class _Side:
    port: object
    peer: object
    is_master: bool
    marker: str
    lines: tuple[bool, bool] = (False, False)


class Sniffer:
    """Forwards traffic between two ports and logs it."""

    def __init__(self, master, slave, out: TextIO | None = None) -> None:
        self.out = out if out is not None else sys.stdout
        self._master_active = True
        self._sides = (
            _Side(master, slave, True, "\nT "),
            _Side(slave, master, False, "\tR "),
        )

    def _switch_to(self, side: _Side) -> None:
        if self._master_active != side.is_master:
            self._master_active = side.is_master
            self.out.write(side.marker)

    def _poll_side(self, side: _Side) -> bool:
        lines = (bool(side.port.dsr), bool(side.port.cd))
        if lines != side.lines:
            self._switch_to(side)
            dsr, cd = lines
            if dsr != side.lines[0]:
                side.peer.dtr = dsr
            if cd != side.lines[1]:
                side.peer.rts = cd
            side.lines = lines
            self.out.flush()
        data = side.port.read(1)
        if not data:
            return False
        self._switch_to(side)
        side.peer.write(data)
        self.out.write(f"0x{data[0]:02X} ")
        self.out.flush()
        return True

    def poll(self) -> bool:
        """Check both ports once; returns whether any byte was forwarded."""
        forwarded = False
        for side in self._sides:
            forwarded |= self._poll_side(side)
        return forwarded

    def run(self) -> None:
        """Poll the ports forever."""
        while True:
            self.poll()


def _open(path: str, settings: PortSettings):
    port = serial.Serial(
        port=path,
        baudrate=settings.speed,
        bytesize=settings.bytesize,
        parity=settings.parity,
        stopbits=settings.stopbits,
        timeout=0,
        xonxoff=False,
        rtscts=False,
    )
    port.reset_input_buffer()
    port.reset_output_buffer()
    return port


def main(argv=None) -> int:
    """Sniff traffic: master slave speed format."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 4:
        print(USAGE)
        return 1
    master_path, slave_path, speed, fmt = args
    try:
        settings = parse_port_settings(speed, fmt)
    except PortSettingsError as exc:
        print(USAGE)
        return exc.exit_code
    try:
        master = _open(master_path, settings)
    except (OSError, ValueError) as exc:
        print(f"cannot open {master_path}: {exc}")
        return 1
    try:
        slave = _open(slave_path, settings)
    except (OSError, ValueError) as exc:
        master.close()
        print(f"cannot open {slave_path}: {exc}")
        return 1
    print("Master")
    try:
        Sniffer(master, slave).run()
    except KeyboardInterrupt:
        pass
    finally:
        master.close()
        slave.close()
    return 0
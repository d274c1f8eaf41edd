"""Replay a recorded debug adapter conversation over a serial port.

The script holds one exchange per line: the bytes the PC sends after a
``T`` and the bytes the adapter answers with after an ``R``, e.g.
``T 0x01 0x02 \tR 0x0D``. Lines that are empty or contain ``//`` are
comments. Playing the adapter's part, the replayer waits for each
transmission and then sends the recorded reply.
"""

from __future__ import annotations

import argparse
import logging
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

import serial

_log = logging.getLogger(__name__)

BAUD_RATE = 115200
READ_TIMEOUT = 5.0
WRITE_SETTLE = 0.01
_DRAIN_SIZE = 0x0C
_HEX_SPAN = re.compile(r"[0-9a-fA-F](?:.*[0-9a-fA-F])?", re.S)


def parse_byte_list(text: str) -> bytes:
    """Parse space separated hex bytes such as ``0x01 0x02 ff``.

    Anything before the first hex digit or after the last one is ignored.
    """
    match = _HEX_SPAN.search(text)
    if match is None:
        raise ValueError(f"no bytes in {text!r}")
    values = []
    for token in match.group(0).split():
        try:
            value = int(token, 16)
        except ValueError:
            raise ValueError(f"not a hex byte: {token!r}") from None
        if not 0 <= value <= 0xFF:
            raise ValueError(f"byte out of range: {token!r}")
        values.append(value)
    return bytes(values)


@dataclass(frozen=True)
class Exchange:
    """Bytes the PC sends and the adapter's reply to them."""

    tx: bytes
    rx: bytes


def parse_script(lines: Iterable[str]) -> list[Exchange]:
    """Exchanges from the lines of a playback script.

    Lines without a ``T`` followed later by an ``R`` are ignored.
    """
    exchanges = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line or "//" in line:
            continue
        t = line.find("T")
        r = line.find("R")
        if t >= 0 and r > t:
            exchanges.append(Exchange(parse_byte_list(line[t + 1:r]),
                                      parse_byte_list(line[r + 1:])))
    return exchanges


def _hex(data: bytes) -> str:
    return " ".join(f"0x{b:02x}" for b in data)


@dataclass
class Ec2Sim:
    """Plays the adapter's side of a recorded conversation."""

    port: object | None = None
    exchanges: list[Exchange] = field(default_factory=list)

    def load_file(self, path: str) -> list[Exchange]:
        """Append the exchanges of a script file and return them."""
        with open(path, encoding="latin-1") as handle:
            loaded = parse_script(handle)
        self.exchanges.extend(loaded)
        return loaded

    def open_port(self, port: str) -> None:
        """Open the serial port at 115200 baud, 8N1, without flow control."""
        self.port = serial.Serial(
            port=port,
            baudrate=BAUD_RATE,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=READ_TIMEOUT,
            xonxoff=False,
            rtscts=False,
        )

    def _require_port(self):
        if self.port is None:
            raise RuntimeError("serial port is not open")
        return self.port

    def _read(self, size: int) -> bytes:
        data = self._require_port().read(size)
        if not data:
            print("TIMEOUT")
            return b""
        _log.debug("RX: %s", _hex(data))
        return bytes(data)

    def _write(self, data: bytes) -> None:
        port = self._require_port()
        port.reset_output_buffer()
        port.reset_input_buffer()
        port.write(data)
        time.sleep(WRITE_SETTLE)
        _log.debug("TX: %s", _hex(data))

    def go(self) -> None:
        """Answer each expected transmission, then keep draining the port."""
        for exchange in self.exchanges:
            _log.debug("waiting for: %s", _hex(exchange.tx))
            while not self._read(len(exchange.tx)):
                pass
            self._write(exchange.rx)
        while True:
            self._read(_DRAIN_SIZE)


def main(argv=None) -> int:
    """Replay a script file on a serial port."""
    parser = argparse.ArgumentParser(
        prog="ec2-playback", description="Emulate a debug adapter from a script.")
    parser.add_argument("--port", required=True, help="serial port to answer on")
    parser.add_argument("--file", required=True, help="playback script")
    args = parser.parse_args(argv)

    print("ec2emulator")
    sim = Ec2Sim()
    try:
        sim.load_file(args.file)
    except (OSError, ValueError) as exc:
        print(f"Unable to load file '{args.file}': {exc}")
        return 1
    try:
        sim.open_port(args.port)
    except (OSError, ValueError) as exc:
        print(f"open_port: Unable to open {args.port}: {exc}")
        return 1
    try:
        sim.go()
    except KeyboardInterrupt:
        return 0
    return 0
"""Debug target backed by the s51 8051 simulator over a local socket."""

from __future__ import annotations

import re
import select
import socket
import subprocess
import time
from collections.abc import Sequence

from .target import Target, buf_dump

SIM_HOST = "127.0.0.1"
SIM_PORT = 9756
SIM_COMMAND = ("s51", f"-Z{SIM_PORT}", "-tC52")

_ROW_BYTES = 8
_WRITE_CHUNK = 16
_ENCODING = "latin-1"


def parse_mem_dump(dump: str, length: int) -> bytes:
    """Parse a simulator memory dump into `length` bytes.

    Each line holds an address followed by up to eight hex bytes, e.g.
    ``0x08 00 bc d4 b6 3d 1c 3e 22 ....=.>"``.
    """
    if length < 0:
        raise ValueError(f"negative length: {length}")
    rows = -(-length // _ROW_BYTES)
    lines = dump.split("\n")
    if len(lines) < rows:
        raise ValueError(f"memory dump has {len(lines)} lines, need {rows}")
    out = bytearray()
    for row, line in zip(range(rows), lines):
        _, _, rest = line.partition(" ")
        count = min(_ROW_BYTES, length - row * _ROW_BYTES)
        for i in range(count):
            field = rest[3 * i:3 * i + 2]
            if not re.fullmatch(r"[0-9a-fA-F]{2}", field):
                raise ValueError(f"malformed memory dump line: {line!r}")
            out.append(int(field, 16))
    return bytes(out)


def parse_pc(response: str) -> int:
    """Extract the program counter from the simulator's reply to ``pc``."""
    pos = response.find("0x")
    if pos < 0:
        raise ValueError(f"no program counter in reply: {response!r}")
    match = re.match(r"0x([0-9a-fA-F]+)", response[pos:])
    if match is None:
        raise ValueError(f"malformed program counter in reply: {response!r}")
    return int(match.group(1), 16) & 0xFFFF


def parse_breakpoint_ids(table: str) -> list[int]:
    """Breakpoint numbers listed in the reply to ``info breakpoints``.

    Parsing stops at the first empty or unterminated line; the header line
    (starting with ``N``) and lines without a leading number are skipped.
    """
    ids = []
    pos = 0
    while True:
        end = table.find("\n", pos)
        if end <= pos:
            return ids
        line = table[pos:end]
        if not line.startswith("N"):
            match = re.match(r"\s*(\d+)", line)
            if match:
                ids.append(int(match.group(1)))
        pos = end + 1


def mem_write_commands(area: str, addr: int, data) -> list[str]:
    """Commands that write `data` to memory `area` starting at `addr`."""
    data = bytes(data)
    commands = []
    for offset in range(0, len(data), _WRITE_CHUNK):
        chunk = data[offset:offset + _WRITE_CHUNK]
        values = "".join(f" 0x{b:02x}" for b in chunk)
        commands.append(f"set mem {area} 0x{addr + offset:04X}{values}\n")
    return commands


class TargetS51(Target):
    """Target for debugging with the s51 simulator.

    If nothing answers on the simulator port, the simulator is started as a
    child process and the connection is retried.
    """

    def __init__(
        self,
        host: str = SIM_HOST,
        sim_port: int = SIM_PORT,
        sim_command: Sequence[str] = SIM_COMMAND,
        retries: int = 10,
        retry_delay: float = 1.0,
    ) -> None:
        super().__init__()
        self.host = host
        self.sim_port = sim_port
        self.sim_command = tuple(sim_command)
        self.retries = retries
        self.retry_delay = retry_delay
        self._sock: socket.socket | None = None
        self._proc: subprocess.Popen | None = None
        self._connected = False
        self._running = False
        self._pending = bytearray()
        self._eof = False

    # connection ----------------------------------------------------------

    def connect(self) -> bool:
        self._running = False
        if self._connected:
            return False
        attempt = 0
        while True:
            try:
                sock = socket.create_connection((self.host, self.sim_port))
                break
            except OSError as exc:
                if attempt >= self.retries:
                    raise ConnectionError(
                        f"cannot connect to simulator at {self.host}:{self.sim_port}"
                    ) from exc
                if attempt == 0:
                    self._start_simulator()
                attempt += 1
                time.sleep(self.retry_delay)
        self._sock = sock
        self._pending.clear()
        self._eof = False
        self._connected = True
        self._recv(200)
        return True

    def _start_simulator(self) -> None:
        try:
            self._proc = subprocess.Popen(
                list(self.sim_command),
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise ConnectionError(
                f"cannot exec simulator {self.sim_command[0]!r}"
            ) from exc
        print(f"simi: simulator pid {self._proc.pid}")

    def disconnect(self) -> bool:
        if self._connected:
            try:
                self._send("quit\n")
                self._recv(2000)
            except OSError:
                pass
            finally:
                self._connected = False
                self._close_socket()
                if self._proc is not None:
                    self._proc.kill()
                    self._proc.wait()
                    self._proc = None
        return True

    def _close_socket(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()
        self._sock = None

    def is_connected(self) -> bool:
        return self._connected

    def port(self) -> str:
        return "local"

    def set_port(self, port: str) -> bool:
        return False

    def target_name(self) -> str:
        return "S51"

    def target_descr(self) -> str:
        return "S51 8051 Simulator"

    def device(self) -> str:
        return "8052"

    def max_breakpoints(self) -> int:
        return 0xFFFF

    def command(self, cmd: str) -> bool:
        """Send a raw simulator command; ``test`` dumps the first 128 bytes of RAM."""
        if cmd == "test":
            print(buf_dump(self.read_data(0, 0x80)), end="")
        else:
            self._send(cmd + "\n")
            print(self._recv(250))
        return True

    # simulator I/O -------------------------------------------------------

    def _send(self, cmd: str) -> None:
        if self._connected and self._sock is not None:
            self._sock.sendall(cmd.encode(_ENCODING))

    def _fill(self, timeout: float) -> bool:
        """Read what arrives within `timeout` seconds; False on timeout or EOF."""
        if self._eof or self._sock is None:
            return False
        ready, _, _ = select.select([self._sock], [], [], timeout)
        if not ready:
            return False
        try:
            chunk = self._sock.recv(4096)
        except OSError:
            chunk = b""
        if not chunk:
            self._eof = True
            return False
        self._pending += chunk
        return True

    def _take_pending(self) -> str:
        text = self._pending.decode(_ENCODING)
        self._pending.clear()
        return text

    def _recv(self, timeout_ms: int) -> str:
        """Collect output until the simulator stays quiet for `timeout_ms`."""
        if not self._connected:
            return ""
        while self._fill(timeout_ms / 1000):
            pass
        return self._take_pending()

    def _recv_line(self, timeout_ms: int) -> str:
        """Read one line, or whatever arrived before a timeout."""
        if not self._connected:
            return ""
        while True:
            newline = self._pending.find(b"\n")
            if newline >= 0:
                line = bytes(self._pending[:newline]).decode(_ENCODING)
                del self._pending[:newline + 1]
                return line
            if not self._fill(timeout_ms / 1000):
                return self._take_pending()

    def _write_mem(self, area: str, addr: int, data) -> None:
        for cmd in mem_write_commands(area, addr, data):
            self._send(cmd)
            self._recv(250)

    # execution control ---------------------------------------------------

    def reset(self) -> None:
        self._send("reset\n")
        self._recv(250)
        self._running = False

    def step(self) -> int:
        self._send("step\n")
        self._recv(100)
        self._running = False
        return self.read_pc()

    def add_breakpoint(self, addr: int) -> bool:
        self._send(f"break 0x{addr:x}\n")
        self._recv(100)
        return True

    def del_breakpoint(self, addr: int) -> bool:
        self._send(f"clear 0x{addr:x}\n")
        reply = self._recv(100)
        return not reply.startswith("No breakpoint at")

    def clear_all_breakpoints(self) -> None:
        self._send("info breakpoints\n")
        table = self._recv(100)
        for bp_id in parse_breakpoint_ids(table):
            self._send(f"delete {bp_id}\n")
            self._recv(100)

    def run_to_bp(self, ignore_cnt: int = 0) -> None:
        for _ in range(ignore_cnt + 1):
            self._send("go\n")
            while True:
                reply = self._recv(100)
                if "Stop" in reply:
                    break
                if self._eof:
                    raise ConnectionError("simulator closed the connection")

    def is_running(self) -> bool:
        return self._running

    def stop(self) -> None:
        super().stop()
        self._send("stop\n")
        self._recv(100)
        self._running = False

    def go(self) -> None:
        self._send("go\n")
        self._recv_line(100)
        self._running = True

    def poll_for_halt(self) -> bool:
        if self._running:
            return len(self._recv(100)) > 0
        return True

    # memory reads --------------------------------------------------------

    def read_data(self, addr: int, length: int) -> bytes:
        self._send(f"di 0x{addr:02x} 0x{addr + length - 1:02x}\n")
        return parse_mem_dump(self._recv(250), length)

    def read_sfr(self, addr: int, length: int, page: int | None = None) -> bytes:
        self._send(f"ds 0x{addr:02x} 0x{addr + length - 1:02x}\n")
        return parse_mem_dump(self._recv(250), length)

    def read_xdata(self, addr: int, length: int) -> bytes:
        self._send(f"ds 0x{addr:04x} 0x{addr + length - 1:04x}\n")
        return parse_mem_dump(self._recv(250), length)

    def read_code(self, addr: int, length: int) -> bytes:
        self._send(f"dch 0x{addr:04x} 0x{addr + length - 1:04x}\n")
        return parse_mem_dump(self._recv(250), length)

    def read_pc(self) -> int:
        if not self._connected:
            return 0
        self._recv(100)
        self._send("pc\n")
        return parse_pc(self._recv(250))

    # memory writes -------------------------------------------------------

    def write_data(self, addr: int, data: bytes) -> None:
        self._write_mem("iram", addr, data)

    def write_sfr(self, addr: int, data: bytes, page: int | None = None) -> None:
        if page is not None:
            super().write_sfr(addr, data, page)
        self._write_mem("sfr", addr, data)

    def write_xdata(self, addr: int, data: bytes) -> None:
        self._write_mem("xram", addr, data)

    def write_code(self, addr: int, data: bytes) -> None:
        self._write_mem("rom", addr, data)

    def write_pc(self, addr: int) -> None:
        self._send(f"pc 0x{addr:04x}\n")
        self._recv(250)
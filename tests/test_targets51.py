import socket
import threading

import pytest

from ec2debug.targets51 import (
    TargetS51,
    mem_write_commands,
    parse_breakpoint_ids,
    parse_mem_dump,
    parse_pc,
)

SAMPLE_ROW = '0x08 00 bc d4 b6 3d 1c 3e 22 ....=.>"'
SAMPLE_BYTES = bytes.fromhex("00bcd4b63d1c3e22")
PC_REPLY = "0x000078 74 04    MOV   A,#04\n"


class FakeSim:
    """A tiny line-based server standing in for the simulator."""

    def __init__(self, replies=None, banner="S51 ready\n"):
        self.replies = dict(replies or {})
        self.banner = banner
        self.received = []
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.bind(("127.0.0.1", 0))
        self.server.listen(1)
        self.port = self.server.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        try:
            conn, _ = self.server.accept()
        except OSError:
            return
        with conn:
            conn.sendall(self.banner.encode())
            buf = b""
            while True:
                try:
                    data = conn.recv(4096)
                except OSError:
                    return
                if not data:
                    return
                buf += data
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    text = line.decode()
                    self.received.append(text)
                    if text == "quit":
                        return
                    reply = self.replies.get(text, "")
                    if reply:
                        conn.sendall(reply.encode())

    def close(self):
        self.server.close()
        self.thread.join(timeout=5)


@pytest.fixture
def sim_factory():
    created = []

    def make(replies=None):
        sim = FakeSim(replies)
        target = TargetS51(sim_port=sim.port, retries=0, retry_delay=0)
        assert target.connect() is True
        created.append((sim, target))
        return sim, target

    yield make
    for sim, target in created:
        target.disconnect()
        sim.close()


def _unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


# pure parsing ---------------------------------------------------------------


def test_parse_mem_dump_full_row():
    assert parse_mem_dump(SAMPLE_ROW + "\n", 8) == SAMPLE_BYTES


def test_parse_mem_dump_partial_row():
    assert parse_mem_dump(SAMPLE_ROW + "\n", 3) == SAMPLE_BYTES[:3]


def test_parse_mem_dump_multiple_rows():
    dump = SAMPLE_ROW + "\n" + "0x10 01 02 03 04 05 06 07 08 ........\n"
    result = parse_mem_dump(dump, 10)
    assert result == SAMPLE_BYTES + bytes([1, 2])


def test_parse_mem_dump_zero_length():
    assert parse_mem_dump("", 0) == b""


def test_parse_mem_dump_malformed_raises():
    with pytest.raises(ValueError):
        parse_mem_dump("0x08 zz 01\n", 2)


def test_parse_mem_dump_too_short_raises():
    with pytest.raises(ValueError):
        parse_mem_dump("0x08 01 02\n", 3)


def test_parse_pc():
    assert parse_pc(PC_REPLY) == 0x78


def test_parse_pc_without_value_raises():
    with pytest.raises(ValueError):
        parse_pc("no counter here\n")


def test_parse_breakpoint_ids_skips_header():
    table = "Num Type       Disp Hit   Cnt   Address\n1   breakpoint keep\n2   breakpoint keep\n"
    assert parse_breakpoint_ids(table) == [1, 2]


def test_parse_breakpoint_ids_stops_at_blank_and_unterminated_lines():
    assert parse_breakpoint_ids("3 a\n\n4 b\n") == [3]
    assert parse_breakpoint_ids("5 a\n6 b") == [5]
    assert parse_breakpoint_ids("") == []


def test_mem_write_commands_format():
    assert mem_write_commands("iram", 0x10, b"\x01\xab") == ["set mem iram 0x0010 0x01 0xab\n"]


def test_mem_write_commands_chunks():
    data = bytes(range(20))
    cmds = mem_write_commands("xram", 0x100, data)
    assert len(cmds) == 2
    assert cmds[0].startswith("set mem xram 0x0100 ")
    assert cmds[0].count(" 0x") == 1 + 16
    assert cmds[1].startswith("set mem xram 0x0110 ")
    assert cmds[1].count(" 0x") == 1 + 4
    assert all(c.endswith("\n") for c in cmds)


def test_mem_write_commands_empty():
    assert mem_write_commands("rom", 0, b"") == []


# target without a simulator -------------------------------------------------


def test_identity():
    target = TargetS51()
    assert target.target_name() == "S51"
    assert target.target_descr() == "S51 8051 Simulator"
    assert target.device() == "8052"
    assert target.port() == "local"
    assert target.set_port("/dev/ttyS0") is False
    assert target.max_breakpoints() == 0xFFFF


def test_unconnected_state():
    target = TargetS51()
    assert target.is_connected() is False
    assert target.read_pc() == 0
    assert target.disconnect() is True
    assert target.poll_for_halt() is True


def test_connect_failure_raises():
    target = TargetS51(
        sim_port=_unused_port(),
        sim_command=("no-such-simulator-binary-xyz",),
        retries=1,
        retry_delay=0,
    )
    with pytest.raises(ConnectionError):
        target.connect()
    assert target.is_connected() is False


# target against a fake simulator ---------------------------------------------


def test_connect_twice(sim_factory):
    _, target = sim_factory()
    assert target.is_connected() is True
    assert target.connect() is False


def test_read_data(sim_factory):
    sim, target = sim_factory({"di 0x08 0x0f": SAMPLE_ROW + "\n"})
    assert target.read_data(0x08, 8) == SAMPLE_BYTES
    assert "di 0x08 0x0f" in sim.received


def test_read_pc_and_step(sim_factory):
    sim, target = sim_factory({"pc": PC_REPLY})
    assert target.step() == 0x78
    assert sim.received[-2:] == ["step", "pc"]
    assert target.is_running() is False


def test_write_data_sends_set_mem(sim_factory):
    sim, target = sim_factory()
    target.write_data(0x20, b"\x01\x02")
    target.reset()
    assert "set mem iram 0x0020 0x01 0x02" in sim.received
    assert sim.received[-1] == "reset"


def test_write_pc(sim_factory):
    sim, target = sim_factory()
    target.write_pc(0x1234)
    target.reset()
    assert sim.received[-2:] == ["pc 0x1234", "reset"]


def test_breakpoints(sim_factory):
    sim, target = sim_factory({
        "clear 0x78": "No breakpoint at 0x000078\n",
        "clear 0x80": "Breakpoint 1 at 0x000080 deleted\n",
    })
    assert target.add_breakpoint(0x78) is True
    assert "break 0x78" in sim.received
    assert target.del_breakpoint(0x78) is False
    assert target.del_breakpoint(0x80) is True


def test_clear_all_breakpoints(sim_factory):
    table = "Num Type       Disp Hit   Cnt   Address\n1   breakpoint keep\n2   breakpoint keep\n"
    sim, target = sim_factory({"info breakpoints": table})
    target.clear_all_breakpoints()
    target.reset()
    assert sim.received[-3:] == ["delete 1", "delete 2", "reset"]


def test_run_to_bp_ignores_count(sim_factory):
    reply = "Simulation started, PC=0x00006f\nStop at 0x000078: (104) Breakpoint\n"
    sim, target = sim_factory({"go": reply})
    target.run_to_bp(1)
    target.reset()
    assert sim.received.count("go") == 2


def test_go_poll_and_stop(sim_factory):
    sim, target = sim_factory({"go": "Simulation started, PC=0x00006f\n"})
    target.go()
    assert target.is_running() is True
    assert target.poll_for_halt() is False
    target.stop()
    assert target.is_running() is False
    assert target.check_stop_forced() is True
    assert target.check_stop_forced() is False
    assert "stop" in sim.received


def test_sfr_cache_follows_paged_write(sim_factory):
    page_dump = "".join(
        f"0x{0x80 + 8 * row:02x} " + "00 " * 8 + "........\n" for row in range(16)
    )
    sim, target = sim_factory({"ds 0x80 0xff": page_dump})
    assert target.read_sfr_cache(0x90, 0, 2) == b"\x00\x00"
    target.write_sfr(0x90, b"\x12", page=0)
    assert target.read_sfr_cache(0x90, 0, 2) == b"\x12\x00"
    assert sim.received.count("ds 0x80 0xff") == 1
    assert "set mem sfr 0x0090 0x12" in sim.received


def test_raw_command(sim_factory):
    sim, target = sim_factory({"info registers": "ACC= 0x00\n"})
    assert target.command("info registers") is True
    assert "info registers" in sim.received


def test_disconnect_sends_quit(sim_factory):
    sim, target = sim_factory()
    assert target.disconnect() is True
    assert target.is_connected() is False
    sim.thread.join(timeout=5)
    assert sim.received[-1] == "quit"
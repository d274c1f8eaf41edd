import pytest

from ec2debug.playback import (
    Ec2Sim,
    Exchange,
    main,
    parse_byte_list,
    parse_script,
)


class _Done(Exception):
    pass


class FakePort:
    def __init__(self, reads):
        self.reads = list(reads)
        self.read_sizes = []
        self.written = []

    def read(self, size):
        self.read_sizes.append(size)
        if not self.reads:
            raise _Done
        return self.reads.pop(0)

    def write(self, data):
        self.written.append(bytes(data))

    def reset_input_buffer(self):
        pass

    def reset_output_buffer(self):
        pass


def test_parse_byte_list_prefixed():
    assert parse_byte_list("0x01 0x02 0xff") == bytes([1, 2, 255])


def test_parse_byte_list_ignores_surrounding_text():
    assert parse_byte_list(" \t0x0C \t") == bytes([0x0C])


def test_parse_byte_list_without_prefix_is_hex():
    assert parse_byte_list("12 ab") == bytes([0x12, 0xAB])


def test_parse_byte_list_empty_raises():
    with pytest.raises(ValueError):
        parse_byte_list("   ")


def test_parse_byte_list_out_of_range_raises():
    with pytest.raises(ValueError):
        parse_byte_list("0x100")


def test_parse_script_skips_comments_and_blank_lines():
    lines = [
        "// recorded session\n",
        "\n",
        "T 0x01 0x02 \tR 0x03 \n",
        "T 0x06 0x00 0x00 \tR 0x0d\n",
    ]
    assert parse_script(lines) == [
        Exchange(bytes([1, 2]), bytes([3])),
        Exchange(bytes([6, 0, 0]), bytes([0x0D])),
    ]


def test_parse_script_ignores_reply_before_transmit():
    assert parse_script(["R 0x01 T 0x02\n"]) == []


def test_load_file_appends(tmp_path):
    script = tmp_path / "session.txt"
    script.write_text("T 0x05 0x00 0x10 \tR 0x42\n// end\n")
    sim = Ec2Sim()
    loaded = sim.load_file(str(script))
    assert loaded == [Exchange(bytes([5, 0, 0x10]), bytes([0x42]))]
    assert sim.exchanges == loaded


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        Ec2Sim().load_file(str(tmp_path / "missing.txt"))


def test_go_answers_each_exchange_in_order():
    exchanges = [Exchange(b"\x01\x02", b"\x03"), Exchange(b"\x04", b"\x05\x06")]
    port = FakePort([b"\x01\x02", b"\x04"])
    sim = Ec2Sim(port=port, exchanges=exchanges)
    with pytest.raises(_Done):
        sim.go()
    assert port.written == [b"\x03", b"\x05\x06"]
    assert port.read_sizes[:2] == [2, 1]


def test_go_retries_after_timeout(capsys):
    port = FakePort([b"", b"\x01"])
    sim = Ec2Sim(port=port, exchanges=[Exchange(b"\x01", b"\x02")])
    with pytest.raises(_Done):
        sim.go()
    assert port.written == [b"\x02"]
    assert "TIMEOUT" in capsys.readouterr().out


def test_go_drains_after_script():
    port = FakePort([b"\x01", b"\xaa"])
    sim = Ec2Sim(port=port, exchanges=[Exchange(b"\x01", b"\x02")])
    with pytest.raises(_Done):
        sim.go()
    assert port.read_sizes[1:] == [0x0C, 0x0C]


def test_go_without_port_raises():
    with pytest.raises(RuntimeError):
        Ec2Sim().go()


def test_main_missing_file_fails(tmp_path):
    missing = str(tmp_path / "none.txt")
    assert main(["--file", missing, "--port", str(tmp_path / "tty")]) == 1
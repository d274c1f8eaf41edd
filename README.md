# ec2debug

Building blocks for a source-level debugger for 8051-family
microcontrollers. The package also has two small serial tools for working
on the debug adapter protocol.

## Modules

- `ec2debug.target`: the abstract `Target` base class that every debug
  target implements.
  - It covers connection, breakpoints, run and stop control (`stop`,
    `check_stop_forced`, `go`, `poll_for_halt`), and memory reads and
    writes for data, SFR, xdata and code memory.
  - It keeps a per-page SFR cache: `read_sfr_cache`, `invalidate_cache`,
    and paged `write_sfr` updates.
  - `buf_dump(data)` renders bytes as a 16-bytes-per-line hex/ASCII dump.
- `ec2debug.target_dummy`: `TargetDummy`, a sink target for when no device
  is attached. Every read returns `0x55` bytes, `read_pc()` returns
  `0x1234`, and writes are discarded.
- `ec2debug.targets51`: `TargetS51`, which drives the `s51` simulator over
  its TCP command port (127.0.0.1:9756 by default).
  - If nothing is listening, it starts `s51 -Z9756 -tC52` as a child
    process and retries the connection.
  - Helper functions: `parse_mem_dump`, `parse_pc`, `parse_breakpoint_ids`
    and `mem_write_commands`.
- `ec2debug.boot`: `BootLoader`, which drives the EC2/EC3 adapter
  bootloader over any object with `read(size)` and `write(data)`, such as
  a `serial.Serial`.
  - It can run the application, read the bootloader version, select, erase
    and write 512-byte flash pages, read single bytes, and fetch page
    checksums.
  - `local_page_checksum()` computes the same checksum on the host.
  - `Adapter` selects EC2 or EC3 transfer chunking.
  - Unexpected replies raise `BootError`.
- `ec2debug.ec2types`: shared value types `SfrReg`, `Ec2Mode`,
  `FlashLockType` and `DebugAdapterInfo`. They check their value ranges.
- `ec2debug.symtab`: `SymTab`, the symbol table.
  - It holds `Symbol` entries with a `Scope` (global, file or local).
  - It maps C and assembler source lines to code addresses (`FileEntry`)
    and finds the file and line at an address.
  - It finds functions by name or address.
  - `lookup()` searches local, then file, then global scope.
  - An optional module manager is told about each source file and line
    mapping as it is added.
- `ec2debug.symtypetree`: `SymTypeTree` and the `SymType` family.
  - The tree starts with the terminal types: `char`, `unsigned char`,
    `short`, `unsigned short`, `int`, `unsigned int`, `long`,
    `unsigned long`, `float` and `sbit`.
  - `SymTypeStruct` types can be added to it. They store their members by
    type name.
  - `get_type()` returns the first type with a given name.

## Installing

```
pip install .
```

To also install the test requirements:

```
pip install .[test]
```

## Command-line tools

### ec2-playback

`ec2-playback` replays a recorded adapter session on a serial port, so the
device on the other end sees a fake adapter. The port is opened at
115200 baud, 8N1, with no flow control.

A script holds one exchange per line: the bytes to wait for after a `T`,
then the bytes to send back after an `R`. For example:

```
T 0x06 0x00 0x00	R 0x14
```

- Blank lines and lines containing `//` are skipped.
- Lines without a `T` followed by an `R` are ignored.

After the last exchange, the tool keeps reading the port until it is
interrupted.

```
ec2-playback --port /dev/ttyS0 --file session.txt
```

### ec2-sniffer

`ec2-sniffer` sits between a master and a slave serial port and forwards
bytes in both directions. It also mirrors the handshake lines: DSR on one
side drives DTR on the other, and CD drives RTS.

Traffic is printed as hex bytes: master-to-slave bytes after `T`,
slave-to-master bytes after `R`. This is the format `ec2-playback` reads.

```
ec2-sniffer /dev/ttyS0 /dev/ttyS1 115200 8N1
```

- The speed must be one of 0, 300, 600, 1200, 2400, 4800, 9600, 19200,
  38400, 57600, 115200 or 230400.
- The format is data bits (5–8), then parity (`N`, `O` or `E`), then stop
  bits (1 or 2).
- A bad argument prints the usage text and exits with a non-zero status.

## Using the library

```python
from ec2debug.target_dummy import TargetDummy
from ec2debug.boot import local_page_checksum
from ec2debug.symtypetree import SymTypeStruct, SymTypeTree

target = TargetDummy()
target.connect()
print(target.read_data(0x20, 4))          # b'UUUU'

print(hex(local_page_checksum(bytes(512))))  # 0x0

tree = SymTypeTree()
coords = SymTypeStruct("COORDS")
coords.add_member("x", "int")
coords.add_member("y", "int")
tree.add_type(coords)
print(tree.dump("COORDS"))                # int x / int y
```

## What this package does not do

- **No debugger front end.** There is no interactive command line for
  setting breakpoints, stepping or printing variables.
- **No debug-information reader.** Nothing reads compiler debug files to
  fill `SymTab` and `SymTypeTree`; callers add symbols, line mappings and
  types themselves.
- **No values printed from target memory.** The types do not format memory
  contents, and `SymTypeStruct.size` is always 0.
- **Only two targets.** `TargetS51` (simulator) and `TargetDummy` are the
  only targets. There is no target that debugs a device through EC2/EC3
  hardware.
- **Bootloader only on the adapter.** `BootLoader` covers only the
  adapter's own bootloader commands.
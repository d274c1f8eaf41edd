"""Symbol table: symbols plus file/line to address mappings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

_log = logging.getLogger(__name__)

_RULE = "=" * 81
_C_EXT = ".c"
_ASM_EXTS = (".asm", ".a51")


class Scope(Enum):
    """Visibility of a symbol."""

    GLOBAL = "G"
    FILE = "F"
    LOCAL = "L"


@dataclass
class Symbol:
    """A named object in the program being debugged."""

    name: str
    scope: Scope = Scope.GLOBAL
    file: str = ""
    function: str = ""
    level: int = 0
    block: int = 0
    addr: int = 0
    end_addr: int = 0
    is_function: bool = False
    flat_addr: int | None = None

    @property
    def flat_start_addr(self) -> int:
        """Start address in the single flat address space."""
        return self.addr if self.flat_addr is None else self.flat_addr


@dataclass(frozen=True)
class FileEntry:
    """Mapping of one source line to a code address."""

    file_id: int
    line_num: int
    addr: int
    level: int = 0
    block: int = 0


class Module(Protocol):
    def load_c_file(self, path: str) -> object: ...

    def load_asm_file(self, path: str) -> object: ...

    def set_c_addr(self, line: int, addr: int) -> object: ...

    def set_c_block_level(self, line: int, block: int, level: int) -> object: ...

    def set_asm_addr(self, line: int, addr: int) -> object: ...


class ModuleManager(Protocol):
    def add_module(self, name: str) -> Module: ...


def _check_addr(addr: int) -> None:
    if not 0 <= addr <= 0xFFFF:
        raise ValueError(f"code address out of range: {addr:#x}")


class SymTab:
    """Main symbol table and the line number to address tables.

    An optional module manager is told about every source file and line
    mapping that is added, so it can load the source text.
    """

    def __init__(self, modules: ModuleManager | None = None) -> None:
        self.modules = modules
        self.symbols: list[Symbol] = []
        self.c_lines: list[FileEntry] = []
        self.asm_lines: list[FileEntry] = []
        self._file_map: list[str] = []

    def clear(self) -> None:
        """Empty every table, ready to load a new debug file."""
        self.symbols.clear()
        self._file_map.clear()
        self.c_lines.clear()
        self.asm_lines.clear()

    # files ---------------------------------------------------------------

    def file_map(self) -> list[str]:
        """Names of the source files known, in order of first appearance."""
        return list(self._file_map)

    def _file_id(self, filename: str) -> int | None:
        try:
            return self._file_map.index(filename)
        except ValueError:
            return None

    def _register_file(self, filename: str) -> tuple[int, bool]:
        fid = self._file_id(filename)
        if fid is not None:
            return fid, False
        self._file_map.append(filename)
        return len(self._file_map) - 1, True

    # symbols -------------------------------------------------------------

    def add_symbol(self, sym: Symbol) -> None:
        """Append a symbol, warning if one of that name and scope exists."""
        if any(s.name == sym.name and s.scope == sym.scope for s in self.symbols):
            _log.warning("reloading symbol %r (%s)", sym.name, sym.scope.name)
        self.symbols.append(sym)

    def find_symbol(self, file: str, scope: Scope, name: str) -> Symbol | None:
        """The first symbol with this file, scope and name."""
        return next(
            (s for s in self.symbols
             if s.file == file and s.scope == scope and s.name == name),
            None,
        )

    def lookup(self, name: str, module: str, function: str) -> Symbol | None:
        """Find a symbol visible from a function of a module.

        Searches local scope first, then file scope, then global scope.
        """
        files = {module + _C_EXT, module + ".asm"}
        for sym in self.symbols:
            if (sym.name == name and sym.file in files
                    and sym.function == function and sym.scope is Scope.LOCAL):
                return sym
        for sym in self.symbols:
            if sym.name == name and sym.file in files and sym.scope is Scope.FILE:
                return sym
        for sym in self.symbols:
            if sym.name == name and sym.scope is Scope.GLOBAL:
                return sym
        return None

    def compare(self, sym1: Symbol, sym2: Symbol) -> bool:
        """Whether two symbols agree on scope, name, level and block."""
        return (sym1.scope == sym2.scope and sym1.name == sym2.name
                and sym1.level == sym2.level and sym1.block == sym2.block)

    def get_or_add(self, sym: Symbol) -> Symbol:
        """The stored symbol matching sym, adding sym if there is none."""
        for existing in self.symbols:
            if self.compare(existing, sym):
                return existing
        self.symbols.append(sym)
        return sym

    def get_symbol_name(self, addr: int) -> str | None:
        """Name of the symbol starting exactly at addr."""
        return next((s.name for s in self.symbols if s.addr == addr), None)

    def get_symbol_name_closest(self, flat_addr: int) -> str | None:
        """Name of the symbol at flat_addr, or the closest one before it."""
        closest: Symbol | None = None
        for sym in self.symbols:
            start = sym.flat_start_addr
            if start == flat_addr:
                return sym.name
            if start < flat_addr and (closest is None
                                      or start > closest.flat_start_addr):
                closest = sym
        return None if closest is None else closest.name

    # dumps ---------------------------------------------------------------

    def dump_c_lines(self) -> str:
        """Table of C line to address mappings."""
        rows = [f"\n\nC file lines\nname\tline\tlevel\tblock\taddr\n{_RULE}\n\n"]
        rows.extend(
            f"{self._file_map[e.file_id]}\t{e.line_num}\t{e.level}\t{e.block}"
            f"\t0x{e.addr:08x}\n"
            for e in self.c_lines
        )
        return "".join(rows)

    def dump_asm_lines(self) -> str:
        """Table of assembler line to address mappings."""
        rows = [f"\n\nASM file lines\nname\tline\taddr\n{_RULE}\n\n"]
        rows.extend(
            f"{self._file_map[e.file_id]}\t{e.line_num}\t0x{e.addr:08x}\n"
            for e in self.asm_lines
        )
        return "".join(rows)

    def dump_functions(self) -> str:
        """Table of function symbols with their address ranges."""
        rows = ["File                  Function              start     end\n",
                _RULE + "\n"]
        rows.extend(
            f"{s.file:<20}  {s.name:<20}  0x{s.addr:08x}  0x{s.end_addr:08x}\n"
            for s in self.symbols if s.is_function
        )
        return "".join(rows)

    # address lookups -----------------------------------------------------

    def get_line_addr(self, file: str, line_num: int) -> int | None:
        """Code address of a line in a C or assembler file."""
        fid = self._file_id(file)
        if fid is None:
            return None
        if file.endswith(_C_EXT):
            table = self.c_lines
        elif file.endswith(_ASM_EXTS):
            table = self.asm_lines
        else:
            _, _, ext = file.partition(".")
            raise ValueError(f"unknown source file type {ext!r}")
        return next(
            (e.addr for e in table if e.file_id == fid and e.line_num == line_num),
            None,
        )

    def _function(self, function: str) -> Symbol | None:
        return next(
            (s for s in self.symbols if s.is_function and s.name == function),
            None,
        )

    def get_function_addr(self, function: str) -> int | None:
        """Start address of a function in any file."""
        sym = self._function(function)
        return None if sym is None else sym.addr

    def get_function_range(self, function: str) -> tuple[int, int] | None:
        """Start and end address of a function in any file."""
        sym = self._function(function)
        return None if sym is None else (sym.addr, sym.end_addr)

    def _find_line(self, table: list[FileEntry], addr: int) -> tuple[str, int] | None:
        for entry in table:
            if entry.addr == addr:
                return self._file_map[entry.file_id], entry.line_num
        return None

    def find_c_file_line(self, addr: int) -> tuple[str, int] | None:
        """C file and line whose code starts at addr."""
        return self._find_line(self.c_lines, addr)

    def find_asm_file_line(self, addr: int) -> tuple[str, int] | None:
        """Assembler file and line whose code starts at addr."""
        return self._find_line(self.asm_lines, addr)

    def get_c_function(self, addr: int) -> str | None:
        """Name of the function whose address range holds addr."""
        return next(
            (s.name for s in self.symbols
             if s.is_function and s.addr <= addr <= s.end_addr),
            None,
        )

    def get_c_block_level(self, file: str, line: int) -> tuple[int, int] | None:
        """Block and level of a C line."""
        for entry in self.c_lines:
            if self._file_map[entry.file_id] == file and entry.line_num == line:
                return entry.block, entry.level
        return None

    # adding line entries -------------------------------------------------

    def add_c_file_entry(self, name: str, line_num: int, level: int,
                         block: int, addr: int) -> None:
        """Record the code address of a line of a C file."""
        _check_addr(addr)
        fid, new = self._register_file(name)
        module = self.modules.add_module(name[:-2]) if self.modules else None
        if module is not None and new:
            module.load_c_file(name)
        self.c_lines.append(FileEntry(fid, line_num, addr, level, block))
        if module is not None:
            module.set_c_addr(line_num, addr)
            module.set_c_block_level(line_num, block, level)

    def add_asm_file_entry(self, name: str, line_num: int, addr: int) -> None:
        """Record the code address of a line of an assembler module.

        The file is name.a51 if that exists, else name.asm if that exists,
        else the bare name.
        """
        _check_addr(addr)
        ext = ""
        for candidate in (".asm", ".a51"):
            if os.path.exists(name + candidate):
                ext = candidate
        path = name + ext
        fid, new = self._register_file(path)
        module = self.modules.add_module(name) if self.modules else None
        if module is not None and new:
            module.load_asm_file(path)
        self.asm_lines.append(FileEntry(fid, line_num, addr))
        if module is not None:
            module.set_asm_addr(line_num, addr)
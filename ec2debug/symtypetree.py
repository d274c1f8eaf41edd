"""Tree of the data types known in the program being debugged."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

_log = logging.getLogger(__name__)


class SymType(ABC):
    """A single data type, either terminal or built from other types."""

    def __init__(self, name: str = "", file: str = "") -> None:
        self.name = name
        self.file = file

    @property
    @abstractmethod
    def terminal(self) -> bool:
        """Whether the type is not made up of other types."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Size of the type in bytes."""

    @abstractmethod
    def text(self) -> str:
        """Textual description of the type."""

    @property
    def default_format(self) -> str:
        """Print format character used when none is given."""
        return "x"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, file={self.file!r})"


class _TerminalType(SymType):
    _NAME = ""
    _SIZE = 0

    def __init__(self, file: str = "") -> None:
        super().__init__(self._NAME, file)

    @property
    def terminal(self) -> bool:
        return True

    @property
    def size(self) -> int:
        return self._SIZE

    def text(self) -> str:
        return self._NAME


class SymTypeChar(_TerminalType):
    """Signed char."""

    _NAME = "char"
    _SIZE = 1


class SymTypeUChar(_TerminalType):
    """Unsigned char."""

    _NAME = "unsigned char"
    _SIZE = 1


class SymTypeShort(_TerminalType):
    """Signed short."""

    _NAME = "short"
    _SIZE = 1


class SymTypeUShort(_TerminalType):
    """Unsigned short."""

    _NAME = "unsigned short"
    _SIZE = 1


class SymTypeInt(_TerminalType):
    """Signed int."""

    _NAME = "int"
    _SIZE = 2


class SymTypeUInt(_TerminalType):
    """Unsigned int."""

    _NAME = "unsigned int"
    _SIZE = 2


class SymTypeLong(_TerminalType):
    """Signed long."""

    _NAME = "long"
    _SIZE = 4


class SymTypeULong(_TerminalType):
    """Unsigned long."""

    _NAME = "unsigned long"
    _SIZE = 4


class SymTypeFloat(_TerminalType):
    """Single precision float."""

    _NAME = "float"
    _SIZE = 4

    @property
    def default_format(self) -> str:
        return "f"


class SymTypeSbit(_TerminalType):
    """Single addressable bit."""

    _NAME = "sbit"
    _SIZE = 1


@dataclass(frozen=True)
class StructMember:
    """A named member of a struct, referring to its type by name."""

    member_name: str
    type_name: str
    count: int = 1

    def __post_init__(self) -> None:
        if not 0 <= self.count <= 0xFFFF:
            raise ValueError(f"member count out of range: {self.count}")


class SymTypeStruct(SymType):
    """A struct made up of members; member types are stored by name only."""

    def __init__(self, name: str = "", file: str = "") -> None:
        super().__init__(name, file)
        self.members: list[StructMember] = []

    @property
    def terminal(self) -> bool:
        return False

    @property
    def size(self) -> int:
        # Member types are only known by name, so no size can be summed yet.
        return 0

    def add_member(self, member_name: str, type_name: str, count: int = 1) -> None:
        """Append a member; count above one makes it an array."""
        self.members.append(StructMember(member_name, type_name, count))
        _log.debug("adding member %r of type %r, count %d",
                   member_name, type_name, count)

    def text(self) -> str:
        """One line per member, in declaration style."""
        return "".join(
            f"{m.type_name} {m.member_name}[{m.count}]\n" if m.count != 1
            else f"{m.type_name} {m.member_name}\n"
            for m in self.members
        )


_TERMINAL_TYPES = (
    SymTypeChar, SymTypeUChar, SymTypeShort, SymTypeUShort, SymTypeInt,
    SymTypeUInt, SymTypeLong, SymTypeULong, SymTypeFloat, SymTypeSbit,
)


class SymTypeTree:
    """All types of the program: the terminal types plus those loaded later."""

    def __init__(self) -> None:
        self.types: list[SymType] = []
        self.clear()

    def clear(self) -> None:
        """Drop every loaded type, keeping only the terminal types."""
        self.types = [cls() for cls in _TERMINAL_TYPES]

    def add_type(self, ptype: SymType) -> None:
        """Add a type to the tree."""
        self.types.append(ptype)

    def dump(self, type_name: str | None = None) -> str:
        """A table of all types, or the text of the named type.

        Raises KeyError if the named type is not known.
        """
        if type_name is not None:
            ptype = self.get_type(type_name)
            if ptype is None:
                raise KeyError(f"type {type_name!r} not found")
            return ptype.text()
        rows = [f"{'Type name':<24}{'Terminal':<9}{'Size':<8}{'Scope':<24}\n",
                "=" * 80 + "\n"]
        rows.extend(
            f"{t.name:<24}{str(t.terminal).lower():<9}{t.size:<8}{t.file:<24}\n"
            for t in self.types
        )
        rows.append("\n")
        return "".join(rows)

    def get_type(self, type_name: str) -> SymType | None:
        """The first type with this name, ignoring scope."""
        return next((t for t in self.types if t.name == type_name), None)
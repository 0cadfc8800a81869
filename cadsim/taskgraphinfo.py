"""Static per-basic-block information stored in a task graph file."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

from .taskio import TaskFormatError, read_exact

BBI_FLAG_CONTAIN_CALL = 0x1
BBI_FLAG_CONTAIN_GLOBAL_ACCESS = 0x2

_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")
_FIELDS = struct.Struct("<6I")
_MISSING_LINE = 0xFFFFFFFF


def _read(stream: BinaryIO, st: struct.Struct) -> tuple:
    data = read_exact(stream, st.size)
    if len(data) < st.size:
        raise TaskFormatError("truncated task graph info")
    return st.unpack(data)


def _read_string(stream: BinaryIO) -> str:
    (length,) = _read(stream, _U32)
    data = read_exact(stream, length)
    if len(data) < length:
        raise TaskFormatError("truncated task graph info string")
    return data.split(b"\0", 1)[0].decode("utf-8", errors="surrogateescape")


def _encode(text: str) -> bytes:
    raw = text.encode("utf-8", errors="surrogateescape")
    return _U32.pack(len(raw)) + raw


@dataclass
class BasicBlockInfo:
    """Source location and size figures of one basic block."""

    line_number: int = 0
    num_mem_ops: int = 0
    num_ops: int = 0
    crit_path_len: int = 0
    flags: int = 0
    function_name: str = ""
    file_name: str = ""
    calls_function: str = ""


class TaskGraphInfo:
    """Basic-block information keyed by block id."""

    def __init__(self) -> None:
        self.blocks: dict[int, BasicBlockInfo] = {}

    @classmethod
    def read(cls, stream: BinaryIO) -> TaskGraphInfo:
        """Read the info table from the current position of ``stream``."""
        info = cls()
        (count,) = _read(stream, _I32)
        for _ in range(count):
            bbid, flags, line, mem_ops, ops, crit = _read(stream, _FIELDS)
            function = _read_string(stream)
            file = _read_string(stream)
            calls = _read_string(stream)
            info.add_basic_block(
                bbid, flags, line, mem_ops, ops, crit, function, file, calls
            )
        return info

    def add_basic_block(
        self,
        bbid: int,
        flags: int,
        line_number: int,
        num_mem_ops: int,
        num_ops: int,
        crit_path_len: int,
        function: str,
        file: str,
        calls_function: str,
    ) -> None:
        """Store information for ``bbid``, replacing any earlier entry."""
        self.blocks[bbid] = BasicBlockInfo(
            line_number=line_number,
            num_mem_ops=num_mem_ops,
            num_ops=num_ops,
            crit_path_len=crit_path_len,
            flags=flags,
            function_name=function,
            file_name=file,
            calls_function=calls_function,
        )

    def write(self, stream: BinaryIO) -> None:
        """Write the table in ascending block-id order."""
        stream.write(_I32.pack(len(self.blocks)))
        for bbid in sorted(self.blocks):
            bbi = self.blocks[bbid]
            stream.write(
                _FIELDS.pack(
                    bbid,
                    bbi.flags,
                    bbi.line_number,
                    bbi.num_mem_ops,
                    bbi.num_ops,
                    bbi.crit_path_len,
                )
            )
            stream.write(_encode(bbi.function_name))
            stream.write(_encode(bbi.file_name))
            stream.write(_encode(bbi.calls_function))

    def get(self, bbid: int) -> BasicBlockInfo:
        """Info for ``bbid``; an unknown id gives an entry with line 0xFFFFFFFF."""
        found = self.blocks.get(bbid)
        if found is None:
            return BasicBlockInfo(line_number=_MISSING_LINE)
        return found
"""Trace reader for text traces, per-processor trace directories and task graphs."""

from __future__ import annotations

import getopt
import os
import re
import sys
from enum import Enum
from typing import IO, Callable, Sequence

from .interfaces import OpType, SimComponent, TraceOp
from .taskgraph_api import TaskGraphOpSource

_OPTSTRING = "hdvc:p:o:n:i:b:t:s:m:"

_HEX = r"(?:0[xX])?[0-9a-fA-F]+"
_INT = r"[+-]?\d+"
_ALU_RE = re.compile(rf"\s*({_HEX})\s+({_INT})\s*,\s*({_INT})\s*,\s*({_INT})\s*")
_BRANCH_RE = re.compile(rf"\s*({_HEX})\s+({_HEX})(?:\s+({_INT}))?\s*")
_MEM_RE = re.compile(rf"\s*({_HEX}),\s*({_INT})(?:\s+({_INT}))?\s*")


class TraceKind(Enum):
    """Where the trace comes from."""

    ASCII = 0
    STDIN = 1
    PIN = 2
    CONTECH = 3


class TraceError(Exception):
    """Raised when a trace cannot be opened or holds a malformed entry."""


def _match(pattern: re.Pattern[str], rest: str, kind: str) -> re.Match[str]:
    found = pattern.fullmatch(rest)
    if found is None:
        raise TraceError(f"malformed {kind!r} entry: {rest.strip()!r}")
    return found


def _optional_reg(text: str | None) -> int:
    return int(text) if text is not None else -1


def _parse_alu(op_type: OpType) -> Callable[[str], TraceOp]:
    def parse(rest: str) -> TraceOp:
        pc, dest, src0, src1 = _match(_ALU_RE, rest, op_type.name).groups()
        return TraceOp(
            op=op_type,
            pc_address=int(pc, 16),
            dest_reg=int(dest),
            src_reg=[int(src0), int(src1)],
        )

    return parse


def _parse_branch(rest: str) -> TraceOp:
    pc, nxt, reg = _match(_BRANCH_RE, rest, "B").groups()
    op = TraceOp(
        op=OpType.BRANCH,
        pc_address=int(pc, 16),
        dest_reg=-1,
        src_reg=[_optional_reg(reg), -1],
    )
    op.next_pc_address = int(nxt, 16)
    return op


def _parse_load(rest: str) -> TraceOp:
    addr, size, reg = _match(_MEM_RE, rest, "L").groups()
    return TraceOp(
        op=OpType.MEM_LOAD,
        mem_address=int(addr, 16),
        size=int(size),
        src_reg=[_optional_reg(reg), -1],
        dest_reg=-1,
    )


def _parse_store(rest: str) -> TraceOp:
    addr, size, reg = _match(_MEM_RE, rest, "S").groups()
    return TraceOp(
        op=OpType.MEM_STORE,
        mem_address=int(addr, 16),
        size=int(size),
        src_reg=[-1, -1],
        dest_reg=_optional_reg(reg),
    )


_PARSERS: dict[str, Callable[[str], TraceOp]] = {
    "A": _parse_alu(OpType.ALU),
    "B": _parse_branch,
    "L": _parse_load,
    "S": _parse_store,
    "X": _parse_alu(OpType.ALU_LONG),
}


def parse_trace_line(line: str) -> TraceOp | None:
    """Parse one trace entry.

    Returns None for an empty line or one starting with whitespace or NUL,
    which mark the end of a trace.
    """
    if not line or line[0] == "\0" or line[0].isspace():
        return None
    kind, rest = line[0], line[1:]
    parser = _PARSERS.get(kind)
    if parser is None:
        raise TraceError(f"invalid op type: {ord(kind):x}")
    return parser(rest)


class TraceReader(SimComponent):
    """Supplies trace operations to each processor."""

    def __init__(self, argv: Sequence[str] = (), processor_count: int = 1) -> None:
        super().__init__()
        if processor_count < 1:
            raise ValueError("processor count must be at least 1")
        try:
            opts, _ = getopt.gnu_getopt(list(argv), _OPTSTRING)
        except getopt.GetoptError as exc:
            raise TraceError(str(exc)) from exc
        trace = None
        for opt, value in opts:
            if opt == "-t":
                trace = value

        self.processor_count = processor_count
        self.op_count = 0
        self._files: list[IO[str] | None] = [None] * processor_count
        self._started = [False] * processor_count
        self._stdin: IO[str] | None = None
        self._directory: str | None = None
        self._graph_stream: IO[bytes] | None = None
        self._graph_source: TaskGraphOpSource | None = None

        if trace is None:
            print(
                "No trace file / directory specified, continuing using stdin",
                file=sys.stderr,
            )
            self._stdin = sys.stdin
            self._files[0] = self._stdin
            self.kind = TraceKind.STDIN
        elif os.path.isdir(trace):
            self._directory = trace
            self.kind = TraceKind.ASCII
        elif trace.endswith("taskgraph"):
            self._open_task_graph(trace)
            self.kind = TraceKind.CONTECH
        else:
            try:
                self._files[0] = open(trace, "r")
            except OSError as exc:
                raise TraceError(f"failed on trace file name - {trace}: {exc}") from exc
            self.kind = TraceKind.ASCII

    def _open_task_graph(self, path: str) -> None:
        try:
            stream = open(path, "rb")
        except OSError as exc:
            raise TraceError(f"failed on trace file name - {path}: {exc}") from exc
        try:
            self._graph_source = TaskGraphOpSource(stream)
        except ValueError as exc:
            stream.close()
            raise TraceError(f"cannot read task graph {path}: {exc}") from exc
        self._graph_stream = stream

    def _open_processor(self, processor_num: int) -> IO[str]:
        if self._directory is None:
            raise TraceError(f"no trace for processor {processor_num}")
        path = os.path.join(self._directory, f"p{processor_num}.trace")
        try:
            stream = open(path, "r")
        except OSError as exc:
            raise TraceError(f"error opening processor specific trace: {exc}") from exc
        self._files[processor_num] = stream
        return stream

    def _read_line(self, processor_num: int, stream: IO[str]) -> str:
        # Whitespace following an entry is consumed along with it, so once a
        # stream has produced an entry, blank lines and indentation are skipped.
        while True:
            line = stream.readline()
            if not line or not self._started[processor_num]:
                return line
            line = line.lstrip()
            if line:
                return line

    def next_op(self, processor_num: int) -> TraceOp | None:
        """The next operation for ``processor_num``, or None at the end."""
        if self._graph_source is not None:
            return self._graph_source.next_op(processor_num)
        if not 0 <= processor_num < self.processor_count:
            raise IndexError(f"no processor {processor_num}")
        stream = self._files[processor_num]
        if stream is None:
            stream = self._open_processor(processor_num)
        line = self._read_line(processor_num, stream)
        try:
            op = parse_trace_line(line)
        except TraceError as exc:
            raise TraceError(f"{exc} on op {self.op_count}") from exc
        if op is not None:
            self._started[processor_num] = True
            self.op_count += 1
        return op

    def tick(self) -> int:
        return 1

    def finish(self, out: IO[str] | None = None) -> int:
        """The reader has no statistics of its own to report."""
        return super().finish(out)

    def destroy(self) -> int:
        """Close every trace file this reader opened."""
        for num, stream in enumerate(self._files):
            if stream is not None and stream is not self._stdin:
                stream.close()
            self._files[num] = None
        if self._graph_stream is not None:
            self._graph_stream.close()
            self._graph_stream = None
        return 0

    def __enter__(self) -> TraceReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()
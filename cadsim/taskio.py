"""Binary serialisation of single tasks as compressed records."""

from __future__ import annotations

import struct
import zlib
from typing import BinaryIO

from .action import Action
from .task import SyncType, Task, TaskType
from .taskid import TaskId

_HEADER = struct.Struct("<QQ")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_ENUM = struct.Struct("<i")

_MAX_RECORD = 2 * 1024 * 1024 * 1024


class TaskFormatError(ValueError):
    """Raised when serialised task data is malformed or truncated."""


def read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, stopping early only at end of stream."""
    parts: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


class _Cursor:
    """Sequential reader over a decompressed record."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def take(self, st: struct.Struct) -> int:
        try:
            (value,) = st.unpack_from(self._data, self._pos)
        except struct.error as exc:
            raise TaskFormatError("task record is shorter than its contents") from exc
        self._pos += st.size
        return value

    def take_many(self, st: struct.Struct, count: int) -> list[int]:
        return [self.take(st) for _ in range(count)]


def read_task(stream: BinaryIO) -> Task | None:
    """Read the next task record, or return None at end of stream."""
    header = read_exact(stream, _HEADER.size)
    if len(header) < _HEADER.size:
        return None
    record_length, comp_length = _HEADER.unpack(header)

    comp = read_exact(stream, comp_length)
    if len(comp) < comp_length:
        raise TaskFormatError("truncated task record")
    try:
        raw = zlib.decompress(comp)
    except zlib.error as exc:
        raise TaskFormatError(f"cannot decompress task record: {exc}") from exc
    if len(raw) != record_length:
        raise TaskFormatError(
            f"task record is {len(raw)} bytes, header says {record_length}"
        )

    cur = _Cursor(raw)
    task_id = TaskId(cur.take(_U64))
    start_time = cur.take(_U64)
    end_time = cur.take(_U64)
    actions = [Action(data) for data in cur.take_many(_U64, cur.take(_U32))]
    successors = [TaskId(v) for v in cur.take_many(_U64, cur.take(_U32))]
    predecessors = [TaskId(v) for v in cur.take_many(_U64, cur.take(_U32))]
    type_value = cur.take(_ENUM)
    sync_value = cur.take(_ENUM)
    try:
        task_type = TaskType(type_value)
        sync_type = SyncType(sync_value)
    except ValueError as exc:
        raise TaskFormatError(str(exc)) from exc

    task = Task(task_id, task_type)
    task.sync_type = sync_type
    task.start_time = start_time
    task.end_time = end_time
    task.actions = actions
    task.successors = successors
    task.predecessors = predecessors
    return task


def write_task(task: Task, stream: BinaryIO) -> int:
    """Write ``task`` as a compressed record.

    Returns the uncompressed record length plus the 16-byte header.
    """
    preds, succs = task.predecessors, task.successors
    if task.type == TaskType.JOIN and not len(preds) > len(succs):
        raise ValueError("a join task needs more predecessors than successors")
    if task.type == TaskType.CREATE and not len(preds) < len(succs):
        raise ValueError("a create task needs more successors than predecessors")

    payload = b"".join(
        [
            _U64.pack(int(task.task_id)),
            _U64.pack(task.start_time),
            _U64.pack(task.end_time),
            _U32.pack(len(task.actions)),
            *(_U64.pack(action.data) for action in task.actions),
            _U32.pack(len(succs)),
            *(_U64.pack(int(tid)) for tid in succs),
            _U32.pack(len(preds)),
            *(_U64.pack(int(tid)) for tid in preds),
            _ENUM.pack(int(task.type)),
            _ENUM.pack(int(task.sync_type)),
        ]
    )
    if len(payload) >= _MAX_RECORD:
        raise ValueError("task record exceeds 2 GiB")

    comp = zlib.compress(payload)
    stream.write(_HEADER.pack(len(payload), len(comp)))
    stream.write(comp)
    return len(payload) + _HEADER.size
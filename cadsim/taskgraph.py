"""Task graph files: a header, block info, task records and an index."""

from __future__ import annotations

import os
import struct
import warnings
from typing import BinaryIO, Iterable, Iterator

from .task import Task
from .taskgraphinfo import TaskGraphInfo
from .taskid import ContextId, TaskId
from .taskio import TaskFormatError, read_exact, read_task, write_task

TASK_GRAPH_VERSION = 4315

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_HEADER_REST = struct.Struct("<QQQ")
_INDEX_ENTRY = struct.Struct("<QQ")


def _read(stream: BinaryIO, st: struct.Struct) -> tuple:
    data = read_exact(stream, st.size)
    if len(data) < st.size:
        raise TaskFormatError("truncated task graph")
    return st.unpack(data)


def _as_task_id(value: TaskId | int) -> TaskId:
    return value if isinstance(value, TaskId) else TaskId(value)


class TaskGraph:
    """Random and sequential access to the tasks of a task graph file."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._owns_stream = False
        self._index: dict[TaskId, int] = {}
        self._order: list[int] = []
        self._next = 0

        stream.seek(0)
        head = read_exact(stream, _U32.size)
        if len(head) < _U32.size:
            raise TaskFormatError("error reading from input file")
        (version,) = _U32.unpack(head)
        if version != TASK_GRAPH_VERSION:
            warnings.warn(
                f"task graph version number is {version}, "
                f"expected {TASK_GRAPH_VERSION}"
            )
        index_offset, roi_start, roi_end = _read(stream, _HEADER_REST)
        self.roi_start = TaskId(roi_start)
        self.roi_end = TaskId(roi_end)
        self.info = TaskGraphInfo.read(stream)
        self._num_contexts = self._load_index(index_offset)

    def _load_index(self, offset: int) -> int:
        self._stream.seek(offset)
        (count,) = _read(self._stream, _U64)
        contexts: set[ContextId] = set()
        for _ in range(count):
            raw_tid, pos = _read(self._stream, _INDEX_ENTRY)
            tid = TaskId(raw_tid)
            if pos >= offset:
                raise TaskFormatError(f"task {tid} lies beyond the index")
            if tid in self._index:
                raise TaskFormatError(f"task {tid} appears twice in the index")
            self._index[tid] = pos
            self._order.append(pos)
            contexts.add(tid.context_id)
        return len(contexts)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> TaskGraph:
        """Open the task graph stored at ``path``."""
        stream = open(path, "rb")
        try:
            graph = cls(stream)
        except BaseException:
            stream.close()
            raise
        graph._owns_stream = True
        return graph

    def close(self) -> None:
        """Close the underlying file if this graph opened it."""
        if self._owns_stream:
            self._stream.close()

    def __enter__(self) -> TaskGraph:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def next_task(self) -> Task | None:
        """The next task in index order, or None once all have been read."""
        if self._next >= len(self._order):
            return None
        self._stream.seek(self._order[self._next])
        self._next += 1
        return read_task(self._stream)

    def task_by_id(self, task_id: TaskId | int) -> Task | None:
        """The task with ``task_id``, or None if the index lacks it."""
        pos = self._index.get(_as_task_id(task_id))
        if pos is None:
            return None
        self._stream.seek(pos)
        return read_task(self._stream)

    def set_current(self, task_id: TaskId | int) -> None:
        """Advance so that :meth:`next_task` returns ``task_id`` next.

        An id that is not ahead of the current position exhausts the order.
        """
        pos = self._index.get(_as_task_id(task_id))
        while self._next < len(self._order) and self._order[self._next] != pos:
            self._next += 1

    def reset(self) -> None:
        """Restart sequential reading from the first task."""
        self._next = 0

    def __iter__(self) -> Iterator[Task]:
        while (task := self.next_task()) is not None:
            yield task

    def num_tasks(self) -> int:
        return len(self._order)

    def num_contexts(self) -> int:
        return self._num_contexts


def write_task_graph(
    stream: BinaryIO,
    tasks: Iterable[Task],
    info: TaskGraphInfo | None,
    roi_start: TaskId | int,
    roi_end: TaskId | int,
) -> int:
    """Write a complete task graph from the start of ``stream``.

    Tasks are indexed in the order given. Returns the offset of the index.
    """
    stream.seek(0)
    stream.write(_U32.pack(TASK_GRAPH_VERSION))
    offset_pos = stream.tell()
    stream.write(_HEADER_REST.pack(0, int(roi_start), int(roi_end)))
    (info if info is not None else TaskGraphInfo()).write(stream)

    entries: list[tuple[TaskId, int]] = []
    for task in tasks:
        entries.append((task.task_id, stream.tell()))
        write_task(task, stream)

    index_offset = stream.tell()
    stream.write(_U64.pack(len(entries)))
    for tid, pos in entries:
        stream.write(_INDEX_ENTRY.pack(int(tid), pos))
    end = stream.tell()

    stream.seek(offset_pos)
    stream.write(_U64.pack(index_offset))
    stream.seek(end)
    return index_offset
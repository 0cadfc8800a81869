"""Trace operations drawn from the memory actions of a task graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO

from .action import Action, ActionType
from .interfaces import OpType, TraceOp
from .task import Task, TaskType
from .taskgraph import TaskGraph
from .taskid import TaskId


@dataclass
class _ContextTrack:
    complete: bool = False
    task_id: TaskId = TaskId(0)
    task: Task | None = None
    ops: list[Action] = field(default_factory=list)
    pos: int = 0


class TaskGraphOpSource:
    """Yields, per context, the memory operations of its basic-block tasks."""

    def __init__(self, stream: BinaryIO) -> None:
        self._graph = TaskGraph(stream)
        self._tracks = [_ContextTrack() for _ in range(self._graph.num_contexts())]

    def context_count(self) -> int:
        """Number of distinct contexts in the graph."""
        return len(self._tracks)

    def _advance(self, track: _ContextTrack) -> None:
        """Load the first usable task at or after ``track.task_id``."""
        while not track.complete:
            task = self._graph.task_by_id(track.task_id)
            track.task = task
            if task is None:
                track.complete = True
                return
            if task.type != TaskType.BASIC_BLOCKS or not task.actions:
                track.task_id = track.task_id.next()
                continue
            track.ops = task.mem_ops()
            track.pos = 0
            return

    def next_op(self, processor_num: int) -> TraceOp | None:
        """The next operation for ``processor_num``, or None once it is done."""
        if not 0 <= processor_num < len(self._tracks):
            raise IndexError(f"no context {processor_num} in task graph")
        track = self._tracks[processor_num]
        if track.complete:
            return None
        if track.task is None:
            track.task_id = TaskId.from_parts(processor_num, 0)
            self._advance(track)
            if track.task is None:
                return None
        if track.pos >= len(track.ops):
            track.task_id = track.task_id.next()
            self._advance(track)
            if track.task is None:
                return None

        action = track.ops[track.pos]
        track.pos += 1
        kind = OpType.MEM_LOAD if action.type is ActionType.MEM_READ else OpType.MEM_STORE
        return TraceOp(
            op=kind,
            dest_reg=-1,
            src_reg=[-1, -1],
            mem_address=action.addr,
            size=1 << action.pow_size,
        )

    def debug_report(self) -> str:
        """Per-context progress: completion, last task id and current task."""
        out = [f"Contexts: {len(self._tracks)}\n"]
        for num, track in enumerate(self._tracks):
            out.append(f"Proc: {num} \t Complete: {int(track.complete)}\n")
            out.append(f"Last TID: {track.task_id}\n")
            out.append(str(track.task) if track.task is not None else "NULL Task\n")
        return "".join(out)
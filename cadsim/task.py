"""Tasks: ordered actions plus links to predecessor and successor tasks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Iterator, Sequence

from .action import (
    ADDR_MASK,
    DATA_MASK,
    TYPE_MASK,
    TYPE_SHIFT,
    Action,
    ActionType,
)
from .taskid import ContextId, SeqId, TaskId


class TaskType(IntEnum):
    """The kind of event a task represents."""

    BASIC_BLOCKS = 0
    SYNC = 1
    BARRIER = 2
    CREATE = 3
    JOIN = 4


class SyncType(IntEnum):
    """The kind of synchronisation a sync task performs."""

    UNKNOWN = 0
    LOCK = 1
    CONDITION_VARIABLE = 2
    USER_DEFINED = 3
    MPI_TRANSFER = 4
    ATOMIC = 5
    TASK_DEPENDENCY = 6


_TASK_TYPE_NAMES = {
    TaskType.BASIC_BLOCKS: "BasicBlocks",
    TaskType.SYNC: "Sync",
    TaskType.BARRIER: "Barrier",
    TaskType.CREATE: "Create",
    TaskType.JOIN: "Join",
}


def task_type_name(task_type: TaskType | int) -> str:
    """Display name of a task type, ``Unknown`` for values outside the enum."""
    try:
        return _TASK_TYPE_NAMES[TaskType(task_type)]
    except ValueError:
        return "Unknown"


def _with_type(data: int, action_type: ActionType) -> int:
    """Replace the type bits of a raw encoding."""
    cleared = data & DATA_MASK & ~(TYPE_MASK << TYPE_SHIFT)
    return cleared | (int(action_type) << TYPE_SHIFT)


def _iter_mem_ops(actions: Sequence[Action]) -> Iterator[Action]:
    # The first entry of a range is yielded unconditionally; only later
    # entries are filtered down to reads and writes.
    it = iter(actions)
    first = next(it, None)
    if first is None:
        return
    yield first
    yield from (action for action in it if action.is_mem_op())


def _iter_memory_actions(actions: Iterable[Action]) -> Iterator[Action]:
    return (action for action in actions if action.is_memory_action())


@dataclass(frozen=True)
class BasicBlockEntry:
    """A basic-block action and the actions up to the next basic block."""

    action: Action
    actions: tuple[Action, ...]

    @property
    def block_id(self) -> int:
        return self.action.basic_block_id

    def memory_actions(self) -> list[Action]:
        """Memory actions recorded within this block."""
        return list(_iter_memory_actions(self.actions))

    def mem_ops(self) -> list[Action]:
        """The block's own action followed by the reads and writes within it."""
        return list(_iter_mem_ops(self.actions))


class Task:
    """A unit of work in a task graph."""

    __hash__ = None  # type: ignore[assignment]

    def __init__(
        self,
        task_id: TaskId | int = TaskId(0),
        task_type: TaskType = TaskType.BASIC_BLOCKS,
    ) -> None:
        self.task_id = task_id if isinstance(task_id, TaskId) else TaskId(task_id)
        self.type = TaskType(task_type)
        self.sync_type = SyncType.UNKNOWN
        self.start_time = 0
        self.end_time = 0
        self.actions: list[Action] = []
        self.successors: list[TaskId] = []
        self.predecessors: list[TaskId] = []

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return (
            self.task_id == other.task_id
            and self.start_time == other.start_time
            and self.end_time == other.end_time
            and self.actions == other.actions
            and self.successors == other.successors
            and self.predecessors == other.predecessors
            and self.type == other.type
        )

    def __repr__(self) -> str:
        return (
            f"Task(task_id={self.task_id!s}, type={task_type_name(self.type)}, "
            f"actions={len(self.actions)})"
        )

    @property
    def context_id(self) -> ContextId:
        return self.task_id.context_id

    @property
    def seq_id(self) -> SeqId:
        return self.task_id.seq_id

    @property
    def bb_count(self) -> int:
        """Number of basic-block actions in the task."""
        return sum(1 for action in self.actions if action.is_basic_block_action())

    def record_mem_op(self, is_write: bool, pow_size: int, addr: int) -> None:
        """Record a read or write of ``2 ** pow_size`` bytes at ``addr``."""
        kind = ActionType.MEM_WRITE if is_write else ActionType.MEM_READ
        self.actions.append(Action.memory(addr, pow_size, kind))

    def record_malloc(self, addr: int, size: int) -> None:
        """Record an allocation as a malloc action followed by a size action."""
        self.actions.append(Action.memory(addr, 0, ActionType.MALLOC))
        self.actions.append(Action.memory(size, 0, ActionType.SIZE))

    def record_free(self, addr: int) -> None:
        self.actions.append(Action.memory(addr, 0, ActionType.FREE))

    def record_memcpy(self, size: int, dst: int, src: int) -> None:
        """Record a copy: destination, source, then size.

        The addresses are kept whole apart from the type bits, so any rank
        bits they carry are preserved; the size action inherits the source's
        upper bits.
        """
        dst_data = _with_type(dst, ActionType.MEMCPY)
        src_data = _with_type(src, ActionType.MEMCPY)
        self.actions.append(Action(dst_data))
        self.actions.append(Action(src_data))
        size_data = _with_type(src_data, ActionType.SIZE) & ~ADDR_MASK
        self.actions.append(Action(size_data | (size & ADDR_MASK)))

    def record_basic_block(self, block_id: int) -> None:
        self.actions.append(Action.basic_block(block_id))

    def add_successor(self, succ: TaskId) -> None:
        if succ == self.task_id:
            raise ValueError("a task cannot succeed itself")
        self.successors.append(succ)

    def add_predecessor(self, pred: TaskId) -> None:
        if pred == self.task_id:
            raise ValueError("a task cannot precede itself")
        self.predecessors.append(pred)

    def mem_ops(self) -> list[Action]:
        """The first action followed by every later read and write."""
        return list(_iter_mem_ops(self.actions))

    def memory_actions(self) -> list[Action]:
        """Every action that is not a basic block."""
        return list(_iter_memory_actions(self.actions))

    def basic_blocks(self) -> list[BasicBlockEntry]:
        """Basic blocks with the actions each one spans."""
        starts = [
            pos
            for pos, action in enumerate(self.actions)
            if action.is_basic_block_action()
        ]
        ends = starts[1:] + [len(self.actions)]
        return [
            BasicBlockEntry(self.actions[start], tuple(self.actions[start:end]))
            for start, end in zip(starts, ends)
        ]

    def append_task(self, other: Task, tasks: Iterable[Task]) -> None:
        """Merge ``other``, a direct successor of the same type, into this task.

        Tasks in ``tasks`` that named ``other`` as a predecessor are
        redirected to this task.
        """
        if self.type != other.type or self.task_id not in other.predecessors:
            raise ValueError(
                "appended task must have the same type and follow this task"
            )
        self.actions.extend(other.actions)
        self.successors = list(other.successors)
        for task in tasks:
            preds = task.predecessors
            if other.task_id in preds:
                preds[preds.index(other.task_id)] = self.task_id

    @staticmethod
    def remove_task(rem: Task, preds: Sequence[Task], succs: Sequence[Task]) -> bool:
        """Unlink ``rem`` by joining each predecessor to a successor of its type.

        ``preds`` and ``succs`` must be exactly the tasks ``rem`` links to.
        Returns False if they do not match or cannot be paired up; links
        rewritten before a failure stay rewritten.
        """
        if len(rem.predecessors) != len(preds):
            return False
        if any(p.task_id not in rem.predecessors for p in preds):
            return False
        if len(rem.successors) != len(succs):
            return False
        if any(s.task_id not in rem.successors for s in succs):
            return False
        if len(preds) != len(succs):
            return False

        for pred in preds:
            matched = False
            for succ in succs:
                if pred.type != succ.type:
                    continue
                if rem.task_id not in pred.successors:
                    continue
                if rem.task_id not in succ.predecessors:
                    continue
                pred.successors[pred.successors.index(rem.task_id)] = succ.task_id
                succ.predecessors[succ.predecessors.index(rem.task_id)] = pred.task_id
                matched = True
                break
            if not matched:
                return False
        return True

    def _links(self) -> str:
        succs = "".join(f"{tid}," for tid in self.successors)
        preds = "".join(f"{tid}," for tid in self.predecessors)
        return f"s:{succs}\np:{preds}\n"

    def summary(self) -> str:
        """One-line header followed by successor and predecessor lists."""
        return (
            f"taskId:{self.task_id}\tstartTime:{self.start_time}\t"
            f"endTime:{self.end_time}\tType:{task_type_name(self.type)}\n"
            + self._links()
        )

    def __str__(self) -> str:
        actions = "".join(str(action) for action in self.actions)
        return (
            f"taskId:{self.task_id}\nstartTime:{self.start_time}\n"
            f"endTime:{self.end_time}\nType:{task_type_name(self.type)}\n"
            f"a:{actions}\n" + self._links()
        )
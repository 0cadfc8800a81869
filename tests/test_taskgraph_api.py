import io

import pytest

from cadsim.interfaces import OpType
from cadsim.task import Task, TaskType
from cadsim.taskgraph import write_task_graph
from cadsim.taskgraph_api import TaskGraphOpSource
from cadsim.taskid import TaskId


def _graph():
    t0 = Task(TaskId.from_parts(0, 0))
    t0.record_basic_block(5)
    t0.record_mem_op(False, 2, 0x100)
    t0.record_mem_op(True, 3, 0x200)
    t1 = Task(TaskId.from_parts(0, 1), TaskType.SYNC)
    t2 = Task(TaskId.from_parts(0, 2))
    t3 = Task(TaskId.from_parts(0, 3))
    t3.record_mem_op(False, 0, 0x300)
    c1 = Task(TaskId.from_parts(1, 0))
    c1.record_basic_block(7)
    buf = io.BytesIO()
    write_task_graph(buf, [t0, t1, t2, t3, c1], None, t0.task_id, t3.task_id)
    buf.seek(0)
    return buf


def _drain(source, proc):
    ops = []
    while (op := source.next_op(proc)) is not None:
        ops.append(op)
    return ops


def test_context_count():
    assert TaskGraphOpSource(_graph()).context_count() == 2


def test_context_zero_skips_sync_and_empty_tasks():
    ops = _drain(TaskGraphOpSource(_graph()), 0)
    assert [(op.op, op.mem_address, op.size) for op in ops] == [
        (OpType.MEM_STORE, 5, 1),
        (OpType.MEM_LOAD, 0x100, 4),
        (OpType.MEM_STORE, 0x200, 8),
        (OpType.MEM_LOAD, 0x300, 1),
    ]


def test_ops_have_no_registers():
    ops = _drain(TaskGraphOpSource(_graph()), 0)
    assert all(op.src_reg == [-1, -1] and op.dest_reg == -1 for op in ops)


def test_contexts_are_independent():
    source = TaskGraphOpSource(_graph())
    first = source.next_op(0)
    other = source.next_op(1)
    assert first.mem_address == 5
    assert other.mem_address == 7
    assert source.next_op(1) is None
    assert source.next_op(0).mem_address == 0x100


def test_exhausted_context_stays_exhausted():
    source = TaskGraphOpSource(_graph())
    _drain(source, 1)
    assert source.next_op(1) is None
    assert source.next_op(1) is None


@pytest.mark.parametrize("proc", [-1, 2])
def test_unknown_context_raises(proc):
    with pytest.raises(IndexError):
        TaskGraphOpSource(_graph()).next_op(proc)


def test_empty_graph_has_no_contexts():
    buf = io.BytesIO()
    write_task_graph(buf, [], None, 0, 0)
    buf.seek(0)
    source = TaskGraphOpSource(buf)
    assert source.context_count() == 0
    with pytest.raises(IndexError):
        source.next_op(0)


def test_debug_report_before_and_after():
    source = TaskGraphOpSource(_graph())
    before = source.debug_report()
    assert before.startswith(f"Contexts: {source.context_count()}\n")
    assert before.count("NULL Task") == source.context_count()
    source.next_op(0)
    after = source.debug_report()
    assert "taskId:0:0" in after
    assert after.count("NULL Task") == 1
    _drain(source, 1)
    assert "Complete: 1" in source.debug_report()
import io
import sys

import pytest

from cadsim.interfaces import OpType
from cadsim.task import Task
from cadsim.taskgraph import write_task_graph
from cadsim.taskid import TaskId
from cadsim.trace import TraceError, TraceKind, TraceReader, parse_trace_line


def test_parse_alu():
    op = parse_trace_line("A 400 1, 2, 3\n")
    assert op.op is OpType.ALU
    assert op.pc_address == 0x400
    assert op.dest_reg == 1
    assert op.src_reg == [2, 3]


def test_parse_alu_long_with_prefix():
    op = parse_trace_line("X 0x40 4, 5, 6\n")
    assert op.op is OpType.ALU_LONG
    assert op.pc_address == 0x40
    assert (op.dest_reg, op.src_reg) == (4, [5, 6])


def test_parse_branch_with_register():
    op = parse_trace_line("B 10 20 5\n")
    assert op.op is OpType.BRANCH
    assert (op.pc_address, op.next_pc_address) == (0x10, 0x20)
    assert op.src_reg == [5, -1]
    assert op.dest_reg == -1


def test_parse_branch_without_register():
    op = parse_trace_line("B 10 20\n")
    assert op.src_reg == [-1, -1]
    assert op.next_pc_address == 0x20


def test_parse_load():
    op = parse_trace_line("L 1000,8 3\n")
    assert op.op is OpType.MEM_LOAD
    assert (op.mem_address, op.size) == (0x1000, 8)
    assert op.src_reg == [3, -1]
    assert op.dest_reg == -1


def test_parse_store_register_is_destination():
    with_reg = parse_trace_line("S 2000,4 7\n")
    without = parse_trace_line("S 2000,4\n")
    assert with_reg.op is OpType.MEM_STORE
    assert with_reg.dest_reg == 7
    assert with_reg.src_reg == [-1, -1]
    assert without.dest_reg == -1
    assert without.mem_address == 0x2000


@pytest.mark.parametrize("line", ["", "\n", " L 10,4\n", "\0"])
def test_end_markers(line):
    assert parse_trace_line(line) is None


def test_invalid_op_type():
    with pytest.raises(TraceError, match="invalid op type"):
        parse_trace_line("Q 1\n")


def test_malformed_fields():
    with pytest.raises(TraceError):
        parse_trace_line("L zz\n")


def test_reader_single_file(tmp_path):
    path = tmp_path / "run.trace"
    path.write_text("L 10,4\n\nS 20,8 2\n")
    with TraceReader(["-t", str(path)]) as reader:
        assert reader.kind is TraceKind.ASCII
        first = reader.next_op(0)
        second = reader.next_op(0)
        assert reader.next_op(0) is None
        assert reader.op_count == 2
        assert reader.tick() == 1
        assert reader.finish(None) == 0
    assert (first.op, first.mem_address) == (OpType.MEM_LOAD, 0x10)
    assert (second.op, second.dest_reg) == (OpType.MEM_STORE, 2)


def test_reader_leading_whitespace_ends_trace(tmp_path):
    path = tmp_path / "run.trace"
    path.write_text(" L 10,4\n")
    with TraceReader(["-t", str(path)]) as reader:
        assert reader.next_op(0) is None
        assert reader.op_count == 0


def test_reader_invalid_entry_reports_count(tmp_path):
    path = tmp_path / "run.trace"
    path.write_text("L 10,4\nQ\n")
    with TraceReader(["-t", str(path)]) as reader:
        reader.next_op(0)
        with pytest.raises(TraceError, match="on op 1"):
            reader.next_op(0)


def test_reader_single_file_other_processor(tmp_path):
    path = tmp_path / "run.trace"
    path.write_text("L 10,4\n")
    with TraceReader(["-t", str(path)], processor_count=2) as reader:
        with pytest.raises(TraceError):
            reader.next_op(1)


def test_reader_directory(tmp_path):
    (tmp_path / "p0.trace").write_text("L 10,4\n")
    (tmp_path / "p1.trace").write_text("B 30 40 1\n")
    with TraceReader(["-t", str(tmp_path)], processor_count=2) as reader:
        b = reader.next_op(1)
        a = reader.next_op(0)
        assert reader.next_op(0) is None
    assert (a.op, a.mem_address, a.size) == (OpType.MEM_LOAD, 0x10, 4)
    assert (b.op, b.pc_address, b.next_pc_address) == (OpType.BRANCH, 0x30, 0x40)


def test_reader_directory_missing_processor(tmp_path):
    (tmp_path / "p0.trace").write_text("L 10,4\n")
    with TraceReader(["-t", str(tmp_path)], processor_count=2) as reader:
        with pytest.raises(TraceError):
            reader.next_op(1)


def test_reader_processor_out_of_range(tmp_path):
    path = tmp_path / "run.trace"
    path.write_text("L 10,4\n")
    with TraceReader(["-t", str(path)]) as reader:
        with pytest.raises(IndexError):
            reader.next_op(1)


def test_reader_missing_file(tmp_path):
    with pytest.raises(TraceError):
        TraceReader(["-t", str(tmp_path / "absent.trace")])


def test_reader_unknown_option():
    with pytest.raises(TraceError):
        TraceReader(["-z"])


def test_reader_stdin(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("S 40,2\n"))
    with TraceReader([]) as reader:
        assert reader.kind is TraceKind.STDIN
        op = reader.next_op(0)
        assert reader.next_op(0) is None
    assert (op.op, op.mem_address, op.size) == (OpType.MEM_STORE, 0x40, 2)


def test_reader_task_graph(tmp_path):
    task = Task(TaskId.from_parts(0, 0))
    task.record_mem_op(False, 0, 0x500)
    path = tmp_path / "run.taskgraph"
    with open(path, "w+b") as stream:
        write_task_graph(stream, [task], None, task.task_id, task.task_id)
    with TraceReader(["-t", str(path)]) as reader:
        assert reader.kind is TraceKind.CONTECH
        op = reader.next_op(0)
        assert reader.next_op(0) is None
    assert (op.op, op.mem_address) == (OpType.MEM_LOAD, 0x500)


def test_reader_bad_task_graph(tmp_path):
    path = tmp_path / "broken.taskgraph"
    path.write_bytes(b"\x01")
    with pytest.raises(TraceError):
        TraceReader(["-t", str(path)])
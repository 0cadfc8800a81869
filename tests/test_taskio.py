import io
import struct
import zlib

import pytest

from cadsim.task import SyncType, Task, TaskType
from cadsim.taskid import TaskId
from cadsim.taskio import TaskFormatError, read_exact, read_task, write_task


def _sample_task():
    task = Task(TaskId.from_parts(2, 7), TaskType.SYNC)
    task.sync_type = SyncType.LOCK
    task.start_time = 100
    task.end_time = 250
    task.record_basic_block(3)
    task.record_mem_op(True, 2, 0x1000)
    task.record_mem_op(False, 3, 0x2000)
    task.record_malloc(0x5000, 64)
    task.add_successor(TaskId.from_parts(2, 8))
    task.add_predecessor(TaskId.from_parts(2, 6))
    return task


def test_round_trip_preserves_task():
    task = _sample_task()
    buf = io.BytesIO()
    write_task(task, buf)
    buf.seek(0)
    back = read_task(buf)
    assert back == task
    assert back.sync_type == SyncType.LOCK
    assert back.bb_count == 1


def test_several_tasks_read_in_order():
    first = _sample_task()
    second = Task(TaskId(9), TaskType.BARRIER)
    buf = io.BytesIO()
    write_task(first, buf)
    write_task(second, buf)
    buf.seek(0)
    assert read_task(buf) == first
    assert read_task(buf) == second
    assert read_task(buf) is None


def test_empty_stream_gives_none():
    assert read_task(io.BytesIO()) is None


def test_short_header_gives_none():
    assert read_task(io.BytesIO(b"\x01\x02\x03")) is None


def test_truncated_body_raises():
    buf = io.BytesIO()
    write_task(_sample_task(), buf)
    data = buf.getvalue()[:-3]
    with pytest.raises(TaskFormatError):
        read_task(io.BytesIO(data))


def test_corrupt_compression_raises():
    data = struct.pack("<QQ", 10, 4) + b"junk"
    with pytest.raises(TaskFormatError):
        read_task(io.BytesIO(data))


def test_header_holds_record_length():
    buf = io.BytesIO()
    returned = write_task(_sample_task(), buf)
    data = buf.getvalue()
    record_length, comp_length = struct.unpack("<QQ", data[:16])
    assert record_length == returned - 16
    assert comp_length == len(data) - 16
    assert len(zlib.decompress(data[16:])) == record_length


def test_payload_starts_with_task_id():
    task = _sample_task()
    buf = io.BytesIO()
    write_task(task, buf)
    raw = zlib.decompress(buf.getvalue()[16:])
    assert raw[:8] == struct.pack("<Q", int(task.task_id))


def test_join_needs_more_predecessors():
    task = Task(TaskId(1), TaskType.JOIN)
    task.add_predecessor(TaskId(2))
    task.add_successor(TaskId(3))
    with pytest.raises(ValueError):
        write_task(task, io.BytesIO())


def test_create_needs_more_successors():
    task = Task(TaskId(1), TaskType.CREATE)
    task.add_predecessor(TaskId(2))
    with pytest.raises(ValueError):
        write_task(task, io.BytesIO())


def test_read_exact_stops_at_end():
    stream = io.BytesIO(b"abc")
    assert read_exact(stream, 5) == b"abc"
    assert read_exact(stream, 2) == b""
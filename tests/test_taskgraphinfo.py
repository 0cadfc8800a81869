import io
import struct

import pytest

from cadsim.taskgraphinfo import BBI_FLAG_CONTAIN_CALL, TaskGraphInfo
from cadsim.taskio import TaskFormatError


def _info():
    info = TaskGraphInfo()
    info.add_basic_block(5, BBI_FLAG_CONTAIN_CALL, 42, 3, 10, 4, "main", "a.c", "printf")
    info.add_basic_block(1, 0, 7, 0, 2, 1, "helper", "b.c", "")
    return info


def _written(info):
    buf = io.BytesIO()
    info.write(buf)
    return buf.getvalue()


def test_round_trip():
    info = _info()
    back = TaskGraphInfo.read(io.BytesIO(_written(info)))
    assert back.blocks == info.blocks
    assert back.get(5).function_name == "main"
    assert back.get(5).calls_function == "printf"
    assert back.get(1).calls_function == ""


def test_count_comes_first():
    data = _written(_info())
    assert data[:4] == struct.pack("<i", 2)


def test_blocks_written_in_id_order():
    data = _written(_info())
    assert data[4:8] == struct.pack("<I", 1)


def test_missing_block_has_all_ones_line():
    info = _info()
    missing = info.get(99)
    assert missing.line_number == 0xFFFFFFFF
    assert missing.function_name == ""


def test_readding_replaces_entry():
    info = _info()
    info.add_basic_block(5, 0, 1, 1, 1, 1, "other", "c.c", "")
    assert info.get(5).function_name == "other"
    assert len(info.blocks) == 2


def test_string_stops_at_nul():
    data = (
        struct.pack("<i", 1)
        + struct.pack("<6I", 3, 0, 9, 0, 0, 0)
        + struct.pack("<I", 3)
        + b"a\0b"
        + struct.pack("<I", 0)
        + struct.pack("<I", 0)
    )
    info = TaskGraphInfo.read(io.BytesIO(data))
    assert info.get(3).function_name == "a"
    assert info.get(3).line_number == 9


def test_truncated_table_raises():
    data = _written(_info())[:-2]
    with pytest.raises(TaskFormatError):
        TaskGraphInfo.read(io.BytesIO(data))


def test_empty_table_round_trip():
    back = TaskGraphInfo.read(io.BytesIO(_written(TaskGraphInfo())))
    assert back.blocks == {}
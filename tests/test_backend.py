import io

import pytest

from cadsim.backend import Backend, SimpleBackendWrapper
from cadsim.task import Task, TaskType
from cadsim.taskgraph import write_task_graph
from cadsim.taskgraphinfo import TaskGraphInfo
from cadsim.taskid import TaskId


class Recorder(Backend):
    def __init__(self):
        self.info = None
        self.seen = []
        self.resets = 0

    def init_backend(self, info):
        self.info = info

    def reset_backend(self):
        self.resets += 1

    def update_backend(self, task):
        self.seen.append(task.task_id)

    def complete_backend(self, out, info):
        out.write(f"{len(self.seen)} tasks\n")


def _tasks():
    first = Task(TaskId.from_parts(0, 0))
    first.record_basic_block(3)
    first.record_mem_op(False, 2, 0x100)
    second = Task(TaskId.from_parts(0, 1), TaskType.SYNC)
    return [first, second]


@pytest.fixture
def graph_path(tmp_path):
    info = TaskGraphInfo()
    info.add_basic_block(3, 1, 42, 2, 10, 4, "main", "main.c", "")
    path = tmp_path / "sample.taskgraph"
    tasks = _tasks()
    with open(path, "w+b") as stream:
        write_task_graph(stream, tasks, info, tasks[0].task_id, tasks[-1].task_id)
    return path


def test_init_backend_passes_graph_info(graph_path):
    backend = Recorder()
    with SimpleBackendWrapper(graph_path, backend) as wrapper:
        wrapper.init_backend()
    assert backend.info.get(3).function_name == "main"
    assert backend.info.get(3).line_number == 42


def test_run_feeds_tasks_in_order(graph_path):
    backend = Recorder()
    with SimpleBackendWrapper(graph_path, backend) as wrapper:
        wrapper.run()
    assert backend.seen == [t.task_id for t in _tasks()]


def test_second_run_has_nothing_left(graph_path):
    backend = Recorder()
    with SimpleBackendWrapper(graph_path, backend) as wrapper:
        wrapper.run()
        wrapper.run()
    assert len(backend.seen) == len(_tasks())


def test_complete_run_writes_report(graph_path):
    backend = Recorder()
    out = io.StringIO()
    with SimpleBackendWrapper(graph_path, backend) as wrapper:
        wrapper.run()
        wrapper.complete_run(out)
    assert out.getvalue() == f"{len(_tasks())} tasks\n"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        SimpleBackendWrapper(tmp_path / "absent.taskgraph", Recorder())


def test_backend_is_abstract():
    with pytest.raises(TypeError):
        Backend()
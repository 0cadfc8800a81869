"""Drive a user-supplied analysis backend over every task of a task graph."""

from __future__ import annotations

import abc
import os
from typing import IO

from .task import Task
from .taskgraph import TaskGraph
from .taskgraphinfo import TaskGraphInfo


class Backend(abc.ABC):
    """An analysis that consumes tasks one at a time."""

    info: TaskGraphInfo | None = None

    def init_backend(self, info: TaskGraphInfo) -> None:
        """Prepare for a run; the default keeps the graph information."""
        self.info = info

    @abc.abstractmethod
    def reset_backend(self) -> None:
        """Discard any state gathered so far."""

    @abc.abstractmethod
    def update_backend(self, task: Task) -> None:
        """Consume one task."""

    @abc.abstractmethod
    def complete_backend(self, out: IO[str], info: TaskGraphInfo) -> None:
        """Write the results of the run to ``out``."""


class SimpleBackendWrapper:
    """Feeds the tasks of one task graph file to a backend in index order."""

    def __init__(self, path: str | os.PathLike[str], backend: Backend) -> None:
        self._graph = TaskGraph.from_file(path)
        self.backend = backend

    def run(self) -> None:
        """Pass every remaining task to the backend."""
        for task in self._graph:
            self.backend.update_backend(task)

    def init_backend(self) -> None:
        """Hand the graph's basic-block information to the backend."""
        self.backend.init_backend(self._graph.info)

    def complete_run(self, out: IO[str]) -> None:
        """Let the backend report its results, then flush ``out``."""
        self.backend.complete_backend(out, self._graph.info)
        out.flush()

    def close(self) -> None:
        """Close the task graph file."""
        self._graph.close()

    def __enter__(self) -> SimpleBackendWrapper:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
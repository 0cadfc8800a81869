"""Shared types passed between simulator components."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from enum import IntEnum
from typing import IO

READ_PERM = 0
WRITE_PERM = 1


class OpType(IntEnum):
    """Kind of operation carried by a trace entry."""

    NONE = 0
    MEM_LOAD = 1
    MEM_STORE = 2
    BRANCH = 3
    ALU = 4
    ALU_LONG = 5
    END = 6


class BusReqType(IntEnum):
    """Kind of request placed on the interconnect."""

    NO_REQ = 0
    BUSRD = 1
    BUSWR = 2
    DATA = 3
    SHARED = 4
    MEMORY = 5


class CacheAction(IntEnum):
    """Action reported by the coherence component to a cache."""

    NO_ACTION = 0
    DATA_RECV = 1
    INVALIDATE = 2


class BranchModel(IntEnum):
    """Branch predictor model."""

    DEFAULT = 0
    GSHARE = 1
    GSELECT = 2
    YEH_PATT = 3


@dataclass
class DebugEnv:
    """Debugging switches a component consults while ticking."""

    watched_component: bool = False
    notify_state: bool = False
    extern_break: bool = False


@dataclass
class TraceOp:
    """One operation read from a trace.

    ``mem_address`` and ``next_pc_address`` share storage: a memory
    operation uses the former, a branch the latter.
    """

    op: OpType = OpType.NONE
    dest_reg: int = 0
    src_reg: list[int] = field(default_factory=lambda: [0, 0])
    pc_address: int = 0
    mem_address: int = 0
    size: int = 0

    @property
    def next_pc_address(self) -> int:
        return self.mem_address

    @next_pc_address.setter
    def next_pc_address(self, value: int) -> None:
        self.mem_address = value

    def is_memory(self) -> bool:
        """True for loads and stores."""
        return self.op in (OpType.MEM_LOAD, OpType.MEM_STORE)


class SimComponent(abc.ABC):
    """Base for every component driven by the simulation engine."""

    def __init__(self) -> None:
        self.dbg_env = DebugEnv()

    @abc.abstractmethod
    def tick(self) -> int:
        """Advance the component by one cycle."""

    def finish(self, out: IO[str] | None = None) -> int:
        """Report final statistics to ``out``; the default only flushes it."""
        if out is not None:
            out.flush()
        return 0

    def destroy(self) -> int:
        """Release resources held by the component."""
        return 0
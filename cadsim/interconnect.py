"""A single shared bus with round-robin arbitration between processors."""

from __future__ import annotations

import getopt
import signal
from collections import deque
from dataclasses import dataclass
from enum import IntEnum
from typing import IO, Callable, Protocol, Sequence

from .interfaces import BusReqType, SimComponent

CACHE_DELAY = 10
CACHE_TRANSFER = 10


class _Memory(Protocol):
    def register_interconnect(self, interconnect: Interconnect) -> None: ...

    def bus_req(
        self, addr: int, proc_num: int, callback: Callable[[int, int], None]
    ) -> int: ...

    def tick(self) -> int: ...

    def finish(self, out: IO[str] | None) -> int: ...

    def destroy(self) -> int: ...


class _Coherence(Protocol):
    def bus_req(self, req_type: BusReqType, addr: int, proc_num: int) -> int: ...


class BusRequestState(IntEnum):
    """Progress of a request on the bus."""

    NONE = 0
    QUEUED = 1
    TRANSFERING_CACHE = 2
    TRANSFERING_MEMORY = 3
    WAITING_CACHE = 4
    WAITING_MEMORY = 5

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]


_STATE_LABELS = {
    BusRequestState.NONE: "None",
    BusRequestState.QUEUED: "Queued",
    BusRequestState.TRANSFERING_CACHE: "Cache-to-Cache Transfer",
    BusRequestState.TRANSFERING_MEMORY: "Memory Transfer",
    BusRequestState.WAITING_CACHE: "Waiting for Cache",
    BusRequestState.WAITING_MEMORY: "Waiting for Memory",
}

_REQ_TYPE_LABELS = {
    BusReqType.NO_REQ: "None",
    BusReqType.BUSRD: "BusRd",
    BusReqType.BUSWR: "BusRdX",
    BusReqType.DATA: "Data",
    BusReqType.SHARED: "Shared",
    BusReqType.MEMORY: "Memory",
}


@dataclass
class BusRequest:
    """A request issued by one processor for one address."""

    req_type: BusReqType
    state: BusRequestState
    addr: int
    proc_num: int
    shared: bool = False
    data: bool = False
    data_available: bool = False


class Interconnect(SimComponent):
    """Serves one bus request at a time; others wait in per-processor queues."""

    def __init__(
        self, argv: Sequence[str], memory: _Memory, processor_count: int = 1
    ) -> None:
        super().__init__()
        if processor_count < 1:
            raise ValueError("processor count must be at least 1")
        try:
            getopt.gnu_getopt(list(argv), "v")
        except getopt.GetoptError as exc:
            raise ValueError(str(exc)) from exc

        self.processor_count = processor_count
        self.pending: BusRequest | None = None
        self.countdown = 0
        self._queues: list[deque[BusRequest]] = [
            deque() for _ in range(processor_count)
        ]
        self._last_proc = 0
        self._memory = memory
        self._coherence: _Coherence | None = None
        memory.register_interconnect(self)

    def register_coherence(self, coherence: _Coherence) -> None:
        """Attach the coherence component that snoops the bus."""
        self._coherence = coherence

    def _require_coherence(self) -> _Coherence:
        if self._coherence is None:
            raise RuntimeError("no coherence component registered")
        return self._coherence

    def bus_request(self, req_type: BusReqType, addr: int, proc_num: int) -> None:
        """Place a request on the bus, or answer the one in flight.

        SHARED and DATA for the address in flight update that request;
        anything else starts a request or joins the processor's queue.
        """
        req_type = BusReqType(req_type)
        current = self.pending
        if current is None:
            if req_type == BusReqType.SHARED:
                raise ValueError("a shared reply needs a request in flight")
            self.pending = BusRequest(
                req_type, BusRequestState.WAITING_CACHE, addr, proc_num
            )
            self.countdown = CACHE_DELAY
        elif req_type == BusReqType.SHARED and current.addr == addr:
            current.shared = True
        elif req_type == BusReqType.DATA and current.addr == addr:
            if current.state != BusRequestState.WAITING_MEMORY:
                raise RuntimeError(
                    f"data supplied while request is {current.state.label}"
                )
            current.data = True
            current.state = BusRequestState.TRANSFERING_CACHE
            self.countdown = CACHE_TRANSFER
        else:
            if req_type == BusReqType.SHARED:
                raise ValueError("a shared reply must match the request in flight")
            self._queues[proc_num].append(
                BusRequest(req_type, BusRequestState.QUEUED, addr, proc_num)
            )

    def memory_callback(self, proc_num: int, addr: int) -> None:
        """Memory reports that data for ``addr`` is ready."""
        current = self.pending
        if current is None:
            return
        if addr == current.addr and proc_num == current.proc_num:
            current.data_available = True

    def bus_request_cache_transfer(self, addr: int, proc_num: int) -> bool:
        """True if the request in flight is served by a cache-to-cache transfer."""
        current = self.pending
        if current is None:
            raise RuntimeError("no request in flight")
        if addr == current.addr and proc_num == current.proc_num:
            return current.state == BusRequestState.TRANSFERING_CACHE
        return False

    def queue_size(self, proc_num: int) -> int:
        """Number of requests waiting from ``proc_num``."""
        return len(self._queues[proc_num])

    def state_report(self) -> str:
        """Debug description of the request in flight, empty when idle."""
        current = self.pending
        if current is None:
            return ""
        lines = [
            f"--- Interconnect Debug State (Processors: {self.processor_count}) ---",
            "       Current Request: ",
            f"             Processor: {current.proc_num}",
            f"               Address: 0x{current.addr:016x}",
            f"                  Type: {_REQ_TYPE_LABELS[current.req_type]}",
            f"                 State: {current.state.label}",
            f"         Shared / Data: {'Shared' if current.shared else 'Data'}",
            f"             Countdown: {self.countdown}",
            "    Request Queue Size: ",
        ]
        lines.extend(
            f"       - Processor[{proc:02d}]: {len(queue)}"
            for proc, queue in enumerate(self._queues)
        )
        return "\n".join(lines) + "\n"

    def _print_state(self) -> None:
        report = self.state_report()
        if report:
            print(report, end="")

    def notify_state(self) -> None:
        """Report the request in flight if a debugger is watching this component."""
        if self.pending is None:
            return
        dbg = self.dbg_env
        if dbg.extern_break:
            self._print_state()
            if hasattr(signal, "SIGTRAP"):
                signal.raise_signal(signal.SIGTRAP)
            else:
                raise RuntimeError("external break requested on the interconnect")
            return
        if dbg.watched_component and dbg.notify_state:
            dbg.notify_state = False
            self._print_state()

    def _complete(self, current: BusRequest, req_type: BusReqType) -> None:
        self._require_coherence().bus_req(req_type, current.addr, current.proc_num)
        self.notify_state()
        self.pending = None

    def tick(self) -> int:
        """Advance the bus by one cycle."""
        self._memory.tick()

        if self.dbg_env.watched_component and not self.dbg_env.notify_state:
            self._print_state()

        if self.countdown > 0:
            current = self.pending
            if current is None:
                raise RuntimeError("bus countdown running with no request")
            self.countdown -= 1

            if current.data_available:
                current.state = BusRequestState.TRANSFERING_MEMORY
                self.countdown = 0

            if self.countdown == 0:
                if current.state == BusRequestState.WAITING_CACHE:
                    coherence = self._require_coherence()
                    self.countdown = self._memory.bus_req(
                        current.addr, current.proc_num, self.memory_callback
                    )
                    current.state = BusRequestState.WAITING_MEMORY
                    for proc in range(self.processor_count):
                        if proc != current.proc_num:
                            coherence.bus_req(current.req_type, current.addr, proc)
                    if current.data:
                        current.req_type = BusReqType.DATA
                elif current.state == BusRequestState.TRANSFERING_MEMORY:
                    reply = BusReqType.SHARED if current.shared else BusReqType.DATA
                    self._complete(current, reply)
                elif current.state == BusRequestState.TRANSFERING_CACHE:
                    reply = BusReqType.SHARED if current.shared else current.req_type
                    self._complete(current, reply)
        elif self.countdown == 0:
            for offset in range(self.processor_count):
                pos = (offset + self._last_proc) % self.processor_count
                queue = self._queues[pos]
                if queue:
                    current = queue.popleft()
                    current.state = BusRequestState.WAITING_CACHE
                    self.pending = current
                    self.countdown = CACHE_DELAY
                    self._last_proc = (pos + 1) % self.processor_count
                    break
        return 0

    def finish(self, out: IO[str] | None = None) -> int:
        self._memory.finish(out)
        return 0

    def destroy(self) -> int:
        self._memory.destroy()
        return 0
"""A cache that asks the coherence component for permission and nothing more."""

from __future__ import annotations

import getopt
from collections import deque
from dataclasses import dataclass
from typing import IO, Callable, Protocol, Sequence

from .interfaces import CacheAction, OpType, SimComponent, TraceOp

RequestCallback = Callable[[int, int], None]
CoherenceCallback = Callable[[int, int, int], None]

_OPTSTRING = "E:s:b:i:R:"


class _Coherence(Protocol):
    def register_cache_interface(self, callback: CoherenceCallback) -> None: ...

    def perm_req(self, is_read: bool, addr: int, processor_num: int) -> int: ...

    def tick(self) -> int: ...


@dataclass
class _PendingRequest:
    tag: int
    addr: int
    processor_num: int
    callback: RequestCallback


class SimpleCache(SimComponent):
    """Completes a request once the coherence component grants the line."""

    def __init__(
        self,
        argv: Sequence[str],
        coherence: _Coherence,
        processor_count: int = 1,
    ) -> None:
        super().__init__()
        if processor_count < 1:
            raise ValueError("processor count must be at least 1")
        try:
            opts, _ = getopt.gnu_getopt(list(argv), _OPTSTRING)
        except getopt.GetoptError as exc:
            raise ValueError(str(exc)) from exc

        self.block_size = 1
        for opt, value in opts:
            if opt == "-b":
                self.block_size = 1 << int(value)

        self.processor_count = processor_count
        self._coherence = coherence
        # Both lists keep the most recently added request first.
        self._ready: deque[_PendingRequest] = deque()
        self._pending: deque[_PendingRequest] = deque()
        coherence.register_cache_interface(self.coherence_callback)

    @property
    def pending_requests(self) -> int:
        """Requests still waiting for the coherence component."""
        return len(self._pending)

    @property
    def ready_requests(self) -> int:
        """Requests that will complete on the next tick."""
        return len(self._ready)

    def memory_request(
        self,
        op: TraceOp,
        processor_num: int,
        tag: int,
        callback: RequestCallback,
    ) -> None:
        """Start a request; ``callback(processor_num, tag)`` runs when it completes.

        Requests are assumed not to cross a block boundary.
        """
        if op is None:
            raise ValueError("a memory request needs an operation")
        if callback is None:
            raise ValueError("a memory request needs a callback")
        addr = op.mem_address & ~(self.block_size - 1)
        perm = self._coherence.perm_req(op.op == OpType.MEM_LOAD, addr, processor_num)
        request = _PendingRequest(tag, addr, processor_num, callback)
        if perm == 1:
            self._ready.appendleft(request)
        else:
            self._pending.appendleft(request)

    def coherence_callback(self, action: int, processor_num: int, addr: int) -> None:
        """Mark the matching pending request as ready once its data arrives.

        Invalidations are not supported and are ignored.
        """
        if not self._pending:
            raise RuntimeError("coherence callback with no pending request")
        if processor_num >= self.processor_count:
            raise ValueError(f"no processor {processor_num}")
        if action != CacheAction.DATA_RECV:
            return
        for pos, request in enumerate(self._pending):
            if request.processor_num == processor_num and request.addr == addr:
                del self._pending[pos]
                self._ready.appendleft(request)
                return
        waiting = " ".join(
            f"({req.addr:x} {req.processor_num})" for req in self._pending
        )
        raise RuntimeError(
            f"no pending request for processor {processor_num} at {addr:#x}; "
            f"waiting: {waiting}"
        )

    def tick(self) -> int:
        """Tick the coherence component, then complete every ready request."""
        self._coherence.tick()
        ready = list(self._ready)
        self._ready.clear()
        for request in ready:
            request.callback(request.processor_num, request.tag)
        return 1

    def finish(self, out: IO[str] | None = None) -> int:
        return 0

    def destroy(self) -> int:
        """Drop every outstanding request."""
        self._ready.clear()
        self._pending.clear()
        return 0
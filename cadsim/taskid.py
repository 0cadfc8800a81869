"""Identifiers for contexts, sequence positions and tasks."""

from __future__ import annotations

from dataclasses import dataclass

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF


def _check(value: int, limit: int, name: str) -> None:
    if not 0 <= value <= limit:
        raise ValueError(f"{name} out of range: {value}")


@dataclass(frozen=True, order=True)
class ContextId:
    """Identifier of an execution context (32 bits)."""

    value: int = 0

    def __post_init__(self) -> None:
        _check(self.value, _U32, "context id")

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, order=True)
class SeqId:
    """Position of a task within its context (32 bits)."""

    value: int = 0

    def __post_init__(self) -> None:
        _check(self.value, _U32, "sequence id")

    def next(self) -> SeqId:
        """The following sequence id, wrapping at 32 bits."""
        return SeqId((self.value + 1) & _U32)

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, order=True)
class TaskId:
    """64-bit task identifier: context in the high half, sequence in the low."""

    value: int = 0

    def __post_init__(self) -> None:
        _check(self.value, _U64, "task id")

    @classmethod
    def from_parts(cls, context: ContextId | int, seq: SeqId | int) -> TaskId:
        """Build an id from a context and a sequence number."""
        ctx = context if isinstance(context, ContextId) else ContextId(context)
        sid = seq if isinstance(seq, SeqId) else SeqId(seq)
        return cls((ctx.value << 32) | sid.value)

    @property
    def context_id(self) -> ContextId:
        return ContextId(self.value >> 32)

    @property
    def seq_id(self) -> SeqId:
        return SeqId(self.value & _U32)

    def next(self) -> TaskId:
        """The id numerically following this one, wrapping at 64 bits."""
        return TaskId((self.value + 1) & _U64)

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return f"{self.context_id}:{self.seq_id}"
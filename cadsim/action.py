"""64-bit encoded actions recorded inside a task."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

DATA_MASK = (1 << 64) - 1
ADDR_MASK = (1 << 48) - 1
RANK_SHIFT = 50
RANK_MASK = 0xFF
POW_SIZE_SHIFT = 58
POW_SIZE_MASK = 0x7
TYPE_SHIFT = 61
TYPE_MASK = 0x7
BASIC_BLOCK_ID_MASK = (1 << 32) - 1


class ActionType(IntEnum):
    """Action kind held in the top three bits."""

    NULL = 0
    MEM_READ = 1
    MEM_WRITE = 2
    FREE = 3
    MALLOC = 4
    SIZE = 5
    BASIC_BLOCK = 6
    MEMCPY = 7


@dataclass(frozen=True, order=True)
class Action:
    """One action, stored as its raw 64-bit encoding."""

    data: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.data <= DATA_MASK:
            raise ValueError(f"action data out of range: {self.data}")

    @classmethod
    def memory(cls, addr: int, pow_size: int, action_type: ActionType) -> Action:
        """Encode a memory action; fields are truncated to their widths."""
        return cls(
            (addr & ADDR_MASK)
            | ((pow_size & POW_SIZE_MASK) << POW_SIZE_SHIFT)
            | ((int(action_type) & TYPE_MASK) << TYPE_SHIFT)
        )

    @classmethod
    def basic_block(cls, block_id: int) -> Action:
        """Encode a basic-block action."""
        return cls(
            (block_id & BASIC_BLOCK_ID_MASK)
            | (int(ActionType.BASIC_BLOCK) << TYPE_SHIFT)
        )

    @property
    def type(self) -> ActionType:
        return ActionType((self.data >> TYPE_SHIFT) & TYPE_MASK)

    @property
    def addr(self) -> int:
        return self.data & ADDR_MASK

    @property
    def rank(self) -> int:
        return (self.data >> RANK_SHIFT) & RANK_MASK

    @property
    def pow_size(self) -> int:
        return (self.data >> POW_SIZE_SHIFT) & POW_SIZE_MASK

    @property
    def basic_block_id(self) -> int:
        return self.data & BASIC_BLOCK_ID_MASK

    def is_mem_op(self) -> bool:
        """True for reads and writes."""
        return self.type in (ActionType.MEM_READ, ActionType.MEM_WRITE)

    def is_memory_action(self) -> bool:
        """True for every action that is not a basic block."""
        return self.type is not ActionType.BASIC_BLOCK

    def is_basic_block_action(self) -> bool:
        return self.type is ActionType.BASIC_BLOCK

    def __str__(self) -> str:
        kind = self.type
        if kind is ActionType.BASIC_BLOCK:
            return f" BB#{self.basic_block_id}"
        if kind is ActionType.SIZE:
            return f" of size {self.addr}"
        labels = {
            ActionType.MEM_WRITE: "ST",
            ActionType.MEM_READ: "LD",
            ActionType.MALLOC: "malloc",
            ActionType.FREE: "free",
            ActionType.MEMCPY: "memcpy addr",
        }
        label = labels.get(kind)
        if label is None:
            return f" UNKNOWN: {self.data}"
        return f" {label} {_hex(self.addr)}"


def _hex(value: int) -> str:
    return hex(value) if value else "0"
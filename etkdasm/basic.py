"""Basic blocks: runs of EVM instructions with one entry and one exit."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .ops import Instruction


@dataclass(frozen=True)
class Offset:
    """An instruction tagged with its position in the program."""

    offset: int
    item: Instruction


@dataclass
class BasicBlock:
    """A list of instructions with a single point of entry and a single exit."""

    offset: int
    ops: list[Instruction] = field(default_factory=list)

    def size(self) -> int:
        """Sum of the encoded lengths of every instruction."""
        return sum(op.size() for op in self.ops)


class Separator:
    """Split a stream of positioned instructions into :class:`BasicBlock` objects."""

    def __init__(self) -> None:
        self._complete: list[BasicBlock] = []
        self._in_progress: BasicBlock | None = None

    def push_all(self, items: Iterable[Offset]) -> bool:
        """Push every instruction; return whether any block has completed."""
        available = False
        for item in items:
            available |= self.push(item)
        return available

    def push(self, off: Offset) -> bool:
        """Push one instruction; return whether it completed a block."""
        item = off.item
        if item.is_jump_target():
            completed = self._in_progress
            self._in_progress = BasicBlock(off.offset, [item])
            if completed is None:
                return False
            self._complete.append(completed)
            return True

        if self._in_progress is None:
            self._in_progress = BasicBlock(off.offset, [item])
        else:
            self._in_progress.ops.append(item)

        if item.is_jump() or item.is_exit():
            self._complete.append(self._in_progress)
            self._in_progress = None
            return True
        return False

    def take(self) -> list[BasicBlock]:
        """Remove and return all completed blocks."""
        blocks, self._complete = self._complete, []
        return blocks

    def finish(self) -> BasicBlock | None:
        """Return the final, unterminated block once all input is consumed."""
        if self._complete:
            raise RuntimeError("not all basic blocks have been taken")
        block, self._in_progress = self._in_progress, None
        return block
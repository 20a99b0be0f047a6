"""Ways in which execution may leave a block of instructions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class Exit:
    """Base class for the ways a block can exit."""

    def fall_through(self) -> int | None:
        """Offset of the block that may follow directly, or ``None``."""
        return None

    def is_fall_through(self) -> bool:
        return isinstance(self, FallThrough)

    def is_terminate(self) -> bool:
        return isinstance(self, Terminate)

    def is_unconditional(self) -> bool:
        return isinstance(self, Unconditional)

    def is_branch(self) -> bool:
        return isinstance(self, Branch)


@dataclass(frozen=True)
class Terminate(Exit):
    """Unconditional halt: ``stop``, ``return``, ``revert`` and the like."""


@dataclass(frozen=True)
class FallThrough(Exit):
    """Execution continues with the following block at ``offset``."""

    offset: int

    def fall_through(self) -> int | None:
        return self.offset


@dataclass(frozen=True)
class Unconditional(Exit):
    """Unconditional jump to ``target``."""

    target: Any


@dataclass(frozen=True)
class Branch(Exit):
    """Jump to ``when_true`` if ``condition`` holds, else continue at ``when_false``."""

    condition: Any
    when_true: Any
    when_false: int

    def fall_through(self) -> int | None:
        return self.when_false
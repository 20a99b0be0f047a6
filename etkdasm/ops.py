"""EVM opcodes and concrete instructions, with their stack and control-flow metadata."""

from __future__ import annotations

import enum
from dataclasses import dataclass

MAX_PUSH = 32


def _build_table() -> dict[int, tuple[str, int, int]]:
    """Map each byte to ``(mnemonic, pops, pushes)``."""
    table: dict[int, tuple[str, int, int]] = {
        0x00: ("stop", 0, 0),
        0x01: ("add", 2, 1),
        0x02: ("mul", 2, 1),
        0x03: ("sub", 2, 1),
        0x04: ("div", 2, 1),
        0x05: ("sdiv", 2, 1),
        0x06: ("mod", 2, 1),
        0x07: ("smod", 2, 1),
        0x08: ("addmod", 3, 1),
        0x09: ("mulmod", 3, 1),
        0x0A: ("exp", 2, 1),
        0x0B: ("signextend", 2, 1),
        0x10: ("lt", 2, 1),
        0x11: ("gt", 2, 1),
        0x12: ("slt", 2, 1),
        0x13: ("sgt", 2, 1),
        0x14: ("eq", 2, 1),
        0x15: ("iszero", 1, 1),
        0x16: ("and", 2, 1),
        0x17: ("or", 2, 1),
        0x18: ("xor", 2, 1),
        0x19: ("not", 1, 1),
        0x1A: ("byte", 2, 1),
        0x1B: ("shl", 2, 1),
        0x1C: ("shr", 2, 1),
        0x1D: ("sar", 2, 1),
        0x20: ("keccak256", 2, 1),
        0x30: ("address", 0, 1),
        0x31: ("balance", 1, 1),
        0x32: ("origin", 0, 1),
        0x33: ("caller", 0, 1),
        0x34: ("callvalue", 0, 1),
        0x35: ("calldataload", 1, 1),
        0x36: ("calldatasize", 0, 1),
        0x37: ("calldatacopy", 3, 0),
        0x38: ("codesize", 0, 1),
        0x39: ("codecopy", 3, 0),
        0x3A: ("gasprice", 0, 1),
        0x3B: ("extcodesize", 1, 1),
        0x3C: ("extcodecopy", 4, 0),
        0x3D: ("returndatasize", 0, 1),
        0x3E: ("returndatacopy", 3, 0),
        0x3F: ("extcodehash", 1, 1),
        0x40: ("blockhash", 1, 1),
        0x41: ("coinbase", 0, 1),
        0x42: ("timestamp", 0, 1),
        0x43: ("number", 0, 1),
        0x44: ("difficulty", 0, 1),
        0x45: ("gaslimit", 0, 1),
        0x46: ("chainid", 0, 1),
        0x47: ("selfbalance", 0, 1),
        0x48: ("basefee", 0, 1),
        0x50: ("pop", 1, 0),
        0x51: ("mload", 1, 1),
        0x52: ("mstore", 2, 0),
        0x53: ("mstore8", 2, 0),
        0x54: ("sload", 1, 1),
        0x55: ("sstore", 2, 0),
        0x56: ("jump", 1, 0),
        0x57: ("jumpi", 2, 0),
        0x58: ("pc", 0, 1),
        0x59: ("msize", 0, 1),
        0x5A: ("gas", 0, 1),
        0x5B: ("jumpdest", 0, 0),
        0xF0: ("create", 3, 1),
        0xF1: ("call", 7, 1),
        0xF2: ("callcode", 7, 1),
        0xF3: ("return", 2, 0),
        0xF4: ("delegatecall", 6, 1),
        0xF5: ("create2", 4, 1),
        0xFA: ("staticcall", 6, 1),
        0xFD: ("revert", 2, 0),
        0xFE: ("invalid", 0, 0),
        0xFF: ("selfdestruct", 1, 0),
    }
    for n in range(1, MAX_PUSH + 1):
        table[0x5F + n] = (f"push{n}", 0, 1)
    for n in range(1, 17):
        table[0x7F + n] = (f"dup{n}", n, n + 1)
        table[0x8F + n] = (f"swap{n}", n + 1, n + 1)
    for n in range(5):
        table[0xA0 + n] = (f"log{n}", n + 2, 0)
    for code in range(256):
        table.setdefault(code, (f"invalid_{code:02x}", 0, 0))
    return table


_TABLE = _build_table()
_JUMPS = frozenset({0x56, 0x57})
_EXITS = frozenset({0x00, 0xF3, 0xFD, 0xFF})


class _OpcodeBase(enum.IntEnum):
    """Metadata shared by every opcode."""

    @property
    def mnemonic(self) -> str:
        return _TABLE[self.value][0]

    @property
    def pops(self) -> int:
        """Number of stack items the opcode consumes."""
        return _TABLE[self.value][1]

    @property
    def pushes(self) -> int:
        """Number of stack items the opcode produces."""
        return _TABLE[self.value][2]

    @property
    def immediate_size(self) -> int:
        """Number of immediate bytes following the opcode."""
        if 0x60 <= self.value <= 0x7F:
            return self.value - 0x5F
        return 0

    @property
    def is_valid(self) -> bool:
        """Whether the byte is a defined instruction (``invalid`` itself counts)."""
        return not self.mnemonic.startswith("invalid_")

    @property
    def is_jump(self) -> bool:
        return self.value in _JUMPS

    @property
    def is_exit(self) -> bool:
        """Whether the opcode unconditionally halts execution."""
        return self.value in _EXITS or self.mnemonic.startswith("invalid")

    @property
    def is_jump_target(self) -> bool:
        return self.value == 0x5B


Opcode = _OpcodeBase(
    "Opcode",
    [(_TABLE[code][0].upper(), code) for code in range(256)],
    module=__name__,
)
Opcode.__doc__ = "Every byte value as an EVM opcode."


@dataclass(frozen=True)
class Instruction:
    """An opcode together with its immediate bytes."""

    opcode: Opcode
    immediate: bytes = b""

    def __post_init__(self) -> None:
        opcode = Opcode(self.opcode)
        immediate = bytes(self.immediate)
        if len(immediate) != opcode.immediate_size:
            raise ValueError(
                f"{opcode.mnemonic} takes {opcode.immediate_size} immediate bytes, "
                f"got {len(immediate)}"
            )
        object.__setattr__(self, "opcode", opcode)
        object.__setattr__(self, "immediate", immediate)

    @classmethod
    def push(cls, immediate: bytes) -> Instruction:
        """The ``pushN`` instruction whose width matches ``immediate``."""
        data = bytes(immediate)
        if not 1 <= len(data) <= MAX_PUSH:
            raise ValueError(f"push immediates are 1..{MAX_PUSH} bytes, got {len(data)}")
        return cls(Opcode(0x5F + len(data)), data)

    def size(self) -> int:
        """Encoded length in bytes."""
        return 1 + len(self.immediate)

    def pops(self) -> int:
        return self.opcode.pops

    def pushes(self) -> int:
        return self.opcode.pushes

    def is_jump(self) -> bool:
        return self.opcode.is_jump

    def is_exit(self) -> bool:
        return self.opcode.is_exit

    def is_jump_target(self) -> bool:
        return self.opcode.is_jump_target

    def __bytes__(self) -> bytes:
        return bytes([self.opcode.value]) + self.immediate

    def __str__(self) -> str:
        if self.immediate:
            return f"{self.opcode.mnemonic} 0x{self.immediate.hex()}"
        return self.opcode.mnemonic
"""Expressions, symbols and variables for symbolic execution of EVM code."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Union

WORD_SIZE = 32
_U16_MAX = 0xFFFF


@dataclass(frozen=True)
class Var:
    """A variable, identified by a non-zero 16-bit id."""

    id: int

    def __post_init__(self) -> None:
        if isinstance(self.id, bool) or not isinstance(self.id, int):
            raise TypeError(f"variable id must be an int, not {type(self.id).__name__}")
        if not 1 <= self.id <= _U16_MAX:
            raise ValueError(f"variable id must be in 1..{_U16_MAX}, got {self.id}")

    def __str__(self) -> str:
        return f"var{self.id}"


class Op(enum.Enum):
    """Kinds of node in an expression tree, with their mnemonic and arity."""

    def __init__(self, mnemonic: str, arity: int) -> None:
        self.mnemonic = mnemonic
        self.arity = arity

    CONST = ("const", 0)
    VAR = ("var", 0)
    ADD = ("add", 2)
    MUL = ("mul", 2)
    SUB = ("sub", 2)
    DIV = ("div", 2)
    SDIV = ("sdiv", 2)
    MOD = ("mod", 2)
    SMOD = ("smod", 2)
    ADD_MOD = ("addmod", 3)
    MUL_MOD = ("mulmod", 3)
    EXP = ("exp", 2)
    LT = ("lt", 2)
    GT = ("gt", 2)
    SLT = ("slt", 2)
    SGT = ("sgt", 2)
    EQ = ("eq", 2)
    AND = ("and", 2)
    OR = ("or", 2)
    XOR = ("xor", 2)
    BYTE = ("byte", 2)
    SHL = ("shl", 2)
    SHR = ("shr", 2)
    SAR = ("sar", 2)
    KECCAK256 = ("keccak256", 2)
    SIGN_EXTEND = ("signextend", 2)
    IS_ZERO = ("iszero", 1)
    NOT = ("not", 1)
    CALL_DATA_LOAD = ("calldataload", 1)
    EXT_CODE_SIZE = ("extcodesize", 1)
    EXT_CODE_HASH = ("extcodehash", 1)
    M_LOAD = ("mload", 1)
    S_LOAD = ("sload", 1)
    BALANCE = ("balance", 1)
    BLOCK_HASH = ("blockhash", 1)
    ADDRESS = ("address", 0)
    ORIGIN = ("origin", 0)
    CALLER = ("caller", 0)
    CALL_VALUE = ("callvalue", 0)
    CALL_DATA_SIZE = ("calldatasize", 0)
    CODE_SIZE = ("codesize", 0)
    GAS_PRICE = ("gasprice", 0)
    RETURN_DATA_SIZE = ("returndatasize", 0)
    COINBASE = ("coinbase", 0)
    TIMESTAMP = ("timestamp", 0)
    NUMBER = ("number", 0)
    DIFFICULTY = ("difficulty", 0)
    GAS_LIMIT = ("gaslimit", 0)
    CHAIN_ID = ("chainid", 0)
    SELF_BALANCE = ("selfbalance", 0)
    BASE_FEE = ("basefee", 0)
    GET_PC = ("pc", 0)
    M_SIZE = ("msize", 0)
    GAS = ("gas", 0)
    CREATE = ("create", 3)
    CREATE2 = ("create2", 4)
    CALL_CODE = ("callcode", 7)
    CALL = ("call", 7)
    STATIC_CALL = ("staticcall", 6)
    DELEGATE_CALL = ("delegatecall", 6)


SymValue = Union[bytes, Var, int, None]


@dataclass(frozen=True)
class Sym:
    """A node in the prefix representation of an expression.

    ``value`` holds the 32-byte word of a constant, the :class:`Var` of a
    variable, or the offset of a ``pc`` node; other nodes carry no value.
    """

    op: Op
    value: SymValue = None

    def __post_init__(self) -> None:
        if self.op is Op.CONST:
            if not isinstance(self.value, (bytes, bytearray, memoryview)):
                raise TypeError("a constant needs a bytes value")
            data = bytes(self.value)
            if len(data) != WORD_SIZE:
                raise ValueError(f"a constant must be {WORD_SIZE} bytes, got {len(data)}")
            object.__setattr__(self, "value", data)
        elif self.op is Op.VAR:
            if not isinstance(self.value, Var):
                raise TypeError("a variable node needs a Var value")
        elif self.op is Op.GET_PC:
            if isinstance(self.value, bool) or not isinstance(self.value, int):
                raise TypeError("a pc node needs an int offset")
            if not 0 <= self.value <= _U16_MAX:
                raise ValueError(f"pc offset must be in 0..{_U16_MAX}, got {self.value}")
        elif self.value is not None:
            raise ValueError(f"{self.op.name} carries no value")

    def children(self) -> int:
        """Number of operands this node takes."""
        return self.op.arity


class Visit:
    """Callbacks for traversing an :class:`Expr`; every method does nothing by default."""

    def empty(self) -> None:
        """Called if the expression is empty."""

    def enter(self, sym: Sym) -> None:
        """Called when visiting a node for the first time."""

    def between(self, sym: Sym, idx: int) -> None:
        """Called between operand ``idx`` and ``idx + 1`` of a node."""

    def exit(self, sym: Sym) -> None:
        """Called when leaving a node for the last time."""


@dataclass(frozen=True)
class Expr:
    """An expression tree stored in prefix order, e.g. ``add(2, sub(9, 4))``."""

    ops: tuple[Sym, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "ops", tuple(self.ops))

    def __str__(self) -> str:
        from .render import render

        return render(self)

    @classmethod
    def _leaf(cls, op: Op, value: SymValue = None) -> Expr:
        return cls((Sym(op, value),))

    @classmethod
    def _concat(cls, op: Op, *args: Expr) -> Expr:
        if op.arity != len(args):
            raise ValueError(f"{op.name} takes {op.arity} operands, got {len(args)}")
        ops = [Sym(op)]
        for arg in args:
            ops.extend(arg.ops)
        return cls(tuple(ops))

    @classmethod
    def from_var(cls, var: Var) -> Expr:
        """An expression consisting of a single variable."""
        return cls._leaf(Op.VAR, var)

    @classmethod
    def constant(cls, data: bytes) -> Expr:
        """A constant, left-padded with zeros to a 32-byte word."""
        data = bytes(data)
        if len(data) > WORD_SIZE:
            raise ValueError(f"a constant is at most {WORD_SIZE} bytes, got {len(data)}")
        return cls._leaf(Op.CONST, data.rjust(WORD_SIZE, b"\x00"))

    @classmethod
    def address(cls) -> Expr:
        return cls._leaf(Op.ADDRESS)

    @classmethod
    def origin(cls) -> Expr:
        return cls._leaf(Op.ORIGIN)

    @classmethod
    def caller(cls) -> Expr:
        return cls._leaf(Op.CALLER)

    @classmethod
    def call_value(cls) -> Expr:
        return cls._leaf(Op.CALL_VALUE)

    @classmethod
    def call_data_size(cls) -> Expr:
        return cls._leaf(Op.CALL_DATA_SIZE)

    @classmethod
    def code_size(cls) -> Expr:
        return cls._leaf(Op.CODE_SIZE)

    @classmethod
    def gas_price(cls) -> Expr:
        return cls._leaf(Op.GAS_PRICE)

    @classmethod
    def return_data_size(cls) -> Expr:
        return cls._leaf(Op.RETURN_DATA_SIZE)

    @classmethod
    def coinbase(cls) -> Expr:
        return cls._leaf(Op.COINBASE)

    @classmethod
    def timestamp(cls) -> Expr:
        return cls._leaf(Op.TIMESTAMP)

    @classmethod
    def number(cls) -> Expr:
        return cls._leaf(Op.NUMBER)

    @classmethod
    def difficulty(cls) -> Expr:
        return cls._leaf(Op.DIFFICULTY)

    @classmethod
    def gas_limit(cls) -> Expr:
        return cls._leaf(Op.GAS_LIMIT)

    @classmethod
    def chain_id(cls) -> Expr:
        return cls._leaf(Op.CHAIN_ID)

    @classmethod
    def self_balance(cls) -> Expr:
        return cls._leaf(Op.SELF_BALANCE)

    @classmethod
    def base_fee(cls) -> Expr:
        return cls._leaf(Op.BASE_FEE)

    @classmethod
    def pc(cls, offset: int) -> Expr:
        return cls._leaf(Op.GET_PC, offset)

    @classmethod
    def m_size(cls) -> Expr:
        return cls._leaf(Op.M_SIZE)

    @classmethod
    def gas(cls) -> Expr:
        return cls._leaf(Op.GAS)

    @classmethod
    def create(cls, value: Expr, offset: Expr, length: Expr) -> Expr:
        return cls._concat(Op.CREATE, value, offset, length)

    @classmethod
    def create2(cls, value: Expr, offset: Expr, length: Expr, salt: Expr) -> Expr:
        return cls._concat(Op.CREATE2, value, offset, length, salt)

    @classmethod
    def call_code(cls, gas, addr, value, args_offset, args_len, ret_offset, ret_len) -> Expr:
        return cls._concat(
            Op.CALL_CODE, gas, addr, value, args_offset, args_len, ret_offset, ret_len
        )

    @classmethod
    def call(cls, gas, addr, value, args_offset, args_len, ret_offset, ret_len) -> Expr:
        return cls._concat(
            Op.CALL, gas, addr, value, args_offset, args_len, ret_offset, ret_len
        )

    @classmethod
    def static_call(cls, gas, addr, args_offset, args_len, ret_offset, ret_len) -> Expr:
        return cls._concat(
            Op.STATIC_CALL, gas, addr, args_offset, args_len, ret_offset, ret_len
        )

    @classmethod
    def delegate_call(cls, gas, addr, args_offset, args_len, ret_offset, ret_len) -> Expr:
        return cls._concat(
            Op.DELEGATE_CALL, gas, addr, args_offset, args_len, ret_offset, ret_len
        )

    @classmethod
    def keccak256(cls, offset: Expr, length: Expr) -> Expr:
        return cls._concat(Op.KECCAK256, offset, length)

    def add(self, rhs: Expr) -> Expr:
        return self._concat(Op.ADD, self, rhs)

    def sub(self, rhs: Expr) -> Expr:
        return self._concat(Op.SUB, self, rhs)

    def mul(self, rhs: Expr) -> Expr:
        return self._concat(Op.MUL, self, rhs)

    def div(self, rhs: Expr) -> Expr:
        return self._concat(Op.DIV, self, rhs)

    def s_div(self, rhs: Expr) -> Expr:
        return self._concat(Op.SDIV, self, rhs)

    def modulo(self, rhs: Expr) -> Expr:
        return self._concat(Op.MOD, self, rhs)

    def s_modulo(self, rhs: Expr) -> Expr:
        return self._concat(Op.SMOD, self, rhs)

    def add_mod(self, add: Expr, modulo: Expr) -> Expr:
        return self._concat(Op.ADD_MOD, self, add, modulo)

    def mul_mod(self, mul: Expr, modulo: Expr) -> Expr:
        return self._concat(Op.MUL_MOD, self, mul, modulo)

    def exp(self, rhs: Expr) -> Expr:
        return self._concat(Op.EXP, self, rhs)

    def lt(self, rhs: Expr) -> Expr:
        return self._concat(Op.LT, self, rhs)

    def gt(self, rhs: Expr) -> Expr:
        return self._concat(Op.GT, self, rhs)

    def s_lt(self, rhs: Expr) -> Expr:
        return self._concat(Op.SLT, self, rhs)

    def s_gt(self, rhs: Expr) -> Expr:
        return self._concat(Op.SGT, self, rhs)

    def is_eq(self, rhs: Expr) -> Expr:
        return self._concat(Op.EQ, self, rhs)

    def and_(self, rhs: Expr) -> Expr:
        return self._concat(Op.AND, self, rhs)

    def or_(self, rhs: Expr) -> Expr:
        return self._concat(Op.OR, self, rhs)

    def xor(self, rhs: Expr) -> Expr:
        return self._concat(Op.XOR, self, rhs)

    def byte(self, value: Expr) -> Expr:
        return self._concat(Op.BYTE, self, value)

    def shl(self, rhs: Expr) -> Expr:
        return self._concat(Op.SHL, self, rhs)

    def shr(self, value: Expr) -> Expr:
        return self._concat(Op.SHR, self, value)

    def sar(self, rhs: Expr) -> Expr:
        return self._concat(Op.SAR, self, rhs)

    def sign_extend(self, b: Expr) -> Expr:
        return self._concat(Op.SIGN_EXTEND, self, b)

    def is_zero(self) -> Expr:
        return self._concat(Op.IS_ZERO, self)

    def not_(self) -> Expr:
        return self._concat(Op.NOT, self)

    def block_hash(self) -> Expr:
        return self._concat(Op.BLOCK_HASH, self)

    def balance(self) -> Expr:
        return self._concat(Op.BALANCE, self)

    def call_data_load(self) -> Expr:
        return self._concat(Op.CALL_DATA_LOAD, self)

    def ext_code_size(self) -> Expr:
        return self._concat(Op.EXT_CODE_SIZE, self)

    def ext_code_hash(self) -> Expr:
        return self._concat(Op.EXT_CODE_HASH, self)

    def m_load(self) -> Expr:
        return self._concat(Op.M_LOAD, self)

    def s_load(self) -> Expr:
        return self._concat(Op.S_LOAD, self)

    def as_var(self) -> Var | None:
        """The variable if this expression is a single variable, else ``None``."""
        if len(self.ops) == 1 and self.ops[0].op is Op.VAR:
            return self.ops[0].value  # type: ignore[return-value]
        return None

    def walk(self, visitor: Visit) -> None:
        """Traverse the tree depth first, calling ``visitor`` at each step."""
        if not self.ops:
            visitor.empty()
            return
        self._walk_node(iter(self.ops), visitor)

    @classmethod
    def _walk_node(cls, ops: Iterator[Sym], visitor: Visit) -> None:
        try:
            sym = next(ops)
        except StopIteration:
            raise ValueError("expression is missing operands") from None
        visitor.enter(sym)
        count = sym.children()
        for idx in range(count):
            cls._walk_node(ops, visitor)
            if idx + 1 < count:
                visitor.between(sym, idx)
        visitor.exit(sym)
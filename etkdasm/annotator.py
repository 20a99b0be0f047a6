"""Symbolic execution of a basic block over an abstract EVM stack."""

from __future__ import annotations

import itertools
from collections import deque
from typing import Callable, Iterator

from .basic import BasicBlock
from .exit import Branch, Exit, FallThrough, Terminate, Unconditional
from .ops import Instruction
from .sym import Expr, Var

_PC_MASK = 0xFFFF

Stack = deque  # front of the deque is the top of the EVM stack

_BUILDERS: dict[str, Callable[..., Expr]] = {
    "add": Expr.add,
    "mul": Expr.mul,
    "sub": Expr.sub,
    "div": Expr.div,
    "sdiv": Expr.s_div,
    "mod": Expr.modulo,
    "smod": Expr.s_modulo,
    "addmod": Expr.add_mod,
    "mulmod": Expr.mul_mod,
    "exp": Expr.exp,
    "signextend": Expr.sign_extend,
    "lt": Expr.lt,
    "gt": Expr.gt,
    "slt": Expr.s_lt,
    "sgt": Expr.s_gt,
    "eq": Expr.is_eq,
    "iszero": Expr.is_zero,
    "and": Expr.and_,
    "or": Expr.or_,
    "xor": Expr.xor,
    "not": Expr.not_,
    "byte": Expr.byte,
    "shl": Expr.shl,
    "shr": Expr.shr,
    "sar": Expr.sar,
    "keccak256": Expr.keccak256,
    "address": Expr.address,
    "balance": Expr.balance,
    "origin": Expr.origin,
    "caller": Expr.caller,
    "callvalue": Expr.call_value,
    "calldataload": Expr.call_data_load,
    "calldatasize": Expr.call_data_size,
    "codesize": Expr.code_size,
    "gasprice": Expr.gas_price,
    "extcodesize": Expr.ext_code_size,
    "returndatasize": Expr.return_data_size,
    "extcodehash": Expr.ext_code_hash,
    "blockhash": Expr.block_hash,
    "coinbase": Expr.coinbase,
    "timestamp": Expr.timestamp,
    "number": Expr.number,
    "difficulty": Expr.difficulty,
    "gaslimit": Expr.gas_limit,
    "chainid": Expr.chain_id,
    "selfbalance": Expr.self_balance,
    "basefee": Expr.base_fee,
    "mload": Expr.m_load,
    "sload": Expr.s_load,
    "msize": Expr.m_size,
    "gas": Expr.gas,
    "create": Expr.create,
    "create2": Expr.create2,
    "call": Expr.call,
    "callcode": Expr.call_code,
    "delegatecall": Expr.delegate_call,
    "staticcall": Expr.static_call,
}


class AnnotationError(RuntimeError):
    """An instruction's stack effect or exit disagrees with its metadata."""


class StackWindow:
    """The stack operations one instruction may perform, checked against its metadata.

    Reading below the bottom of the known stack invents fresh variables and
    appends them to the bottom of every stack recorded so far.
    """

    def __init__(
        self, stacks: list[deque[Expr]], var_ids: Iterator[int], instruction: Instruction
    ) -> None:
        self._stacks = stacks
        self._var_ids = var_ids
        self._pops = instruction.pops()
        self._pushes = instruction.pushes()

    def __enter__(self) -> StackWindow:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()

    def _count_pops(self, count: int) -> None:
        if self._pops < count:
            raise AnnotationError(f"popped more than allowed ({count} > {self._pops})")
        self._pops -= count

    def _count_pushes(self, count: int) -> None:
        if self._pops != 0:
            raise AnnotationError("pushed before popping every operand")
        if self._pushes < count:
            raise AnnotationError(f"pushed more than allowed ({count} > {self._pushes})")
        self._pushes -= count

    def _expand(self, by: int) -> None:
        for _ in range(by):
            var = Expr.from_var(Var(next(self._var_ids)))
            for stack in self._stacks:
                stack.append(var)

    @property
    def _current(self) -> deque[Expr]:
        return self._stacks[-1]

    def _ensure_depth(self, depth: int) -> None:
        missing = depth + 1 - len(self._current)
        if missing > 0:
            self._expand(missing)

    def pop(self) -> Expr:
        """Remove and return the top of the stack."""
        self._count_pops(1)
        self._ensure_depth(0)
        return self._current.popleft()

    def peek(self, depth: int) -> Expr:
        """Return the item ``depth`` places below the top, leaving it in place."""
        self._count_pops(depth + 1)
        self._count_pushes(depth + 1)
        self._ensure_depth(depth)
        return self._current[depth]

    def swap(self, depth: int) -> None:
        """Exchange the top of the stack with the item ``depth`` places below it."""
        self._count_pops(depth + 1)
        self._count_pushes(depth + 1)
        self._ensure_depth(depth)
        stack = self._current
        stack[0], stack[depth] = stack[depth], stack[0]

    def push(self, expr: Expr) -> None:
        """Put ``expr`` on top of the stack."""
        self._count_pushes(1)
        self._current.appendleft(expr)

    def push_const(self, immediate: bytes) -> None:
        """Push a constant built from ``immediate``."""
        self.push(Expr.constant(immediate))

    def close(self) -> None:
        """Check that the instruction used exactly its declared pops and pushes."""
        if self._pops != 0 or self._pushes != 0:
            raise AnnotationError(
                f"unbalanced stack effect: {self._pops} pops and "
                f"{self._pushes} pushes left over"
            )


class Annotator:
    """Runs a :class:`BasicBlock` symbolically, recording the stack after each step.

    ``stacks[0]`` is the stack the block expects on entry and ``stacks[-1]``
    the stack it leaves behind.
    """

    def __init__(self, basic: BasicBlock) -> None:
        self.basic = basic
        self.stacks: list[deque[Expr]] = [deque()]
        self._var_ids = itertools.count(1)

    def _advance(self) -> None:
        self.stacks.append(deque(self.stacks[-1]))

    @staticmethod
    def _annotate_one(pc: int, window: StackWindow, op: Instruction) -> Exit | None:
        name = op.opcode.mnemonic
        code = op.opcode.value

        if name == "jump":
            return Unconditional(window.pop())
        if name == "jumpi":
            when_true = window.pop()
            condition = window.pop()
            return Branch(condition, when_true, pc + 1)
        if op.is_exit():
            for _ in range(op.pops()):
                window.pop()
            return Terminate()

        if name == "pc":
            window.push(Expr.pc(pc & _PC_MASK))
        elif name == "jumpdest":
            pass
        elif 0x60 <= code <= 0x7F:
            window.push_const(op.immediate)
        elif 0x80 <= code <= 0x8F:
            window.push(window.peek(code - 0x80))
        elif 0x90 <= code <= 0x9F:
            window.swap(code - 0x8F)
        else:
            args = [window.pop() for _ in range(op.pops())]
            builder = _BUILDERS.get(name)
            if builder is not None:
                window.push(builder(*args))
        return None

    def annotate(self) -> Exit:
        """Execute every instruction and return how the block exits."""
        pc = self.basic.offset
        ops = self.basic.ops
        for idx, op in enumerate(ops):
            self._advance()
            is_last = idx == len(ops) - 1

            with StackWindow(self.stacks, self._var_ids, op) as window:
                exit_ = self._annotate_one(pc, window, op)

            if exit_ is not None:
                if not is_last:
                    raise AnnotationError(f"{op} ends the block but is not its last instruction")
                matches = op.is_exit() if exit_.is_terminate() else op.is_jump()
                if not matches:
                    raise AnnotationError("exit type doesn't match metadata")
                return exit_

            if op.is_exit():
                raise AnnotationError(f"{op} should have ended the block")
            pc += op.size()

        return FallThrough(pc)
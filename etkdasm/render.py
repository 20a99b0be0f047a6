"""Human-readable rendering of symbolic expressions."""

from __future__ import annotations

import io

from .sym import Expr, Op, Sym, Visit

_INFIX = {
    Op.ADD: " + ",
    Op.MUL: " \u00d7 ",
    Op.SUB: " - ",
    Op.DIV: " \u00f7 ",
    Op.SDIV: " \u00f7\u20e1 ",
    Op.MOD: " \ufe6a ",
    Op.SMOD: " \ufe6a\u20e1 ",
    Op.EXP: " ** ",
    Op.LT: " < ",
    Op.GT: " > ",
    Op.SLT: " <\u20e1 ",
    Op.SGT: " >\u20e1 ",
    Op.EQ: " = ",
    Op.AND: " & ",
    Op.OR: " | ",
    Op.XOR: " ^ ",
}

_MODULAR = {
    Op.ADD_MOD: (" + ", ") \ufe6a "),
    Op.MUL_MOD: (" \u00d7 ", ") \ufe6a "),
}

_PREFIX = {
    Op.ADD_MOD: "((",
    Op.MUL_MOD: "((",
    Op.KECCAK256: "keccak256(",
    Op.BYTE: "byte(",
    Op.SIGN_EXTEND: "signextend(",
    Op.NOT: "~(",
    Op.CALL_DATA_LOAD: "calldata(",
    Op.EXT_CODE_SIZE: "extcodesize(",
    Op.EXT_CODE_HASH: "extcodehash(",
    Op.M_LOAD: "mload(",
    Op.S_LOAD: "sload(",
    Op.ADDRESS: "address(",
    Op.BALANCE: "balance(",
    Op.ORIGIN: "origin(",
    Op.CALLER: "caller(",
    Op.CALL_VALUE: "callvalue(",
    Op.CALL_DATA_SIZE: "calldatasize(",
    Op.CODE_SIZE: "codesize(",
    Op.GAS_PRICE: "gasprice(",
    Op.RETURN_DATA_SIZE: "returndatasize(",
    Op.BLOCK_HASH: "blockhash(",
    Op.COINBASE: "coinbase(",
    Op.TIMESTAMP: "timestamp(",
    Op.NUMBER: "number(",
    Op.DIFFICULTY: "difficulty(",
    Op.GAS_LIMIT: "gaslimit(",
    Op.CHAIN_ID: "chainid(",
    Op.SELF_BALANCE: "selfbalance(",
    Op.BASE_FEE: "basefee(",
    Op.M_SIZE: "msize(",
    Op.GAS: "gas(",
    Op.CREATE: "create(",
    Op.CALL_CODE: "callcode(",
    Op.CALL: "call(",
    Op.STATIC_CALL: "staticcall(",
    Op.DELEGATE_CALL: "delegatecall(",
    Op.SHL: "shl(",
    Op.SHR: "shr(",
    Op.SAR: "sar(",
}


class DisplayVisit(Visit):
    """A visitor that writes an expression as text."""

    def __init__(self) -> None:
        self._out = io.StringIO()

    @property
    def text(self) -> str:
        """Everything written so far."""
        return self._out.getvalue()

    def empty(self) -> None:
        self._out.write("{}")

    def enter(self, sym: Sym) -> None:
        op = sym.op
        if op is Op.CONST:
            self._out.write(f"0x{sym.value.hex()}")  # type: ignore[union-attr]
        elif op is Op.VAR:
            self._out.write(str(sym.value))
        elif op is Op.GET_PC:
            self._out.write(f"pc({sym.value}")
        else:
            self._out.write(_PREFIX.get(op, "("))

    def between(self, sym: Sym, idx: int) -> None:
        op = sym.op
        if op in _MODULAR:
            separators = _MODULAR[op]
            if not 0 <= idx < len(separators):
                raise ValueError(f"{op.name} has no separator at index {idx}")
            self._out.write(separators[idx])
        elif op in _INFIX:
            self._out.write(_INFIX[op])
        elif sym.children() < 2:
            raise ValueError(f"{op.name} has fewer than two operands")
        else:
            self._out.write(", ")

    def exit(self, sym: Sym) -> None:
        op = sym.op
        if op in (Op.CONST, Op.VAR):
            return
        if op is Op.IS_ZERO:
            self._out.write(" = 0)")
        else:
            self._out.write(")")


def render(expr: Expr) -> str:
    """Render ``expr`` as text."""
    visitor = DisplayVisit()
    expr.walk(visitor)
    return visitor.text
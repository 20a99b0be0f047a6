import pytest

from etkdasm.sym import Expr, Op, Sym, Var, Visit, WORD_SIZE


class Recorder(Visit):
    def __init__(self):
        self.events = []

    def empty(self):
        self.events.append(("empty",))

    def enter(self, sym):
        self.events.append(("enter", sym.op))

    def between(self, sym, idx):
        self.events.append(("between", sym.op, idx))

    def exit(self, sym):
        self.events.append(("exit", sym.op))


def var(n):
    return Expr.from_var(Var(n))


def test_var_str():
    assert str(Var(1)) == "var1"


@pytest.mark.parametrize("bad", [0, -1, 0x10000])
def test_var_rejects_out_of_range(bad):
    with pytest.raises(ValueError):
        Var(bad)


def test_var_rejects_non_int():
    with pytest.raises(TypeError):
        Var("1")


def test_from_var_round_trip():
    assert var(7).as_var() == Var(7)


def test_as_var_none_for_compound():
    assert var(1).add(var(2)).as_var() is None
    assert Expr.caller().as_var() is None


def test_add_prefix_layout():
    expr = var(1).add(var(2))
    assert expr.ops == (Sym(Op.ADD), Sym(Op.VAR, Var(1)), Sym(Op.VAR, Var(2)))


def test_add_mod_prefix_layout():
    expr = Expr.caller().add_mod(Expr.origin(), var(1))
    assert expr.ops == (
        Sym(Op.ADD_MOD),
        Sym(Op.CALLER),
        Sym(Op.ORIGIN),
        Sym(Op.VAR, Var(1)),
    )


def test_constant_is_left_padded():
    expr = Expr.constant(b"\x12\x34")
    (sym,) = expr.ops
    assert sym.op is Op.CONST
    assert len(sym.value) == WORD_SIZE
    assert sym.value.endswith(b"\x12\x34")
    assert sym.value[:-2] == bytes(WORD_SIZE - 2)


def test_constant_full_word():
    word = bytes([0xFF] * 32)
    assert Expr.constant(word).ops[0].value == word


def test_constant_too_long():
    with pytest.raises(ValueError):
        Expr.constant(bytes(33))


def test_sym_rejects_bad_values():
    with pytest.raises(ValueError):
        Sym(Op.CONST, b"\x01")
    with pytest.raises(TypeError):
        Sym(Op.VAR, 1)
    with pytest.raises(ValueError):
        Sym(Op.ADD, b"\x00")
    with pytest.raises(ValueError):
        Sym(Op.GET_PC, -1)


@pytest.mark.parametrize(
    "op, arity",
    [
        (Op.ADD, 2),
        (Op.IS_ZERO, 1),
        (Op.CALLER, 0),
        (Op.ADD_MOD, 3),
        (Op.CREATE2, 4),
        (Op.CALL, 7),
        (Op.STATIC_CALL, 6),
        (Op.KECCAK256, 2),
    ],
)
def test_children(op, arity):
    assert Sym(op).children() == arity


def test_operand_count_matches_ops_length():
    leaf = Expr.gas()
    expr = Expr.call(leaf, leaf, leaf, leaf, leaf, leaf, leaf)
    assert len(expr.ops) == 8
    assert expr.ops[0] == Sym(Op.CALL)


def test_pc_keeps_offset():
    assert Expr.pc(3).ops == (Sym(Op.GET_PC, 3),)


def test_equality_and_hash():
    a = var(1).sub(Expr.constant(b"\x01"))
    b = var(1).sub(Expr.constant(b"\x01"))
    assert a == b
    assert hash(a) == hash(b)
    assert a != var(1).add(Expr.constant(b"\x01"))


def test_walk_empty():
    rec = Recorder()
    Expr().walk(rec)
    assert rec.events == [("empty",)]


def test_walk_binary():
    rec = Recorder()
    var(1).add(var(2)).walk(rec)
    assert rec.events == [
        ("enter", Op.ADD),
        ("enter", Op.VAR),
        ("exit", Op.VAR),
        ("between", Op.ADD, 0),
        ("enter", Op.VAR),
        ("exit", Op.VAR),
        ("exit", Op.ADD),
    ]


def test_walk_between_indices_for_ternary():
    rec = Recorder()
    Expr.create(Expr.gas(), Expr.gas(), Expr.gas()).walk(rec)
    betweens = [e for e in rec.events if e[0] == "between"]
    assert betweens == [("between", Op.CREATE, 0), ("between", Op.CREATE, 1)]


def test_walk_enter_exit_balanced():
    rec = Recorder()
    expr = Expr.caller().add_mod(Expr.origin(), var(1)).is_zero().s_load()
    expr.walk(rec)
    enters = [e for e in rec.events if e[0] == "enter"]
    exits = [e for e in rec.events if e[0] == "exit"]
    assert len(enters) == len(exits) == len(expr.ops)


def test_walk_truncated_raises():
    with pytest.raises(ValueError):
        Expr((Sym(Op.ADD), Sym(Op.CALLER))).walk(Visit())
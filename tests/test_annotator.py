import itertools
from collections import deque

import pytest

from etkdasm.annotator import AnnotationError, Annotator, StackWindow
from etkdasm.basic import BasicBlock
from etkdasm.exit import Branch, FallThrough, Terminate, Unconditional
from etkdasm.ops import Instruction, Opcode
from etkdasm.sym import Expr, Var


def v(n):
    return Expr.from_var(Var(n))


def const(value, width=1):
    return Expr.constant(value.to_bytes(width, "big"))


def op(name):
    return Instruction(Opcode[name])


def run(ops):
    annotator = Annotator(BasicBlock(0x1234, list(ops)))
    exit_ = annotator.annotate()
    return exit_, list(annotator.stacks[0]), list(annotator.stacks[-1])


def test_annotate_stop():
    exit_, inputs, outputs = run([op("STOP")])
    assert exit_ == Terminate()
    assert inputs == []
    assert outputs == []


@pytest.mark.parametrize(
    "name, build",
    [("ADD", Expr.add), ("MUL", Expr.mul), ("SUB", Expr.sub)],
)
def test_annotate_binary(name, build):
    exit_, inputs, outputs = run([op(name)])
    assert exit_ == FallThrough(0x1235)
    assert inputs == [v(1), v(2)]
    assert outputs == [build(v(1), v(2))]


def test_annotate_swap1():
    exit_, inputs, outputs = run([op("SWAP1")])
    assert exit_ == FallThrough(0x1235)
    assert inputs == [v(1), v(2)]
    assert outputs == [v(2), v(1)]


def test_annotate_swap2():
    exit_, inputs, outputs = run([op("SWAP2")])
    assert exit_ == FallThrough(0x1235)
    assert inputs == [v(1), v(2), v(3)]
    assert outputs == [v(3), v(2), v(1)]


def test_annotate_swap3():
    exit_, inputs, outputs = run([op("SWAP3")])
    assert exit_ == FallThrough(0x1235)
    assert inputs == [v(1), v(2), v(3), v(4)]
    assert outputs == [v(4), v(2), v(3), v(1)]


def test_annotate_dup1():
    exit_, inputs, outputs = run([op("DUP1")])
    assert exit_ == FallThrough(0x1235)
    assert inputs == [v(1)]
    assert outputs == [v(1), v(1)]


def test_annotate_dup2():
    exit_, inputs, outputs = run([op("DUP2")])
    assert exit_ == FallThrough(0x1235)
    assert inputs == [v(1), v(2)]
    assert outputs == [v(2), v(1), v(2)]


def test_annotate_dup3():
    exit_, inputs, outputs = run([op("DUP3")])
    assert exit_ == FallThrough(0x1235)
    assert inputs == [v(1), v(2), v(3)]
    assert outputs == [v(3), v(1), v(2), v(3)]


def test_annotate_push1():
    exit_, inputs, outputs = run([Instruction.push(bytes([77]))])
    assert exit_ == FallThrough(0x1236)
    assert inputs == []
    assert outputs == [const(77)]


def test_annotate_push2():
    exit_, inputs, outputs = run([Instruction.push(bytes([0x12, 0x34]))])
    assert exit_ == FallThrough(0x1237)
    assert inputs == []
    assert outputs == [const(0x1234, 2)]


def test_annotate_jump():
    exit_, inputs, outputs = run(
        [Instruction.push(b"\xbb"), Instruction.push(b"\xaa"), op("JUMP")]
    )
    assert exit_ == Unconditional(const(0xAA))
    assert inputs == []
    assert outputs == [const(0xBB)]


def test_annotate_jumpi():
    exit_, inputs, outputs = run([op("JUMPI")])
    assert exit_ == Branch(condition=v(2), when_true=v(1), when_false=0x1235)
    assert inputs == [v(1), v(2)]
    assert outputs == []


def test_annotate_return_terminates():
    exit_, inputs, outputs = run([op("RETURN")])
    assert exit_ == Terminate()
    assert inputs == [v(1), v(2)]
    assert outputs == []


def test_annotate_invalid_terminates():
    exit_, _, outputs = run([op("INVALID")])
    assert exit_ == Terminate()
    assert outputs == []


def test_annotate_pc_uses_offset():
    exit_, _, outputs = run([op("JUMPDEST"), op("PC")])
    assert exit_ == FallThrough(0x1236)
    assert outputs == [Expr.pc(0x1235)]


def test_annotate_addmod():
    _, inputs, outputs = run([op("ADDMOD")])
    assert inputs == [v(1), v(2), v(3)]
    assert outputs == [v(1).add_mod(v(2), v(3))]


def test_annotate_call():
    _, inputs, outputs = run([op("CALL")])
    assert inputs == [v(n) for n in range(1, 8)]
    assert outputs == [Expr.call(*(v(n) for n in range(1, 8)))]


def test_annotate_mstore_consumes_without_push():
    _, inputs, outputs = run([op("MSTORE")])
    assert inputs == [v(1), v(2)]
    assert outputs == []


def test_stacks_recorded_per_instruction():
    annotator = Annotator(BasicBlock(0, [op("CALLER"), op("POP")]))
    annotator.annotate()
    assert len(annotator.stacks) == 3
    assert list(annotator.stacks[1]) == [Expr.caller()]
    assert list(annotator.stacks[2]) == []


def test_exit_before_end_raises():
    annotator = Annotator(BasicBlock(0, [op("STOP"), op("ADD")]))
    with pytest.raises(AnnotationError):
        annotator.annotate()


def test_window_pop_beyond_limit_raises():
    window = StackWindow([deque()], itertools.count(1), op("ISZERO"))
    assert window.pop() == v(1)
    with pytest.raises(AnnotationError):
        window.pop()


def test_window_close_with_leftover_raises():
    window = StackWindow([deque()], itertools.count(1), op("ADD"))
    window.pop()
    with pytest.raises(AnnotationError):
        window.close()


def test_window_push_before_pops_raises():
    window = StackWindow([deque()], itertools.count(1), op("ADD"))
    with pytest.raises(AnnotationError):
        window.push(Expr.caller())


def test_window_expands_every_stack():
    first, second = deque(), deque()
    window = StackWindow([first, second], itertools.count(5), op("POP"))
    assert window.pop() == v(5)
    window.close()
    assert list(first) == [v(5)]
    assert list(second) == []
# etkdasm

A library for analysing EVM programs once they are in the form of
instructions. It splits instruction streams into basic blocks and runs each
block symbolically over an abstract stack.

## What is in it

- `etkdasm.ops`: `Opcode` is an integer enum with one member for every byte
  value (`Opcode.ADD`, `Opcode.PUSH1`, `Opcode.JUMPDEST`, and so on; bytes
  that are not defined instructions are named `INVALID_XX`). Each member has
  `mnemonic`, `pops`, `pushes`, `immediate_size`, `is_valid`, `is_jump`,
  `is_exit` and `is_jump_target`. `Instruction` pairs an opcode with its
  immediate bytes. Its length is checked against the opcode.
  `Instruction.push(data)` picks the `pushN` that fits `data` (1 to 32 bytes).
  `bytes(instruction)` gives its encoding, and `str(instruction)` gives text
  such as `push1 0xb6`.
- `etkdasm.basic`: `Offset` tags an instruction with its position.
  `Separator` turns a stream of `Offset` values into `BasicBlock`s. Every
  `jumpdest` starts a new block. Every `jump`, `jumpi` or halting instruction
  ends one. `push` and `push_all` return whether a block has completed.
  `take()` removes the completed blocks. `finish()` returns the last,
  unterminated block, or `None`. It raises `RuntimeError` if completed blocks
  have not all been taken. `BasicBlock.size()` is the encoded length of the
  block.
- `etkdasm.sym`: `Expr` is an expression tree stored in prefix order. It is
  built from `Sym` nodes, each with an `Op` kind, over constants (32-byte
  words), variables (`Var`, ids 1 to 65535) and EVM operations. Examples are
  `Expr.constant(b"\x01")`, `Expr.caller()`, `a.add(b)` and `a.s_load()`.
  `Expr.walk(visitor)` traverses a tree, calling the `empty`, `enter`,
  `between` and `exit` methods of a `Visit` subclass.
- `etkdasm.render`: `render(expr)` (also `str(expr)`) turns a tree into text
  such as `((caller() + origin()) ﹪ var1)`. Constants are shown as 32-byte
  hexadecimal words.
- `etkdasm.exit`: the ways a block can end. These are `Terminate`,
  `FallThrough(offset)`, `Unconditional(target)` and
  `Branch(condition, when_true, when_false)`. Each has `fall_through()` and
  the `is_*` predicates.
- `etkdasm.annotator`: `Annotator(block).annotate()` executes a block
  symbolically and returns its `Exit`. The stack after every step is kept in
  `stacks`. The entry stack is `stacks[0]` and the exit stack is
  `stacks[-1]`, each listed top first. Reading below the known stack creates
  fresh variables `var1`, `var2`, and so on. `StackWindow` checks each
  instruction's stack use against its declared pops and pushes. Mismatches
  raise `AnnotationError`.
- `etkdasm.annotated`: `AnnotatedBlock.annotate(block)` packages the result.
  It holds `offset`, `inputs.stack` (the `Var`s the block consumes),
  `outputs.stack` (the `Expr`s it leaves), `exit`, `jump_target` and `size`.
  An empty block raises `ValueError`.

## Example

```python
from etkdasm.annotated import AnnotatedBlock
from etkdasm.basic import Offset, Separator
from etkdasm.ops import Instruction, Opcode
from etkdasm.render import render

program = [
    Offset(0x00, Instruction.push(b"\xbb")),
    Offset(0x02, Instruction.push(b"\xaa")),
    Offset(0x04, Instruction(Opcode.JUMP)),
    Offset(0x05, Instruction(Opcode.JUMPDEST)),
    Offset(0x06, Instruction(Opcode.ADD)),
]

separator = Separator()
separator.push_all(program)
blocks = separator.take()
last = separator.finish()
if last is not None:
    blocks.append(last)

for block in blocks:
    annotated = AnnotatedBlock.annotate(block)
    print(hex(annotated.offset), annotated.exit)
    print("  inputs: ", [str(v) for v in annotated.inputs.stack])
    print("  outputs:", [render(e) for e in annotated.outputs.stack])
```

The second block reads two values it did not push itself. It reports them as
inputs `var1` and `var2` and leaves `(var1 + var2)` on the stack.

## What it does not do

- It does not decode raw bytecode into instructions. You build
  `Instruction`s and `Offset`s yourself.
- There is no command-line tool.
- Annotation tracks the stack only. Memory, storage and log effects are not
  tracked: `mstore`, `sstore`, `calldatacopy`, `log0`–`log4` and the like
  just consume their operands.
- It does not look up function selectors.

## Running the tests

```
pip install -e ".[test]"
pytest
```
"""Blocks of EVM instructions described as expressions over their inputs."""

from __future__ import annotations

from dataclasses import dataclass, field

from .annotator import Annotator
from .basic import BasicBlock
from .exit import Exit
from .sym import Expr, Var


@dataclass
class Inputs:
    """Values read during execution of a block."""

    stack: list[Var] = field(default_factory=list)
    """Variables that must be on the stack on entry, top first."""


@dataclass
class Outputs:
    """Values produced during execution of a block."""

    stack: list[Expr] = field(default_factory=list)
    """Expressions left on the stack on exit, top first."""


@dataclass
class AnnotatedBlock:
    """A block of EVM instructions represented as a set of expressions."""

    offset: int
    inputs: Inputs
    outputs: Outputs
    exit: Exit
    jump_target: bool
    size: int

    @classmethod
    def annotate(cls, basic: BasicBlock) -> AnnotatedBlock:
        """Build an annotated block from ``basic`` by executing it symbolically."""
        if not basic.ops:
            raise ValueError("cannot annotate an empty block")

        jump_target = basic.ops[0].is_jump_target()

        annotator = Annotator(basic)
        exit_ = annotator.annotate()

        first, last = annotator.stacks[0], annotator.stacks[-1]
        inputs: list[Var] = []
        for expr in first:
            var = expr.as_var()
            if var is None:
                raise ValueError(f"entry stack holds a non-variable expression: {expr}")
            inputs.append(var)

        return cls(
            offset=basic.offset,
            inputs=Inputs(stack=inputs),
            outputs=Outputs(stack=list(last)),
            exit=exit_,
            jump_target=jump_target,
            size=basic.size(),
        )
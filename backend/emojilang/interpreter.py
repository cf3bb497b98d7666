"""Emoji language evaluator.

The evaluator makes a single left-to-right pass over a token tuple, folding
numbers into an accumulator. Control flow is carried by a few explicit pieces
of state rather than an AST:

- `BranchState` decides whether number and variable operands are suppressed
  because they belong to a branch that was not taken.
- a loop stack of `LoopFrame`s drives goto-style re-entry. Only one loop is
  tracked at a time, so the stack never holds more than one frame.
- the mode is either `Normal` or `CapturingFunction`, during which tokens are
  buffered into a function body instead of being executed.

Assignments and function calls are not executed where they appear. The pass
remembers at most one pending assignment and one pending call and commits them
once the last token has been read. A call runs the function body in a child
`Interpreter` seeded with copies of the caller's bindings.
"""

import logging
import math
import operator
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import CallDepthExceeded, StepLimitExceeded, UndefinedFunction
from .lexer import Token, TokenKind, tokenize

logger = logging.getLogger("emojilang.interpreter")
logger.addHandler(logging.NullHandler())

DEFAULT_MAX_CALL_DEPTH = 32


def _divide(a: float, b: float) -> float:
    # IEEE 754 semantics instead of ZeroDivisionError
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


OPERATORS: Dict[TokenKind, Callable[[float, float], float]] = {
    TokenKind.ADD: operator.add,
    TokenKind.SUBTRACT: operator.sub,
    TokenKind.MULTIPLY: operator.mul,
    TokenKind.DIVIDE: _divide,
}


def _as_count(value: float) -> int:
    """Truncate a float to a non-negative iteration count (saturating)."""
    if math.isnan(value) or value <= 0:
        return 0
    if math.isinf(value):
        return sys.maxsize
    return int(value)


@dataclass
class BranchState:
    condition: bool = False
    if_active: bool = False
    else_active: bool = False

    @property
    def suppressed(self) -> bool:
        """True while number/variable operands belong to the branch not taken."""
        return (self.if_active and not self.condition) or (self.else_active and self.condition)


@dataclass
class LoopFrame:
    start_index: int
    remaining: int = 0
    range_seen: bool = False


@dataclass
class Normal:
    pass


@dataclass
class CapturingFunction:
    name: str
    body: List[Token] = field(default_factory=list)


Mode = Union[Normal, CapturingFunction]


class Interpreter:
    """Evaluate one token tuple to a float.

    Args:
        tokens: the program, as produced by `tokenize`.
        variables: initial variable bindings. The mapping is copied.
        functions: initial function bodies. The mapping is copied.
        max_steps: optional budget of tokens processed, shared with any child
            interpreters started for function calls. None means unbounded.
        max_call_depth: how many nested function calls may be active.

    After `evaluate` returns, `variables` and `functions` hold the bindings
    committed by the run.
    """

    def __init__(
        self,
        tokens: Sequence[Token],
        variables: Optional[Mapping[str, float]] = None,
        functions: Optional[Mapping[str, Tuple[Token, ...]]] = None,
        *,
        max_steps: Optional[int] = None,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
        depth: int = 0,
    ):
        self.tokens: Tuple[Token, ...] = tuple(tokens)
        self.variables: Dict[str, float] = dict(variables or {})
        self.functions: Dict[str, Tuple[Token, ...]] = dict(functions or {})
        self.max_steps = max_steps
        self.max_call_depth = max_call_depth
        self.depth = depth
        self._reset()

    def _reset(self) -> None:
        self.steps = 0
        self.position = 0
        self.accumulator = 0.0
        self.operation = OPERATORS[TokenKind.ADD]
        self.branch = BranchState()
        self.loops: List[LoopFrame] = []
        self.mode: Mode = Normal()
        self.assign_target: Optional[str] = None
        self.pending_assignment: Optional[Tuple[str, float]] = None
        self.pending_call: Optional[str] = None

    def evaluate(self) -> float:
        self._reset()
        while self.position < len(self.tokens):
            index = self.position
            token = self.tokens[index]
            self.position += 1
            self._count_step(index)
            if isinstance(self.mode, CapturingFunction):
                self._capture(token)
                continue
            self._dispatch(index, token)
        return self._finish()

    def _count_step(self, index: int) -> None:
        self.steps += 1
        if self.max_steps is not None and self.steps > self.max_steps:
            raise StepLimitExceeded(f"Step limit of {self.max_steps} exceeded", position=index)

    def _capture(self, token: Token) -> None:
        mode = self.mode
        if token.kind is TokenKind.FUNCTION_END:
            self.functions[mode.name] = tuple(mode.body)
            logger.debug("captured function %r (%d tokens)", mode.name, len(mode.body))
            self.mode = Normal()
        else:
            mode.body.append(token)

    def _dispatch(self, index: int, token: Token) -> None:  # noqa: C901
        kind = token.kind
        if kind is TokenKind.NUMBER:
            self._number(token.value)
        elif kind in OPERATORS:
            self.operation = OPERATORS[kind]
        elif kind is TokenKind.IF:
            self.branch.condition = self.accumulator != 0.0
            self.branch.if_active = True
        elif kind is TokenKind.THEN:
            if not self.branch.condition:
                self.branch.if_active = False
                self.branch.else_active = True
        elif kind is TokenKind.ELSE:
            self.branch.if_active = not self.branch.if_active
            self.branch.else_active = not self.branch.else_active
        elif kind is TokenKind.END_IF:
            self.branch.if_active = False
            self.branch.else_active = False
        elif kind is TokenKind.VARIABLE:
            self._variable(token.name)
        elif kind is TokenKind.ASSIGN:
            # marker only; the following number performs the assignment
            pass
        elif kind is TokenKind.LOOP_START:
            self._loop_start(index)
        elif kind is TokenKind.LOOP_RANGE:
            self._loop_range(token.value, token.end)
        elif kind is TokenKind.LOOP_END:
            self._loop_end(index)
        elif kind is TokenKind.FUNCTION_START:
            self.mode = CapturingFunction(token.name)
        elif kind is TokenKind.FUNCTION_CALL:
            self.pending_call = token.name
        # FUNCTION_END outside capture mode is ignored

    def _number(self, value: float) -> None:
        if self.branch.suppressed:
            return
        if self.assign_target is not None:
            self.pending_assignment = (self.assign_target, value)
            self.assign_target = None
        else:
            self.accumulator = self.operation(self.accumulator, value)

    def _variable(self, name: str) -> None:
        if self.assign_target is None:
            self.assign_target = name
            return
        if self.branch.suppressed:
            return
        # a second reference reads the pending variable
        value = self.variables.get(self.assign_target)
        if value is not None:
            self.accumulator = self.operation(self.accumulator, value)
        self.assign_target = None

    def _loop_start(self, index: int) -> None:
        # the re-entry point is recorded once; a second LoopStart shares the frame
        if not self.loops:
            self.loops.append(LoopFrame(start_index=index))
        elif self.loops[-1].start_index != index:
            logger.debug("nested loop start at token %d shares the active loop", index)
        # runs again on every wrap, so a body that leaves the accumulator
        # non-zero resets the count
        if self.accumulator != 0.0:
            self.loops[-1].remaining = _as_count(self.accumulator)
            self.accumulator = 0.0

    def _loop_range(self, start: float, end: float) -> None:
        if not self.loops:
            return
        frame = self.loops[-1]
        if not frame.range_seen:
            frame.range_seen = True
            frame.remaining = _as_count(end - start) + 1
            self.accumulator = start
        else:
            logger.debug("loop range met again: loop torn down")
            self.loops.pop()

    def _loop_end(self, index: int) -> None:
        if not self.loops:
            return
        frame = self.loops[-1]
        logger.debug(
            "loop end at token %d: accumulator=%s, %d iteration(s) remaining",
            index, self.accumulator, frame.remaining,
        )
        if frame.remaining > 0:
            frame.remaining -= 1
            self.position = frame.start_index
        else:
            self.loops.pop()

    def _finish(self) -> float:
        if self.pending_assignment is not None:
            name, value = self.pending_assignment
            self.variables[name] = value
            self.pending_assignment = None
        if self.pending_call is not None:
            self.accumulator = self._call(self.pending_call)
            self.pending_call = None
        return self.accumulator

    def _call(self, name: str) -> float:
        body = self.functions.get(name)
        if body is None:
            raise UndefinedFunction(f"Undefined function '{name}'")
        if self.depth + 1 > self.max_call_depth:
            raise CallDepthExceeded(f"Call depth limit of {self.max_call_depth} exceeded in '{name}'")
        logger.debug("calling function %r at depth %d", name, self.depth + 1)
        budget = None if self.max_steps is None else self.max_steps - self.steps
        child = Interpreter(
            body,
            MappingProxyType(self.variables),
            MappingProxyType(self.functions),
            max_steps=budget,
            max_call_depth=self.max_call_depth,
            depth=self.depth + 1,
        )
        try:
            return child.evaluate()
        finally:
            self.steps += child.steps


def evaluate(
    source: str,
    *,
    max_steps: Optional[int] = None,
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> float:
    """Lex and evaluate `source`, returning the final accumulator.

    Raises an `EvaluationError` subclass for malformed literals, unterminated
    loop ranges, missing function names, undefined functions and exceeded
    limits.
    """
    tokens = tokenize(source)
    return Interpreter(tokens, max_steps=max_steps, max_call_depth=max_call_depth).evaluate()

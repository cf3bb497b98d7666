"""Errors raised while lexing or evaluating emoji source.

Every failure that aborts an evaluation derives from `EvaluationError`. Each
subclass carries a stable `code` so the HTTP layer can report it without
inspecting exception types. Conditions the language tolerates (unknown glyphs,
unset variables, division by zero, stray Else/EndIf) never raise.
"""

from typing import Optional


class EvaluationError(Exception):
    """Base class for fatal lexing and evaluation failures.

    Attributes:
        position: optional 0-based offset of the failure. For lexer errors it
            is the code point index in the source, for evaluator errors the
            token index.
    """

    code = "RUNTIME_ERROR"

    def __init__(self, message: str, *, position: Optional[int] = None):
        super().__init__(message)
        self.position = position

    def to_dict(self):
        err = {"code": self.code, "message": str(self)}
        if self.position is not None:
            err["position"] = self.position
        return err


class MalformedNumberLiteral(EvaluationError):
    code = "SYNTAX_ERROR"


class UnterminatedLoopRange(EvaluationError):
    code = "SYNTAX_ERROR"


class MissingFunctionName(EvaluationError):
    code = "SYNTAX_ERROR"


class UndefinedFunction(EvaluationError):
    code = "RUNTIME_ERROR"


class StepLimitExceeded(EvaluationError):
    code = "STEP_LIMIT"


class CallDepthExceeded(EvaluationError):
    code = "CALL_DEPTH"

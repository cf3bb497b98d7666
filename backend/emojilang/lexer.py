"""Lexer for the emoji language.

Turns source text into an immutable tuple of `Token`s. Most glyphs map to a
token on their own; numbers, loop ranges and function markers span several
characters. Anything the language does not reserve becomes a one-character
variable reference, one per code point, so a keycap such as ``2️⃣`` lexes as
the number 2 followed by two variable tokens.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Tuple

from .errors import MalformedNumberLiteral, MissingFunctionName, UnterminatedLoopRange
from .scanner import GlyphScanner

logger = logging.getLogger("emojilang.lexer")
logger.addHandler(logging.NullHandler())


class TokenKind(Enum):
    NUMBER = auto()
    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    END_IF = auto()
    VARIABLE = auto()
    ASSIGN = auto()
    LOOP_START = auto()
    LOOP_END = auto()
    LOOP_RANGE = auto()
    FUNCTION_START = auto()
    FUNCTION_END = auto()
    FUNCTION_CALL = auto()


@dataclass(frozen=True)
class Token:
    """One lexed unit.

    `value` holds the number of a NUMBER token and the start of a LOOP_RANGE,
    `end` the end of a LOOP_RANGE, and `name` the character of VARIABLE,
    FUNCTION_START and FUNCTION_CALL tokens.
    """
    kind: TokenKind
    value: Optional[float] = None
    end: Optional[float] = None
    name: Optional[str] = None

    def __repr__(self) -> str:
        if self.kind is TokenKind.NUMBER:
            return f"Token(NUMBER, {self.value!r})"
        if self.kind is TokenKind.LOOP_RANGE:
            return f"Token(LOOP_RANGE, {self.value!r}..{self.end!r})"
        if self.name is not None:
            return f"Token({self.kind.name}, {self.name!r})"
        return f"Token({self.kind.name})"


DECIMAL_TOGGLE = "🗨"
LOOP_START_GLYPH = "🔁"
FUNCTION_START_GLYPH = "🏁"
FUNCTION_CALL_GLYPH = "📞"
RANGE_OPEN = "["
RANGE_CLOSE = "]"

DIGITS = frozenset("0123456789")
NUMBER_CHARS = DIGITS | {".", DECIMAL_TOGGLE}

# Glyphs that stand for a token on their own
GLYPHS = {
    "🙂": TokenKind.ADD,
    "😢": TokenKind.SUBTRACT,
    "😂": TokenKind.MULTIPLY,
    "🤔": TokenKind.DIVIDE,
    "😕": TokenKind.IF,
    "😄": TokenKind.THEN,
    "😐": TokenKind.ELSE,
    "🔤": TokenKind.ASSIGN,
    LOOP_START_GLYPH: TokenKind.LOOP_START,
    "🔚": TokenKind.LOOP_END,
    "🚩": TokenKind.FUNCTION_END,
}


class Lexer:
    """Consume a `GlyphScanner` to completion, producing tokens in order."""

    def __init__(self, source: str):
        self.scanner = GlyphScanner(source)

    def tokenize(self) -> Tuple[Token, ...]:
        tokens = []
        while True:
            ch = self.scanner.peek()
            if ch is None:
                break
            if ch in NUMBER_CHARS:
                tokens.append(Token(TokenKind.NUMBER, value=self._read_number()))
                continue
            self.scanner.advance()
            if ch in GLYPHS:
                tokens.append(Token(GLYPHS[ch]))
            elif ch == RANGE_OPEN:
                tokens.append(self._read_loop_range())
            elif ch == FUNCTION_START_GLYPH:
                tokens.append(Token(TokenKind.FUNCTION_START, name=self._read_function_name(ch)))
            elif ch == FUNCTION_CALL_GLYPH:
                tokens.append(Token(TokenKind.FUNCTION_CALL, name=self._read_function_name(ch)))
            else:
                tokens.append(Token(TokenKind.VARIABLE, name=ch))
        logger.debug("lexed %d tokens", len(tokens))
        return tuple(tokens)

    def _read_number(self) -> float:
        """Scan a maximal run of digits, '.' and the decimal toggle.

        The toggle flips decimal mode and is dropped from the collected text.
        A run that ends with decimal mode still on gets a leading '0', so
        🗨.5 reads as 0.5 while 🗨5🗨 is plain 5.
        """
        start = self.scanner.offset
        is_decimal = False
        digits = []
        while True:
            ch = self.scanner.peek()
            if ch is None or ch not in NUMBER_CHARS:
                break
            self.scanner.advance()
            if ch == DECIMAL_TOGGLE:
                is_decimal = not is_decimal
            else:
                digits.append(ch)

        text = "".join(digits)
        if is_decimal:
            text = "0" + text
        try:
            return float(text)
        except ValueError:
            raise MalformedNumberLiteral(f"Malformed number literal {text!r}", position=start) from None

    def _read_loop_range(self) -> Token:
        # the opening '[' has already been consumed
        if self.scanner.peek() not in NUMBER_CHARS:
            raise UnterminatedLoopRange("Invalid start number in loop range", position=self.scanner.offset)
        start = self._read_number()
        if self.scanner.advance() != LOOP_START_GLYPH:
            raise UnterminatedLoopRange(f"Missing '{LOOP_START_GLYPH}' in loop range", position=self.scanner.offset)
        if self.scanner.peek() not in NUMBER_CHARS:
            raise UnterminatedLoopRange("Invalid end number in loop range", position=self.scanner.offset)
        end = self._read_number()
        if self.scanner.advance() != RANGE_CLOSE:
            raise UnterminatedLoopRange(f"Missing closing '{RANGE_CLOSE}' for loop range", position=self.scanner.offset)
        return Token(TokenKind.LOOP_RANGE, value=start, end=end)

    def _read_function_name(self, marker: str) -> str:
        name = self.scanner.advance()
        if name is None:
            raise MissingFunctionName(f"Expected a function name after '{marker}'", position=self.scanner.offset)
        return name


def tokenize(source: str) -> Tuple[Token, ...]:
    """Lex `source` into a tuple of tokens, raising on malformed literals."""
    return Lexer(source).tokenize()

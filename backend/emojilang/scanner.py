"""Single-character lookahead cursor over emoji source text."""

from typing import Optional


class GlyphScanner:
    """Walk a source string one code point at a time.

    `peek` looks at the next character without consuming it and `advance`
    consumes exactly one. Both return None once the source is exhausted.
    `offset` is the index of the character `advance` would return next.
    """

    def __init__(self, source: str):
        self._chars = iter(source)
        self._peeked: Optional[str] = None
        self.offset = 0

    def peek(self) -> Optional[str]:
        if self._peeked is None:
            self._peeked = next(self._chars, None)
        return self._peeked

    def advance(self) -> Optional[str]:
        if self._peeked is not None:
            ch, self._peeked = self._peeked, None
        else:
            ch = next(self._chars, None)
        if ch is not None:
            self.offset += 1
        return ch

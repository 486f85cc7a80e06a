"""
Line cursor over DXF group-code text.

DXF stores each record as two lines: an integer group code followed by
its value. The cursor walks a pre-split, whitespace-trimmed line array and
exposes lookahead through peek(offset) instead of index arithmetic.
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class RawToken:
    """Single group-code/value record."""
    code: int
    value: str


class LineCursor:
    """Forward-only cursor over trimmed lines.

    Args:
        lines: Lines of the DXF text, already stripped
    """

    def __init__(self, lines: List[str]):
        self._lines = lines
        self._pos = 0

    @classmethod
    def from_text(cls, content: str) -> 'LineCursor':
        """Split text on newlines (any convention) and trim each line."""
        return cls([line.strip() for line in content.splitlines()])

    @property
    def position(self) -> int:
        return self._pos

    @property
    def at_end(self) -> bool:
        return self._pos >= len(self._lines)

    def peek(self, offset: int = 0) -> Optional[str]:
        """Line at cursor + offset, None past the end."""
        idx = self._pos + offset
        if 0 <= idx < len(self._lines):
            return self._lines[idx]
        return None

    def advance(self, count: int = 1) -> None:
        self._pos = min(self._pos + count, len(self._lines))

    def peek_code(self) -> Optional[int]:
        """Group code of the next record, None if absent or not an integer."""
        line = self.peek(0)
        if line is None or self.peek(1) is None:
            return None
        try:
            return int(line)
        except ValueError:
            return None

    def next_token(self) -> Optional[RawToken]:
        """Consume the next (code, value) pair.

        Returns:
            RawToken, or None at end of input or when the code line is not an
            integer (cursor is left on the offending line).
        """
        code = self.peek_code()
        if code is None:
            return None
        token = RawToken(code, self.peek(1))
        self.advance(2)
        return token

    def seek_marker(self, *markers: str) -> bool:
        """Move to the first position where consecutive lines equal markers.

        The cursor ends just past the matched sequence.

        Returns:
            True if found, False (cursor at end) otherwise
        """
        while not self.at_end:
            if all(self.peek(i) == marker for i, marker in enumerate(markers)):
                self.advance(len(markers))
                return True
            self.advance()
        return False

    def resync(self) -> bool:
        """Skip line by line to the next `0` record boundary.

        Used after a code line that is not an integer, which means the
        pair alignment has been lost.

        Returns:
            True if a boundary was found
        """
        while not self.at_end:
            if self.peek(0) == "0" and self.peek(1):
                return True
            self.advance()
        return False

"""
Unit tests for dxf_intake.parsing.cursor module.

Tests:
- Line splitting and trimming
- Lookahead and pair consumption
- Marker search and resynchronisation
"""

from dxf_intake.parsing.cursor import LineCursor, RawToken


class TestFromText:
    """Tests for LineCursor.from_text."""

    def test_lines_trimmed(self):
        """Group codes are right-aligned in real files; padding is removed."""
        cursor = LineCursor.from_text("  0\nSECTION  \n  2\nENTITIES\n")
        assert cursor.peek(0) == "0"
        assert cursor.peek(1) == "SECTION"
        assert cursor.peek(2) == "2"

    def test_crlf_line_endings(self):
        """Windows line endings split the same way."""
        cursor = LineCursor.from_text("0\r\nLINE\r\n8\r\nCUT\r\n")
        assert cursor.next_token() == RawToken(0, "LINE")
        assert cursor.next_token() == RawToken(8, "CUT")

    def test_empty_text(self):
        cursor = LineCursor.from_text("")
        assert cursor.at_end
        assert cursor.next_token() is None


class TestPeekAndAdvance:
    """Tests for peek/advance."""

    def test_peek_past_end_is_none(self):
        cursor = LineCursor(["0", "LINE"])
        assert cursor.peek(2) is None
        assert cursor.peek(-1) is None

    def test_advance_clamped(self):
        cursor = LineCursor(["a", "b"])
        cursor.advance(10)
        assert cursor.at_end
        assert cursor.position == 2


class TestNextToken:
    """Tests for pair consumption."""

    def test_consumes_pairs(self):
        cursor = LineCursor(["10", "1.5", "20", "2.5"])
        assert cursor.next_token() == RawToken(10, "1.5")
        assert cursor.position == 2
        assert cursor.next_token() == RawToken(20, "2.5")
        assert cursor.at_end

    def test_non_integer_code(self):
        """A non-integer code line returns None and does not move."""
        cursor = LineCursor(["X1", "5", "0", "LINE"])
        assert cursor.next_token() is None
        assert cursor.position == 0

    def test_dangling_code(self):
        """A code without a value line is not a token."""
        cursor = LineCursor(["0"])
        assert cursor.peek_code() is None
        assert cursor.next_token() is None

    def test_negative_code(self):
        """Integer parsing accepts any sign; -1 style codes do not break scanning."""
        cursor = LineCursor(["-1", "x"])
        assert cursor.next_token() == RawToken(-1, "x")


class TestSeekMarker:
    """Tests for marker search."""

    def test_lands_after_marker(self):
        cursor = LineCursor(["0", "SECTION", "2", "ENTITIES", "0", "LINE"])
        assert cursor.seek_marker("SECTION", "2", "ENTITIES")
        assert cursor.next_token() == RawToken(0, "LINE")

    def test_partial_marker_not_matched(self):
        cursor = LineCursor(["0", "SECTION", "2", "HEADER", "0", "ENDSEC"])
        assert not cursor.seek_marker("SECTION", "2", "ENTITIES")
        assert cursor.at_end


class TestResync:
    """Tests for resynchronisation on a record boundary."""

    def test_finds_next_boundary(self):
        cursor = LineCursor(["junk", "more", "0", "CIRCLE", "8", "CUT"])
        assert cursor.resync()
        assert cursor.next_token() == RawToken(0, "CIRCLE")

    def test_no_boundary(self):
        cursor = LineCursor(["junk", "0"])
        assert not cursor.resync()
        assert cursor.at_end

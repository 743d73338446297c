"""
Test DiffExtractor

Append-only and mutable-tree deltas between two snapshots.
"""

import pytest

from core.targets import SurfaceKind
from modules.diff.extractor import DiffExtractor, DiffResult


@pytest.fixture
def extractor():
    return DiffExtractor()


class TestAppendOnly:
    """Terminal scrollback diffs"""

    def test_identical_is_empty(self, extractor):
        """Test same text yields no delta"""
        text = "$ ls\nREADME.md\nsrc"
        assert extractor.diff(text, text, SurfaceKind.APPEND_ONLY) == ""

    @pytest.mark.parametrize("suffix", [
        "done",
        "  padded output  ",
        "line one\nline two",
        "Error: exit code 1\n",
        "crlf line one\r\ncrlf line two",
        "form\x0cfeed",
        "para\u2028graph",
    ])
    def test_appended_suffix(self, extractor, suffix):
        """Test appended lines come back trimmed"""
        before = "$ make\ncc -o app main.c"
        after = before + "\n" + suffix
        assert extractor.diff(before, after, SurfaceKind.APPEND_ONLY) == suffix.strip()

    def test_common_prefix_only(self, extractor):
        """Test lines after the first difference are the delta"""
        before = "a\nb\nc"
        after = "a\nb\nX\nY"
        assert extractor.diff(before, after, SurfaceKind.APPEND_ONLY) == "X\nY"

    def test_in_place_growth(self, extractor):
        """Test streaming without newlines grows the last line"""
        before = "$ npm install\nadded 10 packages"
        after = "$ npm install\nadded 10 packages in 3s"
        assert extractor.diff(before, after, SurfaceKind.APPEND_ONLY) == "in 3s"

    def test_shrunk_content(self, extractor):
        """Test cleared scrollback yields no delta"""
        before = "one\ntwo\nthree"
        after = "one"
        assert extractor.diff(before, after, SurfaceKind.APPEND_ONLY) == ""

    def test_empty_before(self, extractor):
        """Test everything is new when nothing was there"""
        after = "first\nsecond"
        assert extractor.diff("", after, SurfaceKind.APPEND_ONLY) == after

    def test_never_fallback(self, extractor):
        """Test append diffs never flag fallback"""
        result = extractor.extract("a", "a\nb", SurfaceKind.APPEND_ONLY)
        assert result == DiffResult(delta="b")
        assert result.used_fallback == False


class TestMutableTree:
    """Editor and chat panel diffs"""

    def test_identical_is_empty(self, extractor):
        """Test same text yields no delta"""
        text = "Explorer\nmain.py\nTERMINAL"
        result = extractor.extract(text, text, SurfaceKind.MUTABLE_TREE)
        assert result.delta == ""
        assert result.had_new_content == False

    def test_new_lines_in_after_order(self, extractor):
        """Test set difference keeps the order of the new text"""
        before = "Chat\n  Ask anything  \nSend"
        after = "Chat\nZebra reply\nAsk anything\nalpha note\nSend"
        result = extractor.extract(before, after, SurfaceKind.MUTABLE_TREE)
        assert result.delta == "Zebra reply\nalpha note"
        assert result.used_fallback == False

    def test_lines_compared_trimmed(self, extractor):
        """Test indentation changes are not new content"""
        before = "def f():\n    return 1"
        after = "  def f():\nreturn 1  \nprint(f())"
        assert extractor.diff(before, after, SurfaceKind.MUTABLE_TREE) == "print(f())"

    def test_crlf_lines(self, extractor):
        """Test carriage returns do not make old lines look new"""
        before = "Summary\r\nAll tests pass"
        after = "Summary\nAll tests pass\r\nNext: deploy"
        assert extractor.diff(before, after, SurfaceKind.MUTABLE_TREE) == "Next: deploy"

    def test_no_shared_lines(self, extractor):
        """Test a full rewrite returns the whole trimmed text"""
        result = extractor.extract(
            "Loading...", "Done.\nAll tests passing.", SurfaceKind.MUTABLE_TREE
        )
        assert result.delta == "Done.\nAll tests passing."

    def test_fallback_on_reordered_lines(self, extractor):
        """Test a rewrite with no line-level change falls back to full text"""
        before = "first\nsecond"
        after = "  second\nfirst  \n"
        result = extractor.extract(before, after, SurfaceKind.MUTABLE_TREE)
        assert result.used_fallback == True
        assert result.delta == after.strip()

    def test_empty_before(self, extractor):
        """Test everything is new when nothing was there"""
        result = extractor.extract("", "hello\n\nworld", SurfaceKind.MUTABLE_TREE)
        assert result.delta == "hello\nworld"

    def test_repeated_new_lines_kept(self, extractor):
        """Test repeated lines in the new text are not deduplicated"""
        result = extractor.extract("x", "ok\nok", SurfaceKind.MUTABLE_TREE)
        assert result.delta == "ok\nok"

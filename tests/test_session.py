import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from markpad.core.config import FeatureFlags
from markpad.core.errors import FormatSpecError
from markpad.core.history import HistoryManager
from markpad.core.renderer import MarkdownRenderer
from markpad.core.session import EditorSession
from markpad.editing.formatting import FormatSpec, Selection
from markpad.editing.text_utils import LineColumn, Paragraph, TextMetrics


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestEditorSession(unittest.TestCase):
    def test_initial_state(self):
        session = EditorSession("hello")
        self.assertEqual(session.text, "hello")
        self.assertEqual(session.selection, Selection.caret(5))
        self.assertFalse(session.can_undo)
        self.assertFalse(session.can_redo)

    def test_format_then_undo_redo(self):
        session = EditorSession("hello")
        session.select(0, 5)
        result = session.apply_format('bold')
        self.assertEqual(result.new_text, "**hello**")
        self.assertEqual(session.text, "**hello**")
        self.assertEqual(session.selection, Selection(0, 9, "**hello**"))
        self.assertTrue(session.can_undo)

        self.assertTrue(session.undo())
        self.assertEqual(session.text, "hello")
        self.assertTrue(session.can_redo)

        self.assertTrue(session.redo())
        self.assertEqual(session.text, "**hello**")

    def test_toggle_through_session(self):
        session = EditorSession("word")
        session.select(0, 4)
        session.apply_format('italic')
        session.apply_format('italic')
        self.assertEqual(session.text, "word")

    def test_apply_custom_spec(self):
        session = EditorSession("key")
        session.select(0, 3)
        session.apply_format(FormatSpec('<kbd>', '</kbd>'))
        self.assertEqual(session.text, "<kbd>key</kbd>")

    def test_unknown_format_raises(self):
        session = EditorSession("x")
        with self.assertRaises(FormatSpecError):
            session.apply_format('sparkle')
        self.assertEqual(session.text, "x")

    def test_undo_without_history(self):
        session = EditorSession("x")
        self.assertFalse(session.undo())
        self.assertFalse(session.redo())
        self.assertEqual(session.text, "x")

    def test_set_text_records_history(self):
        session = EditorSession("")
        session.set_text("abc")
        self.assertTrue(session.can_undo)
        self.assertTrue(session.undo())
        self.assertEqual(session.text, "")

    def test_set_text_clamps_selection(self):
        session = EditorSession("a long line")
        session.set_text("ab")
        self.assertEqual(session.selection, Selection.caret(2))

    def test_injected_history_is_debounced(self):
        clock = FakeClock()
        history = HistoryManager("x", clock=clock)
        session = EditorSession("x", history=history)
        session.set_text("xy")
        session.set_text("xyz")
        self.assertFalse(session.poll())
        clock.now = 1.0
        self.assertTrue(session.poll())
        self.assertEqual(history.entries, ("x", "xyz"))

    def test_flush(self):
        session = EditorSession("")
        session.set_text("a")
        self.assertTrue(session.flush())
        self.assertEqual(session.history.current, "a")

    def test_preview(self):
        session = EditorSession("# Title\n\n**bold**")
        result = session.preview()
        self.assertTrue(result.sanitized)
        self.assertIn('<h1 id="title">', result.html)
        self.assertIn("<strong>bold</strong>", result.html)

        plain = session.preview(FeatureFlags(headings=False))
        self.assertNotIn("<h1", plain.html)

    def test_preview_with_unsanitized_renderer(self):
        session = EditorSession("x", renderer=MarkdownRenderer(sanitizer=None))
        self.assertTrue(session.preview().needs_sanitization)

    def test_metrics_and_position(self):
        session = EditorSession("one two\nthree")
        self.assertEqual(session.metrics(), TextMetrics(3, 13, 2))
        self.assertEqual(session.cursor_position(), LineColumn(2, 6))
        session.select(2)
        self.assertEqual(session.cursor_position(), LineColumn(1, 3))

    def test_current_paragraph(self):
        session = EditorSession("one\n\ntwo")
        session.select(1)
        self.assertEqual(session.current_paragraph(), Paragraph("one", 0, 3))


class TestSessionShortcuts(unittest.TestCase):
    def test_shortcut_dispatch(self):
        session = EditorSession("word")
        session.select(0, 4)
        self.assertEqual(session.handle_shortcut('b', ctrl=True), 'bold')
        self.assertEqual(session.text, "**word**")

        self.assertEqual(session.handle_shortcut('z', ctrl=True), 'undo')
        self.assertEqual(session.text, "word")

        self.assertEqual(session.handle_shortcut('Z', meta=True, shift=True), 'redo')
        self.assertEqual(session.text, "**word**")

    def test_heading_shortcut(self):
        session = EditorSession("")
        self.assertEqual(session.handle_shortcut('2', ctrl=True), 'h2')
        self.assertEqual(session.text, "## \n")

    def test_unbound_key(self):
        session = EditorSession("word")
        self.assertIsNone(session.handle_shortcut('q', ctrl=True))
        self.assertIsNone(session.handle_shortcut('b'))
        self.assertEqual(session.text, "word")


if __name__ == '__main__':
    unittest.main()

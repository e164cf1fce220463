import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from markpad.core.errors import FormatSpecError, MarkpadError
from markpad.editing.formatting import (
    FORMAT_SPECS,
    FormatSpec,
    Selection,
    apply_format,
    clamp_range,
    format_text,
    get_format_spec,
    toggle_formatting,
)


def select(text, start, end):
    return Selection.from_range(text, start, end)


class TestWrap(unittest.TestCase):
    def test_bold_selection(self):
        text = "hello world"
        result = format_text(text, select(text, 0, 5), FORMAT_SPECS['bold'])
        self.assertEqual(result.new_text, "**hello** world")
        self.assertEqual(result.new_selection, Selection(0, 9, "**hello**"))

    def test_empty_caret_inline_places_caret_inside(self):
        result = format_text("hello ", Selection.caret(6), FORMAT_SPECS['italic'])
        self.assertEqual(result.new_text, "hello __")
        self.assertEqual(result.new_selection, Selection.caret(7))

    def test_link_template(self):
        text = "see docs"
        result = apply_format(text, select(text, 4, 8), 'link')
        self.assertEqual(result.new_text, "see [docs](url)")

    def test_single_line_quote_wraps(self):
        text = "wise words"
        result = apply_format(text, select(text, 0, len(text)), 'quote')
        self.assertEqual(result.new_text, "> wise words")


class TestBlockInsert(unittest.TestCase):
    def test_heading_at_empty_document(self):
        result = format_text("", Selection.caret(0), FORMAT_SPECS['h1'])
        self.assertEqual(result.new_text, "# \n")
        self.assertEqual(result.new_selection.start, 2)

    def test_heading_after_text_starts_new_line(self):
        result = format_text("abc", Selection.caret(3), FORMAT_SPECS['h2'])
        self.assertEqual(result.new_text, "abc\n## \n")
        self.assertEqual(result.new_selection, Selection.caret(7))

    def test_heading_at_line_start_before_newline(self):
        text = "abc\n\nxyz"
        result = format_text(text, Selection.caret(4), FORMAT_SPECS['h1'])
        self.assertEqual(result.new_text, "abc\n# \nxyz")

    def test_code_block_caret_inside_fence(self):
        result = format_text("", Selection.caret(0), FORMAT_SPECS['code_block'])
        self.assertEqual(result.new_text, "```\n\n```\n")
        self.assertEqual(result.new_selection, Selection.caret(4))

    def test_horizontal_rule_insert(self):
        result = format_text("ab", Selection.caret(1), FORMAT_SPECS['horizontal_rule'])
        self.assertEqual(result.new_text, "a\n---\nb")
        self.assertEqual(result.new_selection, Selection.caret(6))


class TestReplaceAndMultiline(unittest.TestCase):
    def test_table_replaces_selection(self):
        text = "before XX after"
        result = format_text(text, select(text, 7, 9), FORMAT_SPECS['table'])
        table = FORMAT_SPECS['table'].prefix
        self.assertEqual(result.new_text, "before " + table + " after")
        self.assertEqual(result.new_selection, Selection.caret(7 + len(table)))

    def test_unordered_list_prefixes_each_line(self):
        text = "a\nb"
        result = format_text(text, select(text, 0, 3), FORMAT_SPECS['unordered_list'])
        self.assertEqual(result.new_text, "- a\n- b")
        self.assertEqual(result.new_selection, Selection(0, 7, "- a\n- b"))

    def test_ordered_list_numbers_lines(self):
        text = "one\ntwo\nthree"
        result = format_text(text, select(text, 0, len(text)), FORMAT_SPECS['ordered_list'])
        self.assertEqual(result.new_text, "1. one\n2. two\n3. three")

    def test_blank_lines_not_prefixed(self):
        text = "a\n\nb"
        result = format_text(text, select(text, 0, len(text)), FORMAT_SPECS['task_list'])
        self.assertEqual(result.new_text, "- [ ] a\n\n- [ ] b")

    def test_multiline_quote(self):
        text = "x\ny"
        result = apply_format(text, select(text, 0, 3), 'quote')
        self.assertEqual(result.new_text, "> x\n> y")


class TestToggle(unittest.TestCase):
    def test_bold_on_then_off_restores_text(self):
        text = "make this bold"
        on = toggle_formatting(text, select(text, 5, 9), FORMAT_SPECS['bold'])
        self.assertEqual(on.new_text, "make **this** bold")
        off = toggle_formatting(on.new_text, on.new_selection, FORMAT_SPECS['bold'])
        self.assertEqual(off.new_text, text)
        self.assertEqual(off.new_selection, Selection(5, 9, "this"))

    def test_toggle_every_inline_format(self):
        text = "word"
        for name in ['bold', 'italic', 'strikethrough', 'code', 'link', 'image']:
            on = apply_format(text, select(text, 0, 4), name)
            off = apply_format(on.new_text, on.new_selection, name)
            self.assertEqual(off.new_text, text, name)

    def test_toggle_with_empty_selection_applies(self):
        result = toggle_formatting("", Selection.caret(0), FORMAT_SPECS['bold'])
        self.assertEqual(result.new_text, "****")

    def test_short_selection_is_not_unwrapped(self):
        text = "**"
        result = toggle_formatting(text, select(text, 0, 2), FORMAT_SPECS['bold'])
        self.assertEqual(result.new_text, "******")

    def test_coincidental_affixes_are_unwrapped(self):
        # Known limitation: affix detection cannot tell applied from typed markers
        text = "**a** and **b**"
        result = toggle_formatting(text, select(text, 0, len(text)), FORMAT_SPECS['bold'])
        self.assertEqual(result.new_text, "a** and **b")

    def test_apply_without_toggle_always_wraps(self):
        text = "**x**"
        result = apply_format(text, select(text, 0, 5), 'bold', toggle=False)
        self.assertEqual(result.new_text, "****x****")


class TestSelectionClamping(unittest.TestCase):
    def test_out_of_bounds_selection_is_clamped(self):
        result = format_text("abc", Selection(-5, 100), FORMAT_SPECS['bold'])
        self.assertEqual(result.new_text, "**abc**")

    def test_reversed_selection_is_ordered(self):
        result = format_text("abc", Selection(3, 1), FORMAT_SPECS['code'])
        self.assertEqual(result.new_text, "a`bc`")

    def test_stale_selection_text_is_ignored(self):
        result = format_text("abc", Selection(0, 1, "zzz"), FORMAT_SPECS['bold'])
        self.assertEqual(result.new_text, "**a**bc")

    def test_clamp_range(self):
        self.assertEqual(clamp_range("abcd", 10, -1), (0, 4))
        self.assertEqual(clamp_range("abcd", 1, 2), (1, 2))

    def test_selection_from_range(self):
        self.assertEqual(Selection.from_range("hello", 1, 3), Selection(1, 3, "el"))
        self.assertTrue(Selection.from_range("hello", 2).is_empty)


class TestFormatSpec(unittest.TestCase):
    def test_multiline_requires_line_prefix(self):
        with self.assertRaises(FormatSpecError):
            FormatSpec('- ', multiline=True)

    def test_unknown_format(self):
        with self.assertRaises(FormatSpecError):
            get_format_spec('blink')
        with self.assertRaises(MarkpadError):
            apply_format("x", Selection.caret(0), 'blink')

    def test_prefix_for_line(self):
        self.assertEqual(FORMAT_SPECS['ordered_list'].prefix_for_line(4), "5. ")
        self.assertEqual(FORMAT_SPECS['quote'].prefix_for_line(4), "> ")
        self.assertEqual(FormatSpec('# ').prefix_for_line(0), "# ")

    def test_custom_spec(self):
        spec = FormatSpec('<kbd>', '</kbd>')
        text = "Ctrl"
        result = format_text(text, select(text, 0, 4), spec)
        self.assertEqual(result.new_text, "<kbd>Ctrl</kbd>")


if __name__ == '__main__':
    unittest.main()

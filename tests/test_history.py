import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from markpad.core.history import DebounceTimer, HistoryManager


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestDebounceTimer(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.timer = DebounceTimer(0.5, clock=self.clock)
        self.calls = []

    def test_fires_after_interval(self):
        self.timer.schedule(lambda: self.calls.append(1))
        self.clock.advance(0.4)
        self.assertFalse(self.timer.fire_if_due())
        self.clock.advance(0.2)
        self.assertTrue(self.timer.fire_if_due())
        self.assertEqual(self.calls, [1])
        self.assertFalse(self.timer.pending)

    def test_reschedule_replaces_callback(self):
        self.timer.schedule(lambda: self.calls.append("first"))
        self.clock.advance(0.3)
        self.timer.schedule(lambda: self.calls.append("second"))
        self.clock.advance(0.3)
        self.assertFalse(self.timer.fire_if_due())
        self.clock.advance(0.3)
        self.assertTrue(self.timer.fire_if_due())
        self.assertEqual(self.calls, ["second"])

    def test_cancel(self):
        self.timer.schedule(lambda: self.calls.append(1))
        self.timer.cancel()
        self.clock.advance(1)
        self.assertFalse(self.timer.fire_if_due())
        self.assertFalse(self.timer.fire())
        self.assertEqual(self.calls, [])


class TestHistoryDebounce(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.history = HistoryManager("", clock=self.clock)

    def test_snapshot_committed_after_quiet_period(self):
        self.history.record("a")
        self.assertEqual(self.history.entries, ("",))
        self.assertEqual(self.history.pending, "a")

        self.clock.advance(0.5)
        self.assertTrue(self.history.poll())
        self.assertEqual(self.history.entries, ("", "a"))
        self.assertIsNone(self.history.pending)
        self.assertTrue(self.history.can_undo)

    def test_rapid_edits_coalesce(self):
        for text in ["h", "he", "hel", "hell", "hello"]:
            self.history.record(text)
            self.clock.advance(0.2)
            self.history.poll()
        self.clock.advance(0.5)
        self.history.poll()
        self.assertEqual(self.history.entries, ("", "hello"))

    def test_flush_commits_immediately(self):
        self.history.record("now")
        self.assertTrue(self.history.flush())
        self.assertEqual(self.history.current, "now")
        self.assertFalse(self.history.flush())

    def test_undo_flushes_pending_snapshot(self):
        self.history.record("typed")
        self.assertEqual(self.history.undo(), "")
        self.assertTrue(self.history.can_redo)
        self.assertEqual(self.history.redo(), "typed")

    def test_unchanged_text_is_not_recorded(self):
        self.history.record("")
        self.assertIsNone(self.history.pending)
        self.history.record("x")
        self.history.record("")
        self.history.flush()
        self.assertEqual(self.history.entries, ("",))

    def test_close_drops_pending(self):
        self.history.record("unsaved")
        self.history.close()
        self.clock.advance(5)
        self.assertFalse(self.history.poll())
        self.assertEqual(self.history.entries, ("",))


class TestHistoryNavigation(unittest.TestCase):
    def setUp(self):
        self.history = HistoryManager("seed")

    def test_undo_all_then_redo_all(self):
        for text in ["one", "two", "three"]:
            self.history.commit(text)
        for expected in ["two", "one", "seed"]:
            self.assertEqual(self.history.undo(), expected)
        self.assertFalse(self.history.can_undo)
        self.assertIsNone(self.history.undo())

        for expected in ["one", "two", "three"]:
            self.assertEqual(self.history.redo(), expected)
        self.assertFalse(self.history.can_redo)
        self.assertIsNone(self.history.redo())

    def test_new_edit_discards_redo_branch(self):
        self.history.commit("a")
        self.history.undo()
        self.history.commit("b")
        self.assertIsNone(self.history.redo())
        self.assertEqual(self.history.entries, ("seed", "b"))
        self.assertEqual(self.history.current, "b")

    def test_cursor_invariant(self):
        self.history.commit("a")
        self.history.commit("b")
        self.history.undo()
        self.assertEqual(self.history.entries[self.history.cursor], self.history.current)
        self.assertEqual(self.history.current, "a")

    def test_commit_same_text_is_ignored(self):
        self.history.commit("seed")
        self.assertEqual(len(self.history.entries), 1)

    def test_reset(self):
        self.history.commit("a")
        self.history.reset("fresh")
        self.assertEqual(self.history.entries, ("fresh",))
        self.assertFalse(self.history.can_undo)


class TestHistoryLimit(unittest.TestCase):
    def test_oldest_entries_dropped(self):
        history = HistoryManager("0", max_entries=3)
        for i in range(1, 6):
            history.commit(str(i))
        self.assertEqual(history.entries, ("3", "4", "5"))
        self.assertEqual(history.cursor, 2)
        history.undo()
        history.undo()
        self.assertFalse(history.can_undo)
        self.assertEqual(history.current, "3")

    def test_default_limit(self):
        history = HistoryManager()
        for i in range(150):
            history.commit(f"text {i}")
        self.assertEqual(len(history.entries), 100)
        self.assertEqual(history.current, "text 149")

    def test_invalid_limit(self):
        with self.assertRaises(ValueError):
            HistoryManager(max_entries=0)


if __name__ == '__main__':
    unittest.main()

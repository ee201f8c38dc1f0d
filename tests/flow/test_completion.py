"""
Tests for flow/judge.py - task completion judge
"""

import unittest

from core.types import CompletionStatus, ToolCall
from flow.judge import (
    COMPLETION_PHRASES,
    DEFAULT_PATTERNS,
    CompletionDetector,
    CompletionPattern,
    CompletionWeights,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def calls(*names):
    return [ToolCall(name, {}) for name in names]


class TestCompletionPattern(unittest.TestCase):
    """Pattern matching rules."""

    def setUp(self):
        self.pattern = CompletionPattern(
            name="documentation",
            description="Docs",
            message_patterns=("readme",),
            tool_sequence=("read_file", "write_file"),
            min_tools=2,
        )

    def test_matches_when_all_conditions_hold(self):
        self.assertTrue(self.pattern.matches(["Updated the README"], calls("read_file", "write_file")))

    def test_message_must_be_recent(self):
        messages = ["readme", "a", "b", "c"]
        self.assertFalse(self.pattern.matches(messages, calls("read_file", "write_file")))

    def test_tools_must_be_in_last_ten(self):
        history = calls("read_file", "write_file") + calls(*["list_directory"] * 10)
        self.assertFalse(self.pattern.matches(["readme"], history))

    def test_min_tools(self):
        pattern = CompletionPattern("p", "d", min_tools=3)
        self.assertFalse(pattern.matches([], calls("read_file", "read_file")))
        self.assertTrue(pattern.matches([], calls("read_file", "read_file", "read_file")))

    def test_empty_conditions_always_match(self):
        self.assertTrue(CompletionPattern("p", "d").matches([], []))

    def test_builtin_catalog(self):
        self.assertEqual(
            [p.name for p in DEFAULT_PATTERNS],
            ["summary_generation", "file_organization", "documentation", "code_analysis"],
        )
        self.assertEqual(len(COMPLETION_PHRASES), 15)


class TestCompletionDetector(unittest.TestCase):
    """Confidence scoring and status thresholds."""

    def setUp(self):
        self.clock = FakeClock()
        self.detector = CompletionDetector(clock=self.clock)

    def test_nothing_means_in_progress(self):
        self.assertEqual(self.detector.completion_confidence([], []), 0.0)
        self.assertEqual(self.detector.completion_status([], []), CompletionStatus.IN_PROGRESS)
        self.assertFalse(self.detector.is_complete([], []))

    def test_explicit_phrase(self):
        confidence = self.detector.completion_confidence(["Task completed successfully!"], [])
        self.assertAlmostEqual(confidence, 0.8)
        self.assertEqual(
            self.detector.completion_status(["Task completed successfully!"], []),
            CompletionStatus.COMPLETE,
        )

    def test_explicit_phrase_only_in_last_three_messages(self):
        messages = ["all done", "x", "y", "z"]
        self.assertEqual(self.detector.completion_confidence(messages, []), 0.0)

    def test_execution_shape_read_and_write(self):
        history = calls("search_files", "list_directory", "write_file")
        self.assertAlmostEqual(self.detector.completion_confidence([], history), 0.5)
        self.assertEqual(self.detector.completion_status([], history), CompletionStatus.LIKELY_COMPLETE)

    def test_execution_shape_two_file_operations(self):
        self.assertTrue(self.detector.has_execution_shape(calls("read_file", "read_file")))
        self.assertFalse(self.detector.has_execution_shape(calls("read_file", "list_directory")))
        self.assertFalse(self.detector.has_execution_shape([]))

    def test_execution_shape_uses_last_five(self):
        history = calls("read_file", "write_file") + calls(*["list_directory"] * 5)
        self.assertFalse(self.detector.has_execution_shape(history))

    def test_scores_are_clamped(self):
        messages = ["Task complete. The README documentation is updated."]
        history = calls("read_file", "write_file")
        self.assertEqual(self.detector.completion_confidence(messages, history), 1.0)

    def test_recent_activity_halves_confidence(self):
        self.detector.record_tool_execution()
        self.clock.now += 2
        confidence = self.detector.completion_confidence(["all done"], [])
        self.assertAlmostEqual(confidence, 0.4)
        self.assertEqual(
            self.detector.completion_status(["all done"], []),
            CompletionStatus.POSSIBLY_COMPLETE,
        )

    def test_inactivity_adds_confidence(self):
        self.detector.record_tool_execution()
        self.clock.now += 31
        self.assertAlmostEqual(self.detector.completion_confidence([], []), 0.3)
        self.assertEqual(self.detector.completion_status([], []), CompletionStatus.POSSIBLY_COMPLETE)

    def test_between_windows_neither_applies(self):
        self.detector.record_tool_execution()
        self.clock.now += 10
        self.assertEqual(self.detector.completion_confidence([], []), 0.0)

    def test_last_execution_is_settable(self):
        self.detector.last_tool_execution = self.clock.now - 60
        self.assertTrue(self.detector.has_tool_inactivity())

    def test_matching_patterns(self):
        matches = self.detector.matching_patterns(
            ["Code structure reviewed"], calls("search_files", "read_file")
        )
        self.assertEqual(matches, ["code_analysis: Task involves analyzing code files"])

    def test_history_not_mutated(self):
        history = calls("read_file", "write_file")
        snapshot = list(history)
        self.detector.completion_status(["done with it"], history)
        self.assertEqual(history, snapshot)

    def test_custom_weights(self):
        detector = CompletionDetector(
            weights=CompletionWeights(explicit_signal=0.2, possibly_cutoff=0.2),
            clock=self.clock,
        )
        self.assertEqual(detector.completion_status(["all done"], []), CompletionStatus.POSSIBLY_COMPLETE)

    def test_custom_patterns(self):
        detector = CompletionDetector(patterns=[], clock=self.clock)
        self.assertEqual(detector.matching_patterns(["readme"], calls("read_file", "write_file")), [])


if __name__ == "__main__":
    unittest.main()

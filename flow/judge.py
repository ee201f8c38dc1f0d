"""
flow/judge.py - Task Completion Judge

This module estimates whether an agent task is finished.
It looks at recent conversation messages and the tool-call history.

Responsibilities:
- Spot explicit completion phrases in recent messages
- Match task-shaped completion patterns (message keywords + tools used)
- Recognize read/write execution shapes
- Factor in how recently a tool last ran

Rules:
- Judge doesn't execute, only evaluates
- Judgments are advisory, not blocking
- Never mutates the history it is given
- Keep judgments simple and fast
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from core.types import CompletionStatus, ToolCall

logger = logging.getLogger(__name__)

COMPLETION_PHRASES = (
    "task completed",
    "task complete",
    "finished successfully",
    "done with",
    "completed successfully",
    "task is finished",
    "work is complete",
    "all done",
    "successfully completed",
    "task accomplished",
    "objective achieved",
    "mission accomplished",
    "finished the task",
    "completed the request",
    "task has been completed",
)

MESSAGE_WINDOW = 3
PATTERN_TOOL_WINDOW = 10
EXECUTION_TOOL_WINDOW = 5

READ_TOOLS = frozenset({"read_file", "search_files"})
WRITE_TOOLS = frozenset({"write_file", "update_file"})
FILE_TOOLS = frozenset({"read_file", "write_file", "update_file"})


def _recent(items: Sequence, count: int) -> list:
    return list(items[-count:]) if count > 0 else []


def _recent_messages(messages: Sequence[str]) -> List[str]:
    return [m.lower() for m in _recent(messages, MESSAGE_WINDOW)]


@dataclass(frozen=True)
class CompletionPattern:
    """A task shape that indicates completion.

    Attributes:
        name: Short identifier
        description: What kind of task this is
        message_patterns: Lowercase substrings; one must appear in the last 3 messages
        tool_sequence: Tool names that must all appear in the last 10 calls
        min_tools: Minimum length of the whole history
    """
    name: str
    description: str
    message_patterns: Tuple[str, ...] = ()
    tool_sequence: Tuple[str, ...] = ()
    min_tools: int = 0

    def matches(self, messages: Sequence[str], tool_history: Sequence[ToolCall]) -> bool:
        if self.message_patterns:
            recent = _recent_messages(messages)
            if not any(p in m for m in recent for p in self.message_patterns):
                return False

        if self.tool_sequence:
            used = {call.tool for call in _recent(tool_history, PATTERN_TOOL_WINDOW)}
            if not all(tool in used for tool in self.tool_sequence):
                return False

        return len(tool_history) >= self.min_tools


DEFAULT_PATTERNS: Tuple[CompletionPattern, ...] = (
    CompletionPattern(
        name="summary_generation",
        description="Task involves creating a summary or report",
        message_patterns=("summary", "report", "analysis complete", "findings"),
        tool_sequence=("search_files", "read_file", "write_file"),
        min_tools=2,
    ),
    CompletionPattern(
        name="file_organization",
        description="Task involves organizing or restructuring files",
        message_patterns=("organized", "restructured", "cleaned up", "files arranged"),
        tool_sequence=("list_directory", "read_file", "write_file"),
        min_tools=3,
    ),
    CompletionPattern(
        name="documentation",
        description="Task involves creating or updating documentation",
        message_patterns=("documentation", "readme", "docs updated", "documented"),
        tool_sequence=("read_file", "write_file"),
        min_tools=2,
    ),
    CompletionPattern(
        name="code_analysis",
        description="Task involves analyzing code files",
        message_patterns=("analysis", "reviewed", "examined", "code structure"),
        tool_sequence=("search_files", "read_file"),
        min_tools=2,
    ),
)


@dataclass(frozen=True)
class CompletionWeights:
    """Scoring weights and thresholds for the completion judge.

    Times are in seconds.
    """
    explicit_signal: float = 0.8
    pattern_match: float = 0.6
    execution_shape: float = 0.5
    inactivity: float = 0.3
    recency_multiplier: float = 0.5
    recency_window: float = 5.0
    inactivity_threshold: float = 30.0
    complete_cutoff: float = 0.8
    likely_cutoff: float = 0.5
    possibly_cutoff: float = 0.3


class CompletionDetector:
    """Heuristic judge for task completion.

    Confidence is a sum of weighted signals, halved when a tool ran very
    recently, and capped at 1.0.
    """

    def __init__(
        self,
        weights: Optional[CompletionWeights] = None,
        patterns: Optional[Sequence[CompletionPattern]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the judge.

        Args:
            weights: Scoring weights (defaults to CompletionWeights())
            patterns: Completion patterns (defaults to DEFAULT_PATTERNS)
            clock: Monotonic time source in seconds
        """
        self.weights = weights or CompletionWeights()
        self.patterns: List[CompletionPattern] = list(
            DEFAULT_PATTERNS if patterns is None else patterns
        )
        self.clock = clock
        self.last_tool_execution: Optional[float] = None

    def record_tool_execution(self) -> None:
        """Mark that a tool just ran."""
        self.last_tool_execution = self.clock()

    def _seconds_since_execution(self) -> Optional[float]:
        if self.last_tool_execution is None:
            return None
        return self.clock() - self.last_tool_execution

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def has_completion_signal(self, messages: Sequence[str]) -> bool:
        return any(
            phrase in message
            for message in _recent_messages(messages)
            for phrase in COMPLETION_PHRASES
        )

    def matches_any_pattern(self, messages: Sequence[str], tool_history: Sequence[ToolCall]) -> bool:
        return any(p.matches(messages, tool_history) for p in self.patterns)

    def has_execution_shape(self, tool_history: Sequence[ToolCall]) -> bool:
        """Read-then-write, or at least two file reads/writes, among the last 5 calls."""
        recent = [call.tool for call in _recent(tool_history, EXECUTION_TOOL_WINDOW)]

        if len(recent) >= 3:
            has_read = any(t in READ_TOOLS for t in recent)
            has_write = any(t in WRITE_TOOLS for t in recent)
            if has_read and has_write:
                return True

        return sum(1 for t in recent if t in FILE_TOOLS) >= 2

    def has_tool_inactivity(self) -> bool:
        elapsed = self._seconds_since_execution()
        return elapsed is not None and elapsed > self.weights.inactivity_threshold

    def has_recent_activity(self) -> bool:
        elapsed = self._seconds_since_execution()
        return elapsed is not None and elapsed < self.weights.recency_window

    # ------------------------------------------------------------------
    # Judgments
    # ------------------------------------------------------------------

    def completion_confidence(
        self,
        messages: Sequence[str],
        tool_history: Sequence[ToolCall],
    ) -> float:
        """Score completion between 0.0 and 1.0."""
        w = self.weights
        confidence = 0.0

        if self.has_completion_signal(messages):
            confidence += w.explicit_signal
        if self.matches_any_pattern(messages, tool_history):
            confidence += w.pattern_match
        if self.has_execution_shape(tool_history):
            confidence += w.execution_shape
        if self.has_tool_inactivity():
            confidence += w.inactivity
        if self.has_recent_activity():
            confidence *= w.recency_multiplier

        confidence = min(confidence, 1.0)
        logger.debug(f"Completion confidence: {confidence:.2f}")
        return confidence

    def completion_status(
        self,
        messages: Sequence[str],
        tool_history: Sequence[ToolCall],
    ) -> CompletionStatus:
        confidence = self.completion_confidence(messages, tool_history)
        w = self.weights

        if confidence >= w.complete_cutoff:
            return CompletionStatus.COMPLETE
        if confidence >= w.likely_cutoff:
            return CompletionStatus.LIKELY_COMPLETE
        if confidence >= w.possibly_cutoff:
            return CompletionStatus.POSSIBLY_COMPLETE
        return CompletionStatus.IN_PROGRESS

    def is_complete(self, messages: Sequence[str], tool_history: Sequence[ToolCall]) -> bool:
        return self.completion_status(messages, tool_history).is_complete

    def matching_patterns(
        self,
        messages: Sequence[str],
        tool_history: Sequence[ToolCall],
    ) -> List[str]:
        """Describe each pattern that currently matches as "name: description"."""
        return [
            f"{p.name}: {p.description}"
            for p in self.patterns
            if p.matches(messages, tool_history)
        ]

"""Transcript formatting and indexing — canonical '[m:ss] Speaker: text' lines.

Every downstream matcher (phrases, violations, checklist) works off a
TranscriptIndex so the transcript is parsed exactly once per call.
"""

import math
import re

from loguru import logger

from config.schemas import Evidence, MergedTurn, Speaker, TranscriptLine

_LINE_RE = re.compile(r"^\s*\[([^\]]*)\]\s*(agent|customer)\s*:\s*(.+?)\s*$", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"^\s*[+-]?(\d+)")

SNIPPET_CHARS = 100


def parse_time_to_seconds(time_str) -> int:
    """Convert 'm:ss' to seconds. Anything malformed resolves to 0, never raises."""
    if not time_str or not isinstance(time_str, str):
        return 0
    parts = time_str.split(":")
    if len(parts) != 2:
        return 0
    return _leading_int(parts[0]) * 60 + _leading_int(parts[1])


def _leading_int(part: str) -> int:
    match = _LEADING_INT_RE.match(part)
    return int(match.group(1)) if match else 0


def format_timestamp(seconds) -> str:
    """Convert seconds to 'm:ss' (floored, zero-padded seconds)."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or math.isnan(seconds):
        return "0:00"
    total = max(0, math.floor(seconds))
    return f"{total // 60}:{total % 60:02d}"


def format_transcript(turns: list[MergedTurn]) -> str:
    """Render merged turns as canonical transcript lines, one per turn."""
    return "\n".join(
        f"[{format_timestamp(turn.start)}] {turn.speaker.label}: {turn.text}"
        for turn in turns
    )


def parse_transcript_lines(transcript: str | None) -> tuple[list[TranscriptLine], int]:
    """Parse transcript text into lines in file order.

    Returns:
        (lines, dropped) where dropped counts non-blank lines that did not parse
    """
    lines: list[TranscriptLine] = []
    dropped = 0
    for raw in (transcript or "").splitlines():
        if not raw.strip():
            continue
        match = _LINE_RE.match(raw)
        if not match:
            dropped += 1
            continue
        timestamp, speaker, text = match.groups()
        lines.append(TranscriptLine(
            timestamp=timestamp.strip(),
            speaker=Speaker(speaker.lower()),
            text=text,
            seconds=parse_time_to_seconds(timestamp.strip()),
        ))
    return lines, dropped


def snippet(text: str, limit: int = SNIPPET_CHARS) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def quote_line(line: TranscriptLine) -> str:
    """Evidence string for a line: [m:ss] speaker: "text"."""
    return f'[{line.timestamp}] {line.speaker.value}: "{snippet(line.text)}"'


class TranscriptIndex:
    """Parsed view of one call's transcript, shared read-only by all matchers."""

    def __init__(self, transcript: str | None):
        self.text = transcript or ""
        self.lower = self.text.lower()
        self.lines, self.dropped = parse_transcript_lines(self.text)
        self.agent_lines = [line for line in self.lines if line.speaker == Speaker.AGENT]
        self.customer_lines = [line for line in self.lines if line.speaker == Speaker.CUSTOMER]
        self._lower_lines = [line.text.lower() for line in self.lines]

        if self.dropped:
            logger.warning(
                f"Transcript indexing: {self.dropped} unparseable line(s) dropped "
                f"({len(self.lines)} parsed)"
            )

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def contains(self, term: str) -> bool:
        return term.lower() in self.lower

    def first_line_index(self, term: str, speaker: Speaker | None = None) -> int | None:
        """Index (into self.lines) of the first line containing term, optionally for one speaker."""
        term_lower = term.lower()
        for i, line in enumerate(self.lines):
            if speaker is not None and line.speaker != speaker:
                continue
            if term_lower in self._lower_lines[i]:
                return i
        return None

    def first_line(self, term: str, speaker: Speaker | None = None) -> TranscriptLine | None:
        idx = self.first_line_index(term, speaker)
        return self.lines[idx] if idx is not None else None

    def window_contains(self, term: str, center: int, radius: int) -> bool:
        """True if any line within radius lines of center contains term."""
        term_lower = term.lower()
        lo = max(0, center - radius)
        hi = min(len(self.lines), center + radius + 1)
        return any(term_lower in self._lower_lines[i] for i in range(lo, hi))

    def find_phrase(self, phrase: str, variations: tuple[str, ...] = ()) -> Evidence:
        """Search for a phrase or any variation; the first term present wins.

        Locates the first line containing the winning term for timestamp and
        snippet. A match that spans lines is still reported as found, without
        a timestamp.
        """
        for term in (phrase, *variations):
            term_lower = term.lower()
            position = self.lower.find(term_lower)
            if position < 0:
                continue
            line = self.first_line(term_lower)
            if line is not None:
                return Evidence(
                    found=True,
                    timestamp=line.timestamp,
                    speaker=line.speaker,
                    snippet=quote_line(line),
                    term=term,
                    position=position,
                )
            return Evidence(found=True, snippet=f'Contains: "{term}"', term=term, position=position)
        return Evidence(found=False)

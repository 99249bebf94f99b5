"""Dual-channel transcript merge with overlap splitting.

The agent and customer channels are transcribed separately, so a long segment
on one channel often spans a short interjection on the other. Each segment is
split wherever the other speaker starts talking inside it, giving proper
turn-taking in the merged transcript.
"""

import math

from loguru import logger

from config.schemas import MergedTurn, Segment, Speaker, Word

# Absorbs float noise such as 4 * 0.7 / 1.0 = 2.8000000000000003 before ceil()
_EPS = 1e-9


def _word_boundary(seg: Segment, word_count: int, t: float) -> int:
    """Estimate how many words of seg were spoken by time t (proportional to duration)."""
    duration = seg.end - seg.start
    if duration <= 0:
        return word_count
    estimate = math.ceil(word_count * (t - seg.start) / duration - _EPS)
    return max(0, min(word_count, estimate))


def _word_time(word: Word) -> float | None:
    return word.end if word.end is not None else word.start


def _is_spoken_by(word: Word, t: float) -> bool:
    """True if the word is timed and finished by t. An untimed word ends the chunk."""
    word_t = _word_time(word)
    return word_t is not None and word_t <= t


def _turn(speaker: Speaker, start: float, end: float,
          text: str, words: list[Word]) -> MergedTurn | None:
    text = text.strip()
    if not text:
        return None
    return MergedTurn(
        speaker=speaker,
        start=start,
        end=end,
        text=text,
        words=words,
        split_from_overlap=True,
    )


def split_overlapping_segments(
    primary: list[Segment], secondary: list[Segment], speaker: Speaker
) -> list[MergedTurn]:
    """Split primary-speaker segments wherever a secondary segment starts inside them.

    A secondary segment with p.start < s.start < p.end cuts the primary segment
    at s.start; the primary resumes at s.end. With word timestamps the cut falls
    after the last word ending (or starting) at or before the split point, and
    a word with no timing ends the chunk so it lands in the remainder;
    otherwise words are allocated in proportion to elapsed time, and words
    estimated to fall under the other speaker are not carried into the
    remainder. Chunks with no text are dropped.

    Args:
        primary: Segments of the speaker being split
        secondary: Segments of the other speaker
        speaker: Who the primary segments belong to

    Returns:
        MergedTurns for the primary speaker, in input order
    """
    result: list[MergedTurn] = []

    for seg in primary:
        overlapping = sorted(
            (s for s in secondary if seg.start < s.start < seg.end),
            key=lambda s: s.start,
        )

        if not overlapping:
            result.append(MergedTurn(
                speaker=speaker,
                start=seg.start,
                end=seg.end,
                text=seg.text,
                words=seg.words,
            ))
            continue

        words = seg.words
        timed = any(_word_time(w) is not None for w in words)
        tokens = seg.text.split()
        current_start = seg.start
        cursor = 0  # index into words, or into tokens when untimed

        for overlap in overlapping:
            split_point = overlap.start
            if split_point > current_start:
                if timed:
                    chunk_words = []
                    while cursor < len(words) and _is_spoken_by(words[cursor], split_point):
                        chunk_words.append(words[cursor])
                        cursor += 1
                    text = " ".join(w.text for w in chunk_words)
                else:
                    chunk_words = []
                    stop = max(cursor, _word_boundary(seg, len(tokens), split_point))
                    text = " ".join(tokens[cursor:stop])
                    cursor = stop

                turn = _turn(speaker, current_start, split_point, text, chunk_words)
                if turn is not None:
                    result.append(turn)

            current_start = max(current_start, overlap.end)
            if not timed:
                cursor = max(cursor, _word_boundary(seg, len(tokens), current_start))

        if current_start < seg.end:
            if timed:
                remaining_words = words[cursor:]
                text = " ".join(w.text for w in remaining_words)
            else:
                remaining_words = []
                text = " ".join(tokens[cursor:])
            turn = _turn(speaker, current_start, seg.end, text, remaining_words)
            if turn is not None:
                result.append(turn)

    return result


def merge_channels(
    agent_segments: list[Segment], customer_segments: list[Segment]
) -> tuple[list[MergedTurn], list[MergedTurn], list[MergedTurn]]:
    """Split both channels against each other and interleave them by start time.

    Returns:
        (agent_turns, customer_turns, all_turns) where all_turns is sorted by
        start, agent turns first on equal starts
    """
    agent_turns = split_overlapping_segments(agent_segments, customer_segments, Speaker.AGENT)
    customer_turns = split_overlapping_segments(customer_segments, agent_segments, Speaker.CUSTOMER)
    all_turns = sorted([*agent_turns, *customer_turns], key=lambda t: t.start)

    splits = sum(1 for t in all_turns if t.split_from_overlap)
    logger.info(
        f"Transcript merge: {len(agent_segments)}+{len(customer_segments)} segments "
        f"→ {len(all_turns)} turns ({splits} from overlap splits)"
    )
    return agent_turns, customer_turns, all_turns

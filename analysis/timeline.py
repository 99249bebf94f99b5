"""Exclusive time windows — per-second speaker attribution, talk metrics, playback markers."""

import math

from analysis.scoring import round_half_up
from analysis.transcript_index import format_timestamp
from config.schemas import MergedTurn, Speaker, SpeakerMetrics, Timeline, TimelineMarker

DOMINANCE_PCT = 60
PAUSE_SECONDS = 2
MARKER_EVERY = 5
END_MARKER_GAP = 10
PREVIEW_CHARS = 50


def _claim(seconds: list[Speaker | None], turns: list[MergedTurn], speaker: Speaker) -> None:
    total = len(seconds)
    for turn in turns:
        start = max(0, math.floor(turn.start))
        end = min(total, math.ceil(turn.end))
        for i in range(start, end):
            # Agent wins any second both speakers claim
            if seconds[i] is None or speaker == Speaker.AGENT:
                seconds[i] = speaker


def assign_seconds(agent_turns: list[MergedTurn], customer_turns: list[MergedTurn]) -> list[Speaker | None]:
    """Attribute each whole second of the call to exactly one speaker, or None for silence."""
    call_end = max((t.end for t in (*agent_turns, *customer_turns)), default=0.0)
    seconds: list[Speaker | None] = [None] * max(0, math.ceil(call_end))
    _claim(seconds, agent_turns, Speaker.AGENT)
    _claim(seconds, customer_turns, Speaker.CUSTOMER)
    return seconds


def _minutes_seconds(total: int) -> str:
    return f"{total // 60}m {total % 60}s"


def compute_speaker_metrics(
    seconds: list[Speaker | None], agent_turns: list[MergedTurn], customer_turns: list[MergedTurn]
) -> SpeakerMetrics:
    agent = sum(1 for s in seconds if s == Speaker.AGENT)
    customer = sum(1 for s in seconds if s == Speaker.CUSTOMER)
    silence = len(seconds) - agent - customer
    speaking = agent + customer

    agent_pct = round_half_up(agent / speaking * 100) if speaking else 0
    customer_pct = 100 - agent_pct if speaking else 0

    if agent_pct > DOMINANCE_PCT:
        dominant = "agent"
    elif customer_pct > DOMINANCE_PCT:
        dominant = "customer"
    else:
        dominant = "balanced"

    return SpeakerMetrics(
        agent_turn_count=len(agent_turns),
        customer_turn_count=len(customer_turns),
        agent_speaking_time=agent,
        customer_speaking_time=customer,
        total_speaking_time=speaking,
        silence_time=silence,
        agent_speaking_pct=agent_pct,
        customer_speaking_pct=customer_pct,
        agent_time_formatted=_minutes_seconds(agent),
        customer_time_formatted=_minutes_seconds(customer),
        talk_ratio=f"{agent / customer:.2f}" if customer else "N/A",
        dominant_speaker=dominant,
        call_duration_seconds=len(seconds),
    )


def build_markers(all_turns: list[MergedTurn]) -> list[TimelineMarker]:
    """Sparse playback markers over the combined, start-sorted turns.

    A marker is emitted for the first turn, every 5th turn, any turn after a
    pause of more than 2s, and any speaker change. An end-of-call marker is
    appended when the call runs more than 10s past the last marker.
    """
    markers: list[TimelineMarker] = []
    last_speaker = None

    for idx, turn in enumerate(all_turns):
        start_sec = math.floor(turn.start)
        is_speaker_change = last_speaker is not None and last_speaker != turn.speaker
        prev_end = all_turns[idx - 1].end if idx > 0 else 0.0
        gap = turn.start - prev_end
        has_pause = gap > PAUSE_SECONDS

        if idx == 0 or is_speaker_change or idx % MARKER_EVERY == 0 or has_pause:
            preview = turn.text[:PREVIEW_CHARS] + ("..." if len(turn.text) > PREVIEW_CHARS else "")
            markers.append(TimelineMarker(
                time_seconds=start_sec,
                time_formatted=format_timestamp(start_sec),
                speaker=turn.speaker.value,
                is_speaker_change=is_speaker_change,
                has_pause_before=has_pause,
                pause_duration=round_half_up(gap) if has_pause else 0,
                text_preview=preview,
                segment_index=idx,
            ))
        last_speaker = turn.speaker

    if all_turns:
        last = all_turns[-1]
        end_sec = math.ceil(last.end or last.start)
        last_marker_time = markers[-1].time_seconds if markers else -1
        if end_sec - last_marker_time > END_MARKER_GAP:
            markers.append(TimelineMarker(
                time_seconds=end_sec,
                time_formatted=format_timestamp(end_sec),
                speaker="end",
                text_preview="[End of call]",
                segment_index=len(all_turns),
            ))

    return markers


def build_timeline(
    agent_turns: list[MergedTurn],
    customer_turns: list[MergedTurn],
    all_turns: list[MergedTurn] | None = None,
) -> Timeline:
    """Per-second speaker assignment, talk metrics and playback markers for one call."""
    if all_turns is None:
        all_turns = sorted([*agent_turns, *customer_turns], key=lambda t: t.start)
    seconds = assign_seconds(agent_turns, customer_turns)
    return Timeline(
        seconds=seconds,
        metrics=compute_speaker_metrics(seconds, agent_turns, customer_turns),
        markers=build_markers(all_turns),
    )

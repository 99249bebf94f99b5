"""Tests for exclusive per-second attribution, talk metrics and playback markers."""

from config.schemas import MergedTurn, Speaker
from analysis.timeline import assign_seconds, build_markers, build_timeline

A = Speaker.AGENT
C = Speaker.CUSTOMER


def _make_turn(speaker: Speaker, start: float, end: float, text: str = "some text") -> MergedTurn:
    return MergedTurn(speaker=speaker, start=start, end=end, text=text)


class TestAssignSeconds:
    def test_interjection_owns_its_seconds(self):
        agent = [_make_turn(A, 0, 5), _make_turn(A, 7, 10)]
        customer = [_make_turn(C, 5, 7)]
        seconds = assign_seconds(agent, customer)
        assert seconds == [A, A, A, A, A, C, C, A, A, A]

    def test_agent_wins_shared_second(self):
        seconds = assign_seconds([_make_turn(A, 0, 3)], [_make_turn(C, 2, 4)])
        assert seconds == [A, A, A, C]

    def test_fractional_bounds_cover_partial_seconds(self):
        seconds = assign_seconds([_make_turn(A, 0.4, 1.2)], [])
        assert seconds == [A, A]

    def test_gaps_are_silence(self):
        seconds = assign_seconds([_make_turn(A, 0, 2)], [_make_turn(C, 5, 6)])
        assert seconds == [A, A, None, None, None, C]

    def test_no_turns(self):
        assert assign_seconds([], []) == []


class TestSpeakerMetrics:
    def test_metrics_from_split_call(self):
        agent = [_make_turn(A, 0, 5), _make_turn(A, 7, 10)]
        customer = [_make_turn(C, 5, 7)]
        metrics = build_timeline(agent, customer).metrics

        assert metrics.agent_speaking_time == 8
        assert metrics.customer_speaking_time == 2
        assert metrics.silence_time == 0
        assert metrics.agent_speaking_pct == 80
        assert metrics.customer_speaking_pct == 20
        assert metrics.talk_ratio == "4.00"
        assert metrics.dominant_speaker == "agent"
        assert metrics.call_duration_seconds == 10
        assert metrics.agent_turn_count == 2
        assert metrics.customer_turn_count == 1

    def test_percentages_round_half_up(self):
        metrics = build_timeline([_make_turn(A, 0, 1)], [_make_turn(C, 1, 8)]).metrics
        assert metrics.agent_speaking_pct == 13
        assert metrics.customer_speaking_pct == 87
        assert metrics.dominant_speaker == "customer"

    def test_balanced_call(self):
        metrics = build_timeline([_make_turn(A, 0, 5)], [_make_turn(C, 5, 10)]).metrics
        assert metrics.dominant_speaker == "balanced"
        assert metrics.talk_ratio == "1.00"

    def test_silent_customer_ratio_undefined(self):
        metrics = build_timeline([_make_turn(A, 0, 65)], []).metrics
        assert metrics.talk_ratio == "N/A"
        assert metrics.agent_time_formatted == "1m 5s"
        assert metrics.customer_time_formatted == "0m 0s"

    def test_empty_call(self):
        timeline = build_timeline([], [])
        assert timeline.seconds == []
        assert timeline.markers == []
        assert timeline.metrics.agent_speaking_pct == 0
        assert timeline.metrics.customer_speaking_pct == 0
        assert timeline.metrics.dominant_speaker == "balanced"


class TestMarkers:
    def test_first_turn_and_speaker_changes(self):
        turns = [
            _make_turn(A, 0, 2, "hi"),
            _make_turn(C, 2.5, 3, "yes"),
            _make_turn(A, 10, 12, "okay then"),
        ]
        markers = build_markers(turns)

        assert [m.segment_index for m in markers] == [0, 1, 2]
        assert markers[0].is_speaker_change is False
        assert markers[1].is_speaker_change is True
        assert markers[2].has_pause_before is True
        assert markers[2].pause_duration == 7
        assert markers[2].time_formatted == "0:10"

    def test_every_fifth_turn(self):
        turns = [_make_turn(A, i, i + 1) for i in range(6)]
        markers = build_markers(turns)
        assert [m.segment_index for m in markers] == [0, 5]

    def test_end_marker_after_long_tail(self):
        markers = build_markers([_make_turn(A, 0, 30, "a long monologue")])
        assert len(markers) == 2
        assert markers[-1].speaker == "end"
        assert markers[-1].time_seconds == 30
        assert markers[-1].text_preview == "[End of call]"
        assert markers[-1].segment_index == 1

    def test_preview_truncated(self):
        markers = build_markers([_make_turn(A, 0, 1, "x" * 60)])
        assert markers[0].text_preview == "x" * 50 + "..."

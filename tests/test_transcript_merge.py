"""Tests for dual-channel overlap splitting and interleaving."""

from config.schemas import Segment, Speaker, Word
from analysis.transcript_merge import merge_channels, split_overlapping_segments


def _make_segment(start: float, end: float, text: str, words: list = None) -> Segment:
    return Segment(start=start, end=end, text=text, words=words or [])


def _make_word(text: str, start: float, end: float) -> Word:
    return Word(text=text, start=start, end=end)


class TestProportionalSplit:
    def test_interjection_splits_primary(self):
        agent = [_make_segment(0, 10, "hello there my friend")]
        customer = [_make_segment(5, 7, "yes")]
        turns = split_overlapping_segments(agent, customer, Speaker.AGENT)

        assert [(t.start, t.end, t.text) for t in turns] == [
            (0, 5, "hello there"),
            (7, 10, "friend"),
        ]
        assert all(t.split_from_overlap for t in turns)
        assert all(t.speaker == Speaker.AGENT for t in turns)

    def test_multiple_interjections(self):
        agent = [_make_segment(0, 12, "one two three four five six")]
        customer = [_make_segment(8, 9, "ok"), _make_segment(4, 6, "yes")]
        turns = split_overlapping_segments(agent, customer, Speaker.AGENT)

        assert [(t.start, t.end, t.text) for t in turns] == [
            (0, 4, "one two"),
            (6, 8, "four"),
            (9, 12, "six"),
        ]

    def test_secondary_not_split_by_surrounding_primary(self):
        """The customer interjection starts inside the agent turn, not the other way round."""
        agent = [_make_segment(0, 10, "hello there my friend")]
        customer = [_make_segment(5, 7, "yes")]
        turns = split_overlapping_segments(customer, agent, Speaker.CUSTOMER)

        assert len(turns) == 1
        assert turns[0].text == "yes"
        assert turns[0].split_from_overlap is False

    def test_no_overlap_passes_through(self):
        words = [_make_word("hi", 0.1, 0.4)]
        agent = [_make_segment(0, 2, "hi", words)]
        customer = [_make_segment(3, 4, "hello")]
        turns = split_overlapping_segments(agent, customer, Speaker.AGENT)

        assert len(turns) == 1
        assert turns[0].text == "hi"
        assert turns[0].words == words
        assert turns[0].split_from_overlap is False

    def test_secondary_starting_at_boundary_is_not_overlap(self):
        agent = [_make_segment(0, 5, "hi there")]
        customer = [_make_segment(5, 6, "yes"), _make_segment(0, 1, "uh")]
        turns = split_overlapping_segments(agent, customer, Speaker.AGENT)
        assert len(turns) == 1
        assert turns[0].text == "hi there"


class TestWordTimedSplit:
    def test_split_uses_word_timestamps(self):
        words = [
            _make_word("hello", 0.0, 0.5),
            _make_word("there", 0.6, 1.0),
            _make_word("my", 3.5, 4.0),
            _make_word("friend", 4.2, 5.0),
        ]
        agent = [_make_segment(0, 6, "hello there my friend", words)]
        customer = [_make_segment(2, 3, "yes")]
        turns = split_overlapping_segments(agent, customer, Speaker.AGENT)

        assert [(t.start, t.end, t.text) for t in turns] == [
            (0, 2, "hello there"),
            (3, 6, "my friend"),
        ]
        assert [w.text for w in turns[1].words] == ["my", "friend"]

    def test_empty_chunk_is_dropped(self):
        words = [_make_word("hello", 8.0, 9.0)]
        agent = [_make_segment(0, 10, "hello", words)]
        customer = [_make_segment(2, 3, "yes")]
        turns = split_overlapping_segments(agent, customer, Speaker.AGENT)

        assert len(turns) == 1
        assert (turns[0].start, turns[0].end, turns[0].text) == (3, 10, "hello")

    def test_untimed_word_carried_into_remainder(self):
        words = [
            _make_word("call", 0.0, 0.5),
            _make_word("me", 0.6, 1.0),
            _make_word("at", 1.1, 1.5),
            Word(text="555"),
            _make_word("today", 7.5, 8.0),
            _make_word("please", 8.1, 9.0),
        ]
        agent = [_make_segment(0, 10, "call me at 555 today please", words)]
        customer = [_make_segment(5, 7, "okay")]
        turns = split_overlapping_segments(agent, customer, Speaker.AGENT)

        assert [(t.start, t.end, t.text) for t in turns] == [
            (0, 5, "call me at"),
            (7, 10, "555 today please"),
        ]

    def test_whisperx_word_key(self):
        word = Word.model_validate({"word": "hello", "start": 0.0, "end": 0.5})
        assert word.text == "hello"


class TestMergeChannels:
    def test_interleaves_by_start(self):
        agent = [_make_segment(0, 10, "hello there my friend")]
        customer = [_make_segment(5, 7, "yes")]
        agent_turns, customer_turns, all_turns = merge_channels(agent, customer)

        assert len(agent_turns) == 2
        assert len(customer_turns) == 1
        assert [(t.speaker, t.text) for t in all_turns] == [
            (Speaker.AGENT, "hello there"),
            (Speaker.CUSTOMER, "yes"),
            (Speaker.AGENT, "friend"),
        ]

    def test_agent_first_on_equal_start(self):
        agent = [_make_segment(2, 3, "okay")]
        customer = [_make_segment(2, 4, "right")]
        _, _, all_turns = merge_channels(agent, customer)
        assert [t.speaker for t in all_turns] == [Speaker.AGENT, Speaker.CUSTOMER]

    def test_empty_channels(self):
        assert merge_channels([], []) == ([], [], [])

    def test_one_empty_channel(self):
        agent = [_make_segment(0, 2, "hello")]
        agent_turns, customer_turns, all_turns = merge_channels(agent, [])
        assert customer_turns == []
        assert [t.text for t in all_turns] == ["hello"]

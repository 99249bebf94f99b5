"""Tests for call payload decoding and the PayloadError boundary."""

import json

import pytest

from config.schemas import Speaker
from pipeline.ingest import (
    PayloadError,
    build_payload,
    load_call_payload,
    parse_segments,
    segments_from_channels,
)


def _make_raw_segment(start: float, end: float, text: str, speaker: str = None) -> dict:
    seg = {"start": start, "end": end, "text": text}
    if speaker is not None:
        seg["speaker"] = speaker
    return seg


class TestParseSegments:
    def test_speaker_forced_from_channel(self):
        segments = parse_segments([_make_raw_segment(0, 1, "hi", speaker="SPEAKER_00")], Speaker.CUSTOMER)
        assert segments[0].speaker == Speaker.CUSTOMER

    def test_null_fields_defaulted(self):
        segments = parse_segments([{"start": None, "end": 2, "text": None, "words": None}], Speaker.AGENT)
        assert segments[0].start == 0.0
        assert segments[0].text == ""
        assert segments[0].words == []

    def test_whisperx_words(self):
        raw = [{"start": 0, "end": 1, "text": "hi", "words": [{"word": "hi", "start": 0.1, "end": 0.4}]}]
        segments = parse_segments(raw, Speaker.AGENT)
        assert segments[0].words[0].text == "hi"

    def test_none_is_empty(self):
        assert parse_segments(None, Speaker.AGENT) == []

    def test_not_a_list(self):
        with pytest.raises(PayloadError):
            parse_segments({"start": 0}, Speaker.AGENT)

    def test_invalid_segment(self):
        with pytest.raises(PayloadError):
            parse_segments([{"start": "soon", "end": 1, "text": "hi"}], Speaker.AGENT)

    def test_non_dict_segment(self):
        with pytest.raises(PayloadError):
            parse_segments(["just text"], Speaker.AGENT)


class TestChannels:
    def test_channel_zero_is_agent(self):
        items = [
            {"channel": 1, "result_data": json.dumps({"segments": [_make_raw_segment(2, 3, "yes")]})},
            {"channel": 0, "result_data": {"segments": [_make_raw_segment(0, 2, "hello")]}},
        ]
        agent, customer = segments_from_channels(items)
        assert [s.text for s in agent] == ["hello"]
        assert [s.text for s in customer] == ["yes"]
        assert agent[0].speaker == Speaker.AGENT
        assert customer[0].speaker == Speaker.CUSTOMER

    def test_missing_channel(self):
        agent, customer = segments_from_channels(
            [{"channel": 0, "result_data": {"segments": [_make_raw_segment(0, 2, "hello")]}}]
        )
        assert len(agent) == 1
        assert customer == []

    def test_duplicate_channel_keeps_first(self):
        items = [
            {"channel": 0, "result_data": {"segments": [_make_raw_segment(0, 2, "first")]}},
            {"channel": 0, "result_data": {"segments": [_make_raw_segment(0, 2, "second")]}},
        ]
        agent, _ = segments_from_channels(items)
        assert [s.text for s in agent] == ["first"]

    def test_invalid_json_result(self):
        with pytest.raises(PayloadError):
            segments_from_channels([{"channel": 0, "result_data": "{not json"}])

    def test_result_not_object(self):
        with pytest.raises(PayloadError):
            segments_from_channels([{"channel": 0, "result_data": "[1, 2]"}])

    def test_non_object_channel_entry(self):
        with pytest.raises(PayloadError):
            segments_from_channels(["not-an-object"])


class TestBuildPayload:
    def test_transcript_payload(self):
        payload = build_payload({
            "call_id": 123,
            "productType": "medicare",
            "transcript": "[0:00] Agent: Hi.",
            "call_analysis": {"campaign": "MEDICARE"},
        })
        assert payload.call_id == "123"
        assert payload.product_type == "medicare"
        assert payload.analysis == {"campaign": "MEDICARE"}
        assert payload.has_segments is False

    def test_explicit_segment_lists(self):
        payload = build_payload({
            "agent_segments": [_make_raw_segment(0, 2, "hello")],
            "customer_segments": [_make_raw_segment(2, 3, "yes")],
        })
        assert payload.has_segments is True
        assert payload.customer_segments[0].speaker == Speaker.CUSTOMER

    def test_non_dict_analysis_ignored(self):
        payload = build_payload({"transcript": "", "analysis": "not an object"})
        assert payload.analysis == {}

    def test_transcript_must_be_string(self):
        with pytest.raises(PayloadError):
            build_payload({"transcript": ["[0:00] Agent: Hi."]})

    def test_payload_must_be_object(self):
        with pytest.raises(PayloadError):
            build_payload(["not", "a", "call"])

    def test_channels_must_be_list_of_objects(self):
        with pytest.raises(PayloadError):
            build_payload({"channels": ["not-an-object"]})

    def test_channels_keyed_by_number_rejected(self):
        with pytest.raises(PayloadError):
            build_payload({"channels": {"0": {"channel": 0, "result_data": {"segments": []}}}})

    def test_payload_error_is_value_error(self):
        assert issubclass(PayloadError, ValueError)


class TestLoadCallPayload:
    def test_identifiers_default_from_file(self, tmp_path):
        path = tmp_path / "call_0042.json"
        path.write_text(json.dumps({"transcript": "[0:00] Agent: Hi."}))
        payload = load_call_payload(path)
        assert payload.call_id == "call_0042"
        assert payload.file_name == "call_0042.json"

    def test_explicit_identifiers_kept(self, tmp_path):
        path = tmp_path / "x.json"
        path.write_text(json.dumps({"call_id": "abc", "file_name": "orig.wav", "transcript": ""}))
        payload = load_call_payload(str(path))
        assert payload.call_id == "abc"
        assert payload.file_name == "orig.wav"

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{oops")
        with pytest.raises(PayloadError):
            load_call_payload(path)
